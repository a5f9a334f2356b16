from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from salesdesk.api.routes import router as api_router
from salesdesk.core.config import get_settings
from salesdesk.core.events import InternalEvent, event_bus
from salesdesk.crm.container import build_services_from_settings
from salesdesk.logging import configure_logging, log_fields
from salesdesk.middleware.correlation_id import CorrelationIdMiddleware
from salesdesk.middleware.request_logging import RequestLoggingMiddleware
from salesdesk.otel import get_fastapi_server_request_hook, setup_otel


configure_logging()
logger = logging.getLogger("salesdesk.lifecycle")
_subscriptions_registered = False


def _on_system_started(event: InternalEvent) -> None:
    logger.info("system_event", extra=log_fields(event_name=event.name, event_payload=event.payload))


@asynccontextmanager
async def lifespan(app: FastAPI):
    global _subscriptions_registered
    if not _subscriptions_registered:
        event_bus.subscribe("system.started", _on_system_started)
        _subscriptions_registered = True
    # Tests may install their own services before startup.
    if getattr(app.state, "crm", None) is None:
        app.state.crm = build_services_from_settings(get_settings())
    event_bus.publish("system.started", {"service": "api", "records": app.state.crm.store.counts()})
    yield


app = FastAPI(title="SalesDesk API", version="0.1.0", lifespan=lifespan)
app.state.crm = None
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)
app.include_router(api_router)

setup_otel(get_settings())

if not getattr(app, "_is_instrumented_by_opentelemetry", False):
    FastAPIInstrumentor().instrument_app(app, server_request_hook=get_fastapi_server_request_hook())
