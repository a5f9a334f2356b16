from __future__ import annotations

from typing import Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
)
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from salesdesk import __version__
from salesdesk.core.config import Settings
from salesdesk.middleware.correlation_id import CORRELATION_HEADER


_exporters_configured = False
_provider: TracerProvider | None = None


def _get_or_create_provider(service_name: str, environment: str = "local") -> TracerProvider:
    global _provider

    if _provider is not None:
        return _provider

    resource = Resource.create(
        {
            "service.name": service_name,
            "service.namespace": "salesdesk",
            "service.version": __version__,
            "deployment.environment": environment,
        }
    )
    _provider = TracerProvider(resource=resource)
    trace.set_tracer_provider(_provider)
    return _provider


def setup_otel(settings: Settings) -> TracerProvider | None:
    """Install the tracer provider and exporters described by ``settings``.

    Safe to call more than once; exporters are attached only on the first call.
    """
    global _exporters_configured

    if not settings.otel_enabled:
        return None

    provider = _get_or_create_provider(settings.otel_service_name, settings.app_env)
    if _exporters_configured:
        return provider

    if settings.otel_exporter_otlp_endpoint:
        provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otel_exporter_otlp_endpoint))
        )
    if settings.otel_console_exporter:
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

    _exporters_configured = True
    return provider


def setup_inmemory_otel(service_name: str = "salesdesk-api") -> InMemorySpanExporter:
    provider = _get_or_create_provider(service_name, "test")
    exporter = InMemorySpanExporter()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    return exporter


def get_tracer(name: str) -> trace.Tracer:
    return trace.get_tracer(name, __version__)


def get_fastapi_server_request_hook():
    header_key = CORRELATION_HEADER.encode("latin-1")

    def server_request_hook(span, scope: dict[str, Any]) -> None:  # type: ignore[no-untyped-def]
        if span is None or not span.is_recording():
            return
        headers = dict(scope.get("headers", []))
        correlation_raw = headers.get(header_key)
        if correlation_raw:
            span.set_attribute("correlation_id", correlation_raw.decode("latin-1"))
        route = scope.get("path", "")
        if route.startswith("/api/crm/"):
            span.set_attribute("crm.resource", route.split("/")[3])

    return server_request_hook
