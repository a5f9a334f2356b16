from __future__ import annotations

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from salesdesk.logging import log_fields
from salesdesk.metrics import observe_http_request, resolve_http_path_label


logger = logging.getLogger("salesdesk.request")

# Health and scrape endpoints log at DEBUG.
_QUIET_PATHS = frozenset({"/health", "/metrics"})


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def _level_for(path: str, status_code: int) -> int:
    if status_code >= 500:
        return logging.WARNING
    if path in _QUIET_PATHS:
        return logging.DEBUG
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):  # type: ignore[no-untyped-def]
        method = request.method
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            duration_ms = _elapsed_ms(started)
            path = resolve_http_path_label(request)
            observe_http_request(method=method, path=path, status=500, duration=duration_ms / 1000)
            logger.error(
                "http.error",
                exc_info=True,
                extra=log_fields(method=method, path=path, status_code=500, duration_ms=duration_ms),
            )
            raise

        duration_ms = _elapsed_ms(started)
        path = resolve_http_path_label(request)
        observe_http_request(method=method, path=path, status=response.status_code, duration=duration_ms / 1000)
        logger.log(
            _level_for(path, response.status_code),
            "http.request",
            extra=log_fields(
                method=method,
                path=path,
                status_code=response.status_code,
                duration_ms=duration_ms,
            ),
        )
        return response
