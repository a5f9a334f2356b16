"""JSON logging for the SalesDesk service.

Every record is rendered as one JSON object: ``ts``, ``level``, ``logger``,
``service``, ``msg``, ``correlation_id`` and a ``fields`` object. Only fields
registered in ``LOG_FIELDS`` reach ``fields``; call sites build their ``extra``
through :func:`log_fields`, which rejects unregistered names instead of letting
the formatter drop them.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from salesdesk.context import get_correlation_id
from salesdesk.core.config import get_settings


HTTP_FIELDS = frozenset({"method", "path", "status_code", "duration_ms"})
CRM_FIELDS = frozenset(
    {
        "entity_type",
        "entity_id",
        "operation",
        "changed_fields",
        "from_stage",
        "to_stage",
        "probability",
        "stage_ids",
    }
)
EVENT_FIELDS = frozenset({"event_name", "event_payload"})
ERROR_FIELDS = frozenset({"error"})
LOG_FIELDS = HTTP_FIELDS | CRM_FIELDS | EVENT_FIELDS | ERROR_FIELDS

_MAX_ERROR_CHARS = 500

_DEFAULT_RECORD_FACTORY = logging.getLogRecordFactory()


def log_fields(**fields: Any) -> dict[str, Any]:
    """Build a logging ``extra`` mapping, skipping ``None`` values."""
    unknown = set(fields) - LOG_FIELDS
    if unknown:
        raise ValueError(f"unregistered log fields: {', '.join(sorted(unknown))}")
    return {key: value for key, value in fields.items() if value is not None}


def _record_factory(*args: Any, **kwargs: Any) -> logging.LogRecord:
    record = _DEFAULT_RECORD_FACTORY(*args, **kwargs)
    record.correlation_id = get_correlation_id()
    return record


class JsonLogFormatter(logging.Formatter):
    def __init__(self, service: str = "salesdesk") -> None:
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        fields = {key: value for key, value in record.__dict__.items() if key in LOG_FIELDS}
        if isinstance(fields.get("error"), str):
            fields["error"] = fields["error"][:_MAX_ERROR_CHARS]
        if record.exc_info:
            fields["exception"] = self.formatException(record.exc_info)

        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "service": self.service,
            "msg": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", None),
            "fields": fields,
        }
        return json.dumps(payload, default=str)


def configure_logging() -> None:
    root_logger = logging.getLogger()
    if getattr(root_logger, "_salesdesk_configured", False):
        return

    settings = get_settings()
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(JsonLogFormatter(service=settings.app_name))

    root_logger.handlers.clear()
    root_logger.setLevel(level)
    logging.setLogRecordFactory(_record_factory)
    root_logger.addHandler(handler)
    root_logger._salesdesk_configured = True  # type: ignore[attr-defined]
