"""JSON Lines formatter with trace correlation."""
from __future__ import annotations

from datetime import UTC, datetime
import json
import logging
from typing import Any

from opentelemetry import trace

# Attributes every LogRecord has; anything else on a record came from ``extra``
_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "taskName"}


def _iso_millis(created: float) -> str:
    stamp = datetime.fromtimestamp(created, tz=UTC).isoformat(timespec="milliseconds")
    return stamp.replace("+00:00", "Z")


class JSONFormatter(logging.Formatter):
    """One JSON object per record, one record per line.

    Extra fields (``adapter``, ``outbox_id``, ``notification_id`` and so on)
    are emitted as top-level keys. Trace and span ids are added while an
    OpenTelemetry span is active.

    Example output:
        {"timestamp": "2026-10-01T12:00:00.123Z", "level": "INFO",
         "logger": "delivery_service.features.delivery.worker",
         "message": "Delivery pass complete", "service": "notification-delivery",
         "adapter": "push", "delivered": 3}
    """

    def __init__(self, static: dict[str, Any] | None = None) -> None:
        super().__init__()
        self.static = dict(static or {})

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "timestamp": _iso_millis(record.created),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **self.static,
        }

        span_context = trace.get_current_span().get_span_context()
        if span_context.is_valid:
            data["trace_id"] = format(span_context.trace_id, "032x")
            data["span_id"] = format(span_context.span_id, "016x")

        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            data["stack_trace"] = record.stack_info

        for key, value in vars(record).items():
            if key not in _STANDARD_ATTRS and key not in data:
                data[key] = value

        # json.dumps escapes newlines inside strings, so tracebacks stay on one line
        return json.dumps(data, ensure_ascii=False, default=str)
