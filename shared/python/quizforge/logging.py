"""Structured JSON logging utilities."""

from __future__ import annotations

from datetime import datetime, timezone
import json
import logging

from quizforge.correlation import get_correlation_id

# Keys passed through `extra=` that are copied into the JSON payload.
STRUCTURED_FIELDS: tuple[str, ...] = (
    "provider",
    "tier",
    "model_id",
    "failure",
    "status_code",
    "question_type",
    "requested",
    "accepted",
    "rejected",
    "strategy",
    "source",
    "attempt",
    "batch",
)


class JsonFormatter(logging.Formatter):
    """Minimal JSON formatter with correlation id and pipeline context."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": get_correlation_id(),
        }
        for key in STRUCTURED_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = str(value) if not isinstance(value, (int, float, bool)) else value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True)


def configure_logging(level: int | str = logging.INFO) -> None:
    """Configure root logger for JSON output."""

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)
    root.addHandler(handler)


def truncate_for_log(value: str | None, limit: int = 300) -> str:
    """Clip provider output before it reaches a log line."""

    if not value:
        return ""
    return value if len(value) <= limit else value[:limit] + "..."
