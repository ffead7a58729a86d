"""
JSON logs for the reader API.
Message is the event name ("access_denied", "role_changed"...); context goes to extra.
request_id is attached to every record emitted while a request is being served.
"""
import json
import logging
from contextvars import ContextVar
from datetime import datetime
from enum import Enum
from logging.handlers import RotatingFileHandler

from app.core.config import settings
from app.utils.time import isoformat_z, utcnow

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

# uvicorn.access duplicates the http_request line written by app.main
QUIET_LOGGERS = ("uvicorn.access",)


def _jsonable(value):
    if isinstance(value, datetime):
        return isoformat_z(value)
    if isinstance(value, Enum):
        return value.value
    return value


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = request_id_var.get()
        return True


class JsonFormatter(logging.Formatter):
    # Whitelisted extra fields; anything else passed in extra= is dropped
    EXTRA_FIELDS = (
        "request_id", "user_id", "role", "manhwa_id", "chapter_id", "comment_id",
        "unit_type", "unit_id", "reason", "available_at", "action", "source",
        "method", "path", "status_code", "latency_ms",
        "breaker_name", "old_state", "new_state", "error",
    )

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": isoformat_z(utcnow()),
            "level": record.levelname,
            "logger": record.name,
            "event": record.getMessage(),
            "env": settings.app_env,
        }
        for field in self.EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = _jsonable(value)

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging() -> None:
    formatter = JsonFormatter()
    request_filter = RequestIdFilter()

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    handler.addFilter(request_filter)
    handlers = [handler]
    if settings.log_file:
        file_handler = RotatingFileHandler(
            settings.log_file,
            maxBytes=settings.log_max_bytes,
            backupCount=settings.log_backup_count,
        )
        file_handler.setFormatter(formatter)
        file_handler.addFilter(request_filter)
        handlers.append(file_handler)

    root = logging.getLogger()
    root.setLevel(settings.log_level.upper())
    root.handlers = handlers
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
