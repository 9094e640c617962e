"""
Central logging configuration.

Provides:
- Structured logging (JSON lines in production, one readable line in development)
- Correlation fields from contextvars: request_id is bound by the middleware,
  user_id once the identity dependency has resolved the caller

Usage:
    from sightings.logging_config import get_logger
    logger = get_logger(__name__)
    logger.info("Revision published", extra={"item_id": item_id, "revision_id": 3})
"""

import json
import logging
import logging.config
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
user_id_var: ContextVar[Optional[str]] = ContextVar("user_id", default=None)

# Record attribute -> context var supplying it when the call site did not
CONTEXT_FIELDS: Dict[str, ContextVar[Optional[str]]] = {
    "request_id": request_id_var,
    "user_id": user_id_var,
}

_UNSET = "-"

# Attributes every LogRecord has; anything else arrived through extra=
_STANDARD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}


class ContextFilter(logging.Filter):
    """Fill correlation fields from the context, keeping explicit extra= values."""

    def filter(self, record: logging.LogRecord) -> bool:
        for name, var in CONTEXT_FIELDS.items():
            if not getattr(record, name, None):
                setattr(record, name, var.get() or _UNSET)
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line for log aggregators."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key in _STANDARD_ATTRS or value is None or value == _UNSET:
                continue
            try:
                json.dumps(value)
            except (TypeError, ValueError):
                value = str(value)
            payload[key] = value

        return json.dumps(payload)


DEV_FORMAT = "%(asctime)s %(levelname)-5s [%(name)s] req=%(request_id)s user=%(user_id)s %(message)s"


def configure_logging(
    *,
    log_level: str = "INFO",
    environment: str = "development",
    debug: bool = False,
) -> None:
    """
    Configure application-wide logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        environment: 'development' or 'production'
        debug: If True, use DEBUG level regardless of log_level
    """
    level = "DEBUG" if debug else log_level.upper()
    if not isinstance(logging.getLevelName(level), int):
        level = "INFO"

    formatter = "json" if environment == "production" else "dev"

    logging.config.dictConfig({
        "version": 1,
        # Module loggers are created at import time, before this runs
        "disable_existing_loggers": False,
        "filters": {
            "context": {"()": ContextFilter},
        },
        "formatters": {
            "json": {"()": JsonFormatter},
            "dev": {"format": DEV_FORMAT, "datefmt": "%H:%M:%S"},
        },
        "handlers": {
            "stderr": {
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stderr",
                "level": level,
                "filters": ["context"],
                "formatter": formatter,
            },
        },
        "root": {"level": level, "handlers": ["stderr"]},
        "loggers": {
            "uvicorn.access": {"level": "WARNING"},
            "sqlalchemy.engine": {"level": "WARNING"},
        },
    })


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for the given module name.

    Records pick up request_id and user_id automatically once the handler
    installed by configure_logging() sees them; pass either in extra= to
    override.
    """
    return logging.getLogger(name)
