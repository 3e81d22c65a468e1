"""Logging setup for bucketgate.

Three output formats are selected by settings.log_format: plain text,
text with admission context appended, or one JSON object per line.
"""

import json
import logging
import logging.config
import sys
import traceback
from datetime import datetime
from typing import Any, Dict, Optional

from bucketgate.app.core.config import settings

# Admission context attached to records through extra=get_log_context(...)
CONTEXT_FIELDS = ("request_id", "identity", "admitted", "path", "method")

# Keys of a bare LogRecord plus the keys JSONFormatter writes itself
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "asctime", "timestamp", "level", "logger", "source"}


class JSONFormatter(logging.Formatter):
    """Render a record as a single JSON line.

    Admission context goes at the top level; any other extra= keys are
    grouped under "extra".
    """

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()

        entry: Dict[str, Any] = {
            "timestamp": datetime.now().astimezone().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.message,
            "source": {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            },
        }

        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = value

        extra = {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and key not in CONTEXT_FIELDS
        }
        if extra:
            entry["extra"] = extra

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = traceback.format_exception(*record.exc_info)

        return json.dumps(entry, default=str, ensure_ascii=False)


class ContextFilter(logging.Filter):
    """Give every record the admission context attributes.

    The "structured" text format interpolates them, so they must exist
    even when the caller passed no extra=.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        for name in CONTEXT_FIELDS:
            if not hasattr(record, name):
                setattr(record, name, None)
        return True


def get_logging_config() -> Dict[str, Any]:
    """Build the dictConfig mapping for the configured level and format."""
    log_format = settings.log_format.lower()
    log_level = settings.log_level.upper()

    formatters: Dict[str, Any] = {
        "text": {
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        },
        "structured": {
            "format": (
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
                " - request_id=%(request_id)s identity=%(identity)s admitted=%(admitted)s"
            ),
        },
        "json": {
            "()": "bucketgate.app.core.logging.JSONFormatter",
        },
    }
    formatter = log_format if log_format in formatters else "text"

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": formatters,
        "filters": {
            "context": {"()": "bucketgate.app.core.logging.ContextFilter"},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": log_level,
                "formatter": formatter,
                "stream": sys.stdout,
                "filters": ["context"],
            },
            "error_console": {
                "class": "logging.StreamHandler",
                "level": "ERROR",
                "formatter": formatter,
                "stream": sys.stderr,
                "filters": ["context"],
            },
        },
        "loggers": {
            "bucketgate": {
                "level": log_level,
                "handlers": ["console", "error_console"],
                "propagate": False,
            },
        },
        "root": {
            "level": log_level,
            "handlers": ["console"],
        },
    }


def setup_logging() -> None:
    """Configure logging for the application."""
    logging.config.dictConfig(get_logging_config())


def get_logger(name: str = "bucketgate") -> logging.Logger:
    return logging.getLogger(name)


def get_log_context(
    request_id: Optional[str] = None,
    identity: Optional[str] = None,
    admitted: Optional[bool] = None,
    **extra
) -> Dict[str, Any]:
    """Build an extra= mapping for a logging call, dropping None values.

    Example:
        >>> logger.info(
        ...     "Request rejected",
        ...     extra=get_log_context(identity="ratelimit:ip:ab12", admitted=False)
        ... )
    """
    context = {"request_id": request_id, "identity": identity, "admitted": admitted, **extra}
    return {k: v for k, v in context.items() if v is not None}
