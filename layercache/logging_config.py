"""
layercache - Logging Configuration

Structured logging for the layered cache. Modules log through
logging.getLogger(__name__) with context in ``extra``; this module installs
one handler on the package logger that renders records as JSON lines (or
plain text for local development).
"""

import json
import logging
from datetime import UTC, datetime
from typing import Any

from .config.schemas import LayerCacheConfig, LogFormat

PACKAGE_LOGGER = "layercache"

# LogRecord attributes that are not user-supplied ``extra`` fields
_RESERVED_ATTRS = frozenset(
    (
        "args",
        "msg",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "name",
        "message",
    )
)


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        # Add any extra fields from record.__dict__
        for key, value in record.__dict__.items():
            if key not in log_data and not key.startswith("_") and key not in _RESERVED_ATTRS:
                log_data[key] = value

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str, ensure_ascii=False)


def setup_logging(
    level: str | int = logging.INFO,
    fmt: str = LogFormat.JSON.value,
) -> logging.Logger:
    """
    Attach a single stream handler to the package logger.

    Safe to call repeatedly; previous handlers installed here are replaced.

    Args:
        level: Log level name or number
        fmt: "json" for structured output, "text" for human-readable lines

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(PACKAGE_LOGGER)

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler()
    if fmt == LogFormat.JSON.value:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))

    logger.addHandler(handler)
    logger.setLevel(level)
    return logger


def configure_logging(config: LayerCacheConfig) -> logging.Logger:
    """Apply log level and format from a loaded configuration."""
    # Defaults keep their enum members; validated values are plain strings
    level = getattr(config.log_level, "value", config.log_level)
    fmt = getattr(config.log_format, "value", config.log_format)
    return setup_logging(level=level, fmt=fmt)
