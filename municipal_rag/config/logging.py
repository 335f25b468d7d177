"""
Logging configuration.

Structured JSON output in production, a compact line format elsewhere.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from municipal_rag.config.settings import get_settings

ROOT_LOGGER = "municipal_rag"

# Third-party loggers that log every request at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "pdfminer")

# Attributes passed through ``extra=`` that are copied into JSON records
CONTEXT_FIELDS = ("url", "document_id", "batch")


class JSONFormatter(logging.Formatter):
    """Format log records as JSON for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "function": record.funcName,
            "line": record.lineno,
        }

        # Context passed through extra=
        for field in CONTEXT_FIELDS:
            if hasattr(record, field):
                log_obj[field] = getattr(record, field)

        # Add exception info if present
        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_obj, default=str)


class SimpleFormatter(logging.Formatter):
    """Simple formatter for development."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


def setup_logging(level: str | None = None) -> logging.Logger:
    """
    Set up logging configuration.

    Args:
        level: Optional level name overriding ``LOG_LEVEL``

    Returns:
        The package root logger
    """
    settings = get_settings()

    # Package root logger; module loggers hang off it
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, (level or settings.log_level).upper()))

    # Repeated calls (scripts, tests) must not stack handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)

    # JSON in production, one line per record in development
    if settings.is_production:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(SimpleFormatter())

    logger.addHandler(handler)

    # Prevent propagation to root logger
    logger.propagate = False

    # Keep per-request chatter from httpx and PDF parsing out of crawl logs
    if not settings.debug:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name, will be prefixed with 'municipal_rag.'

    Returns:
        Logger instance
    """
    if name:
        return logging.getLogger(f"{ROOT_LOGGER}.{name}")
    return logging.getLogger(ROOT_LOGGER)
