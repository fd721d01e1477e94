"""
Structured logging for the image store.

This module sets up structured logging with:
- Settings-driven configuration (dev vs production)
- JSON formatting for production, pretty console for development
- Redaction of credentials (raw API keys, key digests) from log events

Modules log through get_logger(__name__) with snake_case event names:

    log = get_logger(__name__)
    log.info("image_uploaded", image_id=image_id, app_id=app_id)
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from structlog.stdlib import BoundLogger
from structlog.types import EventDict, Processor

if TYPE_CHECKING:
    from config import LoggingSettings

# Exact field names that never reach a log sink
REDACTED_FIELDS = {
    "api_key",
    "raw_key",
    "key_hash",
    "x-api-key",
    "authorization",
    "cookie",
    "password",
    "secret",
    "token",
}

# Substrings that mark a field as sensitive wherever they appear
REDACTED_SUBSTRINGS = ("password", "secret", "token", "raw_key")

_PROTECTED_FIELDS = {"level", "event", "timestamp", "logger"}


def get_logger(name: str) -> BoundLogger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        structlog BoundLogger instance
    """
    return structlog.get_logger(name)


def add_timestamp(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add ISO format timestamp to event dict."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def redact_sensitive_fields(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Redact sensitive fields from logs."""
    for key in list(event_dict.keys()):
        if key in _PROTECTED_FIELDS:
            continue
        lowered = key.lower()
        if lowered in REDACTED_FIELDS or any(s in lowered for s in REDACTED_SUBSTRINGS):
            event_dict[key] = "***REDACTED***"
    return event_dict


def configure_structlog(log_format: str = "console", cache_loggers: bool = True) -> None:
    """
    Configure structlog processors.

    "json": one JSON object per line, for log shippers
    anything else: pretty console output with colors
    """
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_timestamp,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        redact_sensitive_fields,
        structlog.processors.format_exc_info,
    ]

    if log_format == "json":
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True, pad_event=15, sort_keys=False)

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=cache_loggers,
    )


def configure_stdlib_logging(log_level: str = "INFO") -> None:
    """Route stdlib logging to stdout at *log_level* and quiet noisy libraries."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )

    # Silence pymongo debug logs (connection pool, server monitoring, etc.)
    for name in ("pymongo", "pymongo.connection", "pymongo.serverSelection",
                 "pymongo.command", "pymongo.topology", "multipart"):
        logging.getLogger(name).setLevel(logging.WARNING)


def setup_logging(settings: "LoggingSettings") -> None:
    """
    Initialize logging for the application.

    Called once from create_app() and from the key management CLI.
    """
    log_format = settings.log_format
    if settings.is_production and log_format == "console":
        log_format = "json"

    configure_stdlib_logging(settings.log_level)
    configure_structlog(log_format, cache_loggers=settings.log_cache_loggers)

    get_logger(__name__).debug(
        "logging_initialized",
        env=settings.env,
        log_level=settings.log_level,
        log_format=log_format,
    )


__all__ = [
    "get_logger",
    "configure_structlog",
    "configure_stdlib_logging",
    "setup_logging",
    "redact_sensitive_fields",
]
