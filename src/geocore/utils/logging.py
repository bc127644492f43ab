"""Structured logging configuration using structlog.

Provides correlation context (index name, operation) for tracing work across
callers that share one process, and configurable output formats (JSON for
production, colored console for dev).
"""

import logging
import sys
from collections.abc import MutableMapping
from contextvars import ContextVar
from typing import Any, cast

import structlog
from structlog.types import Processor

from geocore.config import settings

# Context variables for correlation IDs
_index_name: ContextVar[str | None] = ContextVar("index_name", default=None)
_operation: ContextVar[str | None] = ContextVar("operation", default=None)


def set_correlation_context(
    index_name: str | None = None,
    operation: str | None = None,
) -> None:
    """Set correlation values for the current context.

    Args:
        index_name: Name of the spatial index being worked on
        operation: Logical operation in progress (e.g., "bulk_load")
    """
    if index_name is not None:
        _index_name.set(index_name)
    if operation is not None:
        _operation.set(operation)


def clear_correlation_context() -> None:
    """Clear all correlation context variables."""
    _index_name.set(None)
    _operation.set(None)


def _add_correlation_ids(
    logger: logging.Logger,
    method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Structlog processor to add correlation values to log events."""
    _ = logger, method_name  # Required by structlog processor signature
    index_name = _index_name.get()
    operation = _operation.get()

    if index_name is not None:
        event_dict.setdefault("index_name", index_name)
    if operation is not None:
        event_dict.setdefault("operation", operation)

    return event_dict


def configure_logging(
    level: str | None = None,
    log_format: str | None = None,
) -> None:
    """Configure structlog with the specified settings.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               Defaults to settings.LOG_LEVEL.
        log_format: Output format ("console" or "json").
                    Defaults to settings.LOG_FORMAT.
    """
    level = level or settings.LOG_LEVEL
    log_format = log_format or settings.LOG_FORMAT

    # Shared processors for all output formats
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        _add_correlation_ids,
    ]

    if log_format == "json":
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Configure stdlib logging to match
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper()),
        force=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger instance.

    Args:
        name: Logger name. If None, uses the calling module's name.

    Returns:
        A bound structlog logger instance.
    """
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))
