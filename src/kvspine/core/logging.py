"""
kvspine logging - structured logging for the storage layer.

This module configures structlog so that every kvspine component logs
key-value events in the same shape, whether it runs inside a service (JSON
output for log aggregation) or in a terminal (colored console output).

Manifesto:
    Storage faults surface far from where they happen. Structured events
    with the backend operation, pathname and handler attached make a failed
    ``dbm`` call traceable without a debugger.

    - **Standardizes:** Same event shape across all components
    - **Structures:** JSON output for log aggregation
    - **Flexes:** Console output for development, JSON for production

Architecture:
    ::

        configure_logging(level="INFO", json_format=True, service="kvspine")
            ↓
        structlog processor chain:
          1. TimeStamper (iso)
          2. add_log_level (logger name bound by get_logger)
          3. add_service_metadata
          4. JSONRenderer (or ConsoleRenderer for dev)

Examples:
    >>> from kvspine.core.logging import configure_logging, get_logger
    >>> configure_logging(level="DEBUG", json_format=False)
    >>> logger = get_logger(__name__)
    >>> logger.debug("dbm_open", pathname="/tmp/cache.db", handler="dumb")

Tags:
    logging, structlog, observability, kvspine

Doc-Types:
    - API Reference
    - Observability Guide
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger
from structlog._config import BoundLoggerLazyProxy

# Store service name for metadata
_SERVICE_NAME = "kvspine"


def _add_service_metadata(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add service-level metadata to all logs."""
    event_dict.setdefault("service.name", _SERVICE_NAME)
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "kvspine",
    add_timestamp: bool = True,
) -> None:
    """Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: True for JSON, False for console, None for auto (JSON if not tty)
        service: Service name to include in logs
        add_timestamp: Include ISO timestamp in logs
    """
    global _SERVICE_NAME
    _SERVICE_NAME = service

    # Auto-detect format if not specified
    if json_format is None:
        json_format = not sys.stdout.isatty()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _add_service_metadata,
    ]

    if add_timestamp:
        shared_processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if json_format:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Configure standard library logging too
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper()),
    )


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger.

    The name is bound as the ``logger`` field; ``PrintLogger`` has no
    ``name`` of its own for ``add_logger_name`` to read.

    Args:
        name: Logger name (usually __name__)
    """
    if name:
        # Same lazy proxy structlog.get_logger() builds; the ``logger`` key
        # collides with wrap_logger's first parameter when passed as a kwarg.
        return BoundLoggerLazyProxy(None, initial_values={"logger": name})
    return structlog.get_logger()


def bind_context(**kwargs: Any) -> None:
    """Bind context to include in all subsequent logs.

    Example:
        bind_context(pathname="/var/cache/app.db")
        logger.info("dbm_open")  # Includes pathname
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove specific keys from logging context."""
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    """Clear all bound context."""
    structlog.contextvars.clear_contextvars()


class LogContext:
    """Context manager for scoped logging context.

    Example:
        with LogContext(namespace="sessions"):
            cache.clear_by_prefix("user-")
        # Context cleared here
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs

    def __enter__(self) -> LogContext:
        bind_context(**self._context)
        return self

    def __exit__(self, *args) -> None:
        unbind_context(*self._context.keys())


__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
    "clear_context",
    "LogContext",
]
