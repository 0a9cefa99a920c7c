"""kvspine core -- errors, logging, settings and events shared by the storage layer.

Modules
-------
errors      Structured error hierarchy (KVSpineError, ConfigError, BackendError)
logging     structlog configuration and helpers
settings    KVSpineSettings (pydantic-settings, ``KVSPINE_*`` env vars)
events      Synchronous EventManager for option/capability change events
"""

from kvspine.core.errors import (
    ArgumentError,
    BackendError,
    ConfigError,
    ErrorCategory,
    ErrorContext,
    ExtensionUnavailable,
    KVSpineError,
)
from kvspine.core.events import Event, EventManager
from kvspine.core.logging import configure_logging, get_logger
from kvspine.core.settings import KVSpineSettings, get_settings

__all__ = [
    "ArgumentError",
    "BackendError",
    "ConfigError",
    "ErrorCategory",
    "ErrorContext",
    "ExtensionUnavailable",
    "KVSpineError",
    "Event",
    "EventManager",
    "configure_logging",
    "get_logger",
    "KVSpineSettings",
    "get_settings",
]
