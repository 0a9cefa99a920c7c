"""
Structured error types for kvspine.

Provides a small hierarchy of typed errors with metadata for retry decisions,
error categorization and root cause analysis through error chaining.

Instead of letting ``dbm.error``, ``OSError`` or stray ``warnings`` escape the
storage layer, every failure is raised as a :class:`KVSpineError` subclass that
carries:

- **Category:** What kind of error (config, storage, ...)
- **Retryable:** Whether the operation can be retried automatically
- **Context:** Metadata such as the backend operation, pathname and handler
- **Cause:** Chained underlying exception (or captured warning)

Manifesto:
    - **Typed Error Hierarchy:** Configuration vs. backend faults are distinct
    - **Explicit Retry Semantics:** Each error knows if it's retryable
    - **Rich Context:** Errors carry metadata for logging
    - **Error Chaining:** Preserve original exceptions while adding context

Architecture:
    ::

        ┌───────────────────────────────────────────────────────────┐
        │                       KVSpineError                         │
        │  (category, retryable, context, cause)                     │
        ├───────────────────────────────────────────────────────────┤
        │                                                            │
        │  ConfigError            BackendError                       │
        │  (CONFIG)               (STORAGE)                          │
        │      │                                                     │
        │  ArgumentError          ExtensionUnavailable               │
        │  (VALIDATION)           (CONFIG)                           │
        └───────────────────────────────────────────────────────────┘

Examples:
    Chaining a backend failure:

    >>> try:
    ...     raise OSError("disk full")
    ... except OSError as e:
    ...     error = BackendError("replace('k', ...) failed", cause=e)
    >>> error.cause
    OSError('disk full')

    Adding context fluently:

    >>> error = BackendError("open failed").with_context(operation="open", handler="gnu")
    >>> error.context.operation
    'open'

Guardrails:
    ❌ DON'T: Raise ``dbm.error`` or ``OSError`` out of the storage layer
    ✅ DO: Wrap it in ``BackendError(..., cause=exc)``

    ❌ DON'T: Raise for "not found" / "already exists"
    ✅ DO: Return ``False`` / ``(None, False)`` for those

Tags:
    error-handling, exception-hierarchy, error-context, kvspine

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Standard error categories for classification and routing.

    Attributes:
        STORAGE: Disk, file system and dbm backend errors
        VALIDATION: Invalid arguments (empty key, unsupported value type)
        CONFIG: Missing config, invalid settings, unavailable handler
        INTERNAL: Bugs, unexpected state
        UNKNOWN: Uncategorized errors
    """

    STORAGE = "STORAGE"  # Disk, dbm handler, file system

    VALIDATION = "VALIDATION"  # Bad arguments

    CONFIG = "CONFIG"  # Missing config, invalid settings

    INTERNAL = "INTERNAL"  # Bugs, unexpected state
    UNKNOWN = "UNKNOWN"  # Uncategorized errors


@dataclass
class ErrorContext:
    """
    Structured metadata context for errors.

    Typed fields cover what the storage layer knows at the point of failure
    (the backend operation, the database pathname and the handler name).
    Anything else goes into ``metadata``.

    Examples:
        >>> ctx = ErrorContext(operation="open", pathname="/tmp/cache.db", handler="gnu")
        >>> ctx.to_dict()
        {'operation': 'open', 'pathname': '/tmp/cache.db', 'handler': 'gnu'}

    Attributes:
        operation: Backend primitive being executed (``open``, ``replace``, ...)
        pathname: Path of the database file
        handler: Name of the dbm handler
        key: Internal key involved, if any
        metadata: Additional key-value pairs
    """

    operation: str | None = None
    pathname: str | None = None
    handler: str | None = None
    key: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["operation", "pathname", "handler", "key"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class KVSpineError(Exception):
    """
    Base exception for all kvspine errors.

    Subclasses set ``default_category`` and ``default_retryable`` class
    attributes to provide sensible defaults for their domain.

    Examples:
        >>> error = KVSpineError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.retryable
        False
    """

    # Default category for this error type
    default_category: ErrorCategory = ErrorCategory.INTERNAL
    # Default retryable setting
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        # Chain the cause if provided
        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> KVSpineError:
        """
        Add context to this error (fluent API).

        Usage:
            raise BackendError("Failed").with_context(
                operation="optimize",
                pathname="/var/cache/app.db",
            )
        """
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION ERRORS (Never Retryable)
# =============================================================================


class ConfigError(KVSpineError):
    """
    Configuration error.

    Raised when the adapter cannot proceed because of its configuration,
    most commonly an empty ``pathname`` or an unknown handler name.
    """

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class ArgumentError(ConfigError):
    """Invalid argument passed to an adapter operation (empty key, prefix, namespace)."""

    default_category = ErrorCategory.VALIDATION


class ExtensionUnavailable(ConfigError):
    """The dbm handler module for the configured handler cannot be imported."""

    def __init__(self, handler: str, message: str | None = None, *, cause: BaseException | None = None):
        self.handler = handler
        super().__init__(
            message or f"dbm handler '{handler}' is not available in this interpreter",
            context=ErrorContext(handler=handler),
            cause=cause,
        )


# =============================================================================
# BACKEND ERRORS
# =============================================================================


class BackendError(KVSpineError):
    """
    A dbm primitive reported failure.

    Covers open, write, delete, compaction, file removal and disk space
    queries. The underlying exception, or the warning captured while the
    primitive ran, is available as ``cause`` and ``__cause__``.
    """

    default_category = ErrorCategory.STORAGE
    default_retryable = False


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def is_retryable(error: BaseException) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, KVSpineError):
        return error.retryable
    return False


def categorize_error(error: BaseException) -> ErrorCategory:
    """Categorize an arbitrary exception."""
    if isinstance(error, KVSpineError):
        return error.category

    if isinstance(error, (OSError, KeyError)):
        return ErrorCategory.STORAGE
    if isinstance(error, (TypeError, ValueError)):
        return ErrorCategory.VALIDATION

    return ErrorCategory.UNKNOWN


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "KVSpineError",
    "ConfigError",
    "ArgumentError",
    "ExtensionUnavailable",
    "BackendError",
    "is_retryable",
    "categorize_error",
]
