"""dbm backend handle.

``BackendHandle`` owns at most one open ``dbm`` database for a
:class:`~kvspine.storage.adapter.DbmCache`. It opens lazily on the first
primitive call, exposes the primitives the adapter builds on (fetch,
exists, replace, insert, delete, first/next key, optimize) and closes
best-effort.

Every primitive runs inside :func:`guarded`, which records the warnings
raised while the call runs and turns backend exceptions (the handler's
``error`` class and ``OSError``) into :class:`~kvspine.core.errors.BackendError`
with the original exception as ``__cause__``. In strict mode a recorded
warning is itself a failure and becomes the cause.

Handler quirks kept as-is here and worked around by the adapter:

- ``insert`` reports success when the key already exists
- ``delete`` raises when the key is absent
- fetch faults are indistinguishable from a missing key
- deleting while walking the ``gnu`` cursor may skip or repeat keys
"""

from __future__ import annotations

import warnings
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from types import ModuleType
from typing import Any

from kvspine.core.errors import BackendError, ConfigError, ErrorContext
from kvspine.core.logging import get_logger

from .handlers import HandlerRegistry, HandlerSpec, handler_registry
from .options import DbmOptions

logger = get_logger(__name__)


@dataclass
class Diagnostics:
    """Warnings captured while a backend primitive ran."""

    operation: str
    warnings: list[Warning] = field(default_factory=list)

    @property
    def first(self) -> Warning | None:
        return self.warnings[0] if self.warnings else None

    def __bool__(self) -> bool:
        return bool(self.warnings)


@contextmanager
def guarded(
    operation: str,
    errors: tuple[type[BaseException], ...] = (OSError,),
    *,
    strict: bool = False,
    context: ErrorContext | None = None,
) -> Iterator[Diagnostics]:
    """Run a backend call with warnings captured and errors translated.

    Args:
        operation: Primitive name, used in the error message and context
        errors: Exception types raised by the backend for I/O faults
        strict: Treat any captured warning as a failure
        context: Error context attached to a raised ``BackendError``

    Raises:
        BackendError: the call raised one of ``errors``, or (strict) warned
    """
    diagnostics = Diagnostics(operation)
    context = context or ErrorContext()
    context.operation = operation

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        try:
            yield diagnostics
        except errors as exc:
            raise BackendError(f"{operation} failed: {exc}", context=context, cause=exc) from exc
        finally:
            diagnostics.warnings.extend(record.message for record in caught)

    if diagnostics:
        if strict:
            raise BackendError(
                f"{operation} failed: {diagnostics.first}",
                context=context,
                cause=diagnostics.first,
            )
        logger.warning(
            "backend_warning",
            operation=operation,
            warnings=[str(w) for w in diagnostics.warnings],
            **{k: v for k, v in context.to_dict().items() if k != "operation"},
        )


class BackendHandle:
    """Single open dbm connection, opened on demand.

    The handle is bound to the ``(pathname, mode, handler)`` triple read
    from the options when it opens; callers close it when any of those
    change.
    """

    def __init__(self, options: DbmOptions, registry: HandlerRegistry | None = None):
        self._options = options
        self._registry = registry or handler_registry
        self._module: ModuleType | None = None
        self._module_name: str | None = None
        self._db: Any = None
        self._bound: tuple[str, str, str] | None = None

        # cursor state
        self._cursor_active = False
        self._cursor_key: bytes | None = None
        self._snapshot: Iterator[bytes] | None = None

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    @property
    def is_open(self) -> bool:
        return self._db is not None

    @property
    def bound_to(self) -> tuple[str, str, str] | None:
        """``(pathname, mode, handler)`` of the open database, if any."""
        return self._bound

    @property
    def spec(self) -> HandlerSpec:
        return self._registry.get(self._options.handler)

    def load_module(self) -> ModuleType:
        """Import (once per handler name) the module for the configured handler.

        Raises:
            ConfigError: unknown handler
            ExtensionUnavailable: handler module cannot be imported
        """
        name = self._options.handler
        if self._module is None or self._module_name != name:
            self._module = self._registry.load(name)
            self._module_name = name
        return self._module

    def ensure_open(self) -> Any:
        """Open the database if not already done and return the dbm object.

        A database opened for another ``(pathname, mode, handler)`` than the
        options currently name is closed and the current one opened instead.

        Raises:
            ConfigError: no pathname configured, or unknown handler
            BackendError: the handler failed to open the database
        """
        pathname = self._options.pathname
        mode = self._options.mode.value
        handler = self._options.handler

        if self._db is not None:
            if self._bound == (pathname, mode, handler):
                return self._db
            logger.debug("dbm_rebind", bound=self._bound, pathname=pathname, mode=mode, handler=handler)
            self.close()

        if pathname == "":
            raise ConfigError("No pathname to database file")

        module = self.load_module()
        context = ErrorContext(pathname=pathname, handler=handler, metadata={"mode": mode})
        with guarded(f"open('{pathname}', '{mode}', '{handler}')", self._errors(), context=context):
            db = module.open(pathname, mode)

        self._db = db
        self._bound = (pathname, mode, handler)
        logger.debug("dbm_open", pathname=pathname, mode=mode, handler=handler)
        return db

    def close(self) -> None:
        """Close the database if open. Never raises."""
        if self._db is None:
            return

        db, self._db = self._db, None
        bound, self._bound = self._bound, None
        self._reset_cursor()

        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            try:
                db.close()
            except self._errors() as exc:
                logger.debug("dbm_close_failed", bound=bound, error=str(exc))
                return
        logger.debug("dbm_close", bound=bound)

    # ------------------------------------------------------------------ #
    # Primitives
    # ------------------------------------------------------------------ #

    def fetch(self, key: bytes) -> bytes | None:
        """Stored value, or ``None`` if the key is absent or the read failed."""
        db = self.ensure_open()
        try:
            with self._guard("fetch", key):
                return db.get(key)
        except BackendError as exc:
            logger.debug("dbm_fetch_failed", key=key, error=str(exc.cause))
            return None

    def exists(self, key: bytes) -> bool:
        db = self.ensure_open()
        with self._guard("exists", key):
            return key in db

    def replace(self, key: bytes, value: bytes) -> bool:
        """Insert or overwrite ``key``."""
        db = self.ensure_open()
        with self._guard("replace", key, strict=True):
            db[key] = value
        return True

    def insert(self, key: bytes, value: bytes) -> bool:
        """Store ``key`` unless present.

        Returns ``True`` whether or not the key already existed.
        """
        db = self.ensure_open()
        with self._guard("insert", key, strict=True):
            db.setdefault(key, value)
        return True

    def delete(self, key: bytes) -> bool:
        """Delete ``key``.

        Raises:
            BackendError: key absent (caused by ``KeyError``) or I/O fault
        """
        db = self.ensure_open()
        with self._guard("delete", key, strict=True, extra=(KeyError,)):
            del db[key]
        return True

    def first_key(self) -> bytes | None:
        """Start a key enumeration and return its first key."""
        db = self.ensure_open()
        self._reset_cursor()
        self._cursor_active = True
        with self._guard("firstkey"):
            if hasattr(db, "firstkey"):
                self._cursor_key = db.firstkey()
                return self._cursor_key
            self._snapshot = iter(list(db.keys()))
        return self._advance_snapshot()

    def next_key(self) -> bytes | None:
        """Next key of the current enumeration, ``None`` when exhausted."""
        db = self.ensure_open()
        if not self._cursor_active:
            return None
        if self._snapshot is not None:
            return self._advance_snapshot()
        if self._cursor_key is None:
            self._cursor_active = False
            return None
        with self._guard("nextkey"):
            self._cursor_key = db.nextkey(self._cursor_key)
        if self._cursor_key is None:
            self._cursor_active = False
        return self._cursor_key

    def optimize(self) -> bool:
        """Compact the database (``reorganize``), or sync it where unsupported."""
        db = self.ensure_open()
        with self._guard("optimize", strict=True):
            if hasattr(db, "reorganize"):
                db.reorganize()
            elif hasattr(db, "sync"):
                db.sync()
            else:
                logger.debug("dbm_optimize_unsupported", handler=self._options.handler)
        return True

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _errors(self) -> tuple[type[BaseException], ...]:
        module = self._module
        error = getattr(module, "error", OSError) if module is not None else OSError
        if isinstance(error, tuple):
            return (*error, OSError)
        return (error, OSError)

    def _guard(
        self,
        operation: str,
        key: bytes | None = None,
        *,
        strict: bool = False,
        extra: tuple[type[BaseException], ...] = (),
    ):
        context = ErrorContext(
            pathname=self._options.pathname,
            handler=self._options.handler,
            key=key.decode(self._options.encoding, errors="replace") if key is not None else None,
        )
        return guarded(operation, self._errors() + extra, strict=strict, context=context)

    def _advance_snapshot(self) -> bytes | None:
        assert self._snapshot is not None
        key = next(self._snapshot, None)
        if key is None:
            self._reset_cursor()
        return key

    def _reset_cursor(self) -> None:
        self._cursor_active = False
        self._cursor_key = None
        self._snapshot = None


__all__ = [
    "BackendHandle",
    "Diagnostics",
    "guarded",
]
