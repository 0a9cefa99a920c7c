"""dbm cache adapter.

Manifesto:
    A flat-file ``dbm`` database is the smallest persistent key-value store
    Python ships with, but its primitives are thin: no namespaces, no bulk
    invalidation, ``del`` raises on missing keys, and enumeration breaks
    when the database is mutated mid-walk. ``DbmCache`` turns those
    primitives into cache semantics (get/has/set/add/remove, clear by prefix
    or namespace, flush, optimize, iteration and space introspection) and
    reports faults as typed errors.

Architecture:
    ::

        DbmCache
        ├── DbmOptions        pathname / mode / handler / namespace (+ option events)
        ├── BackendHandle     one lazily-opened dbm object, guarded primitives
        ├── KeyCodec          namespace + separator + key
        ├── SpaceAccessor     total (cached) / available disk space
        ├── Capabilities      descriptor; separator follows option events
        └── DbmKeyIterator    lazy iteration over logical keys

Examples:
    >>> from kvspine.storage import DbmCache
    >>> cache = DbmCache(pathname="/tmp/app-cache", namespace="sessions")
    >>> cache.set_item("abc", 42)
    True
    >>> cache.get_item("abc")
    ('42', True)
    >>> list(cache)
    ['abc']

Guardrails:
    ❌ DON'T: Share one DbmCache between threads
    ✅ DO: Give each owner its own instance (there is no internal locking)

    ❌ DON'T: Store lists or dicts directly
    ✅ DO: Serialize them first; only scalars are coerced to text

Tags:
    kvspine, cache, dbm, adapter, namespace

Doc-Types:
    - API Reference
    - Technical Design
"""

from __future__ import annotations

import os
from collections.abc import Iterable, Mapping
from typing import Any

from kvspine.core.errors import ArgumentError, BackendError, ConfigError, ErrorContext
from kvspine.core.events import Event
from kvspine.core.logging import get_logger

from .backend import BackendHandle
from .capabilities import DBM_SUPPORTED_DATATYPES, Capabilities
from .handlers import HandlerRegistry, handler_registry
from .iterator import DbmKeyIterator, IteratorMode
from .keys import KeyCodec, normalize_key
from .options import DbmOptions
from .space import SpaceAccessor

logger = get_logger(__name__)

# options bound into an open handle
_HANDLE_OPTIONS = frozenset({"pathname", "mode", "handler"})


class DbmCache:
    """Namespaced cache storage over a ``dbm`` database file.

    The handler module is imported on construction, so a missing handler
    fails with :class:`~kvspine.core.errors.ExtensionUnavailable` before any
    file is touched. The database itself is opened on first use.
    """

    def __init__(
        self,
        options: DbmOptions | None = None,
        *,
        registry: HandlerRegistry | None = None,
        **option_fields: Any,
    ):
        if options is None:
            options = DbmOptions(**option_fields)
        elif option_fields:
            options.update(**option_fields)

        self._registry = registry or handler_registry
        self._registry.load(options.handler)

        self._options = options
        self._handle = BackendHandle(options, self._registry)
        self._space = SpaceAccessor(options)
        self._capabilities: Capabilities | None = None
        self._capability_marker = object()
        self._subscriptions: list[str] = [
            options.events.subscribe("option", self._on_handle_option),
        ]

    # ------------------------------------------------------------------ #
    # Options / lifecycle
    # ------------------------------------------------------------------ #

    @property
    def options(self) -> DbmOptions:
        return self._options

    @property
    def handle(self) -> BackendHandle:
        return self._handle

    def close(self) -> None:
        """Close the database and detach from option events."""
        for sub_id in self._subscriptions:
            self._options.events.unsubscribe(sub_id)
        self._subscriptions.clear()
        self._space.close()
        self._handle.close()

    def __enter__(self) -> DbmCache:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _on_handle_option(self, event: Event) -> None:
        if _HANDLE_OPTIONS.intersection(event.params):
            self._handle.close()

    def _codec(self) -> KeyCodec:
        return self._options.key_codec()

    # ------------------------------------------------------------------ #
    # Reading
    # ------------------------------------------------------------------ #

    def get_item(self, key: str) -> tuple[str | None, bool]:
        """Fetch an item.

        A missing key and a failed read both give ``(None, False)``; the dbm
        fetch primitive does not tell them apart.

        Raises:
            ConfigError: no pathname configured
        """
        value, found, _ = self.get_item_with_token(key)
        return value, found

    def get_item_with_token(self, key: str) -> tuple[str | None, bool, str | None]:
        """Fetch an item together with its CAS token (the stored value itself)."""
        key = normalize_key(key)
        codec = self._codec()
        raw = self._handle.fetch(codec.encode(codec.internal_key(key)))
        if raw is None:
            return None, False, None
        value = codec.decode(raw)
        return value, True, value

    def get_items(self, keys: Iterable[str]) -> dict[str, str]:
        """Fetch several items; missing keys are left out of the result."""
        result = {}
        for key in keys:
            value, found = self.get_item(key)
            if found:
                result[key] = value
        return result

    def has_item(self, key: str) -> bool:
        key = normalize_key(key)
        codec = self._codec()
        return self._handle.exists(codec.encode(codec.internal_key(key)))

    def has_items(self, keys: Iterable[str]) -> list[str]:
        """Keys (of ``keys``) present in the cache."""
        return [key for key in keys if self.has_item(key)]

    # ------------------------------------------------------------------ #
    # Writing
    # ------------------------------------------------------------------ #

    def set_item(self, key: str, value: Any) -> bool:
        """Store an item, replacing any existing value.

        Raises:
            ArgumentError: value type is not supported
            BackendError: the write failed
        """
        key = normalize_key(key)
        codec = self._codec()
        data = self._coerce(value, codec.encoding)
        return self._handle.replace(codec.encode(codec.internal_key(key)), data)

    def set_items(self, items: Mapping[str, Any]) -> list[str]:
        """Store several items. Returns the keys that were not stored."""
        return [key for key, value in items.items() if not self.set_item(key, value)]

    def add_item(self, key: str, value: Any) -> bool:
        """Store an item only if the key is not present yet.

        The dbm insert primitive reports success for existing keys, so the
        key is checked first; a fault during the insert itself gives
        ``False``.
        """
        key = normalize_key(key)
        codec = self._codec()
        data = self._coerce(value, codec.encoding)
        internal = codec.encode(codec.internal_key(key))

        if self._handle.exists(internal):
            return False

        try:
            return self._handle.insert(internal, data)
        except BackendError as exc:
            logger.debug("add_item_failed", key=key, error=str(exc.cause))
            return False

    def add_items(self, items: Mapping[str, Any]) -> list[str]:
        """Add several items. Returns the keys that were not added."""
        return [key for key, value in items.items() if not self.add_item(key, value)]

    def replace_item(self, key: str, value: Any) -> bool:
        """Store an item only if the key is already present."""
        if not self.has_item(key):
            return False
        return self.set_item(key, value)

    def check_and_set(self, token: str | None, key: str, value: Any) -> bool:
        """Store an item only if its current value still equals ``token``."""
        _, found, current = self.get_item_with_token(key)
        if not found or current != token:
            return False
        return self.set_item(key, value)

    def remove_item(self, key: str) -> bool:
        """Remove an item. Returns ``False`` if the key is not present.

        The dbm delete primitive raises on missing keys, so presence is
        checked first and delete is only called for existing keys.
        """
        key = normalize_key(key)
        codec = self._codec()
        internal = codec.encode(codec.internal_key(key))

        if not self._handle.exists(internal):
            return False
        return self._handle.delete(internal)

    def remove_items(self, keys: Iterable[str]) -> list[str]:
        """Remove several items. Returns the keys that were not removed."""
        return [key for key in keys if not self.remove_item(key)]

    @staticmethod
    def _coerce(value: Any, encoding: str) -> bytes:
        """Scalar → stored bytes."""
        if isinstance(value, (bytes, bytearray)):
            return bytes(value)
        if isinstance(value, bool):
            text = "1" if value else ""
        elif value is None:
            text = ""
        elif isinstance(value, (str, int, float)):
            text = str(value)
        else:
            raise ArgumentError(
                f"Data type '{type(value).__name__}' isn't supported by this storage"
            )
        return text.encode(encoding)

    # ------------------------------------------------------------------ #
    # Bulk invalidation
    # ------------------------------------------------------------------ #

    def clear_by_prefix(self, prefix: str) -> bool:
        """Remove every item whose key starts with ``prefix`` (in the current namespace).

        Returns:
            ``True`` if every attempted delete succeeded

        Raises:
            ArgumentError: empty prefix
        """
        if not prefix:
            raise ArgumentError("No prefix given")

        search = self._codec().search_prefix(prefix)
        return self._delete_matching_until_stable(search)

    def clear_by_namespace(self, namespace: str) -> bool:
        """Remove every item stored under ``namespace``.

        Unlike :meth:`clear_by_prefix` this makes a single enumeration pass,
        so keys skipped by the cursor after a delete survive.

        Raises:
            ArgumentError: empty namespace
        """
        if not namespace:
            raise ArgumentError("No namespace given")

        search = namespace + self._options.namespace_separator
        _, ok = self._delete_matching_once(search)
        return ok

    def _delete_matching_until_stable(self, prefix: str) -> bool:
        """Restart-on-mutation delete.

        Deleting during a first/next key walk can invalidate the cursor, so
        any pass that deleted something is followed by a full rescan from
        the first key. Stops after a pass with no successful delete.
        """
        result = True
        passes = 0
        while True:
            passes += 1
            deleted, ok = self._delete_matching_once(prefix)
            result = ok and result
            logger.debug("clear_by_prefix_pass", prefix=prefix, pass_number=passes, deleted=deleted)
            if deleted == 0:
                return result

    def _delete_matching_once(self, prefix: str) -> tuple[int, bool]:
        """One enumeration pass deleting keys that start with ``prefix``.

        Returns:
            (successful deletes, whether every attempted delete succeeded)
        """
        codec = self._codec()
        deleted = 0
        ok = True

        raw = self._handle.first_key()
        while raw is not None:
            if codec.decode(raw).startswith(prefix):
                try:
                    self._handle.delete(raw)
                    deleted += 1
                except BackendError as exc:
                    ok = False
                    logger.warning("clear_delete_failed", key=codec.decode(raw), error=str(exc.cause))
            raw = self._handle.next_key()
        return deleted, ok

    def flush(self) -> bool:
        """Delete the database file(s). The next operation recreates the store.

        Raises:
            ConfigError: no pathname configured
            BackendError: a file exists but could not be removed
        """
        pathname = self._options.pathname
        if pathname == "":
            raise ConfigError("No pathname to database file")

        # closing may still write index files, so look for files afterwards
        self._handle.close()

        spec = self._registry.get(self._options.handler)
        existing = [path for path in spec.files_for(pathname) if os.path.exists(path)]
        if existing:
            for path in existing:
                try:
                    os.unlink(path)
                except OSError as exc:
                    raise BackendError(
                        f"unlink('{path}') failed",
                        context=ErrorContext(
                            operation="flush", pathname=pathname, handler=spec.name
                        ),
                        cause=exc,
                    ) from exc

        logger.info("dbm_flush", pathname=pathname, removed=existing)
        return True

    def optimize(self) -> bool:
        """Compact the database.

        Raises:
            BackendError: compaction failed
        """
        return self._handle.optimize()

    # ------------------------------------------------------------------ #
    # Iteration / status
    # ------------------------------------------------------------------ #

    def get_iterator(self, mode: IteratorMode = IteratorMode.KEY) -> DbmKeyIterator:
        """Iterator over logical keys (or values) of the current namespace."""
        return DbmKeyIterator(self, self._handle, self._codec(), mode)

    def __iter__(self) -> DbmKeyIterator:
        return self.get_iterator()

    def get_total_space(self) -> int:
        return self._space.total_space()

    def get_available_space(self) -> int:
        return self._space.available_space()

    def get_capabilities(self) -> Capabilities:
        """Capability descriptor (built once; separator follows option changes)."""
        if self._capabilities is None:
            capabilities = Capabilities(
                self._capability_marker,
                supported_datatypes=DBM_SUPPORTED_DATATYPES,
                supported_metadata=(),
                min_ttl=0,
                max_key_length=0,
                namespace_is_prefix=True,
                namespace_separator=self._options.namespace_separator,
                events=self._options.events,
            )
            marker = self._capability_marker

            def on_option(event: Event) -> None:
                if "namespace_separator" in event.params:
                    capabilities.set_namespace_separator(marker, event.params["namespace_separator"])

            self._subscriptions.append(self._options.events.subscribe("option", on_option))
            self._capabilities = capabilities

        return self._capabilities


__all__ = ["DbmCache"]
