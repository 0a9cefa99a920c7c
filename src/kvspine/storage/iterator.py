"""Iterator over the keys of a namespaced dbm cache."""

from __future__ import annotations

from collections.abc import Iterator
from enum import Enum
from typing import TYPE_CHECKING

from .backend import BackendHandle
from .keys import KeyCodec

if TYPE_CHECKING:
    from .adapter import DbmCache


class IteratorMode(str, Enum):
    """What the iterator yields."""

    KEY = "key"
    VALUE = "value"


class DbmKeyIterator(Iterator[str]):
    """Lazy, forward-only iterator over logical keys.

    Walks the handle's first/next key cursor, skips internal keys outside
    the namespace and strips the namespace prefix from the rest. The cursor
    is shared with every other enumeration on the same handle, so mutating
    the cache while iterating may skip or repeat keys.
    """

    def __init__(
        self,
        storage: DbmCache,
        handle: BackendHandle,
        codec: KeyCodec,
        mode: IteratorMode = IteratorMode.KEY,
    ):
        self._storage = storage
        self._handle = handle
        self._codec = codec
        self._mode = IteratorMode(mode)
        self._started = False
        self._exhausted = False

    @property
    def storage(self) -> DbmCache:
        return self._storage

    @property
    def mode(self) -> IteratorMode:
        return self._mode

    def __iter__(self) -> DbmKeyIterator:
        return self

    def __next__(self) -> str:
        if self._exhausted:
            raise StopIteration

        while True:
            if self._started:
                raw = self._handle.next_key()
            else:
                raw = self._handle.first_key()
                self._started = True

            if raw is None:
                self._exhausted = True
                raise StopIteration

            key = self._codec.logical_key(self._codec.decode(raw))
            if not key:
                continue

            if self._mode is IteratorMode.VALUE:
                value, _ = self._storage.get_item(key)
                return value
            return key


__all__ = [
    "DbmKeyIterator",
    "IteratorMode",
]
