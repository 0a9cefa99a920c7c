"""Namespaced key codec.

Maps a logical cache key to the internal key stored in the dbm file and
back. With namespace ``"a"`` and separator ``":"`` the logical key ``"x"``
is stored as ``"a:x"``; with an empty namespace keys are stored unchanged.

Two logical keys in different namespaces cannot collide unless a logical
key itself contains the separator (``namespace="a", key="b:c"`` and
``namespace="a:b", key="c"`` both map to ``"a:b:c"``).
"""

from __future__ import annotations

from dataclasses import dataclass

from kvspine.core.errors import ArgumentError


def namespace_prefix(namespace: str, separator: str) -> str:
    """Internal key prefix for ``namespace`` (empty when there is none)."""
    if namespace == "":
        return ""
    return namespace + separator


@dataclass(frozen=True)
class KeyCodec:
    """Key codec bound to one namespace/separator/encoding snapshot."""

    namespace: str = ""
    separator: str = ":"
    encoding: str = "utf-8"

    @property
    def prefix(self) -> str:
        return namespace_prefix(self.namespace, self.separator)

    def internal_key(self, key: str) -> str:
        """Logical key → internal key."""
        return self.prefix + key

    def logical_key(self, internal_key: str) -> str | None:
        """Internal key → logical key, or ``None`` if outside this namespace."""
        prefix = self.prefix
        if not internal_key.startswith(prefix):
            return None
        return internal_key[len(prefix):]

    def search_prefix(self, prefix: str) -> str:
        """Internal prefix matching logical keys that start with ``prefix``."""
        return self.prefix + prefix

    def encode(self, internal_key: str) -> bytes:
        return internal_key.encode(self.encoding, errors="surrogateescape")

    def decode(self, raw: bytes | str) -> str:
        if isinstance(raw, str):
            return raw
        return raw.decode(self.encoding, errors="surrogateescape")


def normalize_key(key: object) -> str:
    """Validate a logical key.

    Raises:
        ArgumentError: key is not a non-empty string
    """
    if not isinstance(key, str):
        raise ArgumentError(f"Cache keys must be strings, got {type(key).__name__}")
    if key == "":
        raise ArgumentError("An empty key isn't allowed")
    return key


__all__ = [
    "KeyCodec",
    "namespace_prefix",
    "normalize_key",
]
