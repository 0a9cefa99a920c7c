"""Capability descriptor for the dbm cache adapter.

Describes what a storage adapter can hold and how it treats namespaces.
Everything is fixed at construction except ``namespace_separator``, which
only the holder of the construction ``marker`` (the adapter) may change, so
callers can keep a reference to the same object across option changes.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from kvspine.core.errors import ConfigError
from kvspine.core.events import EventManager

# type name -> True (stored as-is), "str" (coerced to text) or False (unsupported)
DBM_SUPPORTED_DATATYPES: Mapping[str, bool | str] = MappingProxyType(
    {
        "NoneType": "str",
        "bool": "str",
        "int": "str",
        "float": "str",
        "str": True,
        "bytes": "str",
        "list": False,
        "tuple": False,
        "dict": False,
        "set": False,
        "object": False,
    }
)


class Capabilities:
    """Storage capabilities.

    Attributes:
        supported_datatypes: type name → support level
        supported_metadata: item metadata fields the storage can report
        min_ttl: Minimum supported TTL (0 = no native TTL)
        max_ttl: Maximum supported TTL (0 = unlimited)
        static_ttl: Whether the TTL is fixed at write time
        ttl_precision: TTL precision in seconds
        max_key_length: Maximum key length (0 = unlimited)
        namespace_is_prefix: Whether the namespace is stored as a key prefix
        namespace_separator: Separator between namespace and key
    """

    def __init__(
        self,
        marker: object,
        *,
        supported_datatypes: Mapping[str, bool | str],
        supported_metadata: tuple[str, ...] = (),
        min_ttl: int = 0,
        max_ttl: int = 0,
        static_ttl: bool = True,
        ttl_precision: float = 1,
        max_key_length: int = 0,
        namespace_is_prefix: bool = True,
        namespace_separator: str = "",
        events: EventManager | None = None,
    ):
        self._marker = marker
        self._events = events
        self._supported_datatypes = MappingProxyType(dict(supported_datatypes))
        self._supported_metadata = tuple(supported_metadata)
        self._min_ttl = min_ttl
        self._max_ttl = max_ttl
        self._static_ttl = static_ttl
        self._ttl_precision = ttl_precision
        self._max_key_length = max_key_length
        self._namespace_is_prefix = namespace_is_prefix
        self._namespace_separator = namespace_separator

    @property
    def supported_datatypes(self) -> Mapping[str, bool | str]:
        return self._supported_datatypes

    @property
    def supported_metadata(self) -> tuple[str, ...]:
        return self._supported_metadata

    @property
    def min_ttl(self) -> int:
        return self._min_ttl

    @property
    def max_ttl(self) -> int:
        return self._max_ttl

    @property
    def static_ttl(self) -> bool:
        return self._static_ttl

    @property
    def ttl_precision(self) -> float:
        return self._ttl_precision

    @property
    def max_key_length(self) -> int:
        return self._max_key_length

    @property
    def namespace_is_prefix(self) -> bool:
        return self._namespace_is_prefix

    @property
    def namespace_separator(self) -> str:
        return self._namespace_separator

    def set_namespace_separator(self, marker: object, separator: str) -> None:
        """Change the separator. Only the construction ``marker`` is accepted.

        Publishes a ``capability`` event when the value changes.
        """
        if marker is not self._marker:
            raise ConfigError("Capabilities can only be changed by the storage that created them")
        if separator == self._namespace_separator:
            return
        self._namespace_separator = separator
        if self._events is not None:
            self._events.trigger("capability", target=self, namespace_separator=separator)

    def to_dict(self) -> dict[str, Any]:
        return {
            "supported_datatypes": dict(self._supported_datatypes),
            "supported_metadata": list(self._supported_metadata),
            "min_ttl": self._min_ttl,
            "max_ttl": self._max_ttl,
            "static_ttl": self._static_ttl,
            "ttl_precision": self._ttl_precision,
            "max_key_length": self._max_key_length,
            "namespace_is_prefix": self._namespace_is_prefix,
            "namespace_separator": self._namespace_separator,
        }

    def __repr__(self) -> str:
        return f"Capabilities(namespace_separator={self._namespace_separator!r})"


__all__ = [
    "Capabilities",
    "DBM_SUPPORTED_DATATYPES",
]
