"""dbm storage options.

``DbmOptions`` is the options provider for :class:`~kvspine.storage.adapter.DbmCache`.
It is a pydantic model validated on assignment, and every effective change
publishes an ``option`` event on :attr:`DbmOptions.events` whose params name
the changed field(s)::

    options = DbmOptions(pathname="/tmp/cache.db")
    options.events.subscribe("option", lambda e: print(e.params))
    options.namespace_separator = "/"      # prints {'namespace_separator': '/'}
    options.update(namespace="a", mode="w")  # prints {'namespace': 'a', 'mode': <DbmMode.READ_WRITE: 'w'>}
"""

from __future__ import annotations

import codecs
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, PrivateAttr, ValidationError, field_validator

from kvspine.core.errors import ConfigError
from kvspine.core.events import EventManager
from kvspine.core.settings import KVSpineSettings

from .keys import KeyCodec


class DbmMode(str, Enum):
    """dbm open flags."""

    READ_ONLY = "r"
    READ_WRITE = "w"
    CREATE = "c"
    NEW = "n"


class DbmOptions(BaseModel):
    """Options for the dbm cache adapter.

    Invalid values raise :class:`~kvspine.core.errors.ConfigError` with the
    pydantic ``ValidationError`` as cause. The handler name is only
    normalized here; it is resolved against the adapter's handler registry
    when the adapter is built and whenever the handle opens.
    """

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    pathname: str = ""
    mode: DbmMode = DbmMode.CREATE
    handler: str = "dumb"
    namespace: str = ""
    namespace_separator: str = ":"
    encoding: str = "utf-8"

    _events: EventManager = PrivateAttr(default_factory=EventManager)

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except ValidationError as exc:
            raise _config_error(exc) from exc

    @field_validator("handler")
    @classmethod
    def _normalize_handler(cls, value: str) -> str:
        value = value.strip().lower()
        if not value:
            raise ValueError("dbm handler name must not be empty")
        return value

    @field_validator("encoding")
    @classmethod
    def _known_encoding(cls, value: str) -> str:
        try:
            codecs.lookup(value)
        except LookupError as exc:
            raise ValueError(f"unknown encoding {value!r}") from exc
        return value

    @property
    def events(self) -> EventManager:
        """Event manager receiving ``option`` change events."""
        return self._events

    def key_codec(self) -> KeyCodec:
        """Key codec for the current namespace, separator and encoding."""
        return KeyCodec(self.namespace, self.namespace_separator, self.encoding)

    def __setattr__(self, name: str, value: Any) -> None:
        if name not in type(self).model_fields:
            super().__setattr__(name, value)
            return

        old = getattr(self, name)
        try:
            super().__setattr__(name, value)
        except ValidationError as exc:
            raise _config_error(exc) from exc
        new = getattr(self, name)
        if new != old:
            self._events.trigger("option", target=self, **{name: new})

    def update(self, **fields: Any) -> dict[str, Any]:
        """Apply several fields at once and publish a single ``option`` event.

        All values are validated before any is applied.

        Returns:
            The fields whose value actually changed
        """
        unknown = set(fields) - set(type(self).model_fields)
        if unknown:
            raise ConfigError(f"Unknown dbm option(s): {', '.join(sorted(unknown))}")

        try:
            validated = type(self).model_validate({**self.model_dump(), **fields})
        except ValidationError as exc:
            raise _config_error(exc) from exc
        changed: dict[str, Any] = {}
        for name in fields:
            new = getattr(validated, name)
            if new != getattr(self, name):
                # bypass __setattr__ so the change is published once below
                object.__setattr__(self, name, new)
                changed[name] = new

        if changed:
            self._events.trigger("option", target=self, **changed)
        return changed

    @classmethod
    def from_settings(cls, settings: KVSpineSettings) -> DbmOptions:
        """Build options from :class:`~kvspine.core.settings.KVSpineSettings`."""
        return cls(
            pathname=settings.pathname,
            mode=settings.mode,
            handler=settings.handler,
            namespace=settings.namespace,
            namespace_separator=settings.namespace_separator,
            encoding=settings.encoding,
        )


def _config_error(exc: ValidationError) -> ConfigError:
    details = "; ".join(
        f"{'.'.join(str(part) for part in error['loc']) or 'options'}: {error['msg']}"
        for error in exc.errors()
    )
    return ConfigError(f"Invalid dbm options: {details}", cause=exc)


__all__ = [
    "DbmMode",
    "DbmOptions",
]
