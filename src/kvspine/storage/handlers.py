"""dbm handler registry.

Manifesto:
    The adapter should never hard-code which ``dbm`` submodule it talks to.
    The registry maps a handler name (``dumb``, ``gnu``, ``ndbm``,
    ``sqlite3``) to the module implementing it and to the files that module
    writes next to ``pathname``, so that opening and flushing stay
    handler-agnostic.

Features:
    - ``HandlerRegistry`` singleton with pre-registered stdlib handlers
    - ``register()`` for custom / third-party dbm-compatible modules
    - ``load()``: name → imported module, or ``ExtensionUnavailable``
    - ``available_handlers()``: handlers importable in this interpreter

Tags:
    kvspine, dbm, registry, handlers

Doc-Types:
    api-reference
"""

from __future__ import annotations

import importlib
from dataclasses import dataclass
from types import ModuleType

from kvspine.core.errors import ConfigError, ExtensionUnavailable


@dataclass(frozen=True)
class HandlerSpec:
    """Registered dbm handler.

    Attributes:
        name: Handler name used in options (``gnu``)
        module: Importable module path (``dbm.gnu``)
        file_suffixes: Suffixes appended to ``pathname`` for the files the
            handler owns (``""`` is the pathname itself)
    """

    name: str
    module: str
    file_suffixes: tuple[str, ...] = ("",)

    def files_for(self, pathname: str) -> list[str]:
        """All on-disk paths this handler may use for ``pathname``."""
        return [pathname + suffix for suffix in self.file_suffixes]


class HandlerRegistry:
    """
    Registry of dbm handlers.

    Pre-registered handlers:
    - ``dumb``: :mod:`dbm.dumb` (pure Python, always available)
    - ``gnu``: :mod:`dbm.gnu` (GNU dbm, native first/next key cursor)
    - ``ndbm``: :mod:`dbm.ndbm` (Berkeley / ndbm compatibility)
    - ``sqlite3``: :mod:`dbm.sqlite3` (Python 3.13+)
    """

    def __init__(self):
        self._specs: dict[str, HandlerSpec] = {}
        self._register_defaults()

    def _register_defaults(self) -> None:
        """Register stdlib handlers."""
        self.register(HandlerSpec("dumb", "dbm.dumb", (".dat", ".dir", ".bak")))
        self.register(HandlerSpec("gnu", "dbm.gnu"))
        self.register(HandlerSpec("ndbm", "dbm.ndbm", ("", ".db", ".pag", ".dir")))
        self.register(HandlerSpec("sqlite3", "dbm.sqlite3"))

    def register(self, spec: HandlerSpec) -> None:
        """Register (or replace) a handler."""
        self._specs[spec.name.lower()] = spec

    def unregister(self, name: str) -> None:
        """Remove a handler. Unknown names are ignored."""
        self._specs.pop(name.lower(), None)

    def get(self, name: str) -> HandlerSpec:
        """Look up a handler by name."""
        try:
            return self._specs[name.lower()]
        except KeyError:
            raise ConfigError(
                f"Unknown dbm handler: {name!r} (known: {', '.join(self.list_handlers())})"
            ) from None

    def load(self, name: str) -> ModuleType:
        """Import the module backing ``name``.

        Raises:
            ConfigError: ``name`` is not registered
            ExtensionUnavailable: the module cannot be imported
        """
        spec = self.get(name)
        try:
            return importlib.import_module(spec.module)
        except ImportError as exc:
            raise ExtensionUnavailable(
                spec.name, f"Missing {spec.module} for dbm handler '{spec.name}'", cause=exc
            ) from exc

    def is_available(self, name: str) -> bool:
        try:
            self.load(name)
        except ConfigError:
            return False
        return True

    def list_handlers(self) -> list[str]:
        """List registered handler names."""
        return sorted(self._specs.keys())


# Global registry
handler_registry = HandlerRegistry()


def available_handlers() -> list[str]:
    """Registered handlers that can be imported in this interpreter."""
    return [name for name in handler_registry.list_handlers() if handler_registry.is_available(name)]


__all__ = [
    "HandlerSpec",
    "HandlerRegistry",
    "handler_registry",
    "available_handlers",
]
