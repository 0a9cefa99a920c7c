"""
Shared pytest fixtures and configuration for kvspine tests.

This module provides:
- Database path and cache fixtures backed by ``tmp_path``
- A handler-parametrized cache fixture (skips handlers missing from the interpreter)
- A scriptable in-memory dbm handler for cursor/warning edge cases
- Settings cache cleanup for test isolation
"""

from __future__ import annotations

import warnings
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Generator

import pytest

from kvspine.core.settings import clear_settings_cache
from kvspine.storage import DbmCache, HandlerSpec, handler_registry

STDLIB_HANDLERS = ["dumb", "gnu", "ndbm", "sqlite3"]


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their fixtures."""
    for item in items:
        if "any_cache" in getattr(item, "fixturenames", ()):
            item.add_marker(pytest.mark.integration)

        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "slow"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def clean_settings_cache() -> Generator[None, None, None]:
    """Clear the settings cache before and after each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


# =============================================================================
# Cache fixtures
# =============================================================================


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    """Path of a not-yet-existing database file."""
    return str(tmp_path / "cache.db")


@pytest.fixture
def cache(db_path: str) -> Generator[DbmCache, None, None]:
    """DbmCache on the always-available ``dumb`` handler."""
    storage = DbmCache(pathname=db_path, handler="dumb")
    yield storage
    storage.close()


@pytest.fixture(params=STDLIB_HANDLERS)
def any_cache(request: pytest.FixtureRequest, db_path: str) -> Generator[DbmCache, None, None]:
    """DbmCache for every stdlib handler importable in this interpreter."""
    handler = request.param
    if not handler_registry.is_available(handler):
        pytest.skip(f"dbm handler {handler!r} not available")
    storage = DbmCache(pathname=db_path, handler=handler)
    yield storage
    storage.close()


# =============================================================================
# Scriptable handler
# =============================================================================


class FakeDbmError(Exception):
    """``error`` class of the fake handler."""


class FakeDbm:
    """In-memory dbm object with gdbm-like cursor semantics.

    ``nextkey()`` of a key that was deleted returns ``None``, the way a
    cursor invalidated by a delete ends the walk early.
    """

    def __init__(self) -> None:
        self.data: dict[bytes, bytes] = {}
        self.closed = False
        self.reorganized = 0
        self.deleted: list[bytes] = []
        self.warn_on: set[str] = set()
        self.fail_on: set[str] = set()

    def _hooks(self, operation: str) -> None:
        if operation in self.fail_on:
            raise FakeDbmError(f"{operation} exploded")
        if operation in self.warn_on:
            warnings.warn(f"{operation} notice", RuntimeWarning)

    def get(self, key: bytes, default: Any = None) -> Any:
        self._hooks("get")
        return self.data.get(key, default)

    def __contains__(self, key: bytes) -> bool:
        return key in self.data

    def __setitem__(self, key: bytes, value: bytes) -> None:
        self._hooks("set")
        self.data[key] = value

    def setdefault(self, key: bytes, value: bytes) -> bytes:
        self._hooks("insert")
        return self.data.setdefault(key, value)

    def __delitem__(self, key: bytes) -> None:
        self._hooks("delete")
        del self.data[key]
        self.deleted.append(key)

    def keys(self) -> list[bytes]:
        return list(self.data)

    def firstkey(self) -> bytes | None:
        return next(iter(self.data), None)

    def nextkey(self, key: bytes) -> bytes | None:
        keys = list(self.data)
        if key not in self.data:
            return None
        index = keys.index(key) + 1
        return keys[index] if index < len(keys) else None

    def reorganize(self) -> None:
        self._hooks("reorganize")
        self.reorganized += 1

    def close(self) -> None:
        self._hooks("close")
        self.closed = True


@pytest.fixture
def fake_dbm(monkeypatch: pytest.MonkeyPatch) -> Generator[SimpleNamespace, None, None]:
    """Register a ``fake`` handler whose ``open()`` returns a shared FakeDbm."""
    state = SimpleNamespace(db=FakeDbm(), opened=[])

    def fake_open(pathname: str, flag: str) -> FakeDbm:
        state.opened.append((pathname, flag))
        if state.db.closed:
            state.db.closed = False
        return state.db

    module = SimpleNamespace(open=fake_open, error=FakeDbmError)
    real_load = handler_registry.load

    def load(name: str):
        if name.lower() == "fake":
            return module
        return real_load(name)

    handler_registry.register(HandlerSpec("fake", "kvspine_tests_fake_dbm"))
    monkeypatch.setattr(handler_registry, "load", load)
    yield state
    handler_registry.unregister("fake")


@pytest.fixture
def fake_cache(fake_dbm: SimpleNamespace, tmp_path: Path) -> Generator[DbmCache, None, None]:
    storage = DbmCache(pathname=str(tmp_path / "fake.db"), handler="fake")
    yield storage
    storage.close()
