"""Disk space introspection for the database file's directory."""

from __future__ import annotations

import os
import shutil

from kvspine.core.errors import BackendError, ConfigError, ErrorContext
from kvspine.core.events import Event
from kvspine.core.logging import get_logger

from .options import DbmOptions

logger = get_logger(__name__)


class SpaceAccessor:
    """Total and available space of the filesystem holding ``pathname``.

    Total space is computed once and cached. The cache is dropped (and the
    option subscription removed) the first time an ``option`` event names
    ``pathname``; the next call recomputes and subscribes again.
    """

    def __init__(self, options: DbmOptions):
        self._options = options
        self._total_space: int | None = None
        self._subscription: str | None = None

    @property
    def cached_total_space(self) -> int | None:
        return self._total_space

    def total_space(self) -> int:
        """Total bytes of the filesystem containing the database file.

        Raises:
            ConfigError: no pathname configured
            BackendError: the filesystem query failed
        """
        if self._total_space is None:
            pathname = self._require_pathname()
            self._total_space = self._disk_usage(pathname, "total_space").total
            self._subscription = self._options.events.subscribe("option", self._on_option)
            logger.debug("total_space_cached", pathname=pathname, total=self._total_space)
        return self._total_space

    def available_space(self) -> int:
        """Free bytes of the filesystem containing the database file (never cached)."""
        pathname = self._require_pathname()
        return self._disk_usage(pathname, "available_space").free

    def close(self) -> None:
        """Drop the option subscription."""
        self._options.events.unsubscribe(self._subscription)
        self._subscription = None

    def _on_option(self, event: Event) -> None:
        if "pathname" in event.params:
            self._total_space = None
            self.close()

    def _require_pathname(self) -> str:
        pathname = self._options.pathname
        if pathname == "":
            raise ConfigError("No pathname to database file")
        return pathname

    @staticmethod
    def _disk_usage(pathname: str, operation: str):
        directory = os.path.dirname(pathname) or "."
        try:
            return shutil.disk_usage(directory)
        except OSError as exc:
            raise BackendError(
                f"Can't detect {operation.replace('_', ' ')} of '{pathname}'",
                context=ErrorContext(operation=operation, pathname=pathname),
                cause=exc,
            ) from exc


__all__ = ["SpaceAccessor"]
