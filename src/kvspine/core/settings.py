"""
Centralized settings for kvspine.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.
    ``KVSpineSettings`` reads ``KVSPINE_*`` environment variables (and a
    ``.env`` file) once, validates them, and is cached by
    :func:`get_settings` so every component sees the same values.

Features:
    - **KVSpineSettings:** Default dbm storage options + logging settings
    - **env_prefix:** ``KVSPINE_`` (e.g. ``KVSPINE_PATHNAME=/var/cache/app.db``)
    - **.env file support:** Automatic loading via pydantic-settings
    - **Extra ignore:** Unknown env vars don't cause startup failures

Examples:
    >>> from kvspine.core.settings import get_settings
    >>> settings = get_settings()
    >>> settings.handler
    'dumb'

Tags:
    settings, configuration, pydantic, environment, kvspine

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class KVSpineSettings(BaseSettings):
    """kvspine configuration.

    Fields
    ──────
    pathname            : Database file path (required before any I/O)
    mode                : dbm open flag: r, w, c or n
    handler             : dbm handler name (dumb, gnu, ndbm, sqlite3)
    namespace           : Key namespace (empty for none)
    namespace_separator : Separator between namespace and key
    encoding            : Text encoding for keys and values
    log_level           : Structlog log level
    log_format          : ``json`` or ``console``
    """

    model_config = SettingsConfigDict(
        env_prefix="KVSPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Storage ──────────────────────────────────────────────────
    pathname: str = Field(default="", description="Path of the dbm database file")
    mode: str = Field(default="c", description="dbm open flag (r/w/c/n)")
    handler: str = Field(default="dumb", description="dbm handler name")
    namespace: str = Field(default="")
    namespace_separator: str = Field(default=":")
    encoding: str = Field(default="utf-8")

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="console")

    @property
    def json_logs(self) -> bool:
        return self.log_format.lower() == "json"


_settings_cache: dict[str, KVSpineSettings] = {}


def get_settings(*, _force_reload: bool = False) -> KVSpineSettings:
    """Load, validate, and cache a :class:`KVSpineSettings` instance."""
    if not _force_reload and "default" in _settings_cache:
        return _settings_cache["default"]

    settings = KVSpineSettings()
    _settings_cache["default"] = settings
    return settings


def clear_settings_cache() -> None:
    """Clear the settings cache (primarily for testing)."""
    _settings_cache.clear()


__all__ = [
    "KVSpineSettings",
    "get_settings",
    "clear_settings_cache",
]
