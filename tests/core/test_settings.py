"""Tests for kvspine.core.settings module."""

import pytest

from kvspine.core.settings import KVSpineSettings, clear_settings_cache, get_settings
from kvspine.storage import DbmMode, DbmOptions


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Run from an empty directory so no .env file is picked up."""
    monkeypatch.chdir(tmp_path)
    for name in ("PATHNAME", "MODE", "HANDLER", "NAMESPACE", "NAMESPACE_SEPARATOR", "LOG_LEVEL"):
        monkeypatch.delenv(f"KVSPINE_{name}", raising=False)


class TestKVSpineSettings:
    def test_defaults(self):
        settings = KVSpineSettings()
        assert settings.pathname == ""
        assert settings.mode == "c"
        assert settings.handler == "dumb"
        assert settings.namespace == ""
        assert settings.namespace_separator == ":"
        assert settings.log_level == "INFO"
        assert settings.json_logs is False

    def test_reads_env_prefix(self, monkeypatch):
        monkeypatch.setenv("KVSPINE_PATHNAME", "/var/cache/app.db")
        monkeypatch.setenv("KVSPINE_NAMESPACE", "sessions")
        monkeypatch.setenv("KVSPINE_LOG_FORMAT", "json")

        settings = KVSpineSettings()
        assert settings.pathname == "/var/cache/app.db"
        assert settings.namespace == "sessions"
        assert settings.json_logs is True

    def test_reads_env_file(self, tmp_path):
        (tmp_path / ".env").write_text("KVSPINE_HANDLER=gnu\nKVSPINE_MODE=w\n")
        settings = KVSpineSettings()
        assert settings.handler == "gnu"
        assert settings.mode == "w"


class TestGetSettings:
    def test_cached(self):
        assert get_settings() is get_settings()

    def test_force_reload(self, monkeypatch):
        first = get_settings()
        monkeypatch.setenv("KVSPINE_NAMESPACE", "reloaded")
        second = get_settings(_force_reload=True)
        assert second is not first
        assert second.namespace == "reloaded"

    def test_clear_cache(self):
        first = get_settings()
        clear_settings_cache()
        assert get_settings() is not first


class TestOptionsFromSettings:
    def test_from_settings(self, monkeypatch):
        monkeypatch.setenv("KVSPINE_PATHNAME", "/tmp/x.db")
        monkeypatch.setenv("KVSPINE_MODE", "n")
        monkeypatch.setenv("KVSPINE_NAMESPACE_SEPARATOR", "/")

        options = DbmOptions.from_settings(get_settings())
        assert options.pathname == "/tmp/x.db"
        assert options.mode is DbmMode.NEW
        assert options.namespace_separator == "/"
