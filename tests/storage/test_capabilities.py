"""Tests for kvspine.storage.capabilities and DbmCache.get_capabilities()."""

import pytest

from kvspine.core.errors import ConfigError
from kvspine.core.events import EventManager
from kvspine.storage import DBM_SUPPORTED_DATATYPES, Capabilities


class TestCapabilities:
    def test_marker_guards_separator(self):
        marker = object()
        capabilities = Capabilities(marker, supported_datatypes=DBM_SUPPORTED_DATATYPES, namespace_separator=":")

        with pytest.raises(ConfigError):
            capabilities.set_namespace_separator(object(), "/")
        assert capabilities.namespace_separator == ":"

        capabilities.set_namespace_separator(marker, "/")
        assert capabilities.namespace_separator == "/"

    def test_separator_change_publishes_capability_event(self):
        events = EventManager()
        received = []
        events.subscribe("capability", received.append)
        marker = object()
        capabilities = Capabilities(
            marker, supported_datatypes=DBM_SUPPORTED_DATATYPES, namespace_separator=":", events=events
        )

        capabilities.set_namespace_separator(marker, ":")
        assert received == []

        capabilities.set_namespace_separator(marker, "/")
        assert received[0].params == {"namespace_separator": "/"}
        assert received[0].target is capabilities

    def test_datatypes_read_only(self):
        capabilities = Capabilities(object(), supported_datatypes=DBM_SUPPORTED_DATATYPES)
        with pytest.raises(TypeError):
            capabilities.supported_datatypes["list"] = True


class TestAdapterCapabilities:
    def test_describes_dbm_storage(self, cache):
        capabilities = cache.get_capabilities()

        assert capabilities.supported_datatypes["str"] is True
        for coerced in ("NoneType", "bool", "int", "float", "bytes"):
            assert capabilities.supported_datatypes[coerced] == "str"
        for unsupported in ("list", "dict", "object"):
            assert capabilities.supported_datatypes[unsupported] is False
        assert capabilities.min_ttl == 0
        assert capabilities.supported_metadata == ()
        assert capabilities.max_key_length == 0
        assert capabilities.namespace_is_prefix is True
        assert capabilities.namespace_separator == ":"

    def test_built_once(self, cache):
        assert cache.get_capabilities() is cache.get_capabilities()

    def test_separator_follows_option_change_in_place(self, cache):
        capabilities = cache.get_capabilities()

        cache.options.namespace_separator = "/"

        assert cache.get_capabilities() is capabilities
        assert capabilities.namespace_separator == "/"

    def test_separator_follows_bulk_update(self, cache):
        capabilities = cache.get_capabilities()
        cache.options.update(namespace="a", namespace_separator="|")
        assert capabilities.namespace_separator == "|"

    def test_no_updates_after_close(self, cache):
        capabilities = cache.get_capabilities()
        cache.close()

        cache.options.namespace_separator = "/"
        assert capabilities.namespace_separator == ":"

    def test_to_dict(self, cache):
        d = cache.get_capabilities().to_dict()
        assert d["namespace_separator"] == ":"
        assert d["min_ttl"] == 0
        assert d["supported_metadata"] == []
