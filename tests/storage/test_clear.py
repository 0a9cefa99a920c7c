"""Tests for DbmCache.clear_by_prefix() and DbmCache.clear_by_namespace()."""

import pytest

from kvspine.core.errors import ArgumentError
from kvspine.storage import DbmCache


def _fill(cache, *keys):
    for key in keys:
        cache.set_item(key, "v")


class TestClearByPrefix:
    def test_removes_matching_keys_only(self, cache):
        _fill(cache, "p1", "p2", "q1")

        assert cache.clear_by_prefix("p") is True
        assert sorted(cache) == ["q1"]

    def test_repeat_is_success(self, cache):
        _fill(cache, "p1")
        cache.clear_by_prefix("p")
        assert cache.clear_by_prefix("p") is True

    def test_empty_prefix(self, cache):
        with pytest.raises(ArgumentError, match="No prefix given"):
            cache.clear_by_prefix("")

    def test_scoped_to_current_namespace(self, db_path):
        with DbmCache(pathname=db_path) as raw:
            _fill(raw, "p1", "n:p1", "n:q1", "m:p1")

        with DbmCache(pathname=db_path, namespace="n") as cache:
            assert cache.clear_by_prefix("p") is True

        with DbmCache(pathname=db_path) as raw:
            assert sorted(raw) == ["m:p1", "n:q1", "p1"]

    def test_restarts_after_cursor_invalidation(self, fake_cache, fake_dbm):
        _fill(fake_cache, "p1", "p2", "p3", "q1")

        assert fake_cache.clear_by_prefix("p") is True
        assert list(fake_dbm.db.data) == [b"q1"]
        assert fake_dbm.db.deleted == [b"p1", b"p2", b"p3"]

    def test_failed_deletes_return_false(self, fake_cache, fake_dbm):
        _fill(fake_cache, "p1", "p2")
        fake_dbm.db.fail_on.add("delete")

        assert fake_cache.clear_by_prefix("p") is False
        assert sorted(fake_dbm.db.data) == [b"p1", b"p2"]


class TestClearByNamespace:
    def test_removes_namespace(self, db_path):
        with DbmCache(pathname=db_path) as raw:
            _fill(raw, "a:1", "a:2", "b:1", "a")

            assert raw.clear_by_namespace("a") is True
            assert sorted(raw) == ["a", "b:1"]

    def test_empty_namespace(self, cache):
        with pytest.raises(ArgumentError, match="No namespace given"):
            cache.clear_by_namespace("")

    def test_uses_configured_separator(self, db_path):
        with DbmCache(pathname=db_path, namespace_separator="/") as raw:
            _fill(raw, "a/1", "a:1")
            raw.clear_by_namespace("a")
            assert list(raw) == ["a:1"]

    def test_single_pass_leaves_skipped_keys(self, fake_cache, fake_dbm):
        _fill(fake_cache, "a:1", "a:2", "a:3", "b:1")

        assert fake_cache.clear_by_namespace("a") is True
        assert fake_dbm.db.deleted == [b"a:1"]
        assert sorted(fake_dbm.db.data) == [b"a:2", b"a:3", b"b:1"]

    def test_failed_delete_returns_false(self, fake_cache, fake_dbm):
        _fill(fake_cache, "a:1", "b:1")
        fake_dbm.db.fail_on.add("delete")

        assert fake_cache.clear_by_namespace("a") is False


@pytest.mark.integration
def test_clear_on_every_handler(any_cache):
    _fill(any_cache, "p1", "p2", "p3", "q1")

    assert any_cache.clear_by_prefix("p") is True
    assert sorted(any_cache) == ["q1"]
