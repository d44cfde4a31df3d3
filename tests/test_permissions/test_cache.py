"""Tests for the decision cache and cache-key construction."""
from __future__ import annotations

import threading

import pytest

from cms_access_control.permissions.cache import DecisionCache, hash_context, make_cache_key
from cms_access_control.permissions.model import PermissionCheckOptions, PermissionCheckResult

_ALLOW = PermissionCheckResult(allowed=True, reason="ok")


@pytest.fixture()
def cache() -> DecisionCache:
    return DecisionCache()


class TestHashContext:
    def test_none_context(self) -> None:
        assert hash_context(None) is None

    def test_key_order_does_not_matter(self) -> None:
        assert hash_context({"a": 1, "b": {"c": 2, "d": 3}}) == hash_context({"b": {"d": 3, "c": 2}, "a": 1})

    def test_different_values_differ(self) -> None:
        assert hash_context({"a": 1}) != hash_context({"a": 2})

    def test_list_and_tuple_differ(self) -> None:
        assert hash_context({"tags": ["a"]}) != hash_context({"tags": ("a",)})

    def test_bool_and_int_differ(self) -> None:
        assert hash_context({"flag": True}) != hash_context({"flag": 1})

    def test_shared_subvalue_is_not_circular(self) -> None:
        shared = ["x"]
        assert hash_context({"a": shared, "b": shared}) == hash_context({"a": ["x"], "b": ["x"]})

    def test_arbitrary_object_rejected(self) -> None:
        class Account:
            def __repr__(self) -> str:
                return "Account"

        with pytest.raises(TypeError):
            hash_context({"acct": Account()})

    def test_non_string_key_rejected(self) -> None:
        with pytest.raises(TypeError):
            hash_context({"ids": {1: "a"}})

    def test_circular_context_rejected(self) -> None:
        context: dict[str, object] = {}
        context["self"] = context
        with pytest.raises(ValueError):
            hash_context(context)


class TestMakeCacheKey:
    def test_contains_identity_fields(self) -> None:
        key = make_cache_key("u-1", "articles", "read", PermissionCheckOptions())
        assert key.startswith("u-1#0:articles:read:")

    def test_strict_and_fallback_distinguish_keys(self) -> None:
        base = make_cache_key("u", "r", "a", PermissionCheckOptions())
        strict = make_cache_key("u", "r", "a", PermissionCheckOptions(strict=True))
        fallback = make_cache_key("u", "r", "a", PermissionCheckOptions(fallback=True))
        assert len({base, strict, fallback}) == 3

    def test_cache_flag_not_part_of_key(self) -> None:
        assert make_cache_key("u", "r", "a", PermissionCheckOptions(cache=True)) == make_cache_key(
            "u", "r", "a", PermissionCheckOptions(cache=False)
        )

    def test_context_distinguishes_keys(self) -> None:
        first = make_cache_key("u", "r", "a", PermissionCheckOptions(context={"owner": "u"}))
        second = make_cache_key("u", "r", "a", PermissionCheckOptions(context={"owner": "v"}))
        assert first != second

    def test_revision_distinguishes_keys(self) -> None:
        options = PermissionCheckOptions()
        assert make_cache_key("u", "r", "a", options, 1) != make_cache_key("u", "r", "a", options, 2)


class TestDecisionCache:
    def test_miss_then_hit(self, cache: DecisionCache) -> None:
        assert cache.get("k") is None
        cache.set("k", _ALLOW)
        assert cache.get("k") is _ALLOW
        assert cache.stats() == {"size": 1, "hits": 1, "misses": 1}

    def test_clear_drops_everything(self, cache: DecisionCache) -> None:
        cache.set("a", _ALLOW)
        cache.set("b", _ALLOW)
        cache.clear()
        assert len(cache) == 0
        assert "a" not in cache

    def test_stale_generation_write_dropped(self, cache: DecisionCache) -> None:
        generation = cache.generation
        cache.clear()
        assert cache.set("k", _ALLOW, generation) is False
        assert "k" not in cache

    def test_current_generation_write_kept(self, cache: DecisionCache) -> None:
        assert cache.set("k", _ALLOW, cache.generation) is True
        assert "k" in cache

    def test_concurrent_writes(self, cache: DecisionCache) -> None:
        def writer(offset: int) -> None:
            for i in range(200):
                cache.set(f"key-{(i + offset) % 50}", _ALLOW)
                cache.get(f"key-{i % 50}")

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(cache) == 50
