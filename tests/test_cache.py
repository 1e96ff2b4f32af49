"""
Tests for the Concurrent Cache module.
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from runtime_stuff.config import configure
from runtime_stuff.core.members.cache import CacheRegistry, ConcurrentCache, create_cache, registry


class TestConcurrentCache:
    """Tests for ConcurrentCache class."""

    @pytest.fixture
    def cache(self):
        return ConcurrentCache("test")

    def test_get_or_add_computes_once(self, cache):
        calls = []

        def factory(key):
            calls.append(key)
            return key * 2

        assert cache.get_or_add(2, factory) == 4
        assert cache.get_or_add(2, factory) == 4
        assert calls == [2]

    def test_stats(self, cache):
        cache.get_or_add("a", str.upper)
        cache.get_or_add("a", str.upper)
        stats = cache.stats()
        assert stats.entries == 1
        assert stats.hits == 1
        assert stats.misses == 1
        assert stats.hit_rate == 50.0
        assert stats.to_dict()["name"] == "test"

    def test_set_keeps_first_value(self, cache):
        assert cache.set("k", 1) == 1
        assert cache.set("k", 2) == 1
        assert cache.try_get("k") == 1
        assert cache.try_get("missing", "default") == "default"

    def test_factory_errors_are_not_cached(self, cache):
        def failing(key):
            raise ValueError(key)

        with pytest.raises(ValueError):
            cache.get_or_add("x", failing)
        assert "x" not in cache
        assert cache.get_or_add("x", str.upper) == "X"

    def test_invalidate(self, cache):
        cache.set("a", 1)
        cache.set("b", 2)
        cache.invalidate("a")
        assert cache.keys() == ["b"]
        cache.invalidate()
        assert len(cache) == 0

    def test_bounded_evicts_oldest(self):
        cache = ConcurrentCache("bounded", max_entries=2)
        for key in ("a", "b", "c"):
            cache.set(key, key)
        assert cache.keys() == ["b", "c"]
        assert cache.stats().evictions == 1

    def test_bound_follows_callable(self):
        limit = [None]
        cache = ConcurrentCache("dynamic", max_entries=lambda: limit[0])
        for key in range(5):
            cache.set(key, key)
        assert len(cache) == 5
        limit[0] = 1
        cache.set(99, 99)
        assert cache.keys() == [99]

    def test_concurrent_first_insert_wins(self, cache):
        barrier = threading.Barrier(8)

        def factory(key):
            return object()

        def work(_):
            barrier.wait()
            return cache.get_or_add("shared", factory)

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(work, range(8)))

        assert all(r is results[0] for r in results)
        assert len(cache) == 1


class TestCacheRegistry:
    """Tests for CacheRegistry class."""

    def test_register_is_idempotent_by_name(self):
        reg = CacheRegistry()
        first = reg.register(ConcurrentCache("same"))
        second = reg.register(ConcurrentCache("same"))
        assert first is second
        assert reg.get("same") is first

    def test_invalidate_all(self):
        reg = CacheRegistry()
        one = reg.register(ConcurrentCache("one"))
        two = reg.register(ConcurrentCache("two"))
        one.set(1, 1)
        two.set(2, 2)
        reg.invalidate("one")
        assert len(one) == 0 and len(two) == 1
        reg.invalidate()
        assert len(two) == 0

    def test_engine_caches_are_registered(self):
        info = registry.get_cache_info()
        assert {"types", "members", "getters", "setters"} <= set(info)

    def test_configured_bound(self):
        cache = create_cache("configured-bound-test")
        configure({"cache": {"max_entries": 1}})
        cache.set("a", 1)
        cache.set("b", 2)
        assert cache.keys() == ["b"]
