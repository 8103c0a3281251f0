"""
Unit Tests for LRU Cache
========================
"""

import pytest

from pulsefeed.dedup.lru_cache import LRUCache


class TestLRUCache:
    """Test recency ordering, eviction and expiry."""

    def test_get_missing_returns_none(self):
        cache = LRUCache(capacity=3)
        assert cache.get("missing") is None

    def test_set_and_get(self):
        cache = LRUCache(capacity=3)
        cache.set("a", True)
        cache.set("b", False)

        assert cache.get("a") is True
        assert cache.get("b") is False
        assert len(cache) == 2

    def test_overflow_evicts_single_oldest(self):
        cache = LRUCache(capacity=3)
        for key in ("a", "b", "c", "d"):
            cache.set(key, True)

        assert len(cache) == 3
        assert "a" not in cache
        assert all(key in cache for key in ("b", "c", "d"))

    def test_get_touches_recency(self):
        cache = LRUCache(capacity=3)
        for key in ("a", "b", "c"):
            cache.set(key, True)

        cache.get("a")
        cache.set("d", True)

        assert "a" in cache
        assert "b" not in cache

    def test_set_existing_key_touches_recency(self):
        cache = LRUCache(capacity=2)
        cache.set("a", False)
        cache.set("b", False)
        cache.set("a", True)
        cache.set("c", True)

        assert cache.get("a") is True
        assert "b" not in cache

    def test_has_does_not_touch_recency(self):
        cache = LRUCache(capacity=2)
        cache.set("a", True)
        cache.set("b", True)

        assert cache.has("a")
        cache.set("c", True)

        assert "a" not in cache

    def test_entries_expire_after_max_age(self):
        now = [0.0]
        cache = LRUCache(capacity=10, max_age_seconds=60, clock=lambda: now[0])
        cache.set("a", True)

        now[0] = 59.0
        assert cache.get("a") is True

        now[0] = 120.0
        assert cache.get("a") is None
        assert len(cache) == 0

    def test_clear(self):
        cache = LRUCache(capacity=3)
        cache.set("a", True)
        cache.clear()
        assert len(cache) == 0

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            LRUCache(capacity=0)
