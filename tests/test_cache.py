"""Tests for TTLCache."""

import pytest

from avscraper.utils.cache import TTLCache


class TestTTLCache:
    """Test cases for TTLCache."""

    @pytest.fixture
    def cache(self, fake_clock):
        return TTLCache(default_ttl=60, max_entries=3, clock=fake_clock)

    def test_set_and_get(self, cache):
        cache.set("a", 1)

        assert cache.get("a") == 1
        assert cache.get("missing", "default") == "default"
        assert "a" in cache
        assert len(cache) == 1

    def test_expiry(self, cache, fake_clock):
        cache.set("a", 1)
        cache.set("b", 2, ttl=120)

        fake_clock.advance(60)

        assert cache.get("a") is None
        assert cache.get("b") == 2
        assert cache.stats['expirations'] == 1

    def test_get_entry_does_not_touch_recency(self, cache, fake_clock):
        cache.set("a", 1)
        value, expires_at = cache.get_entry("a")

        assert value == 1
        assert expires_at == fake_clock.now + 60

        fake_clock.advance(61)
        assert cache.get_entry("a") is None
        assert "a" not in cache

    def test_lru_eviction(self, cache):
        for key in ("a", "b", "c"):
            cache.set(key, key)

        # Reading "a" makes "b" the least recently used entry
        cache.get("a")
        cache.set("d", "d")

        assert "b" not in cache
        assert {"a", "c", "d"} == {k for k in ("a", "b", "c", "d") if k in cache}
        assert cache.stats['evictions'] == 1

    def test_overwrite_refreshes_expiry(self, cache, fake_clock):
        cache.set("a", 1)
        fake_clock.advance(50)
        cache.set("a", 2)
        fake_clock.advance(50)

        assert cache.get("a") == 2

    def test_non_positive_ttl_removes(self, cache):
        cache.set("a", 1)
        cache.set("a", 2, ttl=0)

        assert cache.get("a") is None
        assert len(cache) == 0

    def test_sweep_expired(self, cache, fake_clock):
        cache.set("a", 1, ttl=10)
        cache.set("b", 2, ttl=20)
        cache.set("c", 3, ttl=30)

        fake_clock.advance(20)

        assert cache.sweep_expired() == 2
        assert len(cache) == 1
        assert cache.sweep_expired() == 0

    def test_delete_and_clear(self, cache):
        cache.set("a", 1)
        cache.set("b", 2)

        assert cache.delete("a") is True
        assert cache.delete("a") is False

        cache.clear()
        assert len(cache) == 0

    def test_tuple_keys(self, cache):
        cache.set(("IPX-177", "merge_all"), "record")
        assert cache.get(("IPX-177", "merge_all")) == "record"
        assert cache.get(("IPX-177", "fallback_chain")) is None

    def test_stats(self, cache):
        cache.set("a", 1)
        cache.get("a")
        cache.get("b")

        stats = cache.get_stats()
        assert stats['hits'] == 1
        assert stats['misses'] == 1
        assert stats['size'] == 1
        assert stats['hit_rate'] == 50.0

    @pytest.mark.parametrize("kwargs", [{'default_ttl': 0}, {'max_entries': 0}])
    def test_invalid_arguments(self, kwargs):
        with pytest.raises(ValueError):
            TTLCache(**kwargs)
