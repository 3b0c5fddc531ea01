"""
Unit Tests for ResponseCache

These tests verify that the cache:
- Returns stored values until their expiry instant
- Treats an entry as a miss at exactly its expiry instant and deletes it
- Honours per-entry TTL overrides
- Evicts expired entries first, then the soonest-expiring, when capped

Run with:
    pytest tests/unit/test_cache.py -v
"""

import threading

import pytest

from core.cache import ResponseCache


class FakeClock:
    """Manually advanced monotonic clock"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return ResponseCache(default_ttl=5.0, clock=clock)


# ============================================
# Expiry
# ============================================

class TestExpiry:
    """Tests for TTL handling"""

    def test_value_retrievable_before_expiry(self, cache, clock):
        cache.set("markets", ["INJ/USDT"])
        clock.advance(4.99)
        assert cache.get("markets") == ["INJ/USDT"]

    def test_miss_at_exact_expiry_instant(self, cache, clock):
        cache.set("markets", ["INJ/USDT"])
        clock.advance(5.0)
        assert cache.get("markets") is None

    def test_stale_read_deletes_entry(self, cache, clock):
        cache.set("markets", ["INJ/USDT"])
        clock.advance(6.0)
        assert len(cache) == 1
        cache.get("markets")
        assert len(cache) == 0

    def test_per_entry_ttl_override(self, cache, clock):
        cache.set("short", 1, ttl=1.0)
        cache.set("long", 2)
        clock.advance(2.0)
        assert cache.get("short") is None
        assert cache.get("long") == 2

    def test_set_overwrites_and_refreshes_expiry(self, cache, clock):
        cache.set("k", "old")
        clock.advance(4.0)
        cache.set("k", "new")
        clock.advance(4.0)
        assert cache.get("k") == "new"

    def test_missing_key_returns_none(self, cache):
        assert cache.get("nope") is None
        assert "nope" not in cache

    def test_purge_expired_counts_removed(self, cache, clock):
        cache.set("a", 1, ttl=1.0)
        cache.set("b", 2, ttl=1.0)
        cache.set("c", 3, ttl=10.0)
        clock.advance(1.5)
        assert cache.purge_expired() == 2
        assert len(cache) == 1


# ============================================
# Mutation
# ============================================

class TestMutation:
    """Tests for delete and clear"""

    def test_delete_removes_key(self, cache):
        cache.set("k", 1)
        cache.delete("k")
        assert cache.get("k") is None

    def test_delete_missing_key_is_noop(self, cache):
        cache.delete("absent")

    def test_clear_empties_cache(self, cache):
        cache.set("a", 1)
        cache.set("b", 2)
        cache.clear()
        assert len(cache) == 0


# ============================================
# Bounded Cache
# ============================================

class TestBoundedCache:
    """Tests for the optional max_entries cap"""

    def test_unbounded_by_default(self, cache):
        for i in range(500):
            cache.set(f"k{i}", i)
        assert len(cache) == 500

    def test_evicts_expired_before_live_entries(self, clock):
        cache = ResponseCache(default_ttl=5.0, max_entries=2, clock=clock)
        cache.set("stale", 1, ttl=1.0)
        cache.set("live", 2, ttl=60.0)
        clock.advance(2.0)
        cache.set("fresh", 3)
        assert cache.get("live") == 2
        assert cache.get("fresh") == 3
        assert len(cache) == 2

    def test_evicts_soonest_expiring_when_full(self, clock):
        cache = ResponseCache(default_ttl=5.0, max_entries=2, clock=clock)
        cache.set("soon", 1, ttl=2.0)
        cache.set("later", 2, ttl=30.0)
        cache.set("new", 3, ttl=10.0)
        assert cache.get("soon") is None
        assert cache.get("later") == 2
        assert cache.get("new") == 3


class TestValidation:
    """Constructor argument validation"""

    def test_rejects_non_positive_ttl(self):
        with pytest.raises(ValueError):
            ResponseCache(default_ttl=0)

    def test_rejects_zero_max_entries(self):
        with pytest.raises(ValueError):
            ResponseCache(max_entries=0)


class TestThreadSafety:
    """Tests for concurrent access from threads"""

    def test_len_waits_for_writers_holding_the_lock(self, cache):
        cache.set("a", 1)
        sizes = []

        with cache._lock:
            reader = threading.Thread(target=lambda: sizes.append(len(cache)))
            reader.start()
            reader.join(timeout=0.05)
            assert reader.is_alive()
            cache._store["b"] = cache._store["a"]

        reader.join(timeout=1.0)
        assert sizes == [2]

    def test_concurrent_writers_and_readers(self, cache):
        def writer(prefix):
            for i in range(200):
                cache.set(f"{prefix}{i}", i)
                len(cache)

        threads = [threading.Thread(target=writer, args=(p,)) for p in "abcd"]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(cache) == 800
