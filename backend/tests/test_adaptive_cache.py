"""Tests for the priority-aware adaptive cache."""

import time

import pytest

from venuescout.services.adaptive_cache import AdaptiveCache, CachePriority


@pytest.fixture
def cache():
    return AdaptiveCache(max_size=5, default_ttl=60, enable_compression=True)


class TestCoreOperations:
    def test_set_and_get(self, cache):
        assert cache.set("paris", {"venues": ["Louvre Museum"]})
        assert cache.get("paris") == {"venues": ["Louvre Museum"]}
        assert cache.has("paris")

    def test_missing_key(self, cache):
        assert cache.get("nowhere") is None
        assert not cache.has("nowhere")

    def test_short_ttl_expires(self, cache):
        cache.set("k", "v", ttl=0.05)
        time.sleep(0.08)

        assert cache.get("k") is None
        assert not cache.has("k")

    def test_delete(self, cache):
        cache.set("k", "v")
        assert cache.delete("k")
        assert not cache.delete("k")

    def test_unserialisable_value_is_stored_raw(self, cache):
        marker = object()
        assert cache.set("obj", marker)
        assert cache.get("obj") is marker

    def test_compressed_entries_round_trip(self, cache):
        payload = {"name": "Casa Luna Restaurant", "tags": ["dining"] * 50}
        cache.set("big", payload, compress=True)

        meta = cache.get_with_metadata("big")
        assert meta["metadata"]["compressed"] is True
        assert meta["data"] == payload

    def test_max_size_must_be_positive(self):
        with pytest.raises(ValueError):
            AdaptiveCache(max_size=0)


class TestCapacity:
    def test_occupancy_never_exceeds_max_size(self, cache):
        for i in range(40):
            cache.set(f"key-{i}", {"i": i}, priority=CachePriority(1 + i % 4))
            assert len(cache) <= cache.max_size

    def test_low_priority_entries_are_evicted_first(self):
        cache = AdaptiveCache(max_size=3, default_ttl=60, enable_compression=False)
        cache.set("a", "x", priority=CachePriority.LOW)
        cache.set("b", "x", priority=CachePriority.LOW)
        cache.set("c", "x", priority=CachePriority.CRITICAL)

        cache.set("d", "x")

        assert cache.has("c")
        assert cache.has("d")
        assert not cache.has("a")
        assert cache.get_stats()["evictions"] >= 1

    def test_overwriting_existing_key_does_not_evict(self):
        cache = AdaptiveCache(max_size=2, default_ttl=60)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("a", 3)

        assert cache.get("a") == 3
        assert cache.get("b") == 2
        assert cache.get_stats()["evictions"] == 0


class TestMaintenance:
    def test_clear_expired_is_idempotent(self, cache):
        cache.set("old", 1, ttl=0.01)
        cache.set("fresh", 2)
        time.sleep(0.03)

        assert cache.clear_expired() == 1
        assert cache.clear_expired() == 0
        assert cache.has("fresh")
        assert cache.get_stats()["last_cleanup"] is not None

    def test_clear_by_tags(self, cache):
        cache.set("r1", 1, tags=("recommendations", "paris"))
        cache.set("r2", 2, tags=("recommendations",))
        cache.set("other", 3)

        assert cache.clear_by_tags(["recommendations"]) == 2
        assert len(cache) == 1

    def test_update_ttl_restarts_lifetime(self, cache):
        cache.set("k", "v", ttl=0.05)
        assert cache.update_ttl("k", 60)
        time.sleep(0.08)
        assert cache.get("k") == "v"
        assert not cache.update_ttl("missing", 10)

    def test_priority_introspection(self, cache):
        cache.set("b", 1, priority=CachePriority.HIGH)
        cache.set("a", 2, priority=CachePriority.HIGH)
        cache.set("c", 3, priority=CachePriority.LOW)

        assert cache.get_entries_by_priority(CachePriority.HIGH) == ["a", "b"]
        assert cache.update_priority("c", CachePriority.HIGH)
        assert cache.get_entries_by_priority(CachePriority.HIGH) == ["a", "b", "c"]

    def test_optimize_demotes_nothing_recent(self, cache):
        cache.set("k", "v", priority=CachePriority.LOW)
        result = cache.optimize()

        assert result == {"expired_removed": 0, "priorities_adjusted": 1}
        assert cache.get_entries_by_priority(CachePriority.MEDIUM) == ["k"]


class TestStats:
    def test_hit_rate(self, cache):
        cache.set("k", "v")
        cache.get("k")
        cache.get("missing")

        stats = cache.get_stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["hit_rate"] == 50.0
        assert stats["priority_distribution"]["medium"] == 1

    def test_clear_resets_counters(self, cache):
        cache.set("k", "v")
        cache.get("k")
        cache.clear()

        stats = cache.get_stats()
        assert stats["size"] == 0
        assert stats["total_requests"] == 0

    def test_export_state(self, cache):
        cache.set("k", "v", tags=("t",))
        state = cache.export_state()

        assert state["stats"]["size"] == 1
        assert state["entries"][0]["key"] == "k"
        assert state["entries"][0]["tags"] == ["t"]
        assert state["entries"][0]["expired"] is False
