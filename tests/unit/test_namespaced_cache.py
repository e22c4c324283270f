"""
Unit tests for NamespacedCache.

Tests routing, hit/miss accounting, invalidation, stats and health reporting,
graceful degradation and lifecycle.
"""

import logging
from concurrent.futures import ThreadPoolExecutor

import pytest

from pirate_cache.core.cache.namespaces import (
    LEADERBOARDS,
    PLAYERS,
    SESSIONS,
    NamespaceConfig,
)
from pirate_cache.core.cache.service import NamespacedCache
from pirate_cache.core.exceptions import ConfigurationError


@pytest.mark.unit
@pytest.mark.cache
class TestConstruction:
    """Policy set validation at construction."""

    def test_default_namespaces(self):
        cache = NamespacedCache()
        assert set(cache.namespaces) == {
            "players",
            "leaderboards",
            "statistics",
            "achievements",
            "sessions",
            "api_responses",
            "blockchain_data",
            "rate_limits",
        }

    def test_empty_policy_set_rejected(self):
        with pytest.raises(ConfigurationError):
            NamespacedCache([])

    def test_duplicate_namespace_rejected(self):
        config = NamespaceConfig("players", default_ttl=1, max_entries=1, sweep_interval=1)
        with pytest.raises(ConfigurationError):
            NamespacedCache([config, config])

    def test_accepts_mapping_of_configs(self, clock):
        config = NamespaceConfig("players", default_ttl=5, max_entries=5, sweep_interval=5)
        cache = NamespacedCache({"players": config}, clock=clock)
        assert cache.namespaces == ("players",)
        assert cache.config_for("players") is config
        assert cache.config_for("nope") is None


@pytest.mark.unit
@pytest.mark.cache
class TestGetSet:
    """Basic round trips and TTL behaviour through the cache."""

    def test_set_then_get(self, cache):
        assert cache.set(PLAYERS, "player:0xabc", {"score": 1}) is True
        assert cache.get(PLAYERS, "player:0xabc") == {"score": 1}

    def test_namespaces_are_isolated(self, cache):
        cache.set(PLAYERS, "same", 1)
        cache.set(SESSIONS, "same", 2)
        assert cache.get(PLAYERS, "same") == 1
        assert cache.get(SESSIONS, "same") == 2

    def test_get_default_on_miss(self, cache):
        assert cache.get(PLAYERS, "missing", default="fallback") == "fallback"

    def test_lookup_distinguishes_cached_none(self, cache):
        cache.set(PLAYERS, "k", None)
        found, value = cache.lookup(PLAYERS, "k")
        assert found is True
        assert value is None
        assert cache.get_stats()[PLAYERS]["hits"] == 1

    def test_expired_read_is_a_counted_miss(self, cache, clock):
        cache.set(PLAYERS, "k", "v", ttl=1)
        clock.advance(1.5)
        assert cache.get(PLAYERS, "k") is None
        stats = cache.get_stats()[PLAYERS]
        assert stats["misses"] == 1
        assert stats["hits"] == 0

    def test_set_logs_resolved_ttl(self, cache, caplog):
        with caplog.at_level(logging.DEBUG, logger="pirate_cache.core.cache.service"):
            cache.set(PLAYERS, "player:a", 1, ttl=-5)
            cache.set(PLAYERS, "player:b", 1, ttl=0)
        records = [r for r in caplog.records if r.getMessage() == "Cache SET"]
        assert [r.ttl_seconds for r in records] == [300, 300]

    def test_default_ttl_applies(self, cache, clock):
        cache.set(SESSIONS, "s", 1)
        clock.advance(179)
        assert cache.get(SESSIONS, "s") == 1
        clock.advance(1)
        assert cache.get(SESSIONS, "s") is None


@pytest.mark.unit
@pytest.mark.cache
class TestStats:
    """Hit/miss accounting and reporting."""

    def test_hit_rate_three_hits_one_miss(self, cache):
        cache.set(PLAYERS, "a", 1)
        for _ in range(3):
            cache.get(PLAYERS, "a")
        cache.get(PLAYERS, "b")
        stats = cache.get_stats()[PLAYERS]
        assert stats["hits"] == 3
        assert stats["misses"] == 1
        assert stats["hit_rate"] == "75.00%"

    def test_hit_rate_without_lookups(self, cache):
        assert cache.get_stats()[PLAYERS]["hit_rate"] == "0%"

    def test_hit_rate_only_misses(self, cache):
        cache.get(PLAYERS, "nope")
        assert cache.get_stats()[PLAYERS]["hit_rate"] == "0.00%"

    def test_report_fields(self, cache):
        cache.set(PLAYERS, "a", 1)
        cache.delete(PLAYERS, "a")
        cache.invalidate_namespace(PLAYERS)
        assert cache.get_stats()[PLAYERS] == {
            "key_count": 0,
            "hits": 0,
            "misses": 0,
            "sets": 1,
            "deletes": 1,
            "flushes": 1,
            "hit_rate": "0%",
        }

    def test_delete_of_missing_key_not_counted(self, cache):
        assert cache.delete(PLAYERS, "nope") == 0
        assert cache.get_stats()[PLAYERS]["deletes"] == 0

    def test_reset_stats_keeps_entries(self, cache):
        cache.set(PLAYERS, "a", 1)
        cache.get(PLAYERS, "a")
        cache.reset_stats()
        stats = cache.get_stats()[PLAYERS]
        assert stats["hits"] == 0
        assert stats["sets"] == 0
        assert stats["key_count"] == 1

    def test_memory_usage_estimate(self, cache):
        cache.set(PLAYERS, "a", 1)
        cache.set(PLAYERS, "bb", 2)
        usage = cache.get_memory_usage()[PLAYERS]
        assert usage["keys"] == 2
        assert usage["size"] == len('["a", "bb"]')


@pytest.mark.unit
@pytest.mark.cache
class TestCapacity:
    """A full namespace refuses new keys without evicting."""

    def test_third_key_rejected(self, tiny_cache):
        assert tiny_cache.set(PLAYERS, "a", 1) is True
        assert tiny_cache.set(PLAYERS, "b", 2) is True
        assert tiny_cache.set(PLAYERS, "c", 3) is False
        assert tiny_cache.get(PLAYERS, "c") is None
        assert tiny_cache.get(PLAYERS, "a") == 1
        assert tiny_cache.get(PLAYERS, "b") == 2
        assert tiny_cache.get_stats()[PLAYERS]["sets"] == 2

    def test_replacing_existing_key_when_full(self, tiny_cache):
        tiny_cache.set(PLAYERS, "a", 1)
        tiny_cache.set(PLAYERS, "b", 2)
        assert tiny_cache.set(PLAYERS, "a", 10) is True
        assert tiny_cache.get(PLAYERS, "a") == 10


@pytest.mark.unit
@pytest.mark.cache
class TestInvalidation:
    """Substring and whole-namespace invalidation."""

    def test_pattern_deletes_matching_keys_only(self, cache):
        cache.set(PLAYERS, "player:wallet123", 1)
        cache.set(PLAYERS, "achievements:wallet123", 2)
        cache.set(PLAYERS, "player:wallet999", 3)

        assert cache.invalidate_pattern(PLAYERS, "wallet123") == 2
        assert cache.get(PLAYERS, "player:wallet123") is None
        assert cache.get(PLAYERS, "achievements:wallet123") is None
        assert cache.get(PLAYERS, "player:wallet999") == 3

    def test_pattern_is_substring_not_glob(self, cache):
        cache.set(PLAYERS, "player:abc", 1)
        assert cache.invalidate_pattern(PLAYERS, "player:*") == 0
        assert cache.get(PLAYERS, "player:abc") == 1

    def test_pattern_deletes_are_counted(self, cache):
        cache.set(PLAYERS, "x1", 1)
        cache.set(PLAYERS, "x2", 1)
        cache.invalidate_pattern(PLAYERS, "x")
        assert cache.get_stats()[PLAYERS]["deletes"] == 2

    def test_empty_pattern_refused(self, cache):
        cache.set(PLAYERS, "a", 1)
        assert cache.invalidate_pattern(PLAYERS, "") == 0
        assert cache.get(PLAYERS, "a") == 1

    def test_invalidate_namespace_leaves_others(self, cache):
        cache.set(LEADERBOARDS, "leaderboard:score:10", [1])
        cache.set(PLAYERS, "player:a", 1)
        assert cache.invalidate_namespace(LEADERBOARDS) == 1
        assert cache.get(LEADERBOARDS, "leaderboard:score:10") is None
        assert cache.get(PLAYERS, "player:a") == 1

    def test_cleanup_flushes_and_resets(self, cache):
        cache.set(PLAYERS, "a", 1)
        cache.set(SESSIONS, "b", 2)
        cache.get(PLAYERS, "a")
        cache.cleanup()
        for report in cache.get_stats().values():
            assert report["key_count"] == 0
            assert report["hits"] == 0
            assert report["flushes"] == 0


@pytest.mark.unit
@pytest.mark.cache
class TestGracefulDegradation:
    """Unknown namespaces never raise into callers."""

    def test_unknown_namespace_get_is_miss(self, cache, caplog):
        with caplog.at_level(logging.WARNING):
            assert cache.get("unknown", "k", default="d") == "d"
        assert any(record.levelno == logging.WARNING for record in caplog.records)

    def test_unknown_namespace_set_returns_false(self, cache):
        assert cache.set("unknown", "k", 1) is False

    def test_unknown_namespace_delete_and_invalidate(self, cache):
        assert cache.delete("unknown", "k") == 0
        assert cache.invalidate_pattern("unknown", "k") == 0
        assert cache.invalidate_namespace("unknown") == 0

    def test_unknown_namespace_not_in_stats(self, cache):
        cache.get("unknown", "k")
        assert "unknown" not in cache.get_stats()

    def test_non_string_key_refused(self, cache):
        assert cache.set(PLAYERS, 42, "x") is False
        assert cache.get(PLAYERS, 42, default="d") == "d"
        assert cache.delete(PLAYERS, 42) == 0
        assert cache.get_stats()[PLAYERS]["key_count"] == 0

    def test_non_string_pattern_refused(self, cache):
        cache.set(PLAYERS, "player:a", 1)
        assert cache.invalidate_pattern(PLAYERS, 4) == 0
        assert cache.get(PLAYERS, "player:a") == 1


@pytest.mark.unit
@pytest.mark.cache
class TestHealthAndSweep:
    """Liveness report and synchronous sweeping."""

    def test_health_check_shape(self, cache):
        cache.set(PLAYERS, "a", 1)
        health = cache.health_check()
        assert health["status"] == "healthy"
        assert health["namespace_count"] == 8
        assert set(health["stats"]) == set(cache.namespaces)
        assert health["memory_estimate"]["total_keys"] == 1
        assert health["timestamp"]

    def test_sweep_expired_reports_per_namespace(self, cache, clock):
        cache.set(PLAYERS, "a", 1, ttl=1)
        cache.set(SESSIONS, "b", 1, ttl=1)
        cache.set(SESSIONS, "c", 1, ttl=100)
        clock.advance(2)
        removed = cache.sweep_expired()
        assert removed[PLAYERS] == 1
        assert removed[SESSIONS] == 1
        assert cache.get_stats()[SESSIONS]["key_count"] == 1


@pytest.mark.unit
@pytest.mark.cache
class TestLifecycle:
    """Sweeper start and idempotent shutdown."""

    @pytest.mark.asyncio
    async def test_start_launches_one_sweeper_per_namespace(self, cache):
        await cache.start()
        try:
            assert set(cache.sweepers) == set(cache.namespaces)
            assert all(s.is_running for s in cache.sweepers.values())
        finally:
            await cache.shutdown()

    @pytest.mark.asyncio
    async def test_start_twice_does_not_duplicate(self, cache):
        await cache.start()
        first = cache.sweepers
        await cache.start()
        assert cache.sweepers == first
        await cache.shutdown()

    @pytest.mark.asyncio
    async def test_shutdown_twice_is_safe(self, cache):
        await cache.start()
        sweepers = list(cache.sweepers.values())
        cache.set(PLAYERS, "a", 1)

        await cache.shutdown()
        await cache.shutdown()

        assert cache.is_closed
        assert cache.sweepers == {}
        assert not any(s.is_running for s in sweepers)

    @pytest.mark.asyncio
    async def test_operations_degrade_after_shutdown(self, cache):
        cache.set(PLAYERS, "a", 1)
        await cache.shutdown()

        assert cache.get(PLAYERS, "a") is None
        assert cache.set(PLAYERS, "b", 2) is False
        assert cache.increment_rate_limit("ip") == 0
        assert cache.health_check()["status"] == "shutdown"

    @pytest.mark.asyncio
    async def test_health_after_shutdown_reports_no_namespaces(self, cache):
        await cache.shutdown()
        health = cache.health_check()
        assert health["namespace_count"] == 0
        assert health["stats"] == {}
        assert health["memory_estimate"] == {}

    @pytest.mark.asyncio
    async def test_start_after_shutdown_is_ignored(self, cache):
        await cache.shutdown()
        await cache.start()
        assert cache.sweepers == {}


@pytest.mark.unit
@pytest.mark.cache
class TestConcurrency:
    """Same-key writers and readers from many threads."""

    def test_readers_never_see_partial_values(self, cache):
        key = "player:shared"

        def write(n):
            assert cache.set(PLAYERS, key, {"a": n, "b": n}) is True
            seen = cache.get(PLAYERS, key)
            return seen is not None and seen["a"] == seen["b"]

        def read(_):
            seen = cache.get(PLAYERS, key)
            return seen is None or seen["a"] == seen["b"]

        with ThreadPoolExecutor(max_workers=8) as pool:
            writes = [pool.submit(write, n) for n in range(200)]
            reads = [pool.submit(read, n) for n in range(200)]
            results = [f.result() for f in writes + reads]

        assert all(results)
        final = cache.get(PLAYERS, key)
        assert final["a"] == final["b"]
        assert 0 <= final["a"] < 200
        assert cache.get_stats()[PLAYERS]["sets"] == 200
