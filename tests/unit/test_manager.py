"""
Unit Tests: Cache Manager

Facade wiring, memory management, expiring keys, health and scheduled
maintenance.
"""

import asyncio

import pytest

from core.cache.errors import InvalidArgument, StoreError
from core.cache.expiration import NOT_FOUND
from core.cache.manager import CacheManager
from data.store.redis import RedisBloomStore


class TestConstruction:

    def test_from_settings_builds_bloom_store(self, test_settings):
        manager = CacheManager.from_settings(test_settings)

        assert isinstance(manager.store, RedisBloomStore)
        assert manager.filters is not None
        assert manager.store.redis_url == test_settings.redis.url

    def test_plain_store_has_no_filters(self, plain_store, test_settings, metrics):
        manager = CacheManager(plain_store, test_settings, metrics)

        assert manager.filters is None

    @pytest.mark.asyncio
    async def test_filter_ops_on_plain_store(self, plain_store, test_settings, metrics):
        manager = CacheManager(plain_store, test_settings, metrics)

        with pytest.raises(StoreError, match="membership filters"):
            await manager.create_filter("f")

    @pytest.mark.asyncio
    async def test_create_filter_uses_settings_defaults(self, cache_manager, fake_store, test_settings):
        await cache_manager.create_filter("f")

        assert fake_store.filter_params["f"] == {
            "error_rate": test_settings.cache.default_error_rate,
            "capacity": test_settings.cache.default_capacity,
        }


class TestLifecycle:

    @pytest.mark.asyncio
    async def test_health_connected(self, cache_manager):
        health = await cache_manager.check_health()

        assert health["healthy"] is True
        assert health["redis"] == "connected"
        assert health["auto_cleanup"] is False

    @pytest.mark.asyncio
    async def test_health_disconnected(self, cache_manager, fake_store):
        fake_store.fail_on.add("ping")

        health = await cache_manager.check_health()

        assert health["healthy"] is False
        assert health["redis"] == "disconnected"

    @pytest.mark.asyncio
    async def test_disconnect_stops_cleanup_and_closes(self, cache_manager, fake_store):
        await cache_manager.connect()
        cache_manager.start_auto_cleanup(interval_ms=1000)

        await cache_manager.disconnect()

        assert cache_manager.auto_cleanup_running is False
        assert fake_store.connected is False


class TestDelegation:

    @pytest.mark.asyncio
    async def test_session_round_trip(self, cache_manager, fake_store):
        await cache_manager.set_with_ttl("session:user123", {"userId": 123}, 1800)
        fake_store.advance(600)

        assert await cache_manager.get_with_refresh("session:user123", 1800) == {"userId": 123}
        assert await fake_store.ttl("session:user123") == 1800

    @pytest.mark.asyncio
    async def test_delete(self, cache_manager):
        await cache_manager.set("k", 1)

        assert await cache_manager.delete("k") is True
        assert await cache_manager.get_with_refresh("k") is NOT_FOUND


class TestExpiringKeys:

    @pytest.mark.asyncio
    async def test_threshold_window(self, cache_manager):
        await cache_manager.set_batch([
            ("cache:demo:short", "a", 10),
            ("cache:demo:medium", "b", 30),
            ("cache:demo:long", "c", 90),
        ])
        await cache_manager.set("cache:demo:permanent", "d")

        expiring = await cache_manager.get_expiring_keys("cache:*", 30)

        assert sorted(expiring, key=lambda e: e["ttl"]) == [
            {"key": "cache:demo:short", "ttl": 10},
            {"key": "cache:demo:medium", "ttl": 30},
        ]

    @pytest.mark.asyncio
    async def test_default_threshold_from_settings(self, cache_manager):
        await cache_manager.set("cache:a", 1, 60)
        await cache_manager.set("cache:b", 1, 61)

        expiring = await cache_manager.get_expiring_keys()

        assert [e["key"] for e in expiring] == ["cache:a"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("threshold", [0, -1])
    async def test_zero_or_negative_threshold_rejected(self, cache_manager, fake_store, threshold):
        await cache_manager.set("cache:a", 1, 30)
        fake_store.calls.clear()

        with pytest.raises(InvalidArgument):
            await cache_manager.get_expiring_keys("cache:*", threshold)

        assert fake_store.calls == []


class TestMemoryManagement:

    @pytest.mark.asyncio
    async def test_applies_all_parameters(self, cache_manager, fake_store):
        applied = await cache_manager.configure_memory_management("128mb", "volatile-lru", 50)

        assert applied == {"maxmemory": "128mb", "maxmemory-policy": "volatile-lru", "hz": "50"}
        assert fake_store.config["maxmemory"] == "128mb"
        assert fake_store.config["maxmemory-policy"] == "volatile-lru"
        assert fake_store.config["hz"] == "50"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("args", [
        ("", "allkeys-lru", 100),
        ("64mb", "most-recently-used", 100),
        ("64mb", "allkeys-lru", 0),
        ("64mb", "allkeys-lru", 501),
    ])
    async def test_invalid_values_rejected(self, cache_manager, fake_store, args):
        with pytest.raises(InvalidArgument):
            await cache_manager.configure_memory_management(*args)

        assert "config_set" not in fake_store.calls


class TestMaintenance:

    @pytest.mark.asyncio
    async def test_tick_purges_and_backfills(self, cache_manager, fake_store, metrics):
        await cache_manager.set("cache:temp:orphan", {"temp": "no-ttl"})
        await cache_manager.set("cache:temp:demo1", {"temp": "data1"}, 15)
        await cache_manager.set("cache:session:user123", {"userId": 123})

        report = await cache_manager.maintenance_tick()

        assert report.ok
        assert report.purged == 1
        assert report.sessions_backfilled == 1
        assert "cache:temp:orphan" not in fake_store.data
        assert await fake_store.ttl("cache:session:user123") == 3600
        assert metrics['maintenance_ticks'].get(status="ok") == 1
        assert metrics['maintenance_duration'].get_stats()['count'] == 1

    @pytest.mark.asyncio
    async def test_tick_survives_store_failures(self, cache_manager, fake_store, metrics):
        fake_store.fail_on.add("keys")

        report = await cache_manager.maintenance_tick()

        assert not report.ok
        assert len(report.errors) == 2
        assert report.errors[0].startswith("purge:")
        assert report.errors[1].startswith("sessions:")
        assert metrics['maintenance_ticks'].get(status="error") == 1

    @pytest.mark.asyncio
    async def test_auto_cleanup_runs_ticks(self, cache_manager, fake_store):
        await cache_manager.set("cache:temp:orphan", "x")

        handle = cache_manager.start_auto_cleanup(interval_ms=1000, initial_delay_ms=0)
        assert cache_manager.start_auto_cleanup() is handle

        for _ in range(100):
            if handle.runs:
                break
            await asyncio.sleep(0.01)
        await cache_manager.stop_auto_cleanup()

        assert handle.runs == 1
        assert "cache:temp:orphan" not in fake_store.data
        assert cache_manager.auto_cleanup_running is False

    def test_auto_cleanup_rejects_zero_interval(self, cache_manager):
        with pytest.raises(InvalidArgument):
            cache_manager.start_auto_cleanup(interval_ms=0)

        assert cache_manager.auto_cleanup_running is False

    @pytest.mark.asyncio
    async def test_stop_without_start(self, cache_manager):
        await cache_manager.stop_auto_cleanup()

        assert cache_manager.auto_cleanup_running is False
