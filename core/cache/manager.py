"""
Cache Manager - Facade wiring the cache engines to one store

@.architecture
Incoming: app.py, api/dependencies.py, api/v1/endpoints/*.py, scripts/*.py --- {Settings, store instance, cache/filter/purge requests}
Processing: connect(), disconnect(), configure_memory_management(), get_expiring_keys(), start_auto_cleanup(), stop_auto_cleanup(), maintenance_tick(), check_health() + engine delegation --- {5 jobs: lifecycle_management, engine_delegation, memory_configuration, scheduled_maintenance, health_reporting}
Outgoing: core/cache/{expiration,filters,purge,scheduler,stats}.py, data/store --- {engine calls, store commands, MaintenanceReport, health dict}

Each manager owns its store; nothing here is module-global. The web app
keeps its manager on ``app.state``.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from config.settings import Settings, get_settings
from core.cache.errors import CacheError, InvalidArgument, StoreError, require_positive_int
from core.cache.expiration import ExpirationPolicyEngine
from core.cache.filters import MembershipFilterManager
from core.cache.purge import PatternPurgeEngine, PurgeRule
from core.cache.scheduler import CancellationToken, ScheduledTask, Scheduler
from core.cache.stats import StatsReporter
from data.store.base import KeyValueStore, MembershipFilterStore
from monitoring.logging import get_logger
from monitoring.metrics import setup_cache_metrics

logger = get_logger(__name__)

# maxmemory-policy values accepted by the server
EVICTION_POLICIES = frozenset({
    "noeviction",
    "allkeys-lru",
    "allkeys-lfu",
    "allkeys-random",
    "volatile-lru",
    "volatile-lfu",
    "volatile-random",
    "volatile-ttl",
})


@dataclass
class MaintenanceReport:
    """Outcome of one scheduled maintenance tick."""
    purged: int = 0
    sessions_backfilled: int = 0
    errors: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return not self.errors


class CacheManager:
    """
    Entry point for cache operations.

    Usage:
        manager = CacheManager.from_settings(get_settings())
        await manager.connect()
        await manager.set_with_ttl("user:123", {"name": "John"}, 300)
        manager.start_auto_cleanup()
        ...
        await manager.disconnect()
    """

    def __init__(
        self,
        store: KeyValueStore,
        settings: Optional[Settings] = None,
        metrics: Optional[Dict[str, Any]] = None
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.metrics = metrics or setup_cache_metrics()

        cache = self.settings.cache
        self.expiration = ExpirationPolicyEngine(store, cache.sliding_window_seconds, self.metrics)
        self.purge = PatternPurgeEngine(store, PurgeRule(marker=cache.transient_marker), self.metrics)
        self.stats = StatsReporter(store)
        self.scheduler = Scheduler(self.metrics)

        # Plain key/value stores still get every non-filter operation
        self.filters: Optional[MembershipFilterManager] = None
        if isinstance(store, MembershipFilterStore):
            self.filters = MembershipFilterManager(store, self.metrics)

        self._cleanup_handle: Optional[ScheduledTask] = None

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "CacheManager":
        """Build a manager over a Redis store with the bloom module."""
        # Imported here: the redis adapter depends on core.cache.errors
        from data.store.redis import RedisBloomStore

        settings = settings or get_settings()
        return cls(RedisBloomStore.from_settings(settings.redis), settings)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def connect(self) -> None:
        await self.store.connect()

    async def disconnect(self) -> None:
        """Stop scheduled maintenance and close the store."""
        await self.scheduler.shutdown()
        self._cleanup_handle = None
        await self.store.close()

    async def check_health(self) -> Dict[str, Any]:
        """Ping the store; shape expected by HealthChecker."""
        start = time.time()
        try:
            await self.store.ping()
        except CacheError as e:
            return {
                'healthy': False,
                'message': f'Redis unreachable: {e}',
                'redis': 'disconnected',
            }
        return {
            'healthy': True,
            'message': 'Redis connected',
            'redis': 'connected',
            'latency_ms': round((time.time() - start) * 1000, 2),
            'auto_cleanup': self.auto_cleanup_running,
        }

    # =========================================================================
    # EXPIRATION POLICIES
    # =========================================================================

    async def set_with_ttl(self, key: str, value: Any, ttl_seconds: int) -> None:
        await self.expiration.set_with_ttl(key, value, ttl_seconds)

    async def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        await self.expiration.set(key, value, ttl_seconds)

    async def get_with_refresh(self, key: str, refresh_ttl_seconds: Optional[int] = None) -> Any:
        return await self.expiration.get_with_refresh(key, refresh_ttl_seconds)

    async def set_sliding_cache(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        await self.expiration.set_sliding_cache(key, value, ttl_seconds)

    async def get_sliding_cache(self, key: str, ttl_seconds: Optional[int] = None) -> Any:
        return await self.expiration.get_sliding_cache(key, ttl_seconds)

    async def set_batch(self, entries: Iterable[Any]) -> int:
        return await self.expiration.set_batch(entries)

    async def delete(self, key: str) -> bool:
        return await self.expiration.delete(key)

    async def get_expiring_keys(self, pattern: str = "cache:*", threshold_seconds: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        List keys that will expire within ``threshold_seconds``.

        Returns:
            ``[{"key": ..., "ttl": ...}]`` for keys with 0 < TTL <= threshold
        """
        threshold = self.settings.cache.expiring_threshold_seconds if threshold_seconds is None else threshold_seconds
        require_positive_int(threshold, "threshold_seconds")

        expiring = []
        for key in await self.store.keys(pattern):
            ttl = await self.store.ttl(key)
            if 0 < ttl <= threshold:
                expiring.append({'key': key, 'ttl': ttl})
        return expiring

    # =========================================================================
    # MEMBERSHIP FILTERS
    # =========================================================================

    def _require_filters(self) -> MembershipFilterManager:
        if self.filters is None:
            raise StoreError(f"{type(self.store).__name__} does not support membership filters")
        return self.filters

    async def create_filter(
        self,
        name: str,
        error_rate: Optional[float] = None,
        capacity: Optional[int] = None,
        ttl_seconds: Optional[int] = None
    ) -> None:
        cache = self.settings.cache
        await self._require_filters().create_filter(
            name,
            cache.default_error_rate if error_rate is None else error_rate,
            cache.default_capacity if capacity is None else capacity,
            ttl_seconds,
        )

    async def apply_filter_ttl(self, name: str, ttl_seconds: int) -> None:
        await self._require_filters().apply_ttl(name, ttl_seconds)

    async def add_to_filter(self, name: str, item: str, ttl_seconds: Optional[int] = None) -> bool:
        return await self._require_filters().add(name, item, ttl_seconds)

    async def add_many(self, name: str, items: Sequence[str], ttl_seconds: Optional[int] = None) -> List[bool]:
        return await self._require_filters().add_many(name, items, ttl_seconds)

    async def check(self, name: str, item: str) -> bool:
        return await self._require_filters().check(name, item)

    async def check_many(self, name: str, items: Sequence[str]) -> List[bool]:
        return await self._require_filters().check_many(name, items)

    # =========================================================================
    # PURGE AND STATS
    # =========================================================================

    async def cleanup(self, pattern: str, rule: Optional[PurgeRule] = None) -> int:
        return await self.purge.cleanup(pattern, rule)

    async def delete_pattern(self, pattern: str) -> int:
        return await self.purge.delete_pattern(pattern)

    async def get_cache_stats(self) -> Dict[str, Dict[str, str]]:
        return await self.stats.get_cache_stats()

    # =========================================================================
    # MEMORY MANAGEMENT
    # =========================================================================

    async def configure_memory_management(
        self,
        max_memory: str,
        policy: str = "allkeys-lru",
        hz: int = 100
    ) -> Dict[str, str]:
        """
        Apply maxmemory, eviction policy and background task frequency.

        Args:
            max_memory: Server memory limit such as ``"256mb"``
            policy: One of ``EVICTION_POLICIES``
            hz: Server background task frequency (1-500)

        Returns:
            The values that were set
        """
        if not max_memory:
            raise InvalidArgument("max_memory must not be empty")
        if policy not in EVICTION_POLICIES:
            raise InvalidArgument(f"Unknown eviction policy '{policy}', expected one of {sorted(EVICTION_POLICIES)}")
        require_positive_int(hz, "hz")
        if hz > 500:
            raise InvalidArgument(f"hz must be at most 500, got {hz}")

        applied = {'maxmemory': str(max_memory), 'maxmemory-policy': policy, 'hz': str(hz)}
        for parameter, value in applied.items():
            await self.store.config_set(parameter, value)

        logger.info("Memory management configured", max_memory=max_memory, policy=policy, hz=hz)
        return applied

    # =========================================================================
    # SCHEDULED MAINTENANCE
    # =========================================================================

    @property
    def auto_cleanup_running(self) -> bool:
        return self._cleanup_handle is not None and self._cleanup_handle.is_active

    def start_auto_cleanup(self, interval_ms: Optional[int] = None, initial_delay_ms: Optional[int] = None) -> ScheduledTask:
        """Start periodic maintenance; returns the running handle if already started."""
        if self.auto_cleanup_running:
            return self._cleanup_handle

        self._cleanup_handle = self.scheduler.start(
            self.settings.cache.cleanup_interval_ms if interval_ms is None else interval_ms,
            self.maintenance_tick,
            initial_delay_ms,
        )
        return self._cleanup_handle

    async def stop_auto_cleanup(self) -> None:
        """Stop periodic maintenance, letting a running tick finish."""
        handle, self._cleanup_handle = self._cleanup_handle, None
        if handle is None:
            return
        self.scheduler.cancel(handle)
        await handle.wait()

    async def maintenance_tick(self, token: Optional[CancellationToken] = None) -> MaintenanceReport:
        """
        One maintenance pass: purge transient keys, give sessions a default
        TTL, log stats.

        Steps are independent; a failing step is logged and recorded in the
        report. The pass always runs to the end, cancellation only prevents
        the next one.
        """
        cache = self.settings.cache
        report = MaintenanceReport()
        start = time.time()

        try:
            report.purged = await self.purge.cleanup(cache.transient_pattern)
        except CacheError as e:
            report.errors.append(f"purge: {e}")
            logger.error("Maintenance purge failed", pattern=cache.transient_pattern, error=str(e))

        try:
            report.sessions_backfilled = await self.purge.backfill_ttl(cache.session_pattern, cache.session_default_ttl)
        except CacheError as e:
            report.errors.append(f"sessions: {e}")
            logger.error("Maintenance session TTL failed", pattern=cache.session_pattern, error=str(e))

        try:
            stats = await self.stats.get_cache_stats()
            logger.debug(
                "Cache stats",
                used_memory=stats.get('memory', {}).get('used_memory_human'),
                keyspace=stats.get('keyspace'),
            )
        except CacheError as e:
            report.errors.append(f"stats: {e}")
            logger.error("Maintenance stats failed", error=str(e))

        report.duration_seconds = time.time() - start
        self.metrics['maintenance_ticks'].inc(status="ok" if report.ok else "error")
        self.metrics['maintenance_duration'].observe(report.duration_seconds)

        logger.info(
            "Maintenance tick completed",
            purged=report.purged,
            sessions_backfilled=report.sessions_backfilled,
            errors=len(report.errors),
            cancelled=bool(token and token.cancelled),
        )
        return report
