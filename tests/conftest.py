"""
Pytest Configuration and Shared Fixtures

Provides an in-memory store with Redis semantics, settings, a cache
manager and an HTTP client over the FastAPI app, so unit and integration
tests run without a Redis server.
"""

import fnmatch
import math
import os
from typing import Any, AsyncGenerator, Dict, List, Optional, Sequence, Set

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Test environment setup
os.environ["CACHE_ENVIRONMENT"] = "test"

from app import create_app
from config.settings import CacheSettings, RedisSettings, Settings, get_settings
from core.cache.errors import AlreadyExists, NotFound, StoreUnavailable
from core.cache.manager import CacheManager
from data.store.base import TTL_MISSING, TTL_NO_EXPIRY, BatchWrite
from monitoring.metrics import MetricsRegistry, setup_cache_metrics


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests that test individual components"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that test component interactions"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take significant time to run"
    )


# =============================================================================
# In-memory Store
# =============================================================================

class FakeKeyValueStore:
    """
    Key/value store with Redis reply semantics.

    Time is virtual: ``advance(seconds)`` moves the clock so expiry can be
    tested without sleeping. Command names listed in ``fail_on`` raise
    StoreUnavailable.
    """

    def __init__(self):
        self.data: Dict[str, str] = {}
        self.filters: Dict[str, Set[str]] = {}
        self.filter_params: Dict[str, Dict[str, Any]] = {}
        self.deadlines: Dict[str, float] = {}
        self.config: Dict[str, str] = {"maxmemory": "0", "maxmemory-policy": "noeviction", "hz": "10"}
        self.info_sections: Dict[str, Dict[str, Any]] = {
            "memory": {"used_memory": 1048576, "used_memory_human": "1.00M"},
            "keyspace": {"db0": {"keys": 3, "expires": 1, "avg_ttl": 0}},
            "stats": {"keyspace_hits": 10, "keyspace_misses": 2},
        }
        self.fail_on: Set[str] = set()
        self.calls: List[str] = []
        self.connected = False
        self.now = 0.0

    # -- helpers -------------------------------------------------------------

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def _record(self, command: str) -> None:
        self.calls.append(command)
        if command in self.fail_on:
            raise StoreUnavailable(f"{command} failed: connection refused")

    def _purge_expired(self, key: str) -> None:
        deadline = self.deadlines.get(key)
        if deadline is not None and deadline <= self.now:
            self._remove(key)

    def _remove(self, key: str) -> bool:
        existed = key in self.data or key in self.filters
        self.data.pop(key, None)
        self.filters.pop(key, None)
        self.filter_params.pop(key, None)
        self.deadlines.pop(key, None)
        return existed

    def _exists(self, key: str) -> bool:
        self._purge_expired(key)
        return key in self.data or key in self.filters

    def _all_keys(self) -> List[str]:
        return [key for key in list(self.data) + list(self.filters) if self._exists(key)]

    def _require_filter(self, name: str) -> Set[str]:
        self._purge_expired(name)
        if name not in self.filters:
            raise NotFound(f"ERR not found: {name}")
        return self.filters[name]

    # -- KeyValueStore -------------------------------------------------------

    async def connect(self) -> None:
        self._record("connect")
        self.connected = True

    async def close(self) -> None:
        self.connected = False

    async def ping(self) -> bool:
        self._record("ping")
        return True

    async def get(self, key: str) -> Optional[str]:
        self._record("get")
        return self.data.get(key) if self._exists(key) else None

    async def get_and_expire(self, key: str, ttl_seconds: int) -> Optional[str]:
        self._record("getex")
        if not self._exists(key) or key not in self.data:
            return None
        self.deadlines[key] = self.now + ttl_seconds
        return self.data[key]

    async def set(self, key: str, value: str) -> None:
        self._record("set")
        self._remove(key)
        self.data[key] = value

    async def setex(self, key: str, value: str, ttl_seconds: int) -> None:
        self._record("setex")
        self._remove(key)
        self.data[key] = value
        self.deadlines[key] = self.now + ttl_seconds

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        self._record("expire")
        if not self._exists(key):
            return False
        self.deadlines[key] = self.now + ttl_seconds
        return True

    async def ttl(self, key: str) -> int:
        self._record("ttl")
        if not self._exists(key):
            return TTL_MISSING
        if key not in self.deadlines:
            return TTL_NO_EXPIRY
        return math.ceil(self.deadlines[key] - self.now)

    async def delete(self, *keys: str) -> int:
        self._record("delete")
        return sum(1 for key in keys if self._exists(key) and self._remove(key))

    async def keys(self, pattern: str) -> List[str]:
        self._record("keys")
        return [key for key in self._all_keys() if fnmatch.fnmatchcase(key, pattern)]

    async def set_batch(self, entries: Sequence[BatchWrite]) -> None:
        self._record("set_batch")
        for key, value, ttl_seconds in entries:
            self._remove(key)
            self.data[key] = value
            self.deadlines[key] = self.now + ttl_seconds

    async def config_set(self, parameter: str, value: str) -> None:
        self._record("config_set")
        self.config[parameter] = value

    async def config_get(self, parameter: str) -> Dict[str, str]:
        self._record("config_get")
        return {parameter: self.config.get(parameter, "")}

    async def info(self, section: str) -> Dict[str, Any]:
        self._record("info")
        return self.info_sections.get(section, {})


class FakeRedisStore(FakeKeyValueStore):
    """Adds bloom filters, modelled as exact sets (no false positives)."""

    async def filter_reserve(self, name: str, error_rate: float, capacity: int) -> None:
        self._record("filter_reserve")
        if self._exists(name):
            raise AlreadyExists("ERR item exists")
        self.filters[name] = set()
        self.filter_params[name] = {"error_rate": error_rate, "capacity": capacity}

    async def filter_add(self, name: str, item: str) -> bool:
        self._record("filter_add")
        items = self._require_filter(name)
        added = item not in items
        items.add(item)
        return added

    async def filter_madd(self, name: str, items: Sequence[str]) -> List[bool]:
        self._record("filter_madd")
        members = self._require_filter(name)
        results = []
        for item in items:
            results.append(item not in members)
            members.add(item)
        return results

    async def filter_exists(self, name: str, item: str) -> bool:
        self._record("filter_exists")
        return item in self._require_filter(name)

    async def filter_mexists(self, name: str, items: Sequence[str]) -> List[bool]:
        self._record("filter_mexists")
        members = self._require_filter(name)
        return [item in members for item in items]


# =============================================================================
# Settings Fixtures
# =============================================================================

@pytest.fixture
def test_settings() -> Settings:
    """Settings with auto cleanup off so tests control the scheduler."""
    return Settings(
        environment="test",
        redis=RedisSettings(url="redis://localhost:6379/15"),
        cache=CacheSettings(auto_cleanup_enabled=False, cleanup_interval_ms=1000),
    )


@pytest.fixture(autouse=True)
def reset_settings():
    """Reset cached settings after each test."""
    yield
    get_settings.cache_clear()


# =============================================================================
# Store and Manager Fixtures
# =============================================================================

@pytest.fixture
def fake_store() -> FakeRedisStore:
    return FakeRedisStore()


@pytest.fixture
def plain_store() -> FakeKeyValueStore:
    return FakeKeyValueStore()


@pytest.fixture
def metrics() -> Dict[str, Any]:
    """Cache metrics on a private registry."""
    return setup_cache_metrics(MetricsRegistry())


@pytest.fixture
def cache_manager(fake_store, test_settings, metrics) -> CacheManager:
    return CacheManager(fake_store, test_settings, metrics)


# =============================================================================
# FastAPI App Fixtures
# =============================================================================

@pytest_asyncio.fixture
async def app(test_settings, fake_store):
    """App over the in-memory store (startup events do not run in-process)."""
    manager = CacheManager(fake_store, test_settings, setup_cache_metrics())
    await manager.connect()

    app = create_app(settings=test_settings, cache_manager=manager)
    yield app

    await manager.disconnect()


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
