"""
Redis Store - redis.asyncio implementation of the store capabilities

@.architecture
Incoming: core/cache/manager.py, app.py (startup), scripts/monitor_cache.py --- {Redis URL, RedisSettings, awaited store commands}
Processing: connect(), close(), get(), get_and_expire(), setex(), expire(), ttl(), delete(), keys(), set_batch(), info(), filter_*() --- {5 jobs: connection_management, retry_policy, key_operations, bloom_operations, error_translation}
Outgoing: Redis server (via redis.asyncio), core/cache/*.py --- {GET/SETEX/EXPIRE/TTL/DEL/SCAN/MULTI/BF.* commands, plain Python replies, CacheError subclasses}

Provides:
- Connection pooling with socket timeouts
- One retry policy: capped exponential backoff on connection errors,
  configured on the client so no call site retries on its own
- Translation of redis-py exceptions into the cache error taxonomy

``RedisKeyValueStore`` only speaks plain commands. ``RedisBloomStore`` adds
the bloom filter capability and checks at connect time that the server
actually has the module loaded.
"""

import functools
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

import redis.asyncio as redis
from redis import exceptions as redis_exceptions
from redis.asyncio.retry import Retry
from redis.backoff import ExponentialBackoff

from core.cache.errors import (
    AlreadyExists,
    CacheError,
    NotFound,
    StoreError,
    StoreUnavailable,
)
from data.store.base import BatchWrite

logger = logging.getLogger(__name__)


def _classify_reply(error: redis_exceptions.ResponseError) -> CacheError:
    """Map an error reply from the server onto the cache taxonomy."""
    message = str(error)
    lowered = message.lower()
    if "item exists" in lowered or "already exists" in lowered:
        return AlreadyExists(message)
    if "not found" in lowered or "does not exist" in lowered or "no such key" in lowered:
        return NotFound(message)
    return StoreError(message)


def translate_errors(func: Callable) -> Callable:
    """Re-raise redis-py failures from a store coroutine as CacheError subclasses."""

    @functools.wraps(func)
    async def wrapper(self, *args, **kwargs):
        try:
            return await func(self, *args, **kwargs)
        except (redis_exceptions.ConnectionError, redis_exceptions.TimeoutError) as e:
            logger.error(f"Redis unavailable during {func.__name__}: {e}")
            raise StoreUnavailable(f"{func.__name__} failed: {e}") from e
        except redis_exceptions.ResponseError as e:
            raise _classify_reply(e) from e
        except redis_exceptions.RedisError as e:
            logger.error(f"Redis error during {func.__name__}: {e}")
            raise StoreError(f"{func.__name__} failed: {e}") from e

    return wrapper


class RedisKeyValueStore:
    """
    Key/value store backed by a Redis server.

    Usage:
        store = RedisKeyValueStore("redis://localhost:6379")
        await store.connect()
        await store.setex("cache:user:1", '{"name": "John"}', 300)
        await store.close()
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379",
        max_connections: int = 20,
        socket_timeout: float = 5.0,
        socket_connect_timeout: float = 5.0,
        retry_attempts: int = 5,
        backoff_base: float = 0.05,
        backoff_cap: float = 1.0,
        encoding: str = "utf-8",
    ):
        """
        Initialize the store (no connection is opened here).

        Args:
            redis_url: Redis connection URL
            max_connections: Connection pool size
            socket_timeout: Per-command socket timeout in seconds
            socket_connect_timeout: Connect timeout in seconds
            retry_attempts: Retries on connection errors before giving up
            backoff_base: First backoff delay in seconds
            backoff_cap: Upper bound for a single backoff delay in seconds
            encoding: String encoding for replies
        """
        self.redis_url = redis_url
        self.max_connections = max_connections
        self.socket_timeout = socket_timeout
        self.socket_connect_timeout = socket_connect_timeout
        self.retry_attempts = retry_attempts
        self.backoff_base = backoff_base
        self.backoff_cap = backoff_cap
        self.encoding = encoding

        self._client: Optional[redis.Redis] = None

    @classmethod
    def from_settings(cls, settings: Any) -> "RedisKeyValueStore":
        """Build a store from a ``RedisSettings`` section."""
        return cls(
            redis_url=settings.url,
            max_connections=settings.max_connections,
            socket_timeout=settings.socket_timeout,
            socket_connect_timeout=settings.socket_connect_timeout,
            retry_attempts=settings.retry_attempts,
            backoff_base=settings.backoff_base,
            backoff_cap=settings.backoff_cap,
        )

    # =========================================================================
    # CONNECTION MANAGEMENT
    # =========================================================================

    def _build_client(self) -> redis.Redis:
        retry = Retry(
            ExponentialBackoff(cap=self.backoff_cap, base=self.backoff_base),
            self.retry_attempts,
        )
        return redis.from_url(
            self.redis_url,
            encoding=self.encoding,
            decode_responses=True,
            max_connections=self.max_connections,
            socket_timeout=self.socket_timeout,
            socket_connect_timeout=self.socket_connect_timeout,
            retry=retry,
            retry_on_error=[redis_exceptions.ConnectionError, redis_exceptions.TimeoutError],
        )

    async def connect(self) -> None:
        """
        Open the connection pool and verify the server answers.

        Raises:
            StoreUnavailable: If the server cannot be reached
        """
        if self._client is not None:
            return

        client = self._build_client()
        try:
            await client.ping()
        except (redis_exceptions.ConnectionError, redis_exceptions.TimeoutError) as e:
            await client.aclose()
            raise StoreUnavailable(f"Cannot connect to Redis at {self.redis_url}: {e}") from e

        self._client = client
        logger.info(f"Connected to Redis at {self.redis_url}")

    async def close(self) -> None:
        """Close the connection pool."""
        if self._client is None:
            return
        await self._client.aclose()
        self._client = None
        logger.info("Disconnected from Redis")

    def is_connected(self) -> bool:
        return self._client is not None

    @property
    def client(self) -> redis.Redis:
        if self._client is None:
            raise StoreUnavailable("Redis store is not connected")
        return self._client

    @translate_errors
    async def ping(self) -> bool:
        return bool(await self.client.ping())

    # =========================================================================
    # KEY OPERATIONS
    # =========================================================================

    @translate_errors
    async def get(self, key: str) -> Optional[str]:
        return await self.client.get(key)

    @translate_errors
    async def get_and_expire(self, key: str, ttl_seconds: int) -> Optional[str]:
        """Read a key and reset its TTL in one command (GETEX)."""
        return await self.client.getex(key, ex=ttl_seconds)

    @translate_errors
    async def set(self, key: str, value: str) -> None:
        await self.client.set(key, value)

    @translate_errors
    async def setex(self, key: str, value: str, ttl_seconds: int) -> None:
        await self.client.setex(key, ttl_seconds, value)

    @translate_errors
    async def expire(self, key: str, ttl_seconds: int) -> bool:
        return bool(await self.client.expire(key, ttl_seconds))

    @translate_errors
    async def ttl(self, key: str) -> int:
        return int(await self.client.ttl(key))

    @translate_errors
    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return int(await self.client.delete(*keys))

    @translate_errors
    async def keys(self, pattern: str) -> List[str]:
        """
        List keys matching a glob pattern.

        Uses SCAN rather than KEYS so large keyspaces do not block the
        server. SCAN may repeat a key; duplicates are dropped.
        """
        seen: Dict[str, None] = {}
        async for key in self.client.scan_iter(match=pattern):
            seen.setdefault(key, None)
        return list(seen)

    @translate_errors
    async def set_batch(self, entries: Sequence[BatchWrite]) -> None:
        """Write all entries with their TTLs in one MULTI/EXEC transaction."""
        async with self.client.pipeline(transaction=True) as pipe:
            for key, value, ttl_seconds in entries:
                pipe.setex(key, ttl_seconds, value)
            await pipe.execute()

    # =========================================================================
    # SERVER INTROSPECTION
    # =========================================================================

    @translate_errors
    async def config_set(self, parameter: str, value: str) -> None:
        await self.client.config_set(parameter, value)

    @translate_errors
    async def config_get(self, parameter: str) -> Dict[str, str]:
        return dict(await self.client.config_get(parameter))

    @translate_errors
    async def info(self, section: str) -> Dict[str, Any]:
        return await self.client.info(section)


class RedisBloomStore(RedisKeyValueStore):
    """
    Redis store with the RedisBloom module.

    Adds the membership filter capability. ``connect()`` fails with
    ``StoreUnavailable`` when the server does not expose the ``bf`` module.
    """

    def __init__(self, *args: Any, require_module: bool = True, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.require_module = require_module

    @classmethod
    def from_settings(cls, settings: Any) -> "RedisBloomStore":
        store = super().from_settings(settings)
        store.require_module = settings.require_bloom
        return store

    async def connect(self) -> None:
        already_connected = self.is_connected()
        await super().connect()
        if already_connected or not self.require_module:
            return

        if not await self._has_bloom_module():
            await self.close()
            raise StoreUnavailable(
                f"Redis at {self.redis_url} does not provide the bloom filter module"
            )

    @translate_errors
    async def _has_bloom_module(self) -> bool:
        modules = await self.client.module_list()
        for module in modules:
            name = module.get("name") or module.get(b"name") or ""
            if isinstance(name, bytes):
                name = name.decode(self.encoding)
            if name.lower() in ("bf", "bloom", "redisbloom"):
                return True
        return False

    # =========================================================================
    # BLOOM FILTER OPERATIONS
    # =========================================================================

    @translate_errors
    async def filter_reserve(self, name: str, error_rate: float, capacity: int) -> None:
        await self.client.bf().reserve(name, error_rate, capacity)

    @translate_errors
    async def filter_add(self, name: str, item: str) -> bool:
        # BF.INSERT NOCREATE fails on a missing filter instead of creating one
        results = await self.client.bf().insert(name, [item], noCreate=True)
        return bool(results[0])

    @translate_errors
    async def filter_madd(self, name: str, items: Sequence[str]) -> List[bool]:
        results = await self.client.bf().insert(name, list(items), noCreate=True)
        return [bool(result) for result in results]

    async def filter_exists(self, name: str, item: str) -> bool:
        results = await self.filter_mexists(name, [item])
        return results[0]

    @translate_errors
    async def filter_mexists(self, name: str, items: Sequence[str]) -> List[bool]:
        # BF.MEXISTS answers 0 for a missing filter, so existence is checked
        # in the same transaction to report NotFound instead.
        async with self.client.pipeline(transaction=True) as pipe:
            pipe.exists(name)
            pipe.execute_command("BF.MEXISTS", name, *items)
            exists, results = await pipe.execute()

        if not exists:
            raise NotFound(f"Filter '{name}' does not exist")
        return [bool(result) for result in results]
