"""
Expiration Policy Engine - TTL handling for cache writes and reads

@.architecture
Incoming: core/cache/manager.py, api/v1/endpoints/cache.py --- {key, JSON-serializable value, ttl seconds, batch entries}
Processing: set_with_ttl(), set(), get_with_refresh(), set_sliding_cache(), get_sliding_cache(), set_batch(), delete() --- {4 jobs: ttl_validation, json_serialization, sliding_window_refresh, batch_writes}
Outgoing: data/store (KeyValueStore) --- {SETEX/SET/GET/GETEX/DEL commands, MULTI/EXEC batch}

Expiry itself is left to the store: nothing here polls for or deletes
expired keys. The only policy layered on top is the sliding window, where a
read pushes the key's expiry out again.
"""

import json
from typing import Any, Dict, Iterable, List, NamedTuple, Optional

from core.cache.errors import InvalidArgument, require_positive_int
from data.store.base import BatchWrite, KeyValueStore
from monitoring.logging import get_logger
from monitoring.metrics import setup_cache_metrics

logger = get_logger(__name__)


class _NotFound:
    """Sentinel for a missing or expired key (a cached ``None`` is a real value)."""

    def __repr__(self) -> str:
        return "NOT_FOUND"

    def __bool__(self) -> bool:
        return False


NOT_FOUND = _NotFound()


class BatchEntry(NamedTuple):
    """One write of a batch: value is serialized, ttl in seconds."""
    key: str
    value: Any
    ttl_seconds: int


def serialize(value: Any) -> str:
    try:
        return json.dumps(value)
    except (TypeError, ValueError) as e:
        raise InvalidArgument(f"Value is not JSON serializable: {e}") from e


def deserialize(raw: str) -> Any:
    """Decode a stored value; values written by other clients come back raw."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


class ExpirationPolicyEngine:
    """
    Writes and reads cache entries with explicit expiration.

    Usage:
        engine = ExpirationPolicyEngine(store, sliding_window_seconds=300)
        await engine.set_with_ttl("session:user123", {"role": "admin"}, 1800)
        session = await engine.get_with_refresh("session:user123", 1800)
    """

    def __init__(
        self,
        store: KeyValueStore,
        sliding_window_seconds: int = 300,
        metrics: Optional[Dict[str, Any]] = None
    ):
        self.store = store
        self.sliding_window_seconds = require_positive_int(sliding_window_seconds, "sliding_window_seconds")
        self._operations = (metrics or setup_cache_metrics())['operations']

    # =========================================================================
    # TTL-BASED WRITES AND READS
    # =========================================================================

    async def set_with_ttl(self, key: str, value: Any, ttl_seconds: int) -> None:
        """
        Write a value that the store expires after ``ttl_seconds``.

        Raises:
            InvalidArgument: If ttl_seconds is not a positive integer
            StoreUnavailable: If the store cannot be reached
        """
        require_positive_int(ttl_seconds, "ttl_seconds")
        await self.store.setex(key, serialize(value), ttl_seconds)
        self._operations.inc(operation="set", result="ok")
        logger.debug("Cache set with TTL", key=key, ttl=ttl_seconds)

    async def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        """Write a value, with expiry only when ``ttl_seconds`` is given."""
        if ttl_seconds is not None:
            await self.set_with_ttl(key, value, ttl_seconds)
            return

        await self.store.set(key, serialize(value))
        self._operations.inc(operation="set", result="ok")
        logger.debug("Cache set without expiry", key=key)

    async def get_with_refresh(self, key: str, refresh_ttl_seconds: Optional[int] = None) -> Any:
        """
        Read a value, optionally resetting its TTL (sliding window).

        The read and the TTL reset are one GETEX command. Missing and expired
        keys both return ``NOT_FOUND``.
        """
        if refresh_ttl_seconds is None:
            raw = await self.store.get(key)
        else:
            require_positive_int(refresh_ttl_seconds, "refresh_ttl_seconds")
            raw = await self.store.get_and_expire(key, refresh_ttl_seconds)

        if raw is None:
            self._operations.inc(operation="get", result="miss")
            return NOT_FOUND

        self._operations.inc(operation="get", result="hit")
        if refresh_ttl_seconds is not None:
            logger.debug("Cache TTL refreshed", key=key, ttl=refresh_ttl_seconds)
        return deserialize(raw)

    async def get(self, key: str) -> Any:
        return await self.get_with_refresh(key)

    # =========================================================================
    # SLIDING WINDOW
    # =========================================================================

    async def set_sliding_cache(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        """Write with the sliding window (defaults to the configured window)."""
        await self.set_with_ttl(key, value, self.sliding_window_seconds if ttl_seconds is None else ttl_seconds)

    async def get_sliding_cache(self, key: str, ttl_seconds: Optional[int] = None) -> Any:
        """Read and extend the key's life by the sliding window."""
        return await self.get_with_refresh(key, self.sliding_window_seconds if ttl_seconds is None else ttl_seconds)

    # =========================================================================
    # BATCH AND DELETE
    # =========================================================================

    async def set_batch(self, entries: Iterable[Any]) -> int:
        """
        Write several entries, each with its own TTL, as one transaction.

        Every TTL is validated before anything is sent. The writes go out in
        one MULTI/EXEC round trip, so readers never see part of a batch.

        Args:
            entries: ``BatchEntry`` items or ``(key, value, ttl_seconds)`` tuples

        Returns:
            Number of entries written
        """
        writes: List[BatchWrite] = []
        for entry in entries:
            key, value, ttl_seconds = entry
            require_positive_int(ttl_seconds, f"ttl_seconds for '{key}'")
            writes.append((key, serialize(value), ttl_seconds))

        if not writes:
            return 0

        await self.store.set_batch(writes)
        self._operations.inc(len(writes), operation="set", result="ok")
        logger.info("Batch cache set completed", count=len(writes))
        return len(writes)

    async def delete(self, key: str) -> bool:
        deleted = await self.store.delete(key) > 0
        self._operations.inc(operation="delete", result="ok" if deleted else "miss")
        return deleted
