"""
Membership Filter Manager - Named bloom filters with optional expiry

@.architecture
Incoming: core/cache/manager.py, api/v1/endpoints/bloom.py --- {filter name, error rate, capacity, items, optional ttl}
Processing: create_filter(), apply_ttl(), add(), add_many(), check(), check_many() --- {4 jobs: parameter_validation, filter_lifecycle, membership_queries, expiry_refresh}
Outgoing: data/store (MembershipFilterStore + KeyValueStore) --- {BF.RESERVE/BF.INSERT NOCREATE/BF.MEXISTS/EXPIRE commands, List[bool] results}

A filter answers "possibly present" (True) or "definitely absent" (False).
Filters are never created implicitly: adding to or checking a missing
filter raises NotFound.
"""

from typing import Any, Dict, List, Optional, Sequence

from core.cache.errors import (
    CacheError,
    FilterExpiryNotSet,
    InvalidArgument,
    NotFound,
    require_positive_int,
)
from data.store.base import KeyValueStore, MembershipFilterStore
from monitoring.logging import get_logger
from monitoring.metrics import setup_cache_metrics

logger = get_logger(__name__)


def validate_error_rate(error_rate: Any) -> float:
    if isinstance(error_rate, bool) or not isinstance(error_rate, (int, float)):
        raise InvalidArgument(f"error_rate must be a number, got {error_rate!r}")
    if not 0 < error_rate < 1:
        raise InvalidArgument(f"error_rate must be between 0 and 1 (exclusive), got {error_rate}")
    return float(error_rate)


class MembershipFilterManager:
    """
    Creates and queries bloom filters stored under plain keys.

    The store must provide both the membership filter commands and EXPIRE;
    a store without filter support is rejected here rather than on first use.
    """

    def __init__(self, store: Any, metrics: Optional[Dict[str, Any]] = None):
        if not isinstance(store, MembershipFilterStore) or not isinstance(store, KeyValueStore):
            raise TypeError(
                f"{type(store).__name__} does not support membership filters"
            )
        self.store = store
        self._operations = (metrics or setup_cache_metrics())['operations']

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def create_filter(
        self,
        name: str,
        error_rate: float,
        capacity: int,
        ttl_seconds: Optional[int] = None
    ) -> None:
        """
        Reserve a new filter, optionally with an expiry.

        Reserve and expire are two store calls. If the expire fails the
        filter is left without a TTL and ``FilterExpiryNotSet`` is raised;
        ``apply_ttl`` repairs it.

        Raises:
            InvalidArgument: Bad error rate, capacity or TTL
            AlreadyExists: A filter with this name exists
            FilterExpiryNotSet: Filter reserved but its TTL was not applied
        """
        validate_error_rate(error_rate)
        require_positive_int(capacity, "capacity")
        if ttl_seconds is not None:
            require_positive_int(ttl_seconds, "ttl_seconds")

        await self.store.filter_reserve(name, error_rate, capacity)
        logger.info("Bloom filter created", filter=name, error_rate=error_rate, capacity=capacity)

        if ttl_seconds is None:
            return

        try:
            applied = await self.store.expire(name, ttl_seconds)
        except CacheError as e:
            logger.error("Bloom filter TTL not applied", filter=name, ttl=ttl_seconds, error=str(e))
            raise FilterExpiryNotSet(name, ttl_seconds, str(e)) from e
        if not applied:
            raise FilterExpiryNotSet(name, ttl_seconds, "filter vanished before expire")

    async def apply_ttl(self, name: str, ttl_seconds: int) -> None:
        """Set (or reset) a filter's expiry; NotFound if it does not exist."""
        require_positive_int(ttl_seconds, "ttl_seconds")
        if not await self.store.expire(name, ttl_seconds):
            raise NotFound(f"Filter '{name}' does not exist")

    # =========================================================================
    # MEMBERSHIP
    # =========================================================================

    async def add(self, name: str, item: str, ttl_seconds: Optional[int] = None) -> bool:
        """
        Add one item; returns True if the item was newly added.

        With ``ttl_seconds`` the filter's expiry is refreshed after the add.
        """
        if ttl_seconds is not None:
            require_positive_int(ttl_seconds, "ttl_seconds")

        added = await self.store.filter_add(name, item)
        self._operations.inc(operation="filter_add", result="ok")
        if ttl_seconds is not None:
            await self.apply_ttl(name, ttl_seconds)
        return added

    async def add_many(
        self,
        name: str,
        items: Sequence[str],
        ttl_seconds: Optional[int] = None
    ) -> List[bool]:
        """Add several items in one round trip; results follow input order."""
        if ttl_seconds is not None:
            require_positive_int(ttl_seconds, "ttl_seconds")
        if not items:
            return []

        results = await self.store.filter_madd(name, items)
        self._operations.inc(len(results), operation="filter_add", result="ok")
        if ttl_seconds is not None:
            await self.apply_ttl(name, ttl_seconds)
        logger.debug("Bloom filter items added", filter=name, count=len(results))
        return results

    async def check(self, name: str, item: str) -> bool:
        present = await self.store.filter_exists(name, item)
        self._operations.inc(operation="filter_check", result="hit" if present else "miss")
        return present

    async def check_many(self, name: str, items: Sequence[str]) -> List[bool]:
        if not items:
            return []

        results = await self.store.filter_mexists(name, items)
        hits = sum(results)
        if hits:
            self._operations.inc(hits, operation="filter_check", result="hit")
        if len(results) - hits:
            self._operations.inc(len(results) - hits, operation="filter_check", result="miss")
        return results
