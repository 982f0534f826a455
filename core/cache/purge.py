"""
Pattern Purge Engine - Deletes transient keys that lack an expiry

@.architecture
Incoming: core/cache/manager.py (scheduler tick, HTTP cleanup/delete) --- {glob pattern, optional PurgeRule, backfill ttl}
Processing: cleanup(), delete_pattern(), backfill_ttl() --- {3 jobs: key_enumeration, transient_classification, deletion}
Outgoing: data/store (KeyValueStore) --- {SCAN/TTL/DEL/EXPIRE commands, int counts}

Keys are enumerated and inspected one by one, then deleted. Between reading
a key's TTL and deleting it another client may give the key an expiry; the
key is still deleted. There is no compare-and-delete command to close that
window, so cleanup() should only target namespaces reserved for transient
data.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from core.cache.errors import require_positive_int
from data.store.base import TTL_NO_EXPIRY, KeyValueStore
from monitoring.logging import get_logger
from monitoring.metrics import setup_cache_metrics

logger = get_logger(__name__)

# (key, pattern, ttl) -> delete?
PurgePredicate = Callable[[str, str, int], bool]


@dataclass
class PurgeRule:
    """
    Decides which expiry-less keys a cleanup may delete.

    The default predicate treats a pattern as transient when it contains the
    marker (``"temp"`` by default), so ``cache:temp:*`` is purged while
    ``cache:user:*`` is left alone.
    """
    marker: str = "temp"
    predicate: Optional[PurgePredicate] = field(default=None)

    def matches(self, key: str, pattern: str, ttl: int) -> bool:
        if ttl != TTL_NO_EXPIRY:
            return False
        if self.predicate is not None:
            return self.predicate(key, pattern, ttl)
        return self.marker in pattern


class PatternPurgeEngine:

    def __init__(
        self,
        store: KeyValueStore,
        rule: Optional[PurgeRule] = None,
        metrics: Optional[Dict[str, Any]] = None
    ):
        self.store = store
        self.rule = rule or PurgeRule()
        self._purged = (metrics or setup_cache_metrics())['purged_keys']

    async def cleanup(self, pattern: str, rule: Optional[PurgeRule] = None) -> int:
        """
        Delete keys matching ``pattern`` that have no expiry and that the
        rule classifies as transient.

        Returns:
            Number of keys the store actually deleted (0 when nothing matched)
        """
        rule = rule or self.rule
        keys = await self.store.keys(pattern)

        deleted = 0
        for key in keys:
            ttl = await self.store.ttl(key)
            if rule.matches(key, pattern, ttl):
                deleted += await self.store.delete(key)

        if deleted:
            self._purged.inc(deleted)
            logger.info("Purged transient keys", pattern=pattern, deleted=deleted, scanned=len(keys))
        else:
            logger.debug("No transient keys to purge", pattern=pattern, scanned=len(keys))
        return deleted

    async def delete_pattern(self, pattern: str) -> int:
        """Delete every key matching ``pattern``, whatever its TTL."""
        keys = await self.store.keys(pattern)
        if not keys:
            return 0

        deleted = await self.store.delete(*keys)
        self._purged.inc(deleted)
        logger.info("Deleted keys by pattern", pattern=pattern, deleted=deleted)
        return deleted

    async def backfill_ttl(self, pattern: str, ttl_seconds: int) -> int:
        """
        Give every expiry-less key matching ``pattern`` a TTL.

        Returns:
            Number of keys that received the TTL
        """
        require_positive_int(ttl_seconds, "ttl_seconds")
        keys = await self.store.keys(pattern)

        updated = 0
        for key in keys:
            if await self.store.ttl(key) == TTL_NO_EXPIRY and await self.store.expire(key, ttl_seconds):
                updated += 1

        if updated:
            logger.info("Applied default TTL", pattern=pattern, ttl=ttl_seconds, updated=updated)
        return updated
