"""
Stats Reporter - Read-only snapshot of server INFO sections

@.architecture
Incoming: core/cache/manager.py, api/v1/endpoints/cache.py, scripts/monitor_cache.py --- {get_cache_stats calls}
Processing: get_cache_stats(), parse_info() --- {2 jobs: concurrent_info_queries, info_normalization}
Outgoing: data/store (KeyValueStore.info), callers --- {Dict[section, Dict[field, str]]}
"""

import asyncio
from typing import Any, Dict, Iterable, Mapping, Union

from core.cache.errors import CacheError
from data.store.base import KeyValueStore
from monitoring.logging import get_logger

logger = get_logger(__name__)

STATS_SECTIONS = ("memory", "keyspace", "stats")


def _stringify(value: Any) -> str:
    # Keyspace entries come back as {'keys': 1, 'expires': 0}; render them
    # the way INFO prints them: keys=1,expires=0
    if isinstance(value, Mapping):
        return ",".join(f"{k}={v}" for k, v in value.items())
    return str(value)


def parse_info(info: Union[str, Mapping[str, Any]]) -> Dict[str, str]:
    """
    Normalize one INFO section into ``{field: value}`` strings.

    Accepts the raw text reply (``field:value`` lines, ``#`` headers) or the
    dict that redis-py already parsed.
    """
    if isinstance(info, Mapping):
        return {str(key): _stringify(value) for key, value in info.items()}

    result: Dict[str, str] = {}
    for line in info.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or ":" not in line:
            continue
        field, value = line.split(":", 1)
        result[field] = value
    return result


class StatsReporter:

    def __init__(self, store: KeyValueStore, sections: Iterable[str] = STATS_SECTIONS):
        self.store = store
        self.sections = tuple(sections)

    async def get_cache_stats(self) -> Dict[str, Dict[str, str]]:
        """
        Query every INFO section concurrently.

        A section that fails is reported as ``{"error": message}`` instead of
        failing the whole snapshot.
        """
        replies = await asyncio.gather(
            *(self.store.info(section) for section in self.sections),
            return_exceptions=True,
        )

        stats: Dict[str, Dict[str, str]] = {}
        for section, reply in zip(self.sections, replies):
            if isinstance(reply, CacheError):
                logger.warning("INFO section unavailable", section=section, error=str(reply))
                stats[section] = {"error": str(reply)}
            elif isinstance(reply, BaseException):
                raise reply
            else:
                stats[section] = parse_info(reply)
        return stats
