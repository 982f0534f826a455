"""
Store Layer - Command interface to the external key-value engine

Provides:
- Capability protocols (key/value, membership filters)
- Redis implementations (plain and with the bloom module)
- Error translation into the cache taxonomy
"""

from .base import (
    TTL_MISSING,
    TTL_NO_EXPIRY,
    BatchWrite,
    KeyValueStore,
    MembershipFilterStore,
)
from .redis import RedisBloomStore, RedisKeyValueStore

__all__ = [
    "TTL_MISSING",
    "TTL_NO_EXPIRY",
    "BatchWrite",
    "KeyValueStore",
    "MembershipFilterStore",
    "RedisBloomStore",
    "RedisKeyValueStore",
]
