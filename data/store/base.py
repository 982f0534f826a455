"""
Store Capabilities - Narrow command interface to the key-value engine

@.architecture
Incoming: core/cache/*.py --- {capability checks at construction, awaited store commands}
Processing: KeyValueStore, MembershipFilterStore protocols --- {1 job: capability_typing}
Outgoing: data/store/redis.py, tests/conftest.py --- {protocols implemented by concrete stores}

Two capabilities are kept apart so that a store without a bloom module
simply does not satisfy ``MembershipFilterStore`` and is rejected when a
filter manager is built, not on first use.

TTL replies follow the server convention: seconds remaining, ``-1`` for a
key without expiry, ``-2`` for an absent key.
"""

from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

TTL_NO_EXPIRY = -1
TTL_MISSING = -2

# (key, serialized value, ttl seconds)
BatchWrite = Tuple[str, str, int]


@runtime_checkable
class KeyValueStore(Protocol):
    """Plain key/value commands plus server introspection."""

    async def connect(self) -> None: ...

    async def close(self) -> None: ...

    async def ping(self) -> bool: ...

    async def get(self, key: str) -> Optional[str]: ...

    async def get_and_expire(self, key: str, ttl_seconds: int) -> Optional[str]: ...

    async def set(self, key: str, value: str) -> None: ...

    async def setex(self, key: str, value: str, ttl_seconds: int) -> None: ...

    async def expire(self, key: str, ttl_seconds: int) -> bool: ...

    async def ttl(self, key: str) -> int: ...

    async def delete(self, *keys: str) -> int: ...

    async def keys(self, pattern: str) -> List[str]: ...

    async def set_batch(self, entries: Sequence[BatchWrite]) -> None: ...

    async def config_set(self, parameter: str, value: str) -> None: ...

    async def config_get(self, parameter: str) -> Dict[str, str]: ...

    async def info(self, section: str) -> Dict[str, Any]: ...


@runtime_checkable
class MembershipFilterStore(Protocol):
    """Approximate-membership (bloom filter) commands."""

    async def filter_reserve(self, name: str, error_rate: float, capacity: int) -> None: ...

    async def filter_add(self, name: str, item: str) -> bool: ...

    async def filter_exists(self, name: str, item: str) -> bool: ...

    async def filter_madd(self, name: str, items: Sequence[str]) -> List[bool]: ...

    async def filter_mexists(self, name: str, items: Sequence[str]) -> List[bool]: ...
