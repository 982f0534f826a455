"""
Cache Errors - Failure taxonomy shared by every cache component

@.architecture
Incoming: data/store/redis.py, core/cache/*.py --- {validation failures, translated redis-py exceptions}
Processing: CacheError hierarchy --- {1 job: error_classification}
Outgoing: core/cache/*.py, api/middleware/error_handler.py --- {InvalidArgument, NotFound, AlreadyExists, StoreUnavailable, StoreError, FilterExpiryNotSet}

Every public cache operation either returns a value or raises one of these.
Validation errors are raised locally before any store call; the others are
produced by the store adapter when it translates client failures.
"""

from typing import Optional


class CacheError(Exception):
    """Base class for all cache failures."""


class InvalidArgument(CacheError, ValueError):
    """Raised when a TTL, error rate, capacity or interval is out of range."""


class NotFound(CacheError):
    """Raised when an operation targets a key or filter that does not exist."""


class AlreadyExists(CacheError):
    """Raised when creating a filter whose name is already taken."""


class StoreUnavailable(CacheError):
    """Raised when the store cannot be reached after the client's retries."""


class StoreError(CacheError):
    """Raised for any other error reply from the store."""


class FilterExpiryNotSet(CacheError):
    """
    Raised when a filter was reserved but attaching its TTL failed.

    Reserve and expire are two separate store calls. The filter exists
    without an expiry; callers may repair it with ``apply_ttl``.
    """

    def __init__(self, name: str, ttl_seconds: int, reason: Optional[str] = None):
        message = f"Filter '{name}' created but TTL of {ttl_seconds}s was not applied"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.name = name
        self.ttl_seconds = ttl_seconds


def require_positive_int(value: object, field: str) -> int:
    """Validate a strictly positive integer (bools rejected)."""
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidArgument(f"{field} must be a positive integer, got {value!r}")
    return value
