"""
Cache core - expiration policies, membership filters, pattern purges,
scheduled maintenance and server stats over a capability-typed store.
"""

from core.cache.errors import (
    AlreadyExists,
    CacheError,
    FilterExpiryNotSet,
    InvalidArgument,
    NotFound,
    StoreError,
    StoreUnavailable,
)
from core.cache.expiration import NOT_FOUND, BatchEntry, ExpirationPolicyEngine
from core.cache.filters import MembershipFilterManager
from core.cache.manager import EVICTION_POLICIES, CacheManager, MaintenanceReport
from core.cache.purge import PatternPurgeEngine, PurgeRule
from core.cache.scheduler import CancellationToken, ScheduledTask, Scheduler, SchedulerState
from core.cache.stats import StatsReporter, parse_info

__all__ = [
    'AlreadyExists',
    'CacheError',
    'FilterExpiryNotSet',
    'InvalidArgument',
    'NotFound',
    'StoreError',
    'StoreUnavailable',
    'NOT_FOUND',
    'BatchEntry',
    'ExpirationPolicyEngine',
    'MembershipFilterManager',
    'EVICTION_POLICIES',
    'CacheManager',
    'MaintenanceReport',
    'PatternPurgeEngine',
    'PurgeRule',
    'CancellationToken',
    'ScheduledTask',
    'Scheduler',
    'SchedulerState',
    'StatsReporter',
    'parse_info',
]
