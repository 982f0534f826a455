"""
API V1 Schemas

Pydantic models for request/response validation.
"""

from .common import (
    CamelModel,
    SuccessResponse,
    ErrorResponse,
    HealthStatus,
)

from .health import (
    HealthCheckResponse,
    ComponentHealth,
    SimpleHealthResponse,
)

from .bloom import (
    CreateFilterRequest,
    CreateFilterResponse,
    FilterItemsRequest,
    FilterResultsResponse,
    DemoFilterResponse,
)

from .cache import (
    CacheSetRequest,
    CleanupRequest,
    CacheValueResponse,
    DeleteCountResponse,
    CacheStatsResponse,
    ExpiringKey,
    ExpiringKeysResponse,
)

__all__ = [
    # Common
    "CamelModel",
    "SuccessResponse",
    "ErrorResponse",
    "HealthStatus",

    # Health
    "HealthCheckResponse",
    "ComponentHealth",
    "SimpleHealthResponse",

    # Bloom filters
    "CreateFilterRequest",
    "CreateFilterResponse",
    "FilterItemsRequest",
    "FilterResultsResponse",
    "DemoFilterResponse",

    # Cache
    "CacheSetRequest",
    "CleanupRequest",
    "CacheValueResponse",
    "DeleteCountResponse",
    "CacheStatsResponse",
    "ExpiringKey",
    "ExpiringKeysResponse",
]
