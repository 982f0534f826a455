"""
Cache Endpoints

@.architecture
Incoming: api/v1/router.py, HTTP clients --- {GET /api/cache/stats, GET /api/cache/expiring, POST /api/cache/set, POST /api/cache/cleanup, GET/DELETE /api/cache/{key}}
Processing: cache_stats(), expiring_keys(), set_value(), cleanup(), get_value(), delete_by_pattern() --- {4 jobs: request_validation, cache_reads_writes, purging, stats_reporting}
Outgoing: core/cache/manager.py, HTTP clients --- {CacheManager calls, CacheValueResponse, DeleteCountResponse, CacheStatsResponse, ExpiringKeysResponse}

Fixed paths are declared before ``/api/cache/{key}`` so they are not
captured as keys.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_cache_manager, setup_request_context
from api.v1.schemas.cache import (
    CacheSetRequest,
    CacheStatsResponse,
    CacheValueResponse,
    CleanupRequest,
    DeleteCountResponse,
    ExpiringKeysResponse,
)
from api.v1.schemas.common import SuccessResponse
from core.cache.expiration import NOT_FOUND
from core.cache.manager import CacheManager
from monitoring import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/api/cache", tags=["cache"], dependencies=[Depends(setup_request_context)])


@router.get("/stats", response_model=CacheStatsResponse)
async def cache_stats(manager: CacheManager = Depends(get_cache_manager)) -> CacheStatsResponse:
    return CacheStatsResponse(stats=await manager.get_cache_stats())


@router.get("/expiring", response_model=ExpiringKeysResponse)
async def expiring_keys(
    pattern: str = "cache:*",
    threshold: Optional[int] = None,
    manager: CacheManager = Depends(get_cache_manager)
) -> ExpiringKeysResponse:
    keys = await manager.get_expiring_keys(pattern, threshold)
    return ExpiringKeysResponse(keys=keys)


@router.post("/set", response_model=SuccessResponse)
async def set_value(
    request: CacheSetRequest,
    manager: CacheManager = Depends(get_cache_manager)
) -> SuccessResponse:
    await manager.set(request.key, request.value, request.ttl)
    logger.info("Cache entry set", key=request.key, ttl=request.ttl)
    return SuccessResponse()


@router.post("/cleanup", response_model=DeleteCountResponse)
async def cleanup(
    request: CleanupRequest,
    manager: CacheManager = Depends(get_cache_manager)
) -> DeleteCountResponse:
    """Purge expiry-less keys of a transient pattern."""
    return DeleteCountResponse(deleted_count=await manager.cleanup(request.pattern))


@router.get("/{key:path}", response_model=CacheValueResponse)
async def get_value(
    key: str,
    refresh_ttl: Optional[int] = Query(default=None, alias="refreshTTL"),
    manager: CacheManager = Depends(get_cache_manager)
) -> CacheValueResponse:
    value = await manager.get_with_refresh(key, refresh_ttl)
    return CacheValueResponse(value=None if value is NOT_FOUND else value)


@router.delete("/{pattern:path}", response_model=DeleteCountResponse)
async def delete_by_pattern(
    pattern: str,
    manager: CacheManager = Depends(get_cache_manager)
) -> DeleteCountResponse:
    """Delete every key matching the pattern, whatever its TTL."""
    deleted = await manager.delete_pattern(pattern)
    logger.info("Cache cleanup performed", pattern=pattern, deleted=deleted)
    return DeleteCountResponse(deleted_count=deleted)
