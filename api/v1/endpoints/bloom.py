"""
Bloom Filter Endpoints

@.architecture
Incoming: api/v1/router.py, HTTP clients --- {POST /api/bloom/create, /api/bloom/{name}/add, /api/bloom/{name}/check, /api/demo/bloom}
Processing: create_filter(), add_items(), check_items(), demo_filter() --- {3 jobs: request_validation, single_or_batch_dispatch, filter_operations}
Outgoing: core/cache/manager.py, HTTP clients --- {CacheManager filter calls, CreateFilterResponse, FilterResultsResponse, DemoFilterResponse}

A string ``items`` maps to the single-item command and returns a bool; a
list maps to the batch command and returns a list.
"""

from fastapi import APIRouter, Depends

from api.dependencies import get_cache_manager, setup_request_context
from api.v1.schemas.bloom import (
    CreateFilterRequest,
    CreateFilterResponse,
    DemoFilterResponse,
    FilterItemsRequest,
    FilterResultsResponse,
    TermCheck,
)
from core.cache.manager import CacheManager
from monitoring import get_logger

logger = get_logger(__name__)
router = APIRouter(tags=["bloom"], dependencies=[Depends(setup_request_context)])

DEMO_FILTER = "demo:search"
DEMO_TERMS = ["redis", "bloom filter", "cache", "nosql", "database"]
DEMO_CHECKS = ["redis", "mysql", "cache", "unknown"]


@router.post("/api/bloom/create", response_model=CreateFilterResponse)
async def create_filter(
    request: CreateFilterRequest,
    manager: CacheManager = Depends(get_cache_manager)
) -> CreateFilterResponse:
    await manager.create_filter(request.name, request.error_rate, request.capacity, request.ttl)
    return CreateFilterResponse(
        name=request.name,
        error_rate=request.error_rate,
        capacity=request.capacity,
        ttl=request.ttl
    )


@router.post("/api/bloom/{name}/add", response_model=FilterResultsResponse)
async def add_items(
    name: str,
    request: FilterItemsRequest,
    manager: CacheManager = Depends(get_cache_manager)
) -> FilterResultsResponse:
    if isinstance(request.items, str):
        results = await manager.add_to_filter(name, request.items, request.ttl)
    else:
        results = await manager.add_many(name, request.items, request.ttl)

    logger.info("Items added to bloom filter", filter=name, results=results)
    return FilterResultsResponse(results=results)


@router.post("/api/bloom/{name}/check", response_model=FilterResultsResponse)
async def check_items(
    name: str,
    request: FilterItemsRequest,
    manager: CacheManager = Depends(get_cache_manager)
) -> FilterResultsResponse:
    if isinstance(request.items, str):
        results = await manager.check(name, request.items)
    else:
        results = await manager.check_many(name, request.items)
    return FilterResultsResponse(results=results)


@router.post("/api/demo/bloom", response_model=DemoFilterResponse)
async def demo_filter(manager: CacheManager = Depends(get_cache_manager)) -> DemoFilterResponse:
    """Recreate ``demo:search``, fill it with sample terms and check a few."""
    await manager.delete(DEMO_FILTER)
    await manager.create_filter(DEMO_FILTER, 0.01, 1000, 3600)
    await manager.add_many(DEMO_FILTER, DEMO_TERMS)
    results = await manager.check_many(DEMO_FILTER, DEMO_CHECKS)

    logger.info("Demo bloom filter created", filter=DEMO_FILTER, results=results)
    return DemoFilterResponse(
        name=DEMO_FILTER,
        added=DEMO_TERMS,
        checked=[TermCheck(term=term, exists=exists) for term, exists in zip(DEMO_CHECKS, results)]
    )
