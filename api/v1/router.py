"""
API V1 Router

Aggregates all v1 endpoint routers.

@.architecture
Incoming: app.py, api/v1/endpoints/*.py --- {app.include_router() call, 3 endpoint router instances}
Processing: api_v1_router.include_router() for 3 endpoints --- {1 job: router_aggregation}
Outgoing: app.py --- {APIRouter, HTTP request routing to endpoints}
"""

from fastapi import APIRouter

from .endpoints import (
    health_router,
    bloom_router,
    cache_router,
)

# Paths are served at the root (/health, /api/...), no version prefix
api_v1_router = APIRouter()

# Health and metrics
api_v1_router.include_router(health_router)

# Bloom filters (/api/bloom, /api/demo)
api_v1_router.include_router(bloom_router)

# Cache (has /api/cache prefix)
api_v1_router.include_router(cache_router)
