"""
API V1 Endpoints

FastAPI routers for all API endpoints.
"""

from .health import router as health_router
from .bloom import router as bloom_router
from .cache import router as cache_router

__all__ = [
    "health_router",
    "bloom_router",
    "cache_router",
]
