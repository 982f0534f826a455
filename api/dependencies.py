"""
API Dependencies

FastAPI dependency injection functions for:
- Cache manager access
- Request context setup

@.architecture
Incoming: app.py (app.state), api/v1/endpoints/*.py --- {Depends() injections from endpoints}
Processing: get_cache_manager(), setup_request_context() --- {3 jobs: dependency_injection, context_setup, context_cleanup}
Outgoing: api/v1/endpoints/*.py --- {CacheManager instance, request context dict}
"""

import uuid
from typing import AsyncGenerator, Optional

from fastapi import Header, HTTPException, Request

from core.cache.manager import CacheManager
from monitoring import clear_request_context, get_logger, set_request_context

logger = get_logger(__name__)


# =============================================================================
# Cache Manager Dependencies
# =============================================================================

def get_cache_manager(request: Request) -> CacheManager:
    """
    Get the application's cache manager.

    Raises:
        HTTPException: 503 if the manager has not been created yet
    """
    manager = getattr(request.app.state, "cache_manager", None)
    if manager is None:
        logger.error("Cache manager not initialized")
        raise HTTPException(
            status_code=503,
            detail="Cache manager not initialized. Server is starting up."
        )
    return manager


# =============================================================================
# Request Context Dependencies
# =============================================================================

async def setup_request_context(
    request: Request,
    x_request_id: Optional[str] = Header(None)
) -> AsyncGenerator[dict, None]:
    """
    Set up the request ID used in structured logs, cleared after the response.

    Args:
        request: FastAPI request object
        x_request_id: Optional request ID from header

    Yields:
        dict: Request context information
    """
    request_id = x_request_id or str(uuid.uuid4())
    set_request_context(request_id=request_id)
    request.state.request_id = request_id

    try:
        yield {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path
        }
    finally:
        clear_request_context()
