"""
FastAPI Application Factory

Creates and configures the FastAPI application with:
- Middleware (CORS, error handling)
- Cache manager wiring on app.state
- Lifecycle management (startup/shutdown)

@.architecture
Incoming: main.py, config/settings.py, api/v1/router.py, api/middleware/*.py --- {Settings object, optional CacheManager, APIRouter instances, middleware constructors}
Processing: create_app(), startup_event(), shutdown_event() --- {6 jobs: application_creation, logging_setup, middleware_registration, routing_registration, lifecycle_management, health_registration}
Outgoing: main.py, HTTP clients --- {FastAPI application instance, HTTP responses}
"""

from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.middleware import create_error_handler_middleware
from api.v1.router import api_v1_router
from config.settings import Settings, get_settings
from core.cache.errors import CacheError
from core.cache.manager import CacheManager
from monitoring import configure_from_preset, get_logger
from monitoring.health import get_health_checker, initialize_health_checks

logger = get_logger(__name__)

LOGGING_PRESET_BY_ENVIRONMENT = {
    "production": "production",
    "test": "testing",
    "development": "development",
}


def create_app(
    settings: Optional[Settings] = None,
    cache_manager: Optional[CacheManager] = None
) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        settings: Settings to use (defaults to get_settings())
        cache_manager: Pre-built manager; when omitted one is built over
            Redis from settings and connected on startup

    Returns:
        FastAPI: Configured application instance
    """
    settings = settings or get_settings()

    # Explicit monitoring settings override the environment preset
    overrides = {}
    if settings.monitoring.log_level:
        overrides["level"] = settings.monitoring.log_level
    if settings.monitoring.log_format:
        overrides["format_type"] = settings.monitoring.log_format
    configure_from_preset(
        LOGGING_PRESET_BY_ENVIRONMENT.get(settings.environment, "development"),
        **overrides
    )

    logger.info("Creating cache application", environment=settings.environment)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Redis cache manager with bloom filters, TTL policies and pattern purging",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        redirect_slashes=False
    )

    app.state.settings = settings
    app.state.cache_manager = cache_manager or CacheManager.from_settings(settings)

    # ==========================================================================
    # Middleware Configuration
    # ==========================================================================

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.security.allowed_origins,
        allow_credentials=settings.security.cors_allow_credentials,
        allow_methods=settings.security.cors_allow_methods,
        allow_headers=settings.security.cors_allow_headers,
    )

    middleware_class, middleware_kwargs = create_error_handler_middleware(
        development=settings.environment == "development"
    )
    app.add_middleware(middleware_class, **middleware_kwargs)

    # ==========================================================================
    # API Routers
    # ==========================================================================

    app.include_router(api_v1_router)

    @app.get("/")
    async def root():
        return JSONResponse({
            "status": "ok",
            "message": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
            "docs": "/docs",
            "endpoints": [
                "GET /health",
                "GET /health/detailed",
                "GET /metrics",
                "POST /api/bloom/create",
                "POST /api/bloom/{name}/add",
                "POST /api/bloom/{name}/check",
                "POST /api/demo/bloom",
                "GET /api/cache/stats",
                "GET /api/cache/expiring",
                "POST /api/cache/set",
                "POST /api/cache/cleanup",
                "GET /api/cache/{key}",
                "DELETE /api/cache/{pattern}",
            ]
        })

    # ==========================================================================
    # Lifecycle Events
    # ==========================================================================

    @app.on_event("startup")
    async def startup_event():
        """
        Connect to Redis, apply memory settings, start maintenance and
        register health checks.
        """
        logger.info("=== Application Startup ===")
        manager: CacheManager = app.state.cache_manager

        await manager.connect()
        logger.info("Redis connected", url=settings.redis.url)

        if settings.memory.max_memory:
            try:
                await manager.configure_memory_management(
                    settings.memory.max_memory,
                    settings.memory.policy,
                    settings.memory.hz,
                )
            except CacheError as e:
                # Managed servers often disallow CONFIG SET
                logger.warning("Memory management not applied", error=str(e))

        if settings.cache.auto_cleanup_enabled:
            manager.start_auto_cleanup()

        initialize_health_checks(manager)
        logger.info("=== Startup Complete ===")

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info("=== Application Shutdown ===")
        get_health_checker().unregister_checker("redis")
        await app.state.cache_manager.disconnect()
        logger.info("=== Shutdown Complete ===")

    return app
