"""
Health Check Endpoints

Health checks integrating with the monitoring layer.

@.architecture
Incoming: api/v1/router.py, Load Balancers, scripts/smoke_test.py --- {HTTP requests to /health, /health/detailed, /metrics}
Processing: health_check(), detailed_health_check(), metrics() --- {3 jobs: store_ping, component_checking, metrics_export}
Outgoing: monitoring/health.py, monitoring/metrics.py, HTTP clients --- {SimpleHealthResponse, HealthCheckResponse, Prometheus text}
"""

import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse

from api.dependencies import get_cache_manager, setup_request_context
from api.v1.schemas.common import HealthStatus
from api.v1.schemas.health import ComponentHealth, HealthCheckResponse, SimpleHealthResponse
from core.cache.manager import CacheManager
from monitoring import get_logger, get_registry
from monitoring.health import get_health_checker

logger = get_logger(__name__)
router = APIRouter(tags=["health"])

# Track startup time
START_TIME = time.time()


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z')


# =============================================================================
# Simple Health Check
# =============================================================================

@router.get(
    "/health",
    response_model=SimpleHealthResponse,
    responses={503: {"model": SimpleHealthResponse}},
    summary="Simple health check",
    description="Pings Redis; 503 when it cannot be reached"
)
async def health_check(manager: CacheManager = Depends(get_cache_manager)):
    result = await manager.check_health()
    body = SimpleHealthResponse(
        status=HealthStatus.HEALTHY.value if result['healthy'] else HealthStatus.UNHEALTHY.value,
        timestamp=_timestamp(),
        redis=result['redis'],
        uptime_seconds=time.time() - START_TIME
    )

    if not result['healthy']:
        logger.warning("Health check failed", reason=result['message'])
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=body.model_dump())
    return body


# =============================================================================
# Detailed Health Check
# =============================================================================

@router.get(
    "/health/detailed",
    response_model=HealthCheckResponse,
    summary="Detailed health check",
    description="System resources and Redis connection"
)
async def detailed_health_check(
    _context: dict = Depends(setup_request_context)
) -> HealthCheckResponse:
    health_data = await get_health_checker().check_all()

    return HealthCheckResponse(
        status=HealthStatus(health_data["status"]),
        timestamp=health_data["timestamp"],
        uptime_seconds=health_data["uptime_seconds"],
        check_duration_ms=health_data["check_duration_ms"],
        components=[
            ComponentHealth(
                component=comp["component"],
                status=HealthStatus(comp["status"]),
                message=comp.get("message"),
                response_time_ms=comp.get("response_time_ms"),
                details=comp.get("details")
            )
            for comp in health_data["components"]
        ]
    )


# =============================================================================
# Metrics
# =============================================================================

@router.get(
    "/metrics",
    response_class=PlainTextResponse,
    summary="Prometheus metrics"
)
async def metrics(request: Request) -> PlainTextResponse:
    if not request.app.state.settings.monitoring.metrics_enabled:
        raise HTTPException(status_code=404, detail="Metrics export disabled")
    return PlainTextResponse(get_registry().export_prometheus())
