"""
Health Check Schemas

Pydantic models for health check endpoints.

@.architecture
Incoming: api/v1/endpoints/health.py, monitoring/health.py --- {health check results, component status}
Processing: Pydantic validation and serialization --- {2 jobs: data_validation, serialization}
Outgoing: api/v1/endpoints/health.py --- {SimpleHealthResponse, HealthCheckResponse, ComponentHealth validated models}
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from .common import HealthStatus


class ComponentHealth(BaseModel):
    """Health status of a single component."""
    component: str
    status: HealthStatus
    message: Optional[str] = None
    response_time_ms: Optional[float] = None
    details: Optional[Dict[str, Any]] = None


class HealthCheckResponse(BaseModel):
    """Detailed health check response."""
    status: HealthStatus
    timestamp: str
    uptime_seconds: float
    check_duration_ms: float
    components: List[ComponentHealth]

    model_config = {
        "json_schema_extra": {
            "example": {
                "status": "healthy",
                "timestamp": "2024-11-04T12:00:00Z",
                "uptime_seconds": 3600,
                "check_duration_ms": 12.5,
                "components": [
                    {"component": "system", "status": "healthy", "message": "System resources healthy"},
                    {"component": "redis", "status": "healthy", "response_time_ms": 0.8},
                ],
            }
        }
    }


class SimpleHealthResponse(BaseModel):
    """Quick health response (also returned with 503 when Redis is down)."""
    status: str
    timestamp: str
    redis: str
    uptime_seconds: float
