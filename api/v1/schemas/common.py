"""
Common Schemas

Shared Pydantic models used across API endpoints.

@.architecture
Incoming: api/v1/endpoints/*.py --- {JSON payloads, error data}
Processing: Pydantic validation and serialization --- {2 jobs: data_validation, serialization}
Outgoing: api/v1/endpoints/*.py --- {SuccessResponse, ErrorResponse, HealthStatus validated models}
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class CamelModel(BaseModel):
    """Accepts both the camelCase wire names and the Python field names."""
    model_config = ConfigDict(populate_by_name=True)


# =============================================================================
# Response Models
# =============================================================================

class SuccessResponse(BaseModel):
    """Generic success response."""
    success: bool = True


class ErrorDetail(BaseModel):
    code: int
    message: str
    type: str
    hint: Optional[str] = None


class ErrorResponse(BaseModel):
    """Body rendered by the error handler middleware."""
    error: ErrorDetail


# =============================================================================
# Status Models
# =============================================================================

class HealthStatus(str, Enum):
    """Health status levels."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"
