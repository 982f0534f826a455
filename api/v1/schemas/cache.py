"""
Cache Schemas

Request and response models for the cache endpoints.

@.architecture
Incoming: api/v1/endpoints/cache.py --- {JSON request bodies, engine results}
Processing: Pydantic validation and serialization --- {2 jobs: data_validation, serialization}
Outgoing: api/v1/endpoints/cache.py --- {CacheSetRequest, CleanupRequest, CacheValueResponse, DeleteCountResponse, CacheStatsResponse, ExpiringKeysResponse}
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .common import CamelModel


class CacheSetRequest(BaseModel):
    key: str = Field(..., min_length=1)
    value: Any
    ttl: Optional[int] = None


class CleanupRequest(BaseModel):
    pattern: str = Field(..., min_length=1)


class CacheValueResponse(BaseModel):
    """``value`` is null when the key is missing or expired."""
    success: bool = True
    value: Any = None


class DeleteCountResponse(CamelModel):
    success: bool = True
    deleted_count: int = Field(alias="deletedCount")


class CacheStatsResponse(BaseModel):
    success: bool = True
    stats: Dict[str, Dict[str, str]]


class ExpiringKey(BaseModel):
    key: str
    ttl: int


class ExpiringKeysResponse(BaseModel):
    success: bool = True
    keys: List[ExpiringKey]
