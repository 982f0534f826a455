"""
Bloom Filter Schemas

Request and response models for the bloom filter endpoints. Field names on
the wire are camelCase.

@.architecture
Incoming: api/v1/endpoints/bloom.py --- {JSON request bodies}
Processing: Pydantic validation and serialization --- {2 jobs: data_validation, serialization}
Outgoing: api/v1/endpoints/bloom.py --- {CreateFilterRequest, FilterItemsRequest, CreateFilterResponse, FilterResultsResponse, DemoFilterResponse, TermCheck}
"""

from typing import List, Optional, Union

from pydantic import BaseModel, Field

from .common import CamelModel


class CreateFilterRequest(CamelModel):
    name: str = Field(..., min_length=1)
    error_rate: float = Field(default=0.01, alias="errorRate")
    capacity: int = 10000
    ttl: Optional[int] = None


class CreateFilterResponse(CamelModel):
    success: bool = True
    name: str
    error_rate: float = Field(alias="errorRate")
    capacity: int
    ttl: Optional[int] = None


class FilterItemsRequest(BaseModel):
    """A single item or a list of items; ``ttl`` only applies to adds."""
    items: Union[str, List[str]]
    ttl: Optional[int] = None


class FilterResultsResponse(BaseModel):
    """``results`` mirrors the request: a bool for one item, a list for many."""
    success: bool = True
    results: Union[bool, List[bool]]


class TermCheck(BaseModel):
    term: str
    exists: bool


class DemoFilterResponse(BaseModel):
    success: bool = True
    name: str
    added: List[str]
    checked: List[TermCheck]
