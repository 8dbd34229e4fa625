"""
Shared response envelopes
"""
from pydantic import BaseModel
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class APIResponse(BaseModel, Generic[T]):
    """Success envelope returned by every endpoint"""
    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None
    pagination: Optional[Pagination] = None
