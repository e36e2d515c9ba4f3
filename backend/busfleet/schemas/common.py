"""
Response envelopes shared by every endpoint.
"""
from pydantic import BaseModel
from typing import Generic, List, Optional, TypeVar

DataT = TypeVar("DataT")


class PageMeta(BaseModel):
    """Pagination block of list responses."""
    page: int
    limit: int
    total: int
    total_pages: int


class SuccessResponse(BaseModel, Generic[DataT]):
    """Envelope for successful responses."""
    success: bool = True
    data: DataT
    message: Optional[str] = None
    meta: Optional[PageMeta] = None


class PageResponse(SuccessResponse[List[DataT]], Generic[DataT]):
    """Envelope for paginated lists."""
    meta: PageMeta


class DeleteResult(BaseModel):
    success: bool = True
