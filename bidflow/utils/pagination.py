"""
Paging for case, bid and inbox listings
"""
from typing import Generic, TypeVar
from pydantic import BaseModel, Field
from fastapi import Query

T = TypeVar('T')

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class PaginationParams:
    """Query-string paging shared by every list route: ?skip=&limit="""

    def __init__(
        self,
        skip: int = Query(0, ge=0, description="Rows to skip"),
        limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE, description=f"Page size (max {MAX_PAGE_SIZE})")
    ):
        self.skip = skip
        self.limit = limit


class PaginatedResponse(BaseModel, Generic[T]):
    items: list[T]
    total: int = Field(description="Rows matching the filters")
    skip: int
    limit: int
    has_more: bool = Field(description="Whether a later page exists")

    class Config:
        from_attributes = True


def paginate(query, params: PaginationParams) -> dict:
    """Run an ordered listing query for one page and wrap it with the totals."""
    total = query.count()
    items = query.offset(params.skip).limit(params.limit).all()
    return {
        "items": items,
        "total": total,
        "skip": params.skip,
        "limit": params.limit,
        "has_more": params.skip + len(items) < total,
    }
