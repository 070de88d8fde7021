"""Pagination for list endpoints whose rows are derived in memory."""

from __future__ import annotations

import math
from typing import Generic, TypeVar

from fastapi import Query
from pydantic import BaseModel

T = TypeVar("T")


class PaginationParams:
    """Inject as a FastAPI dependency for any list endpoint."""

    def __init__(
        self,
        page: int = Query(1, ge=1, description="Page number"),
        page_size: int = Query(50, ge=1, le=500, description="Items per page"),
        search: str | None = Query(None, description="Free-text search"),
    ):
        self.page = page
        self.page_size = page_size
        self.search = search

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


class PaginatedResponse(BaseModel, Generic[T]):
    items: list[T]
    total: int
    page: int
    page_size: int
    total_pages: int


def paginate(items: list[T], params: PaginationParams) -> PaginatedResponse[T]:
    """Slice an already filtered and sorted list into one page."""
    total = len(items)
    return PaginatedResponse(
        items=items[params.offset:params.offset + params.page_size],
        total=total,
        page=params.page,
        page_size=params.page_size,
        total_pages=math.ceil(total / params.page_size) if total else 0,
    )
