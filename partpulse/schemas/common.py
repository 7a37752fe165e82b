from typing import Generic, List, TypeVar

from fastapi import Query
from pydantic import BaseModel, Field

T = TypeVar("T")

MAX_PAGE_SIZE = 100


class PageParams:
    """Query-string paging shared by every list endpoint (?page=&limit=)."""

    def __init__(
        self,
        page: int = Query(1, ge=1, le=1000),
        limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    ):
        self.page = page
        self.limit = limit

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class PaginationMeta(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


class PaginatedResponse(BaseModel, Generic[T]):
    data: List[T] = Field(default_factory=list)  # type: ignore[assignment]
    pagination: PaginationMeta


def paginate(rows: list, params: PageParams, total: int) -> "PaginatedResponse":
    # An empty listing still reports one (empty) page
    total_pages = max(1, -(-total // params.limit))
    return PaginatedResponse(
        data=rows,
        pagination=PaginationMeta(
            page=params.page,
            limit=params.limit,
            total=total,
            total_pages=total_pages,
            has_next=params.page < total_pages,
            has_prev=params.page > 1,
        ),
    )
