"""Pagination contract shared by listing and search endpoints."""

from __future__ import annotations

import math
from typing import Generic, TypeVar

from pydantic import BaseModel, Field, computed_field

DEFAULT_PAGE_SIZE = 50
SEARCH_PAGE_SIZE = 100
MAX_PAGE_SIZE = 200
PREFETCH_THRESHOLD = 10

T = TypeVar("T")


class PaginationRequest(BaseModel):
    """Zero-based page request translated into an ``offset``/``limit`` pair."""

    page: int = Field(default=0, ge=0)
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)

    @property
    def offset(self) -> int:
        return self.page * self.page_size

    @property
    def limit(self) -> int:
        return self.page_size

    def next_page(self) -> PaginationRequest:
        return self.model_copy(update={"page": self.page + 1})


class PaginationInfo(BaseModel):
    """Derived paging metadata for a result set of ``total_items`` entries."""

    current_page: int = Field(ge=0)
    page_size: int = Field(ge=1)
    total_items: int = Field(ge=0)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_items / self.page_size)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def has_next_page(self) -> bool:
        return self.current_page < self.total_pages - 1

    @computed_field  # type: ignore[prop-decorator]
    @property
    def has_previous_page(self) -> bool:
        return self.current_page > 0

    @classmethod
    def for_request(cls, request: PaginationRequest, total_items: int) -> PaginationInfo:
        return cls(
            current_page=request.page,
            page_size=request.page_size,
            total_items=total_items,
        )


class PaginatedResult(BaseModel, Generic[T]):
    """One page of items plus its paging metadata."""

    items: list[T]
    pagination: PaginationInfo
    has_more_pages: bool = False

    @classmethod
    def build(
        cls, items: list[T], request: PaginationRequest, total_items: int
    ) -> PaginatedResult[T]:
        pagination = PaginationInfo.for_request(request, total_items)
        return cls(
            items=items,
            pagination=pagination,
            has_more_pages=pagination.has_next_page,
        )

    @property
    def is_empty(self) -> bool:
        return not self.items


__all__ = [
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    "PREFETCH_THRESHOLD",
    "PaginatedResult",
    "PaginationInfo",
    "PaginationRequest",
    "SEARCH_PAGE_SIZE",
]
