"""Search request/response models."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from citycatalog.schemas.city import City
from citycatalog.schemas.pagination import (
    MAX_PAGE_SIZE,
    SEARCH_PAGE_SIZE,
    PaginatedResult,
    PaginationRequest,
)
from citycatalog.utils.text import fold

MIN_QUERY_LENGTH = 1
MAX_QUERY_LENGTH = 100
DEFAULT_RESULT_LIMIT = 1000


class SearchFilter(BaseModel):
    """Criteria understood by the query engine."""

    query: str = ""
    show_only_favorites: bool = False
    search_in_country: bool = True

    @field_validator("query")
    @classmethod
    def _strip_query(cls, value: str) -> str:
        return value.strip()

    @property
    def is_empty(self) -> bool:
        return not self.query and not self.show_only_favorites

    @property
    def is_valid(self) -> bool:
        return not self.query or len(self.query) >= MIN_QUERY_LENGTH

    @property
    def folded_query(self) -> str:
        return fold(self.query)


class SearchRequest(BaseModel):
    """A page of an interactive search."""

    query: str = ""
    page: int = Field(default=0, ge=0)
    page_size: int = Field(default=SEARCH_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)
    show_only_favorites: bool = False

    @property
    def pagination(self) -> PaginationRequest:
        return PaginationRequest(page=self.page, page_size=self.page_size)

    def to_filter(self) -> SearchFilter:
        return SearchFilter(
            query=self.query,
            show_only_favorites=self.show_only_favorites,
        )

    def next_page(self) -> SearchRequest:
        return self.model_copy(update={"page": self.page + 1})


class SearchResultPage(PaginatedResult[City]):
    """Search page annotated with the normalized query that produced it."""

    query: str = ""


__all__ = [
    "DEFAULT_RESULT_LIMIT",
    "MAX_QUERY_LENGTH",
    "MIN_QUERY_LENGTH",
    "SearchFilter",
    "SearchRequest",
    "SearchResultPage",
]
