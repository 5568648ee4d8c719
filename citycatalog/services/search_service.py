from __future__ import annotations

import logging

from citycatalog.db.repositories.city_store import CityStore
from citycatalog.errors import (
    DomainValidationError,
    OrchestrationError,
    OrchestrationErrorKind,
    StorageFault,
    ValidationErrorKind,
)
from citycatalog.schemas.city import City
from citycatalog.schemas.search import (
    DEFAULT_RESULT_LIMIT,
    MAX_QUERY_LENGTH,
    MIN_QUERY_LENGTH,
    SearchFilter,
    SearchRequest,
    SearchResultPage,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_PAGES = 15


class SearchService:
    """Validated, paginated prefix search over the local catalog."""

    def __init__(
        self,
        store: CityStore,
        *,
        min_query_length: int = MIN_QUERY_LENGTH,
        max_query_length: int = MAX_QUERY_LENGTH,
        max_pages: int = DEFAULT_MAX_PAGES,
        quick_search_limit: int = DEFAULT_RESULT_LIMIT,
    ) -> None:
        self._store = store
        self._min_query_length = min_query_length
        self._max_query_length = max_query_length
        self._max_pages = max_pages
        self._quick_search_limit = quick_search_limit

    @property
    def max_pages(self) -> int:
        return self._max_pages

    def validate_query(self, query: str, *, show_only_favorites: bool = False) -> str:
        """Return the trimmed query or raise :class:`DomainValidationError`.

        An empty query is only meaningful when listing favorites.
        """

        trimmed = query.strip()
        if not trimmed:
            if show_only_favorites:
                return trimmed
            raise DomainValidationError(ValidationErrorKind.EMPTY_QUERY)
        if len(trimmed) < self._min_query_length:
            raise DomainValidationError(
                ValidationErrorKind.QUERY_TOO_SHORT, minimum=self._min_query_length
            )
        if len(trimmed) > self._max_query_length:
            raise DomainValidationError(
                ValidationErrorKind.QUERY_TOO_LONG, maximum=self._max_query_length
            )
        return trimmed

    async def execute(self, request: SearchRequest) -> SearchResultPage:
        """Run one page of the name-then-country prefix search."""

        query = self.validate_query(
            request.query, show_only_favorites=request.show_only_favorites
        )
        search_filter = SearchFilter(
            query=query, show_only_favorites=request.show_only_favorites
        )
        pagination = request.pagination

        try:
            total = await self._store.count_search(search_filter)
            items = await self._store.search_page(
                search_filter, pagination.offset, pagination.limit
            )
        except StorageFault as exc:
            raise OrchestrationError.wrap(OrchestrationErrorKind.SEARCH_FAILED, exc) from exc

        page = SearchResultPage.build(items, pagination, total)
        page.query = search_filter.folded_query
        page.has_more_pages = self.has_more_pages(page, request)
        logger.debug(
            "Search %r page %d returned %d of %d cities",
            page.query,
            request.page,
            len(items),
            total,
        )
        return page

    async def load_next_page(self, request: SearchRequest) -> SearchResultPage:
        return await self.execute(request.next_page())

    def has_more_pages(self, page: SearchResultPage, request: SearchRequest) -> bool:
        """Infinite-scroll verdict: another full page exists below the ceiling."""

        return (
            page.pagination.has_next_page
            and len(page.items) >= request.page_size
            and request.page + 1 < self._max_pages
        )

    async def quick_search(self, query: str, limit: int | None = None) -> list[City]:
        """Unpaginated prefix search limited to ``limit`` results."""

        trimmed = self.validate_query(query)
        budget = limit or self._quick_search_limit
        try:
            return await self._store.search(
                SearchFilter(query=trimmed), budget
            )
        except StorageFault as exc:
            raise OrchestrationError.wrap(OrchestrationErrorKind.SEARCH_FAILED, exc) from exc


__all__ = ["DEFAULT_MAX_PAGES", "SearchService"]
