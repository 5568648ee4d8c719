"""Interactive search state for one consumer (a screen, a CLI prompt, a socket).

A session lives on the event loop and is only touched from coroutines running
there. Each submitted query gets a new *generation*; the search for it starts
after a short debounce and any earlier search still pending is cancelled.
Results that arrive for a generation other than the current one are dropped,
so a slow, superseded search can never overwrite newer results.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable

from citycatalog.errors import CatalogError
from citycatalog.schemas.city import City
from citycatalog.schemas.pagination import PREFETCH_THRESHOLD, SEARCH_PAGE_SIZE
from citycatalog.schemas.search import SearchRequest
from citycatalog.services.search_service import SearchService

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.3


class SearchSession:
    def __init__(
        self,
        search_service: SearchService,
        *,
        page_size: int = SEARCH_PAGE_SIZE,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._service = search_service
        self._page_size = page_size
        self._debounce_seconds = debounce_seconds
        self._sleep = sleep
        self._task: asyncio.Task[None] | None = None

        self.generation = 0
        self.query = ""
        self.show_only_favorites = False
        self.results: list[City] = []
        self.current_page = 0
        self.total_items = 0
        self.can_load_more = False
        self.is_searching = False
        self.is_loading_more = False
        self.error: CatalogError | None = None

    @property
    def has_pending_search(self) -> bool:
        return self._task is not None and not self._task.done()

    def submit(
        self, query: str, *, show_only_favorites: bool | None = None
    ) -> asyncio.Task[None] | None:
        """Schedule a debounced search, superseding any pending one.

        Returns the scheduled task, or ``None`` when the query is empty and the
        session is not restricted to favorites (results are simply cleared).
        """

        generation = self._start_generation(query, show_only_favorites)
        if not self._has_criteria():
            self._reset_results()
            return None

        self.is_searching = True
        self._task = asyncio.create_task(self._debounced_search(generation))
        return self._task

    async def search_now(
        self, query: str, *, show_only_favorites: bool | None = None
    ) -> None:
        """Search immediately, without debounce."""

        generation = self._start_generation(query, show_only_favorites)
        if not self._has_criteria():
            self._reset_results()
            return
        self.is_searching = True
        await self._run_first_page(generation)

    async def load_next_page(self) -> bool:
        """Append the next page; returns ``True`` when results were added."""

        if not self.can_load_more or self.is_searching or self.is_loading_more:
            return False

        generation = self.generation
        request = self._request(page=self.current_page + 1)
        self.is_loading_more = True
        try:
            page = await self._service.execute(request)
        except CatalogError as exc:
            if generation == self.generation:
                logger.warning("Loading more results failed: %s", exc.technical_message)
                self.error = exc
                self.is_loading_more = False
            return False

        if generation != self.generation:
            return False
        self.results.extend(page.items)
        self.current_page = request.page
        self.total_items = page.pagination.total_items
        self.can_load_more = page.has_more_pages
        self.is_loading_more = False
        return True

    def should_prefetch(self, index: int) -> bool:
        """Whether displaying row ``index`` should trigger ``load_next_page``."""

        return self.can_load_more and index >= len(self.results) - PREFETCH_THRESHOLD

    def clear(self) -> None:
        self._cancel_pending()
        self.generation += 1
        self.query = ""
        self._reset_results()

    async def wait(self) -> None:
        """Wait for the pending search (if any) to finish or be cancelled."""

        task = self._task
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def aclose(self) -> None:
        self._cancel_pending()
        await self.wait()

    def _start_generation(self, query: str, show_only_favorites: bool | None) -> int:
        self._cancel_pending()
        self.generation += 1
        self.query = query.strip()
        if show_only_favorites is not None:
            self.show_only_favorites = show_only_favorites
        self.error = None
        self.is_loading_more = False
        return self.generation

    def _has_criteria(self) -> bool:
        return bool(self.query) or self.show_only_favorites

    def _cancel_pending(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()

    def _reset_results(self) -> None:
        self.results = []
        self.current_page = 0
        self.total_items = 0
        self.can_load_more = False
        self.is_searching = False
        self.is_loading_more = False
        self.error = None

    def _request(self, *, page: int) -> SearchRequest:
        return SearchRequest(
            query=self.query,
            page=page,
            page_size=self._page_size,
            show_only_favorites=self.show_only_favorites,
        )

    async def _debounced_search(self, generation: int) -> None:
        await self._sleep(self._debounce_seconds)
        await self._run_first_page(generation)

    async def _run_first_page(self, generation: int) -> None:
        try:
            page = await self._service.execute(self._request(page=0))
        except CatalogError as exc:
            if generation == self.generation:
                logger.warning("Search failed: %s", exc.technical_message)
                self.results = []
                self.can_load_more = False
                self.is_searching = False
                self.error = exc
            return

        if generation != self.generation:
            logger.debug(
                "Discarding results of superseded search generation %d", generation
            )
            return
        self.results = list(page.items)
        self.current_page = 0
        self.total_items = page.pagination.total_items
        self.can_load_more = page.has_more_pages
        self.is_searching = False


__all__ = ["DEFAULT_DEBOUNCE_SECONDS", "SearchSession"]
