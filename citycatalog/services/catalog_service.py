"""Cache orchestration for the local catalog.

``execute()`` decides whether the stored catalog can be served as is or must be
refreshed from the remote source:

* no refresh timestamp (unknown), an empty catalog, or a timestamp at least one
  TTL old (stale) trigger a refresh;
* otherwise the catalog is fresh and returned without any network I/O.

``force_refresh()`` always refreshes. When a refresh fails the service falls
back to the last known snapshot if it still holds cities and only raises
``download_failed`` when there is nothing to serve. Concurrent callers share a
single in-flight refresh.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from citycatalog.db.repositories.city_store import CityStore
from citycatalog.db.repositories.settings_store import CatalogSettingsStore
from citycatalog.errors import (
    NetworkError,
    OrchestrationError,
    OrchestrationErrorKind,
    StorageFault,
)
from citycatalog.schemas.catalog import DATA_VERSION, CacheState, DataSourceInfo
from citycatalog.schemas.city import City
from citycatalog.schemas.pagination import PaginatedResult, PaginationRequest
from citycatalog.services.refresh_pipeline import CatalogRefreshPipeline
from citycatalog.services.remote_fetcher import CatalogFetcher

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL = timedelta(hours=24)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CatalogService:
    """Load-side entry point: cached snapshot, refresh and paged listing."""

    def __init__(
        self,
        store: CityStore,
        settings_store: CatalogSettingsStore,
        fetcher: CatalogFetcher,
        pipeline: CatalogRefreshPipeline,
        *,
        ttl: timedelta = DEFAULT_CACHE_TTL,
        data_version: str = DATA_VERSION,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._settings_store = settings_store
        self._fetcher = fetcher
        self._pipeline = pipeline
        self._ttl = ttl
        self._data_version = data_version
        self._clock = clock
        self._refresh_task: asyncio.Task[DataSourceInfo] | None = None

    @property
    def is_refreshing(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    async def execute(self) -> DataSourceInfo:
        """Return the catalog snapshot, refreshing first when it is not fresh."""

        info = await self.get_data_info()
        state = self.cache_state(info)
        if not state.needs_refresh:
            logger.info(
                "Serving cached catalog (%d cities, updated %s)",
                info.total_cities,
                info.last_updated.isoformat() if info.last_updated else "never",
            )
            return info

        logger.info("Catalog cache is %s; refreshing from remote source", state.value)
        return await self._refresh()

    async def force_refresh(self) -> DataSourceInfo:
        """Refresh regardless of cache age."""

        logger.info("Forced catalog refresh requested")
        return await self._refresh()

    def cache_state(self, info: DataSourceInfo, now: datetime | None = None) -> CacheState:
        if info.last_updated is None:
            return CacheState.UNKNOWN
        if info.total_cities == 0:
            return CacheState.EMPTY
        current = now or self._clock()
        if current - info.last_updated >= self._ttl:
            return CacheState.STALE
        return CacheState.FRESH

    async def get_data_info(self) -> DataSourceInfo:
        """Recompute the catalog summary from storage."""

        try:
            total_cities = await self._store.count_cities()
            favorites_count = await self._store.count_favorites()
            last_updated = await self._settings_store.get_last_refresh()
        except StorageFault as exc:
            raise OrchestrationError.wrap(
                OrchestrationErrorKind.DATA_INFO_UNAVAILABLE, exc
            ) from exc
        return DataSourceInfo(
            total_cities=total_cities,
            favorites_count=favorites_count,
            last_updated=last_updated,
            data_version=self._data_version,
        )

    async def get_cities(self, request: PaginationRequest) -> PaginatedResult[City]:
        """Page through the whole catalog ordered by display name."""

        try:
            total = await self._store.count_cities()
            items = await self._store.list_cities(request.offset, request.limit)
        except StorageFault as exc:
            raise OrchestrationError.wrap(
                OrchestrationErrorKind.CITY_LOOKUP_FAILED, exc
            ) from exc
        return PaginatedResult[City].build(items, request, total)

    async def get_city(self, city_id: int) -> City | None:
        try:
            return await self._store.get_city(city_id)
        except StorageFault as exc:
            raise OrchestrationError.wrap(
                OrchestrationErrorKind.CITY_LOOKUP_FAILED, exc
            ) from exc

    async def clear_catalog(self) -> None:
        """Drop every stored city and forget the refresh timestamp."""

        try:
            await self._store.delete_all()
            await self._settings_store.clear_last_refresh()
        except StorageFault as exc:
            raise OrchestrationError.wrap(
                OrchestrationErrorKind.DATA_INFO_UNAVAILABLE, exc
            ) from exc
        logger.info("Local catalog cleared")

    async def _refresh(self) -> DataSourceInfo:
        task = self._refresh_task
        if task is None or task.done():
            task = asyncio.create_task(self._download_and_store())
            task.add_done_callback(self._refresh_finished)
            self._refresh_task = task
        else:
            logger.info("Catalog refresh already in progress; waiting for it")
        return await asyncio.shield(task)

    def _refresh_finished(self, task: asyncio.Task[DataSourceInfo]) -> None:
        if self._refresh_task is task:
            self._refresh_task = None
        if not task.cancelled():
            # Mark the outcome as retrieved even if every waiter was cancelled.
            task.exception()

    async def _download_and_store(self) -> DataSourceInfo:
        try:
            cities = await self._fetcher.fetch_cities()
            await self._pipeline.run(cities)
        except (NetworkError, StorageFault) as exc:
            logger.warning("Catalog refresh failed: %s", exc.technical_message)
            return await self._fallback_snapshot(exc)
        return await self.get_data_info()

    async def _fallback_snapshot(self, cause: NetworkError | StorageFault) -> DataSourceInfo:
        try:
            info = await self.get_data_info()
        except OrchestrationError as exc:
            raise OrchestrationError.wrap(
                OrchestrationErrorKind.DOWNLOAD_FAILED, cause
            ) from exc
        if info.total_cities > 0:
            logger.info(
                "Serving last known catalog snapshot (%d cities) after failed refresh",
                info.total_cities,
            )
            return info
        raise OrchestrationError.wrap(OrchestrationErrorKind.DOWNLOAD_FAILED, cause) from cause


__all__ = ["CatalogService", "DEFAULT_CACHE_TTL"]
