"""Business rules for favorite cities.

Operations:
* ``toggle_favorite`` - flip the stored flag, enforcing the ceiling when the
  city is becoming a favorite.
* ``add_to_favorites`` / ``remove_from_favorites`` - explicit transitions that
  reject no-op requests (``already_favorite`` / ``not_favorite``).
* ``is_favorite`` / ``get_favorites_count`` / ``get_favorites`` - reads.
* ``search_favorites`` - the regular search restricted to favorites.

Mutations go through a single writer lock so the ceiling check and the write
it guards happen as one step for every caller sharing this service.
"""

from __future__ import annotations

import asyncio
import logging

from citycatalog.db.repositories.city_store import CityStore
from citycatalog.errors import (
    DomainValidationError,
    OrchestrationError,
    OrchestrationErrorKind,
    StorageFault,
    StorageFaultKind,
    ValidationErrorKind,
)
from citycatalog.schemas.city import City
from citycatalog.schemas.search import SearchRequest, SearchResultPage
from citycatalog.services.search_service import SearchService

logger = logging.getLogger(__name__)

DEFAULT_FAVORITES_LIMIT = 100
FAVORITES_SEARCH_PAGE_SIZE = 200

CityRef = City | int


def _city_id(city: CityRef) -> int:
    return city.id if isinstance(city, City) else city


class FavoritesService:
    def __init__(
        self,
        store: CityStore,
        search_service: SearchService,
        *,
        max_favorites: int = DEFAULT_FAVORITES_LIMIT,
    ) -> None:
        self._store = store
        self._search_service = search_service
        self._max_favorites = max_favorites
        self._write_lock = asyncio.Lock()

    @property
    def max_favorites(self) -> int:
        return self._max_favorites

    async def toggle_favorite(self, city: CityRef) -> City:
        city_id = _city_id(city)
        async with self._write_lock:
            current = await self._load(city_id)
            if not current.is_favorite:
                await self._ensure_capacity()
            updated = await self._write(city_id, not current.is_favorite)
        logger.info(
            "City %s %s favorites",
            city_id,
            "added to" if updated.is_favorite else "removed from",
        )
        return updated

    async def add_to_favorites(self, city: CityRef) -> City:
        city_id = _city_id(city)
        async with self._write_lock:
            current = await self._load(city_id)
            if current.is_favorite:
                raise DomainValidationError(
                    ValidationErrorKind.ALREADY_FAVORITE, city_id=city_id
                )
            await self._ensure_capacity()
            updated = await self._write(city_id, True)
        logger.info("City %s added to favorites", city_id)
        return updated

    async def remove_from_favorites(self, city: CityRef) -> City:
        city_id = _city_id(city)
        async with self._write_lock:
            current = await self._load(city_id)
            if not current.is_favorite:
                raise DomainValidationError(
                    ValidationErrorKind.NOT_FAVORITE, city_id=city_id
                )
            updated = await self._write(city_id, False)
        logger.info("City %s removed from favorites", city_id)
        return updated

    async def is_favorite(self, city: CityRef) -> bool:
        try:
            return await self._store.is_favorite(_city_id(city))
        except StorageFault as exc:
            raise self._wrap(exc) from exc

    async def get_favorites_count(self) -> int:
        try:
            return await self._store.count_favorites()
        except StorageFault as exc:
            raise self._wrap(exc) from exc

    async def get_favorites(self) -> list[City]:
        """Every favorite ordered by display name."""

        try:
            return await self._store.list_favorites()
        except StorageFault as exc:
            raise self._wrap(exc) from exc

    async def search_favorites(
        self,
        query: str = "",
        *,
        page: int = 0,
        page_size: int = FAVORITES_SEARCH_PAGE_SIZE,
    ) -> SearchResultPage:
        """Search restricted to favorites; an empty query lists all of them."""

        return await self._search_service.execute(
            SearchRequest(
                query=query,
                page=page,
                page_size=page_size,
                show_only_favorites=True,
            )
        )

    async def _load(self, city_id: int) -> City:
        try:
            current = await self._store.get_city(city_id)
        except StorageFault as exc:
            raise self._wrap(exc) from exc
        if current is None:
            fault = StorageFault(
                StorageFaultKind.INVALID_ENTITY, detail=f"city {city_id} does not exist"
            )
            raise self._wrap(fault) from fault
        return current

    async def _ensure_capacity(self) -> None:
        count = await self.get_favorites_count()
        if count >= self._max_favorites:
            logger.info(
                "Favorite limit reached (%d/%d)", count, self._max_favorites
            )
            raise DomainValidationError(
                ValidationErrorKind.FAVORITE_LIMIT_EXCEEDED, limit=self._max_favorites
            )

    async def _write(self, city_id: int, is_favorite: bool) -> City:
        try:
            return await self._store.set_favorite(city_id, is_favorite)
        except StorageFault as exc:
            raise self._wrap(exc) from exc

    @staticmethod
    def _wrap(exc: StorageFault) -> OrchestrationError:
        return OrchestrationError.wrap(
            OrchestrationErrorKind.FAVORITES_OPERATION_FAILED, exc
        )


__all__ = ["DEFAULT_FAVORITES_LIMIT", "FavoritesService"]
