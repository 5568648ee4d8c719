"""Persistence and query engine for catalog cities.

Every public coroutine runs in its own session and transaction, so callers get
an independent unit of work per call and receive detached pydantic models.
SQLAlchemy failures are translated into :class:`StorageFault` here and never
leak further up.

Search ordering is "name matches first, then country matches": a name bucket
holds rows whose folded ``name country`` text starts with the folded query and
a country bucket holds rows whose folded country starts with the query but
whose name text does not. Both buckets are sorted by the case-folded display
name (then ``id``), which keeps page boundaries stable.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Iterable, Sequence
from contextlib import asynccontextmanager
from datetime import datetime

from sqlalchemy import ColumnElement, Select, delete, func, insert, not_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from citycatalog.db.connection import CatalogDatabase
from citycatalog.db.models import CityRecord, utcnow
from citycatalog.db.models.city import city_columns
from citycatalog.errors import StorageFault, StorageFaultKind
from citycatalog.schemas.city import City
from citycatalog.schemas.search import SearchFilter

logger = logging.getLogger(__name__)


def _name_match(folded_query: str) -> ColumnElement[bool]:
    return CityRecord.searchable_text.startswith(folded_query, autoescape=True)


def _country_match(folded_query: str) -> ColumnElement[bool]:
    return CityRecord.normalized_country.startswith(folded_query, autoescape=True)


def _ordered(statement: Select) -> Select:
    return statement.order_by(CityRecord.display_key, CityRecord.id)


def _favorites_only(statement: Select, enabled: bool) -> Select:
    if enabled:
        return statement.where(CityRecord.is_favorite.is_(True))
    return statement


def _name_bucket(folded_query: str, favorites_only: bool) -> list[ColumnElement[bool]]:
    criteria = [_name_match(folded_query)]
    if favorites_only:
        criteria.append(CityRecord.is_favorite.is_(True))
    return criteria


def _country_bucket(
    folded_query: str, favorites_only: bool
) -> list[ColumnElement[bool]]:
    # Excluding every name match is equivalent to excluding the ids returned by
    # the name pass: the country pass only runs when that pass was not full.
    criteria = [_country_match(folded_query), not_(_name_match(folded_query))]
    if favorites_only:
        criteria.append(CityRecord.is_favorite.is_(True))
    return criteria


class CityStore:
    """Async repository over the ``cities`` table."""

    def __init__(self, database: CatalogDatabase) -> None:
        self._database = database

    @asynccontextmanager
    async def _unit_of_work(
        self, kind: StorageFaultKind, action: str
    ) -> AsyncIterator[AsyncSession]:
        try:
            async with self._database.session() as session:
                yield session
        except SQLAlchemyError as exc:
            logger.error("City store failed to %s: %s", action, exc)
            raise StorageFault(kind, detail=f"{action}: {exc}") from exc

    # -- Reads ----------------------------------------------------------------

    async def get_city(self, city_id: int) -> City | None:
        async with self._unit_of_work(StorageFaultKind.FETCH, "load city") as session:
            record = await session.get(CityRecord, city_id)
            return record.to_city() if record is not None else None

    async def list_cities(
        self, offset: int = 0, limit: int | None = None, *, favorites_only: bool = False
    ) -> list[City]:
        """Return cities ordered by display name, optionally favorites only."""

        statement = _ordered(_favorites_only(select(CityRecord), favorites_only))
        statement = statement.offset(offset)
        if limit is not None:
            statement = statement.limit(limit)
        async with self._unit_of_work(StorageFaultKind.FETCH, "list cities") as session:
            records = (await session.scalars(statement)).all()
            return [record.to_city() for record in records]

    async def list_favorites(self) -> list[City]:
        return await self.list_cities(favorites_only=True)

    async def favorite_ids(self) -> set[int]:
        statement = select(CityRecord.id).where(CityRecord.is_favorite.is_(True))
        async with self._unit_of_work(
            StorageFaultKind.FETCH, "read favorite ids"
        ) as session:
            return set((await session.scalars(statement)).all())

    async def count_cities(self, *, favorites_only: bool = False) -> int:
        statement = _favorites_only(
            select(func.count()).select_from(CityRecord), favorites_only
        )
        async with self._unit_of_work(StorageFaultKind.FETCH, "count cities") as session:
            return int(await session.scalar(statement) or 0)

    async def count_favorites(self) -> int:
        return await self.count_cities(favorites_only=True)

    async def is_favorite(self, city_id: int) -> bool:
        """Return the stored favorite flag; unknown ids are not favorites."""

        statement = select(CityRecord.is_favorite).where(CityRecord.id == city_id)
        async with self._unit_of_work(
            StorageFaultKind.FETCH, "read favorite status"
        ) as session:
            return bool(await session.scalar(statement))

    # -- Search ---------------------------------------------------------------

    async def search(self, search_filter: SearchFilter, limit: int) -> list[City]:
        """Two-pass prefix search bounded by a result budget of ``limit``."""

        folded_query = search_filter.folded_query
        favorites_only = search_filter.show_only_favorites
        if not folded_query:
            return await self.list_cities(0, limit, favorites_only=favorites_only)

        async with self._unit_of_work(StorageFaultKind.FETCH, "search cities") as session:
            name_statement = _ordered(
                select(CityRecord).where(*_name_bucket(folded_query, favorites_only))
            ).limit(limit)
            name_records = await session.scalars(name_statement)
            results = [record.to_city() for record in name_records]

            remaining = limit - len(results)
            if remaining > 0 and search_filter.search_in_country:
                country_statement = _ordered(
                    select(CityRecord).where(
                        *_country_bucket(folded_query, favorites_only)
                    )
                ).limit(remaining)
                country_records = await session.scalars(country_statement)
                results.extend(record.to_city() for record in country_records)

        logger.debug("Prefix search %r returned %d cities", folded_query, len(results))
        return results

    async def count_search(self, search_filter: SearchFilter) -> int:
        """Number of cities the paginated search can return for ``search_filter``."""

        folded_query = search_filter.folded_query
        favorites_only = search_filter.show_only_favorites
        if not folded_query:
            return await self.count_cities(favorites_only=favorites_only)

        async with self._unit_of_work(
            StorageFaultKind.FETCH, "count search results"
        ) as session:
            total = await self._count_where(
                session, _name_bucket(folded_query, favorites_only)
            )
            if search_filter.search_in_country:
                total += await self._count_where(
                    session, _country_bucket(folded_query, favorites_only)
                )
            return total

    async def search_page(
        self, search_filter: SearchFilter, offset: int, limit: int
    ) -> list[City]:
        """Return ``limit`` cities starting at ``offset`` of the priority ordering.

        The page reads the tail of the name bucket and continues into the head
        of the country bucket, so consecutive pages never repeat or skip a city.
        """

        folded_query = search_filter.folded_query
        favorites_only = search_filter.show_only_favorites
        if not folded_query:
            return await self.list_cities(offset, limit, favorites_only=favorites_only)

        async with self._unit_of_work(StorageFaultKind.FETCH, "search cities") as session:
            name_criteria = _name_bucket(folded_query, favorites_only)
            name_total = await self._count_where(session, name_criteria)

            results: list[City] = []
            if offset < name_total:
                name_statement = (
                    _ordered(select(CityRecord).where(*name_criteria))
                    .offset(offset)
                    .limit(limit)
                )
                name_records = await session.scalars(name_statement)
                results.extend(record.to_city() for record in name_records)

            remaining = limit - len(results)
            if remaining > 0 and search_filter.search_in_country:
                country_statement = (
                    _ordered(
                        select(CityRecord).where(
                            *_country_bucket(folded_query, favorites_only)
                        )
                    )
                    .offset(max(0, offset - name_total))
                    .limit(remaining)
                )
                country_records = await session.scalars(country_statement)
                results.extend(record.to_city() for record in country_records)
            return results

    @staticmethod
    async def _count_where(
        session: AsyncSession, criteria: Sequence[ColumnElement[bool]]
    ) -> int:
        statement = select(func.count()).select_from(CityRecord).where(*criteria)
        return int(await session.scalar(statement) or 0)

    # -- Writes ---------------------------------------------------------------

    async def upsert_city(self, city: City) -> City:
        """Insert ``city`` or overwrite the stored row with the same id."""

        async with self._unit_of_work(StorageFaultKind.SAVE, "save city") as session:
            record = await session.get(CityRecord, city.id)
            if record is None:
                record = CityRecord.from_city(city)
                session.add(record)
            else:
                record.apply(city)
            await session.flush()
            return record.to_city()

    async def set_favorite(self, city_id: int, is_favorite: bool) -> City:
        """Persist the favorite flag of ``city_id`` and return the updated city."""

        async with self._unit_of_work(
            StorageFaultKind.SAVE, "update favorite status"
        ) as session:
            record = await session.get(CityRecord, city_id)
            if record is None:
                raise StorageFault(
                    StorageFaultKind.INVALID_ENTITY,
                    detail=f"city {city_id} does not exist",
                )
            record.is_favorite = is_favorite
            record.updated_at = utcnow()
            await session.flush()
            return record.to_city()

    async def set_favorites(self, city_ids: Iterable[int], is_favorite: bool) -> int:
        """Bulk-update the favorite flag; returns the number of rows touched."""

        ids = list(city_ids)
        if not ids:
            return 0
        statement = (
            update(CityRecord)
            .where(CityRecord.id.in_(ids))
            .values(is_favorite=is_favorite, updated_at=utcnow())
        )
        async with self._unit_of_work(
            StorageFaultKind.SAVE, "update favorite statuses"
        ) as session:
            result = await session.execute(statement)
            return int(result.rowcount or 0)

    async def delete_all(self) -> int:
        """Remove every city with a single ``DELETE``."""

        async with self._unit_of_work(StorageFaultKind.SAVE, "clear cities") as session:
            result = await session.execute(delete(CityRecord))
            deleted = int(result.rowcount or 0)
        logger.info("Deleted %d cities", deleted)
        return deleted

    async def insert_batch(
        self, cities: Sequence[City], favorite_ids: set[int] | frozenset[int]
    ) -> int:
        """Insert ``cities`` in one committed transaction.

        Cities whose id appears in ``favorite_ids`` are stored as favorites.
        Returns the number of favorites restored by this batch.
        """

        async with self._unit_of_work(StorageFaultKind.SAVE, "insert cities") as session:
            return await self._insert_rows(session, cities, favorite_ids, utcnow())

    async def replace_all_atomic(
        self,
        cities: Sequence[City],
        favorite_ids: set[int] | frozenset[int],
        batch_size: int,
    ) -> tuple[int, int]:
        """Delete and reinsert the whole catalog inside one transaction.

        Returns ``(restored_favorites, batches)``. Any failure rolls the catalog
        back to its previous content.
        """

        restored = 0
        batches = 0
        async with self._unit_of_work(
            StorageFaultKind.SAVE, "replace catalog"
        ) as session:
            await session.execute(delete(CityRecord))
            timestamp = utcnow()
            for start in range(0, len(cities), batch_size):
                restored += await self._insert_rows(
                    session, cities[start : start + batch_size], favorite_ids, timestamp
                )
                batches += 1
        return restored, batches

    @staticmethod
    async def _insert_rows(
        session: AsyncSession,
        cities: Sequence[City],
        favorite_ids: set[int] | frozenset[int],
        timestamp: datetime,
    ) -> int:
        if not cities:
            return 0
        rows = []
        restored = 0
        for city in cities:
            row = city_columns(city)
            row["is_favorite"] = city.id in favorite_ids
            row["created_at"] = timestamp
            row["updated_at"] = timestamp
            restored += int(row["is_favorite"])
            rows.append(row)
        await session.execute(insert(CityRecord), rows)
        return restored


__all__ = ["CityStore"]
