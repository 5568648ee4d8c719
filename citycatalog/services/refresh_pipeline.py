"""Full catalog replacement that preserves favorite flags by id.

Steps:

1. capture the ids currently flagged as favorite;
2. delete every stored city with one statement;
3. insert the new cities in fixed-size batches, re-flagging captured ids;
4. record the completion time as the new cache timestamp.

By default each batch commits on its own. If a batch fails, the batches
already committed stay in place, the remaining ones are skipped and the cache
timestamp is cleared so the next load treats the catalog as unknown and
refreshes again. With ``atomic=True`` the delete and every batch share one
transaction and a failure leaves the previous catalog untouched.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from datetime import datetime, timezone

from citycatalog.db.repositories.city_store import CityStore
from citycatalog.db.repositories.settings_store import CatalogSettingsStore
from citycatalog.errors import StorageFault
from citycatalog.schemas.catalog import RefreshReport
from citycatalog.schemas.city import City

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def deduplicate_cities(cities: Sequence[City]) -> list[City]:
    """Collapse repeated ids, keeping the last occurrence in feed order."""

    unique: dict[int, City] = {}
    for city in cities:
        unique.pop(city.id, None)
        unique[city.id] = city
    if len(unique) != len(cities):
        logger.warning(
            "Catalog payload contained %d duplicate id(s); keeping the last occurrence",
            len(cities) - len(unique),
        )
    return list(unique.values())


class CatalogRefreshPipeline:
    def __init__(
        self,
        store: CityStore,
        settings_store: CatalogSettingsStore,
        *,
        batch_size: int = 1000,
        atomic: bool = False,
        clock: Clock = _utcnow,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self._store = store
        self._settings_store = settings_store
        self._batch_size = batch_size
        self._atomic = atomic
        self._clock = clock

    async def run(self, cities: Sequence[City]) -> RefreshReport:
        """Replace the stored catalog with ``cities``; raises :class:`StorageFault`."""

        started = time.perf_counter()
        records = deduplicate_cities(cities)
        favorite_ids = frozenset(await self._store.favorite_ids())
        logger.info(
            "Refreshing catalog with %d cities (%d favorites to preserve, batch size %d)",
            len(records),
            len(favorite_ids),
            self._batch_size,
        )

        if self._atomic:
            restored, batches = await self._store.replace_all_atomic(
                records, favorite_ids, self._batch_size
            )
        else:
            restored, batches = await self._replace_in_batches(records, favorite_ids)

        completed_at = self._clock()
        await self._settings_store.set_last_refresh(completed_at)
        duration = time.perf_counter() - started

        if restored != len(favorite_ids):
            logger.info(
                "%d favorite(s) no longer present in the catalog were dropped",
                len(favorite_ids) - restored,
            )
        logger.info(
            "Catalog refresh stored %d cities in %d batch(es) in %.2fs",
            len(records),
            batches,
            duration,
        )
        return RefreshReport(
            total_records=len(records),
            restored_favorites=restored,
            batches_committed=batches,
            completed_at=completed_at,
            duration_seconds=duration,
        )

    async def _replace_in_batches(
        self, records: Sequence[City], favorite_ids: frozenset[int]
    ) -> tuple[int, int]:
        await self._store.delete_all()

        restored = 0
        batches = 0
        for start in range(0, len(records), self._batch_size):
            batch = records[start : start + self._batch_size]
            try:
                restored += await self._store.insert_batch(batch, favorite_ids)
            except StorageFault:
                logger.error(
                    "Catalog refresh aborted at batch %d; %d of %d cities were stored",
                    batches + 1,
                    start,
                    len(records),
                )
                await self._settings_store.clear_last_refresh()
                raise
            batches += 1
            logger.debug(
                "Committed batch %d (%d/%d cities)",
                batches,
                start + len(batch),
                len(records),
            )
        return restored, batches


__all__ = ["CatalogRefreshPipeline", "deduplicate_cities"]
