"""Scalar catalog metadata persisted next to (not inside) the city table."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError

from citycatalog.db.connection import CatalogDatabase
from citycatalog.db.models import CatalogSetting
from citycatalog.errors import StorageFault, StorageFaultKind

logger = logging.getLogger(__name__)

LAST_REFRESH_KEY = "last_refresh_at"


class CatalogSettingsStore:
    """Reads and writes the timestamp of the last successful refresh.

    Timestamps are stored as ISO-8601 strings so their UTC offset survives
    backends (such as SQLite) that drop timezone information.
    """

    def __init__(self, database: CatalogDatabase) -> None:
        self._database = database

    async def get_last_refresh(self) -> datetime | None:
        try:
            async with self._database.session() as session:
                setting = await session.get(CatalogSetting, LAST_REFRESH_KEY)
                raw_value = setting.value if setting is not None else None
        except SQLAlchemyError as exc:
            raise StorageFault(
                StorageFaultKind.FETCH, detail=f"read last refresh time: {exc}"
            ) from exc

        if raw_value is None:
            return None
        try:
            parsed = datetime.fromisoformat(raw_value)
        except ValueError:
            logger.warning("Ignoring malformed last refresh timestamp %r", raw_value)
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    async def set_last_refresh(self, moment: datetime) -> None:
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        try:
            async with self._database.session() as session:
                setting = await session.get(CatalogSetting, LAST_REFRESH_KEY)
                if setting is None:
                    session.add(
                        CatalogSetting(key=LAST_REFRESH_KEY, value=moment.isoformat())
                    )
                else:
                    setting.value = moment.isoformat()
        except SQLAlchemyError as exc:
            raise StorageFault(
                StorageFaultKind.SAVE, detail=f"write last refresh time: {exc}"
            ) from exc

    async def clear_last_refresh(self) -> None:
        try:
            async with self._database.session() as session:
                await session.execute(
                    delete(CatalogSetting).where(CatalogSetting.key == LAST_REFRESH_KEY)
                )
        except SQLAlchemyError as exc:
            raise StorageFault(
                StorageFaultKind.SAVE, detail=f"clear last refresh time: {exc}"
            ) from exc


__all__ = ["CatalogSettingsStore", "LAST_REFRESH_KEY"]
