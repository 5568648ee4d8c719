"""Startup warmup for the catalog service.

Prepares the database (schema + a first pooled connection) and optionally
brings the local catalog up to date before the first request is served.
Failures are logged and the application keeps starting; requests then report
the typed error of whatever is still broken.
"""

from __future__ import annotations

import logging
import time

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from citycatalog.db.connection import CatalogDatabase
from citycatalog.errors import CatalogError
from citycatalog.services.catalog_service import CatalogService

logger = logging.getLogger(__name__)


async def warmup_database(database: CatalogDatabase) -> bool:
    """Create the schema and ping the database; returns ``True`` on success."""

    start = time.time()
    try:
        await database.initialize()
        async with database.engine.begin() as connection:
            await connection.execute(text("SELECT 1"))
    except CatalogError as exc:
        logger.error("Database warmup failed: %s", exc.technical_message)
        return False
    except SQLAlchemyError as exc:
        logger.error("Database warmup failed: %s", exc)
        return False

    elapsed = (time.time() - start) * 1000
    logger.info(f"✓ Database ready ({elapsed:.0f}ms)")
    return True


async def warmup_catalog(catalog: CatalogService) -> bool:
    """Load the catalog through the cache policy; returns ``True`` on success."""

    start = time.time()
    try:
        info = await catalog.execute()
    except CatalogError as exc:
        logger.warning("Catalog warmup failed: %s", exc.technical_message)
        return False

    elapsed = (time.time() - start) * 1000
    logger.info(
        f"✓ Catalog ready: {info.total_cities} cities, "
        f"{info.favorites_count} favorites ({elapsed:.0f}ms)"
    )
    return True


async def warmup_all(
    database: CatalogDatabase,
    catalog: CatalogService,
    *,
    load_catalog: bool = True,
) -> None:
    logger.info("Starting catalog warmup...")
    start = time.time()

    database_ready = await warmup_database(database)
    if database_ready and load_catalog:
        await warmup_catalog(catalog)
    elif not load_catalog:
        logger.info("Catalog load on startup disabled")

    elapsed = (time.time() - start) * 1000
    logger.info(f"✓ Warmup complete ({elapsed:.0f}ms)")
