"""Shared fixtures: a real SQLite catalog per test plus canonical sample data."""

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import pytest
import pytest_asyncio

from citycatalog.db.connection import CatalogDatabase
from citycatalog.db.repositories.city_store import CityStore
from citycatalog.db.repositories.settings_store import CatalogSettingsStore
from citycatalog.schemas.city import City
from tests.citycatalog.support.fakes import FrozenClock, make_city


@pytest_asyncio.fixture
async def database(tmp_path: Path) -> AsyncIterator[CatalogDatabase]:
    """Provide an initialized file-backed SQLite database."""
    pytest.importorskip("aiosqlite")
    catalog_database = CatalogDatabase(f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}")
    await catalog_database.initialize()
    yield catalog_database
    await catalog_database.dispose()


@pytest.fixture
def store(database: CatalogDatabase) -> CityStore:
    return CityStore(database)


@pytest.fixture
def settings_store(database: CatalogDatabase) -> CatalogSettingsStore:
    return CatalogSettingsStore(database)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def scenario_cities() -> list[City]:
    """Mixed-accent sample covering name matches, country matches and misses."""
    return [
        make_city(1, "Alabama", "US", lon=-86.9, lat=32.3),
        make_city(2, "Albuquerque", "US", lon=-106.6, lat=35.1),
        make_city(3, "Anaheim", "US", lon=-117.9, lat=33.8),
        make_city(4, "Arizona", "US", lon=-111.1, lat=34.0),
        make_city(5, "Sydney", "AU", lon=151.2, lat=-33.9),
        make_city(6, "São Paulo", "BR", lon=-46.6, lat=-23.5),
        make_city(7, "ÁLAVA", "ES", lon=-2.7, lat=42.8),
    ]


@pytest_asyncio.fixture
async def seeded_store(store: CityStore, scenario_cities: list[City]) -> CityStore:
    await store.insert_batch(scenario_cities, frozenset())
    return store
