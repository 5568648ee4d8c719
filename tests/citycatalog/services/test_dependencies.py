"""Tests for wiring the service graph from settings."""

from __future__ import annotations

from datetime import timedelta

import pytest

from citycatalog.db.connection import CatalogDatabase
from citycatalog.db.repositories.city_store import CityStore
from citycatalog.schemas.catalog import CacheState, DataSourceInfo
from citycatalog.schemas.city import City
from citycatalog.services.dependencies import build_services
from citycatalog.settings import AppSettings
from tests.citycatalog.support.fakes import FrozenClock, names


def _settings(**overrides) -> AppSettings:
    return AppSettings(_env_file=None, DATABASE_URL="sqlite+aiosqlite:///:memory:", **overrides)


def test_cache_ttl_follows_configured_hours(
    database: CatalogDatabase, clock: FrozenClock
) -> None:
    services = build_services(_settings(CACHE_TTL_HOURS=0.5), database)
    info = DataSourceInfo(total_cities=1, favorites_count=0, last_updated=clock.now)

    almost_stale = clock.now + timedelta(minutes=29, seconds=59)
    stale = clock.now + timedelta(minutes=30)

    assert services.catalog.cache_state(info, almost_stale) is CacheState.FRESH
    assert services.catalog.cache_state(info, stale) is CacheState.STALE


@pytest.mark.asyncio
async def test_search_session_uses_configured_page_size_and_debounce(
    database: CatalogDatabase, scenario_cities: list[City]
) -> None:
    services = build_services(
        _settings(SEARCH_PAGE_SIZE=2, SEARCH_DEBOUNCE_SECONDS=0), database
    )
    await CityStore(database).insert_batch(scenario_cities, frozenset())
    session = services.new_search_session()

    session.submit("al")
    await session.wait()

    assert names(session.results) == ["Alabama", "Albuquerque"]
    assert session.total_items == 3
    assert session.can_load_more is True

    assert await session.load_next_page() is True
    assert names(session.results) == ["Alabama", "Albuquerque", "ÁLAVA"]
    assert session.can_load_more is False
