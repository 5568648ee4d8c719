"""Regression tests for startup warmup routines."""

from __future__ import annotations

import logging
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

import citycatalog.warmup as warmup
from citycatalog.db.connection import CatalogDatabase
from citycatalog.errors import (
    NetworkError,
    NetworkErrorKind,
    OrchestrationError,
    OrchestrationErrorKind,
)
from citycatalog.schemas.catalog import DataSourceInfo


def _catalog_mock(**kwargs) -> AsyncMock:
    catalog = AsyncMock()
    catalog.execute = AsyncMock(**kwargs)
    return catalog


@pytest.mark.asyncio
async def test_warmup_database_creates_schema_and_pings(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    caplog.set_level(logging.INFO)
    database = CatalogDatabase(f"sqlite+aiosqlite:///{tmp_path / 'warm.db'}")

    try:
        assert await warmup.warmup_database(database) is True
        assert database.is_initialized is True
    finally:
        await database.dispose()

    assert "Database ready" in caplog.text


@pytest.mark.asyncio
async def test_warmup_database_failure_is_logged_not_raised(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    """An unusable database path degrades to a logged error."""

    blocker = tmp_path / "file"
    blocker.write_text("x")
    database = CatalogDatabase(f"sqlite+aiosqlite:///{blocker / 'catalog.db'}")

    assert await warmup.warmup_database(database) is False
    assert "Database warmup failed" in caplog.text
    await database.dispose()


@pytest.mark.asyncio
async def test_warmup_catalog_reports_loaded_snapshot(
    caplog: pytest.LogCaptureFixture,
) -> None:
    caplog.set_level(logging.INFO)
    catalog = _catalog_mock(
        return_value=DataSourceInfo(total_cities=209_557, favorites_count=3)
    )

    assert await warmup.warmup_catalog(catalog) is True
    assert "209557 cities" in caplog.text


@pytest.mark.asyncio
async def test_warmup_catalog_swallows_catalog_errors(
    caplog: pytest.LogCaptureFixture,
) -> None:
    failure = OrchestrationError.wrap(
        OrchestrationErrorKind.DOWNLOAD_FAILED,
        NetworkError(NetworkErrorKind.NO_CONNECTION, detail="offline"),
    )
    catalog = _catalog_mock(side_effect=failure)

    assert await warmup.warmup_catalog(catalog) is False
    assert "Catalog warmup failed" in caplog.text


@pytest.mark.asyncio
async def test_warmup_all_skips_catalog_when_disabled(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(warmup, "warmup_database", AsyncMock(return_value=True))
    catalog = _catalog_mock()

    await warmup.warmup_all(AsyncMock(), catalog, load_catalog=False)

    catalog.execute.assert_not_awaited()


@pytest.mark.asyncio
async def test_warmup_all_skips_catalog_when_database_is_down(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(warmup, "warmup_database", AsyncMock(return_value=False))
    catalog = _catalog_mock()

    await warmup.warmup_all(AsyncMock(), catalog)

    catalog.execute.assert_not_awaited()


@pytest.mark.asyncio
async def test_warmup_all_loads_catalog(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(warmup, "warmup_database", AsyncMock(return_value=True))
    catalog = _catalog_mock(return_value=DataSourceInfo(total_cities=1, favorites_count=0))

    await warmup.warmup_all(AsyncMock(), catalog)

    catalog.execute.assert_awaited_once()
