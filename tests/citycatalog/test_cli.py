"""Tests for the ``city-catalog`` command line entry point."""

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import httpx
import pytest
import pytest_asyncio

from citycatalog.cli import build_parser, run_command
from citycatalog.db.connection import CatalogDatabase
from citycatalog.services.dependencies import CatalogServices, build_services
from citycatalog.settings import AppSettings

PAYLOAD = [
    {"_id": 10, "name": "Montevideo", "country": "UY", "coord": {"lon": -56.2, "lat": -34.9}},
    {"_id": 11, "name": "Mendoza", "country": "AR", "coord": {"lon": -68.8, "lat": -32.9}},
]


@pytest_asyncio.fixture
async def services(tmp_path: Path) -> AsyncIterator[CatalogServices]:
    settings = AppSettings(
        _env_file=None,
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}",
        DOWNLOAD_RETRY_DELAY_SECONDS=0,
    )
    database = CatalogDatabase(settings.database_url)

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=PAYLOAD)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        yield build_services(settings, database, http_client=client)
    await database.dispose()


async def _run(services: CatalogServices, *argv: str) -> int:
    return await run_command(build_parser().parse_args(list(argv)), services)


@pytest.mark.asyncio
async def test_load_then_search(services: CatalogServices, capsys) -> None:
    assert await _run(services, "load") == 0
    assert "2 cities" in capsys.readouterr().out

    assert await _run(services, "search", "me") == 0
    output = capsys.readouterr().out
    assert "Mendoza, AR" in output
    assert "Montevideo" not in output


@pytest.mark.asyncio
async def test_favorite_toggles_and_reports(services: CatalogServices, capsys) -> None:
    await _run(services, "load")
    capsys.readouterr()

    assert await _run(services, "favorite", "10") == 0
    assert "added to favorites" in capsys.readouterr().out
    assert await services.store.favorite_ids() == {10}

    assert await _run(services, "search", "", "--favorites") == 0
    assert "Montevideo, UY" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_catalog_errors_print_user_message_and_fail(
    services: CatalogServices, capsys
) -> None:
    exit_code = await _run(services, "search", "  ")

    assert exit_code == 1
    assert "Please enter a search term." in capsys.readouterr().out


@pytest.mark.asyncio
async def test_clear_and_info(services: CatalogServices, capsys) -> None:
    await _run(services, "load")
    assert await _run(services, "clear") == 0
    capsys.readouterr()

    assert await _run(services, "info") == 0
    output = capsys.readouterr().out
    assert "0 cities" in output
    assert "never" in output


def test_parser_requires_a_command() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


@pytest.mark.parametrize(
    ("argv", "message"),
    [
        (["search", "a", "--page", "-1"], "page must be 0 or greater"),
        (["search", "a", "--page-size", "0"], "page size must be between 1 and 200"),
        (["search", "a", "--page-size", "500"], "page size must be between 1 and 200"),
        (["search", "a", "--page", "two"], "invalid _page_number value"),
    ],
)
def test_search_rejects_out_of_range_paging(argv: list[str], message: str, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        build_parser().parse_args(argv)

    assert excinfo.value.code == 2
    assert message in capsys.readouterr().err


def test_search_accepts_paging_bounds() -> None:
    args = build_parser().parse_args(["search", "a", "--page", "0", "--page-size", "200"])

    assert args.page == 0
    assert args.page_size == 200
