"""Integration-style tests that exercise the FastAPI routes end to end.

The app runs against a real SQLite file and a mocked upstream catalog served
through ``httpx.MockTransport``, so the whole stack from HTTP handler down to
the fetcher's retry loop is exercised.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from citycatalog.db.connection import CatalogDatabase
from citycatalog.main import create_app
from citycatalog.services.dependencies import CatalogServices, build_services
from citycatalog.settings import AppSettings
from citycatalog.utils.request_context import REQUEST_ID_HEADER

UPSTREAM_URL = "https://upstream.test/cities.json"

CATALOG = [
    {"_id": 1, "name": "Alabama", "country": "US", "coord": {"lon": -86.9, "lat": 32.3}},
    {"_id": 2, "name": "Sydney", "country": "AU", "coord": {"lon": 151.2, "lat": -33.9}},
    {"_id": 3, "name": "São Paulo", "country": "BR", "coord": {"lon": -46.6, "lat": -23.5}},
    {"_id": 4, "name": "Buenos Aires", "country": "AR", "coord": {"lon": -58.4, "lat": -34.6}},
]


class Upstream:
    """Scripted remote catalog: replays ``statuses`` then serves ``CATALOG``."""

    def __init__(self) -> None:
        self.statuses: list[int] = []
        self.requests = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests += 1
        if self.statuses:
            return httpx.Response(self.statuses.pop(0))
        return httpx.Response(200, json=CATALOG)


@pytest.fixture
def upstream() -> Upstream:
    return Upstream()


@pytest_asyncio.fixture
async def services(tmp_path: Path, upstream: Upstream) -> AsyncIterator[CatalogServices]:
    settings = AppSettings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'api.db'}",
        CATALOG_SOURCE_URL=UPSTREAM_URL,
        DOWNLOAD_RETRY_DELAY_SECONDS=0,
        FAVORITES_LIMIT=2,
    )
    database = CatalogDatabase(settings.database_url)
    await database.initialize()
    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream)) as http_client:
        yield build_services(settings, database, http_client=http_client)
    await database.dispose()


@pytest_asyncio.fixture
async def api_client(services: CatalogServices) -> AsyncIterator[AsyncClient]:
    """Create an ``AsyncClient`` bound to an app wired with ``services``."""
    app = create_app(services=services)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest_asyncio.fixture
async def loaded_client(api_client: AsyncClient) -> AsyncClient:
    response = await api_client.post("/catalog/load")
    assert response.status_code == 200
    return api_client


@pytest.mark.asyncio
async def test_health_reports_database_state(api_client: AsyncClient) -> None:
    response = await api_client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "database": "ready"}


@pytest.mark.asyncio
async def test_load_downloads_once_then_serves_cache(
    api_client: AsyncClient, upstream: Upstream
) -> None:
    first = await api_client.post("/catalog/load")
    second = await api_client.post("/catalog/load")

    assert first.status_code == second.status_code == 200
    assert first.json()["total_cities"] == 4
    assert first.json()["data_version"] == "0.0.1"
    assert upstream.requests == 1

    info = await api_client.get("/catalog/info")
    assert info.headers["X-Cache-State"] == "fresh"


@pytest.mark.asyncio
async def test_refresh_retries_transient_upstream_failures(
    api_client: AsyncClient, upstream: Upstream
) -> None:
    upstream.statuses = [503, 500]

    response = await api_client.post("/catalog/refresh")

    assert response.status_code == 200
    assert upstream.requests == 3


@pytest.mark.asyncio
async def test_failed_download_without_snapshot_is_service_unavailable(
    api_client: AsyncClient, upstream: Upstream
) -> None:
    upstream.statuses = [404]

    response = await api_client.post("/catalog/load")

    assert response.status_code == 503
    payload = response.json()
    assert payload["error_type"] == "network_error"
    assert payload["kind"] == "download_failed"
    assert payload["code"] == 5001
    assert payload["message"].startswith("Unable to download city data")
    assert "HTTP 404" in payload["detail"]
    assert payload["retry_after"] == 5
    assert payload["path"] == "/catalog/load"
    assert upstream.requests == 1


@pytest.mark.asyncio
async def test_failed_refresh_with_snapshot_serves_stored_catalog(
    loaded_client: AsyncClient, upstream: Upstream
) -> None:
    upstream.statuses = [500, 500, 500]

    response = await loaded_client.post("/catalog/refresh")

    assert response.status_code == 200
    assert response.json()["total_cities"] == 4


@pytest.mark.asyncio
async def test_search_orders_name_matches_before_country_matches(
    loaded_client: AsyncClient,
) -> None:
    response = await loaded_client.get("/search", params={"q": "a"})

    assert response.status_code == 200
    payload = response.json()
    assert [item["name"] for item in payload["items"]] == [
        "Alabama",
        "Buenos Aires",
        "Sydney",
    ]
    assert payload["query"] == "a"
    assert payload["pagination"]["total_items"] == 3
    assert payload["has_more_pages"] is False
    assert payload["items"][0]["display_name"] == "Alabama, US"


@pytest.mark.asyncio
async def test_search_ignores_accents(loaded_client: AsyncClient) -> None:
    response = await loaded_client.get("/search", params={"q": "SAO"})

    assert [item["id"] for item in response.json()["items"]] == [3]


@pytest.mark.asyncio
async def test_empty_search_returns_structured_validation_error(
    loaded_client: AsyncClient,
) -> None:
    response = await loaded_client.get(
        "/search", params={"q": "   "}, headers={REQUEST_ID_HEADER: "trace-42"}
    )

    assert response.status_code == 422
    assert response.headers[REQUEST_ID_HEADER] == "trace-42"
    payload = response.json()
    assert payload["error_type"] == "validation_error"
    assert payload["kind"] == "empty_query"
    assert payload["code"] == 4001
    assert payload["message"] == "Please enter a search term."
    assert payload["detail"] == "Search query is empty"
    assert payload["request_id"] == "trace-42"


@pytest.mark.asyncio
async def test_request_validation_errors_use_the_same_envelope(
    api_client: AsyncClient,
) -> None:
    response = await api_client.get("/cities", params={"page_size": 5000})

    assert response.status_code == 422
    payload = response.json()
    assert payload["error_type"] == "validation_error"
    assert payload["errors"][0]["field"].endswith("page_size")
    assert payload["request_id"]


@pytest.mark.asyncio
async def test_cities_listing_is_paginated(loaded_client: AsyncClient) -> None:
    response = await loaded_client.get("/cities", params={"page": 1, "page_size": 3})

    payload = response.json()
    assert [item["name"] for item in payload["items"]] == ["São Paulo"]
    assert payload["pagination"] == {
        "current_page": 1,
        "page_size": 3,
        "total_items": 4,
        "total_pages": 2,
        "has_next_page": False,
        "has_previous_page": True,
    }


@pytest.mark.asyncio
async def test_cities_listing_defaults_to_configured_page_size(
    tmp_path: Path, upstream: Upstream
) -> None:
    settings = AppSettings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'paged.db'}",
        CATALOG_SOURCE_URL=UPSTREAM_URL,
        DEFAULT_PAGE_SIZE=3,
    )
    database = CatalogDatabase(settings.database_url)
    await database.initialize()
    try:
        async with httpx.AsyncClient(
            transport=httpx.MockTransport(upstream)
        ) as http_client:
            app = create_app(
                services=build_services(settings, database, http_client=http_client)
            )
            async with AsyncClient(
                transport=ASGITransport(app=app), base_url="http://testserver"
            ) as client:
                assert (await client.post("/catalog/load")).status_code == 200

                default_page = (await client.get("/cities")).json()
                explicit_page = (
                    await client.get("/cities", params={"page_size": 4})
                ).json()
    finally:
        await database.dispose()

    assert default_page["pagination"]["page_size"] == 3
    assert len(default_page["items"]) == 3
    assert default_page["pagination"]["has_next_page"] is True
    assert explicit_page["pagination"]["page_size"] == 4
    assert len(explicit_page["items"]) == 4


@pytest.mark.asyncio
async def test_unknown_city_is_not_found(loaded_client: AsyncClient) -> None:
    assert (await loaded_client.get("/cities/999")).status_code == 404
    assert (await loaded_client.put("/favorites/999")).status_code == 404


@pytest.mark.asyncio
async def test_favorite_lifecycle(loaded_client: AsyncClient) -> None:
    added = await loaded_client.put("/favorites/2")
    assert added.status_code == 200
    assert added.json()["is_favorite"] is True

    duplicate = await loaded_client.put("/favorites/2")
    assert duplicate.status_code == 409
    assert duplicate.json()["kind"] == "already_favorite"

    status_response = await loaded_client.get("/favorites/2")
    assert status_response.json() == {"city_id": 2, "is_favorite": True}

    listing = await loaded_client.get("/favorites")
    assert [item["id"] for item in listing.json()["items"]] == [2]

    removed = await loaded_client.delete("/favorites/2")
    assert removed.json()["is_favorite"] is False

    missing = await loaded_client.delete("/favorites/2")
    assert missing.status_code == 409
    assert missing.json()["kind"] == "not_favorite"


@pytest.mark.asyncio
async def test_favorite_ceiling_is_a_conflict(loaded_client: AsyncClient) -> None:
    assert (await loaded_client.post("/favorites/1/toggle")).status_code == 200
    assert (await loaded_client.post("/favorites/2/toggle")).status_code == 200

    response = await loaded_client.post("/favorites/3/toggle")

    assert response.status_code == 409
    payload = response.json()
    assert payload["kind"] == "favorite_limit_exceeded"
    assert payload["code"] == 1001
    assert "2 favorite cities" in payload["message"]

    count = await loaded_client.get("/favorites/count")
    assert count.json() == {"count": 2, "limit": 2}


@pytest.mark.asyncio
async def test_favorites_survive_a_refresh(loaded_client: AsyncClient) -> None:
    await loaded_client.put("/favorites/4")

    await loaded_client.post("/catalog/refresh")
    response = await loaded_client.get("/search", params={"q": "", "favorites_only": True})

    assert [item["id"] for item in response.json()["items"]] == [4]


@pytest.mark.asyncio
async def test_clear_catalog_resets_cache_state(loaded_client: AsyncClient) -> None:
    response = await loaded_client.delete("/catalog")
    info = await loaded_client.get("/catalog/info")

    assert response.status_code == 204
    assert info.json()["total_cities"] == 0
    assert info.headers["X-Cache-State"] == "unknown"


@pytest.mark.asyncio
async def test_quick_search_limits_results(loaded_client: AsyncClient) -> None:
    response = await loaded_client.get("/search/quick", params={"q": "a", "limit": 2})

    assert [item["name"] for item in response.json()] == ["Alabama", "Buenos Aires"]
