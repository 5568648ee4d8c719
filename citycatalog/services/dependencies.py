"""Construction of the service graph and FastAPI dependency providers.

``build_services`` wires every collaborator explicitly from an
:class:`~citycatalog.settings.AppSettings` instance and a
:class:`~citycatalog.db.connection.CatalogDatabase` handle. The HTTP app and the
CLI both call it; the FastAPI providers below only read the container stored
on ``app.state`` during startup.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

import httpx
from fastapi import Request

from citycatalog.db.connection import CatalogDatabase
from citycatalog.db.repositories.city_store import CityStore
from citycatalog.db.repositories.settings_store import CatalogSettingsStore
from citycatalog.services.catalog_service import CatalogService
from citycatalog.services.favorites_service import FavoritesService
from citycatalog.services.refresh_pipeline import CatalogRefreshPipeline
from citycatalog.services.remote_fetcher import CatalogFetcher
from citycatalog.services.search_service import SearchService
from citycatalog.services.search_session import SearchSession
from citycatalog.settings import AppSettings


@dataclass
class CatalogServices:
    """Every long-lived collaborator of a running catalog."""

    settings: AppSettings
    database: CatalogDatabase
    store: CityStore
    settings_store: CatalogSettingsStore
    fetcher: CatalogFetcher
    pipeline: CatalogRefreshPipeline
    catalog: CatalogService
    search: SearchService
    favorites: FavoritesService

    def new_search_session(self) -> SearchSession:
        return SearchSession(
            self.search,
            page_size=self.settings.search_page_size,
            debounce_seconds=self.settings.search_debounce_seconds,
        )


def build_services(
    settings: AppSettings,
    database: CatalogDatabase | None = None,
    *,
    http_client: httpx.AsyncClient | None = None,
) -> CatalogServices:
    database = database or CatalogDatabase(settings.database_url)
    store = CityStore(database)
    settings_store = CatalogSettingsStore(database)
    fetcher = CatalogFetcher(
        settings.catalog_source_url,
        client=http_client,
        timeout=settings.http_timeout_seconds,
        max_attempts=settings.download_max_attempts,
        retry_delay=settings.download_retry_delay_seconds,
    )
    pipeline = CatalogRefreshPipeline(
        store,
        settings_store,
        batch_size=settings.refresh_batch_size,
        atomic=settings.refresh_atomic,
    )
    catalog = CatalogService(
        store,
        settings_store,
        fetcher,
        pipeline,
        ttl=timedelta(seconds=settings.cache_ttl_seconds),
        data_version=settings.data_version,
    )
    search = SearchService(
        store,
        min_query_length=settings.min_query_length,
        max_query_length=settings.max_query_length,
        max_pages=settings.max_search_pages,
        quick_search_limit=settings.quick_search_limit,
    )
    favorites = FavoritesService(
        store, search, max_favorites=settings.favorites_limit
    )
    return CatalogServices(
        settings=settings,
        database=database,
        store=store,
        settings_store=settings_store,
        fetcher=fetcher,
        pipeline=pipeline,
        catalog=catalog,
        search=search,
        favorites=favorites,
    )


def get_services(request: Request) -> CatalogServices:
    return request.app.state.services


def get_catalog_service(request: Request) -> CatalogService:
    return get_services(request).catalog


def get_search_service(request: Request) -> SearchService:
    return get_services(request).search


def get_favorites_service(request: Request) -> FavoritesService:
    return get_services(request).favorites


def get_app_settings(request: Request) -> AppSettings:
    return get_services(request).settings


__all__ = [
    "CatalogServices",
    "build_services",
    "get_app_settings",
    "get_catalog_service",
    "get_favorites_service",
    "get_search_service",
    "get_services",
]
