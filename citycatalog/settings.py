"""Centralized configuration management for the city catalog."""

from __future__ import annotations

import logging
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from citycatalog.schemas.catalog import DATA_VERSION
from citycatalog.schemas.pagination import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    SEARCH_PAGE_SIZE,
)
from citycatalog.schemas.search import (
    DEFAULT_RESULT_LIMIT,
    MAX_QUERY_LENGTH,
    MIN_QUERY_LENGTH,
)

# Load environment variables defined in a local .env file before instantiating the
# settings singleton so every consumer of :mod:`citycatalog.settings` sees them.
load_dotenv()

# -- Application-wide constants -------------------------------------------------

DEFAULT_SQLITE_DATABASE_URL = "sqlite+aiosqlite:///./data/catalog.db"
DEFAULT_CATALOG_SOURCE_URL = (
    "https://gist.githubusercontent.com/hernan-uala/dce8843a8edbe0b0018b32e137bc2b3a"
    "/raw/0996accf70cb0ca0e16f9a99e0ee185fafca7af1/cities.json"
)
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_CACHE_TTL_HOURS = 24.0
DEFAULT_REFRESH_BATCH_SIZE = 1000
DEFAULT_FAVORITES_LIMIT = 100
DEFAULT_MAX_SEARCH_PAGES = 15


class AppSettings(BaseSettings):
    """Typed configuration surface built on top of ``pydantic-settings``.

    Every tunable of the catalog (storage location, remote source, retry
    policy, cache TTL, paging and search limits) is read from the environment
    or a local ``.env`` file. Services receive the values they need through
    their constructors, so tests can build an ``AppSettings`` with overrides
    instead of touching the process environment.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    database_url: str = Field(
        default=DEFAULT_SQLITE_DATABASE_URL,
        alias="DATABASE_URL",
        description="SQLAlchemy async URL of the local catalog database.",
    )
    catalog_source_url: str = Field(
        default=DEFAULT_CATALOG_SOURCE_URL,
        alias="CATALOG_SOURCE_URL",
        description="URL of the JSON array holding the full remote catalog.",
    )
    http_timeout_seconds: float = Field(
        default=30.0,
        alias="HTTP_TIMEOUT_SECONDS",
        gt=0,
        description="Per-request timeout applied to the catalog download.",
    )
    download_max_attempts: int = Field(
        default=3,
        alias="DOWNLOAD_MAX_ATTEMPTS",
        ge=1,
        description="Total attempts made for a catalog download, first try included.",
    )
    download_retry_delay_seconds: float = Field(
        default=1.0,
        alias="DOWNLOAD_RETRY_DELAY_SECONDS",
        ge=0,
        description="Fixed pause between download attempts.",
    )
    cache_ttl_hours: float = Field(
        default=DEFAULT_CACHE_TTL_HOURS,
        alias="CACHE_TTL_HOURS",
        gt=0,
        description="Age after which the local catalog is considered stale.",
    )
    refresh_batch_size: int = Field(
        default=DEFAULT_REFRESH_BATCH_SIZE,
        alias="REFRESH_BATCH_SIZE",
        ge=1,
        description="Number of records inserted per committed batch during a refresh.",
    )
    refresh_atomic: bool = Field(
        default=False,
        alias="REFRESH_ATOMIC",
        description=(
            "Replace the catalog inside a single transaction instead of committing"
            " each batch independently."
        ),
    )
    favorites_limit: int = Field(
        default=DEFAULT_FAVORITES_LIMIT,
        alias="FAVORITES_LIMIT",
        ge=1,
        description="Maximum number of cities that can be marked as favorite.",
    )
    default_page_size: int = Field(
        default=DEFAULT_PAGE_SIZE,
        alias="DEFAULT_PAGE_SIZE",
        ge=1,
        le=MAX_PAGE_SIZE,
    )
    search_page_size: int = Field(
        default=SEARCH_PAGE_SIZE,
        alias="SEARCH_PAGE_SIZE",
        ge=1,
        le=MAX_PAGE_SIZE,
    )
    max_search_pages: int = Field(
        default=DEFAULT_MAX_SEARCH_PAGES,
        alias="MAX_SEARCH_PAGES",
        ge=1,
        description="Ceiling on the number of pages an infinite-scroll search loads.",
    )
    search_debounce_seconds: float = Field(
        default=0.3,
        alias="SEARCH_DEBOUNCE_SECONDS",
        ge=0,
    )
    min_query_length: int = Field(
        default=MIN_QUERY_LENGTH,
        alias="MIN_QUERY_LENGTH",
        ge=1,
    )
    max_query_length: int = Field(
        default=MAX_QUERY_LENGTH,
        alias="MAX_QUERY_LENGTH",
        ge=1,
    )
    quick_search_limit: int = Field(
        default=DEFAULT_RESULT_LIMIT,
        alias="QUICK_SEARCH_LIMIT",
        ge=1,
        description="Result budget of the unpaginated two-pass prefix search.",
    )
    catalog_load_on_startup: bool = Field(
        default=True,
        alias="CATALOG_LOAD_ON_STARTUP",
        description="Run the cache policy (and refresh if needed) while the API starts.",
    )
    data_version: str = Field(
        default=DATA_VERSION,
        alias="CATALOG_DATA_VERSION",
    )
    log_level: str = Field(
        default=DEFAULT_LOG_LEVEL,
        alias="LOG_LEVEL",
        description="Root logging level (e.g. INFO, DEBUG, WARNING).",
    )

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def cache_ttl_seconds(self) -> float:
        return self.cache_ttl_hours * 3600

    @property
    def log_level_numeric(self) -> int:
        """Translate ``log_level`` into the numeric constant expected by logging."""

        candidate = logging.getLevelName(self.log_level.upper())
        if isinstance(candidate, int):
            return candidate
        return logging.INFO

    def optional_config_warnings(self) -> list[str]:
        """Return human-readable warnings for suspicious configuration."""

        warnings: list[str] = []

        if self.database_url == DEFAULT_SQLITE_DATABASE_URL:
            warnings.append(
                "DATABASE_URL is not set - using ./data/catalog.db relative to the"
                " working directory"
            )

        if self.min_query_length > self.max_query_length:
            warnings.append(
                "MIN_QUERY_LENGTH exceeds MAX_QUERY_LENGTH - every non-empty search"
                " will be rejected"
            )

        if self.refresh_atomic:
            warnings.append(
                "REFRESH_ATOMIC is enabled - the whole catalog replace runs in one"
                " transaction and holds the database write lock for its duration"
            )

        return warnings


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Return a cached instance of :class:`AppSettings`."""

    return AppSettings()


__all__ = [
    "AppSettings",
    "DEFAULT_CATALOG_SOURCE_URL",
    "DEFAULT_LOG_LEVEL",
    "DEFAULT_SQLITE_DATABASE_URL",
    "get_settings",
]
