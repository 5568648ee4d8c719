"""Snapshots describing the state of the local catalog."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

DATA_VERSION = "0.0.1"


class CacheState(str, Enum):
    """Freshness of the local catalog relative to the refresh TTL."""

    UNKNOWN = "unknown"
    EMPTY = "empty"
    STALE = "stale"
    FRESH = "fresh"

    @property
    def needs_refresh(self) -> bool:
        return self is not CacheState.FRESH


class DataSourceInfo(BaseModel):
    """Point-in-time summary of the catalog; recomputed on every request."""

    total_cities: int = Field(ge=0)
    favorites_count: int = Field(ge=0)
    last_updated: datetime | None = None
    data_version: str = DATA_VERSION

    @property
    def is_empty(self) -> bool:
        return self.total_cities == 0


class RefreshReport(BaseModel):
    """Outcome of a completed bulk refresh."""

    total_records: int
    restored_favorites: int
    batches_committed: int
    completed_at: datetime
    duration_seconds: float


__all__ = ["CacheState", "DATA_VERSION", "DataSourceInfo", "RefreshReport"]
