from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


def utcnow() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(timezone.utc)


# Imported late to avoid circular dependency with the model modules.
from .city import CityRecord  # noqa: E402
from .settings import CatalogSetting  # noqa: E402

__all__ = ["Base", "CatalogSetting", "CityRecord", "utcnow"]
