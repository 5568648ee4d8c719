"""SQLAlchemy ORM model for catalog cities.

Besides the fields received from the remote feed, each row stores the values
the query engine filters and sorts on (folded search text, folded country and
the case-folded display name). They are computed once at write time so reads
never normalize stored data.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, Float, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from citycatalog.schemas.city import City, Coordinate
from citycatalog.utils.text import (
    build_display_name,
    display_sort_key,
    fold,
    searchable_text,
)

from . import Base, utcnow


def city_columns(city: City) -> dict[str, Any]:
    """Return the column values (derived ones included) describing ``city``."""

    display_name = build_display_name(city.name, city.country)
    return {
        "id": city.id,
        "name": city.name,
        "country": city.country,
        "longitude": city.coord.lon,
        "latitude": city.coord.lat,
        "is_favorite": city.is_favorite,
        "searchable_text": searchable_text(city.name, city.country),
        "normalized_country": fold(city.country),
        "display_name": display_name,
        "display_key": display_sort_key(display_name),
    }


class CityRecord(Base):
    __tablename__ = "cities"
    __table_args__ = (
        Index("ix_cities_display_key_id", "display_key", "id"),
        Index("ix_cities_favorite_display_key", "is_favorite", "display_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    country: Mapped[str] = mapped_column(String, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    is_favorite: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default="0",
        index=True,
    )
    searchable_text: Mapped[str] = mapped_column(
        String,
        nullable=False,
        index=True,
        doc="Folded ``name country`` string matched against query prefixes.",
    )
    normalized_country: Mapped[str] = mapped_column(
        String,
        nullable=False,
        index=True,
        doc="Folded country used by the country-match search pass.",
    )
    display_name: Mapped[str] = mapped_column(String, nullable=False)
    display_key: Mapped[str] = mapped_column(
        String,
        nullable=False,
        doc="Case-folded display name; primary ordering for listings and search.",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    @classmethod
    def from_city(cls, city: City) -> CityRecord:
        return cls(**city_columns(city))

    def apply(self, city: City) -> None:
        """Copy ``city`` onto the row, recomputing the derived columns."""

        for column, value in city_columns(city).items():
            setattr(self, column, value)

    def to_city(self) -> City:
        return City(
            id=self.id,
            name=self.name,
            country=self.country,
            coord=Coordinate(lon=self.longitude, lat=self.latitude),
            is_favorite=self.is_favorite,
        )
