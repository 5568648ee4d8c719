"""Domain models describing a catalog city."""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, computed_field

from citycatalog.utils.text import build_display_name, searchable_text


class Coordinate(BaseModel):
    """Geographic position of a city; immutable once created."""

    model_config = ConfigDict(frozen=True)

    lon: float
    lat: float


class City(BaseModel):
    """A single catalog record.

    The remote feed names the identifier ``_id``; both spellings are accepted
    on input and ``id`` is emitted on output. Unknown keys are ignored and a
    missing favorite flag defaults to ``False``. Two cities are equal when they
    share an ``id``.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int = Field(validation_alias=AliasChoices("id", "_id"))
    name: str
    country: str
    coord: Coordinate
    is_favorite: bool = Field(
        default=False,
        validation_alias=AliasChoices("is_favorite", "isFavorite"),
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def display_name(self) -> str:
        return build_display_name(self.name, self.country)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def searchable_text(self) -> str:
        return searchable_text(self.name, self.country)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, City):
            return self.id == other.id
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.id)


__all__ = ["City", "Coordinate"]
