"""Tests for the pydantic domain models and the pagination contract."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from citycatalog.schemas.city import City
from citycatalog.schemas.pagination import (
    PaginatedResult,
    PaginationInfo,
    PaginationRequest,
)
from citycatalog.schemas.search import SearchFilter, SearchRequest
from tests.citycatalog.support.fakes import make_city


def test_city_accepts_the_remote_underscore_id() -> None:
    city = City.model_validate(
        {
            "_id": 707860,
            "name": "Hurzuf",
            "country": "UA",
            "coord": {"lon": 34.283333, "lat": 44.549999},
            "population": 1234,
        }
    )

    assert city.id == 707860
    assert city.is_favorite is False
    assert city.display_name == "Hurzuf, UA"
    assert city.searchable_text == "hurzuf ua"


def test_city_serializes_derived_fields() -> None:
    payload = make_city(1, "São Paulo", "BR").model_dump()

    assert payload["id"] == 1
    assert payload["display_name"] == "São Paulo, BR"
    assert payload["searchable_text"] == "sao paulo br"


def test_cities_compare_by_id() -> None:
    assert make_city(1, "A", "X") == make_city(1, "B", "Y", is_favorite=True)
    assert make_city(1, "A", "X") != make_city(2, "A", "X")
    assert len({make_city(1, "A", "X"), make_city(1, "A", "X")}) == 1


def test_coordinates_are_immutable() -> None:
    city = make_city(1, "A", "X")
    with pytest.raises(ValidationError):
        city.coord.lat = 10.0  # type: ignore[misc]


def test_pagination_request_offsets() -> None:
    request = PaginationRequest(page=3, page_size=50)

    assert request.offset == 150
    assert request.next_page().page == 4


@pytest.mark.parametrize("page_size", [0, 201])
def test_pagination_request_rejects_out_of_range_page_sizes(page_size: int) -> None:
    with pytest.raises(ValidationError):
        PaginationRequest(page=0, page_size=page_size)


@pytest.mark.parametrize(
    ("page", "total", "expected_pages", "has_next", "has_previous"),
    [
        (0, 0, 0, False, False),
        (0, 50, 1, False, False),
        (0, 51, 2, True, False),
        (1, 51, 2, False, True),
        (1, 150, 3, True, True),
    ],
)
def test_pagination_info_flags(
    page: int, total: int, expected_pages: int, has_next: bool, has_previous: bool
) -> None:
    info = PaginationInfo(current_page=page, page_size=50, total_items=total)

    assert info.total_pages == expected_pages
    assert info.has_next_page is has_next
    assert info.has_previous_page is has_previous


def test_paginated_result_mirrors_next_page_flag() -> None:
    result = PaginatedResult[int].build(
        [1, 2], PaginationRequest(page=0, page_size=2), total_items=3
    )

    assert result.has_more_pages is True
    assert not result.is_empty


def test_search_filter_trims_and_reports_emptiness() -> None:
    assert SearchFilter(query="  ").is_empty
    assert not SearchFilter(query="", show_only_favorites=True).is_empty
    assert SearchFilter(query="  São ").folded_query == "sao"
    assert SearchFilter(query="").is_valid


def test_search_request_next_page_keeps_criteria() -> None:
    request = SearchRequest(query="ar", page=2, page_size=20, show_only_favorites=True)

    following = request.next_page()

    assert following.page == 3
    assert following.query == "ar"
    assert following.show_only_favorites is True
