"""FastAPI router exposing the favorites side of the catalog."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from citycatalog.schemas.city import City
from citycatalog.schemas.pagination import MAX_PAGE_SIZE
from citycatalog.schemas.search import SearchResultPage
from citycatalog.services.catalog_service import CatalogService
from citycatalog.services.dependencies import (
    get_catalog_service,
    get_favorites_service,
)
from citycatalog.services.favorites_service import (
    FAVORITES_SEARCH_PAGE_SIZE,
    FavoritesService,
)

router = APIRouter()


class FavoriteStatus(BaseModel):
    city_id: int
    is_favorite: bool


class FavoritesCount(BaseModel):
    count: int
    limit: int


async def _require_city(city_id: int, catalog: CatalogService) -> City:
    city = await catalog.get_city(city_id)
    if city is None:
        raise HTTPException(status_code=404, detail="City not found")
    return city


@router.get("", response_model=SearchResultPage)
async def list_favorites(
    q: str = Query("", description="Optional prefix filter"),
    page: int = Query(0, ge=0),
    page_size: int = Query(FAVORITES_SEARCH_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    service: FavoritesService = Depends(get_favorites_service),
) -> SearchResultPage:
    """Favorites ordered by display name, optionally filtered by prefix."""

    return await service.search_favorites(q, page=page, page_size=page_size)


@router.get("/count", response_model=FavoritesCount)
async def favorites_count(
    service: FavoritesService = Depends(get_favorites_service),
) -> FavoritesCount:
    count = await service.get_favorites_count()
    return FavoritesCount(count=count, limit=service.max_favorites)


@router.get("/{city_id}", response_model=FavoriteStatus)
async def favorite_status(
    city_id: int,
    service: FavoritesService = Depends(get_favorites_service),
    catalog: CatalogService = Depends(get_catalog_service),
) -> FavoriteStatus:
    await _require_city(city_id, catalog)
    return FavoriteStatus(city_id=city_id, is_favorite=await service.is_favorite(city_id))


@router.post("/{city_id}/toggle", response_model=City)
async def toggle_favorite(
    city_id: int,
    service: FavoritesService = Depends(get_favorites_service),
    catalog: CatalogService = Depends(get_catalog_service),
) -> City:
    city = await _require_city(city_id, catalog)
    return await service.toggle_favorite(city)


@router.put("/{city_id}", response_model=City)
async def add_favorite(
    city_id: int,
    service: FavoritesService = Depends(get_favorites_service),
    catalog: CatalogService = Depends(get_catalog_service),
) -> City:
    city = await _require_city(city_id, catalog)
    return await service.add_to_favorites(city)


@router.delete("/{city_id}", response_model=City)
async def remove_favorite(
    city_id: int,
    service: FavoritesService = Depends(get_favorites_service),
    catalog: CatalogService = Depends(get_catalog_service),
) -> City:
    city = await _require_city(city_id, catalog)
    return await service.remove_from_favorites(city)
