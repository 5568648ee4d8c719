from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from citycatalog.schemas.city import City
from citycatalog.schemas.pagination import (
    MAX_PAGE_SIZE,
    PaginatedResult,
    PaginationRequest,
)
from citycatalog.services.catalog_service import CatalogService
from citycatalog.services.dependencies import get_app_settings, get_catalog_service
from citycatalog.settings import AppSettings

router = APIRouter()


@router.get("", response_model=PaginatedResult[City])
async def list_cities(
    page: int = Query(0, ge=0),
    page_size: int | None = Query(None, ge=1, le=MAX_PAGE_SIZE),
    service: CatalogService = Depends(get_catalog_service),
    settings: AppSettings = Depends(get_app_settings),
) -> PaginatedResult[City]:
    """Page through the whole catalog ordered by display name.

    Without ``page_size`` the configured ``DEFAULT_PAGE_SIZE`` applies.
    """

    return await service.get_cities(
        PaginationRequest(
            page=page, page_size=page_size or settings.default_page_size
        )
    )


@router.get("/{city_id}", response_model=City)
async def get_city(
    city_id: int,
    service: CatalogService = Depends(get_catalog_service),
) -> City:
    city = await service.get_city(city_id)
    if city is None:
        raise HTTPException(status_code=404, detail="City not found")
    return city
