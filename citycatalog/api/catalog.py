"""Load-side endpoints: cache policy, forced refresh and catalog summary."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from citycatalog.schemas.catalog import CacheState, DataSourceInfo
from citycatalog.services.catalog_service import CatalogService
from citycatalog.services.dependencies import get_catalog_service

router = APIRouter()


@router.post("/load", response_model=DataSourceInfo)
async def load_catalog(
    service: CatalogService = Depends(get_catalog_service),
) -> DataSourceInfo:
    """Serve the cached catalog, refreshing it first when stale or missing."""

    return await service.execute()


@router.post("/refresh", response_model=DataSourceInfo)
async def refresh_catalog(
    service: CatalogService = Depends(get_catalog_service),
) -> DataSourceInfo:
    """Download and store the remote catalog regardless of cache age."""

    return await service.force_refresh()


@router.get("/info", response_model=DataSourceInfo)
async def catalog_info(
    response: Response,
    service: CatalogService = Depends(get_catalog_service),
) -> DataSourceInfo:
    info = await service.get_data_info()
    state: CacheState = service.cache_state(info)
    response.headers["X-Cache-State"] = state.value
    return info


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def clear_catalog(
    service: CatalogService = Depends(get_catalog_service),
) -> Response:
    await service.clear_catalog()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
