from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from citycatalog.schemas.city import City
from citycatalog.schemas.pagination import MAX_PAGE_SIZE, SEARCH_PAGE_SIZE
from citycatalog.schemas.search import SearchRequest, SearchResultPage
from citycatalog.services.dependencies import get_search_service
from citycatalog.services.search_service import SearchService

router = APIRouter()


@router.get("", response_model=SearchResultPage)
async def search_cities(
    q: str = Query("", description="City or country prefix; accents and case are ignored"),
    page: int = Query(0, ge=0),
    page_size: int = Query(SEARCH_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    favorites_only: bool = Query(False),
    service: SearchService = Depends(get_search_service),
) -> SearchResultPage:
    """Name matches first, then country matches, one page at a time."""

    return await service.execute(
        SearchRequest(
            query=q,
            page=page,
            page_size=page_size,
            show_only_favorites=favorites_only,
        )
    )


@router.get("/quick", response_model=list[City])
async def quick_search(
    q: str = Query(..., description="City or country prefix"),
    limit: int | None = Query(None, ge=1, le=5000),
    service: SearchService = Depends(get_search_service),
) -> list[City]:
    """Unpaginated search bounded by a result budget."""

    return await service.quick_search(q, limit)
