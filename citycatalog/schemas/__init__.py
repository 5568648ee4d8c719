"""Pydantic schemas shared by services and the HTTP surface."""

from citycatalog.schemas.catalog import (  # noqa: F401
    CacheState,
    DataSourceInfo,
    RefreshReport,
)
from citycatalog.schemas.city import City, Coordinate  # noqa: F401
from citycatalog.schemas.pagination import (  # noqa: F401
    PaginatedResult,
    PaginationInfo,
    PaginationRequest,
)
from citycatalog.schemas.search import (  # noqa: F401
    SearchFilter,
    SearchRequest,
    SearchResultPage,
)
