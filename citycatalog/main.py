import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from citycatalog import __version__
from citycatalog.api import catalog, cities, favorites, search
from citycatalog.errors import CatalogError
from citycatalog.schemas.error import ErrorType, ValidationErrorDetail
from citycatalog.services.dependencies import CatalogServices, build_services
from citycatalog.settings import AppSettings, get_settings
from citycatalog.utils.error_responses import (
    build_catalog_error_response,
    build_error_response,
    build_validation_error_response,
)
from citycatalog.utils.request_context import (
    REQUEST_ID_HEADER,
    get_request_id,
    resolve_request_id,
    set_request_id,
)
from citycatalog.warmup import warmup_all

logger = logging.getLogger(__name__)


def configure_logging(settings: AppSettings) -> None:
    logging.basicConfig(
        level=settings.log_level_numeric,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _validate_environment(settings: AppSettings) -> None:
    """Log warnings for optional or suspicious configuration."""
    warnings = settings.optional_config_warnings()
    if warnings:
        logger.warning("=" * 60)
        logger.warning("Environment Configuration Warnings:")
        for warning in warnings:
            logger.warning(f"  • {warning}")
        logger.warning("=" * 60)


def _sanitize_database_url(url: str) -> str:
    """Hide the password of a database URL before logging it."""
    if "://" not in url:
        return url

    scheme, rest = url.split("://", 1)
    if "@" in rest:
        auth, host_db = rest.split("@", 1)
        if ":" in auth:
            user, _ = auth.split(":", 1)
            return f"{scheme}://{user}:***@{host_db}"
        return f"{scheme}://{auth}@{host_db}"
    return url


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    services: CatalogServices = app.state.services
    settings = services.settings
    _validate_environment(settings)

    logger.info("=" * 60)
    logger.info("City Catalog API - Startup")
    logger.info("=" * 60)
    logger.info(f"Database URL: {_sanitize_database_url(settings.database_url)}")
    logger.info(f"Catalog source: {settings.catalog_source_url}")
    logger.info(f"Cache TTL: {settings.cache_ttl_hours:g}h")
    logger.info("=" * 60)

    await warmup_all(
        services.database,
        services.catalog,
        load_catalog=settings.catalog_load_on_startup,
    )

    yield

    logger.info("Shutting down City Catalog API")
    await services.database.dispose()


def create_app(
    settings: AppSettings | None = None,
    services: CatalogServices | None = None,
) -> FastAPI:
    """Build the FastAPI application around an explicit service container."""

    if services is None:
        services = build_services(settings or get_settings())

    app = FastAPI(
        title="City Catalog API",
        version=__version__,
        description="Local-first city catalog with prefix search and favorites.",
        lifespan=lifespan,
        redirect_slashes=False,
    )
    app.state.services = services

    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        """Attach a request ID to the context and the response headers."""
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        set_request_id(request_id)
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    @app.exception_handler(CatalogError)
    async def catalog_exception_handler(request: Request, exc: CatalogError):
        """Render typed catalog errors with their user and technical messages."""
        error_response = build_catalog_error_response(exc, path=str(request.url.path))
        log = logger.warning if error_response.status_code < 500 else logger.error
        log(
            "%s for request %s to %s: %s",
            type(exc).__name__,
            get_request_id(),
            request.url.path,
            exc.technical_message,
        )
        return JSONResponse(
            status_code=error_response.status_code,
            content=error_response.model_dump(mode="json"),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        """Handle FastAPI request validation errors."""
        errors = [
            ValidationErrorDetail(
                field=".".join(str(loc) for loc in error["loc"]),
                message=error["msg"],
                value=error.get("input"),
            )
            for error in exc.errors()
        ]

        logger.warning(
            "Validation error for request %s to %s: %s errors",
            get_request_id(),
            request.url.path,
            len(errors),
        )

        error_response = build_validation_error_response(
            message="Request validation failed",
            detail=f"{len(errors)} validation error(s)",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            path=str(request.url.path),
            errors=errors,
        )

        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=error_response.model_dump(mode="json"),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """Handle all other unhandled exceptions."""
        logger.exception(
            "Unhandled exception for request %s to %s: %s",
            get_request_id(),
            request.url.path,
            type(exc).__name__,
        )

        error_response = build_error_response(
            error_type=ErrorType.INTERNAL_ERROR,
            message="Internal server error",
            detail=f"An unexpected error occurred: {type(exc).__name__}",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            path=str(request.url.path),
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_response.model_dump(mode="json"),
        )

    @app.get("/health", tags=["system"])
    async def healthcheck() -> dict[str, str]:
        """Simple health endpoint for readiness checks."""
        database = "ready" if services.database.is_initialized else "unavailable"
        return {"status": "ok", "database": database}

    app.include_router(catalog.router, prefix="/catalog", tags=["catalog"])
    app.include_router(cities.router, prefix="/cities", tags=["cities"])
    app.include_router(search.router, prefix="/search", tags=["search"])
    app.include_router(favorites.router, prefix="/favorites", tags=["favorites"])
    return app


configure_logging(get_settings())
app = create_app()
