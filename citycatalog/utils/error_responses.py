"""Helper functions for constructing structured API error responses.

Every payload embeds the request ID and a timezone-aware timestamp so that
responses share one shape regardless of where the error originated. Catalog
errors additionally carry their ``kind`` and ``code`` and keep the user-facing
message apart from the technical one.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime

from fastapi import status

from citycatalog.errors import (
    CatalogError,
    DomainValidationError,
    ErrorCategory,
    NetworkError,
    OrchestrationError,
    OrchestrationErrorKind,
    StorageFault,
    StorageFaultKind,
    ValidationErrorKind,
)
from citycatalog.schemas.error import (
    ErrorResponse,
    ErrorType,
    ValidationErrorDetail,
    ValidationErrorResponse,
)
from citycatalog.utils.request_context import get_request_id

__all__ = [
    "build_catalog_error_response",
    "build_error_response",
    "build_validation_error_response",
    "status_for_catalog_error",
]

_CONFLICT_KINDS = frozenset(
    {
        ValidationErrorKind.FAVORITE_LIMIT_EXCEEDED,
        ValidationErrorKind.ALREADY_FAVORITE,
        ValidationErrorKind.NOT_FAVORITE,
    }
)
_UNAVAILABLE_KINDS = frozenset({OrchestrationErrorKind.DOWNLOAD_FAILED})


def _current_timestamp() -> datetime:
    """Return a timezone-aware timestamp for error payloads."""

    return datetime.now(UTC)


def _root_storage_kind(exc: CatalogError) -> StorageFaultKind | None:
    cause = exc
    while cause is not None:
        if isinstance(cause, StorageFault):
            return cause.kind
        cause = cause.__cause__  # type: ignore[assignment]
    return None


def status_for_catalog_error(exc: CatalogError) -> tuple[int, ErrorType]:
    """Map a catalog error onto an HTTP status and response category."""

    if isinstance(exc, DomainValidationError):
        if exc.kind in _CONFLICT_KINDS:
            return status.HTTP_409_CONFLICT, ErrorType.CONFLICT
        return status.HTTP_422_UNPROCESSABLE_ENTITY, ErrorType.VALIDATION_ERROR
    if _root_storage_kind(exc) is StorageFaultKind.INVALID_ENTITY:
        return status.HTTP_404_NOT_FOUND, ErrorType.NOT_FOUND
    if isinstance(exc, NetworkError) or (
        isinstance(exc, OrchestrationError) and exc.kind in _UNAVAILABLE_KINDS
    ):
        return status.HTTP_503_SERVICE_UNAVAILABLE, ErrorType.NETWORK_ERROR
    if exc.category is ErrorCategory.STORAGE:
        return status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorType.DATABASE_ERROR
    return status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorType.SERVICE_ERROR


def build_validation_error_response(
    *,
    errors: Sequence[ValidationErrorDetail],
    message: str,
    detail: str,
    status_code: int,
    path: str,
    error_type: ErrorType = ErrorType.VALIDATION_ERROR,
    request_id: str | None = None,
) -> ValidationErrorResponse:
    """Construct a ``ValidationErrorResponse`` enriched with metadata."""

    resolved_request_id = request_id or get_request_id()
    return ValidationErrorResponse(
        error_type=error_type,
        message=message,
        detail=detail,
        status_code=status_code,
        timestamp=_current_timestamp(),
        request_id=resolved_request_id,
        path=path,
        errors=list(errors),
    )


def build_error_response(
    *,
    error_type: ErrorType,
    message: str,
    detail: str,
    status_code: int,
    path: str,
    kind: str | None = None,
    code: int | None = None,
    retry_after: int | None = None,
    request_id: str | None = None,
) -> ErrorResponse:
    """Construct a generic ``ErrorResponse`` enriched with metadata."""

    resolved_request_id = request_id or get_request_id()
    return ErrorResponse(
        error_type=error_type,
        kind=kind,
        code=code,
        message=message,
        detail=detail,
        status_code=status_code,
        timestamp=_current_timestamp(),
        request_id=resolved_request_id,
        path=path,
        retry_after=retry_after,
    )


def build_catalog_error_response(exc: CatalogError, *, path: str) -> ErrorResponse:
    """Render a :class:`CatalogError` with both of its messages."""

    status_code, error_type = status_for_catalog_error(exc)
    retry_after = 5 if status_code == status.HTTP_503_SERVICE_UNAVAILABLE else None
    return build_error_response(
        error_type=error_type,
        kind=exc.kind.value,
        code=exc.code,
        message=exc.user_message,
        detail=exc.technical_message,
        status_code=status_code,
        path=path,
        retry_after=retry_after,
    )
