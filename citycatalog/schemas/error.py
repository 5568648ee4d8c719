"""Error response schemas for consistent error handling."""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ErrorType(str, Enum):
    """Types of errors that can occur."""

    VALIDATION_ERROR = "validation_error"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    DATABASE_ERROR = "database_error"
    NETWORK_ERROR = "network_error"
    SERVICE_ERROR = "service_error"
    INTERNAL_ERROR = "internal_error"


class ErrorResponse(BaseModel):
    """Standardized error response model."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error_type": "conflict",
                "kind": "favorite_limit_exceeded",
                "code": 1001,
                "message": "You can only have up to 100 favorite cities. Remove some to add more.",
                "detail": "Favorite limit of 100 reached",
                "status_code": 409,
                "timestamp": "2025-11-03T10:30:00Z",
                "request_id": "2b1f6c4e-5d1e-4d0c-9a51-0f1c3a2b7e10",
                "path": "/favorites/707860",
            }
        }
    )

    error_type: ErrorType = Field(..., description="Category of error")
    kind: str | None = Field(None, description="Specific error kind within the category")
    code: int | None = Field(None, description="Stable numeric error code")
    message: str = Field(..., description="Human-readable error message")
    detail: str | None = Field(None, description="Technical details for logs and debugging")
    status_code: int = Field(..., description="HTTP status code")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC), description="When error occurred"
    )
    request_id: str | None = Field(None, description="Unique request identifier for tracking")
    path: str | None = Field(None, description="Request path that caused the error")
    retry_after: int | None = Field(
        None, description="Seconds to wait before retrying (for transient failures)"
    )


class ValidationErrorDetail(BaseModel):
    """Details for validation errors."""

    field: str = Field(..., description="Field that failed validation")
    message: str = Field(..., description="Validation error message")
    value: Any = Field(None, description="Value that failed validation")


class ValidationErrorResponse(ErrorResponse):
    """Extended error response for validation errors."""

    error_type: ErrorType = Field(default=ErrorType.VALIDATION_ERROR)
    errors: list[ValidationErrorDetail] = Field(
        default_factory=list, description="List of validation errors"
    )
