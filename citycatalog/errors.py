"""Typed error taxonomy shared by every catalog layer.

Each error is a closed set of ``kind`` values carried by one of four exception
families. Every instance exposes a stable numeric ``code``, a
``technical_message`` meant for logs and a ``user_message`` meant for people.
Callers branch on ``kind`` rather than on message text.

The families map onto the layers that raise them:

* :class:`NetworkError` - remote fetch failures (raised by the fetcher).
* :class:`StorageFault` - persistence failures (raised by the stores).
* :class:`DomainValidationError` - business rule violations detected before I/O.
* :class:`OrchestrationError` - service-level failures wrapping the above.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar

__all__ = [
    "CatalogError",
    "DomainValidationError",
    "ErrorCategory",
    "NetworkError",
    "NetworkErrorKind",
    "OrchestrationError",
    "OrchestrationErrorKind",
    "StorageFault",
    "StorageFaultKind",
    "ValidationErrorKind",
]


class ErrorCategory(str, Enum):
    """Top-level family an error belongs to."""

    NETWORK = "network"
    STORAGE = "storage"
    VALIDATION = "validation"
    ORCHESTRATION = "orchestration"


class NetworkErrorKind(str, Enum):
    NO_CONNECTION = "no_connection"
    TIMEOUT = "timeout"
    HOST_UNREACHABLE = "host_unreachable"
    CLIENT_ERROR = "client_error"
    SERVER_ERROR = "server_error"
    UNEXPECTED_STATUS = "unexpected_status"
    DECODING_FAILED = "decoding_failed"


class StorageFaultKind(str, Enum):
    SAVE = "save"
    FETCH = "fetch"
    INVALID_ENTITY = "invalid_entity"
    INITIALIZATION = "initialization"


class ValidationErrorKind(str, Enum):
    EMPTY_QUERY = "empty_query"
    QUERY_TOO_SHORT = "query_too_short"
    QUERY_TOO_LONG = "query_too_long"
    INVALID_QUERY = "invalid_query"
    FAVORITE_LIMIT_EXCEEDED = "favorite_limit_exceeded"
    ALREADY_FAVORITE = "already_favorite"
    NOT_FAVORITE = "not_favorite"


class OrchestrationErrorKind(str, Enum):
    DOWNLOAD_FAILED = "download_failed"
    DATA_INFO_UNAVAILABLE = "data_info_unavailable"
    SEARCH_FAILED = "search_failed"
    FAVORITES_OPERATION_FAILED = "favorites_operation_failed"
    CITY_LOOKUP_FAILED = "city_lookup_failed"


@dataclass(frozen=True)
class _ErrorText:
    """Message templates for one error kind.

    Templates are formatted with the keyword context supplied when the error is
    raised; missing keys render as ``"unknown"``.
    """

    code: int
    technical: str
    user: str


class _Context(dict):
    def __missing__(self, key: str) -> str:
        return "unknown"


class CatalogError(Exception):
    """Base class for every error surfaced by the catalog."""

    category: ClassVar[ErrorCategory]
    _texts: ClassVar[dict[Enum, _ErrorText]] = {}

    def __init__(self, kind: Enum, /, **context: Any) -> None:
        text = self._texts[kind]
        values = _Context(context)
        self.kind = kind
        self.code = text.code
        self.context = dict(context)
        self.technical_message = text.technical.format_map(values)
        self.user_message = text.user.format_map(values)
        super().__init__(self.technical_message)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(kind={self.kind.value!r}, code={self.code}, "
            f"technical_message={self.technical_message!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-friendly representation used by logs and the API."""

        return {
            "category": self.category.value,
            "kind": self.kind.value,
            "code": self.code,
            "technical_message": self.technical_message,
            "user_message": self.user_message,
        }


class NetworkError(CatalogError):
    """Failure while downloading the remote catalog."""

    category = ErrorCategory.NETWORK
    kind: NetworkErrorKind
    _texts = {
        NetworkErrorKind.NO_CONNECTION: _ErrorText(
            3001,
            "Connection failed: {detail}",
            "No internet connection. Please check your network settings.",
        ),
        NetworkErrorKind.TIMEOUT: _ErrorText(
            3002,
            "Request timed out: {detail}",
            "The request timed out. Please try again.",
        ),
        NetworkErrorKind.HOST_UNREACHABLE: _ErrorText(
            3003,
            "Host unreachable: {detail}",
            "Unable to reach the server. Please try again later.",
        ),
        NetworkErrorKind.CLIENT_ERROR: _ErrorText(
            3004,
            "Client error (HTTP {status_code})",
            "The request could not be completed. Please try again later.",
        ),
        NetworkErrorKind.SERVER_ERROR: _ErrorText(
            3005,
            "Server error (HTTP {status_code})",
            "Server error. Please try again later.",
        ),
        NetworkErrorKind.UNEXPECTED_STATUS: _ErrorText(
            3006,
            "Unexpected response status (HTTP {status_code})",
            "Received an unexpected response from the server.",
        ),
        NetworkErrorKind.DECODING_FAILED: _ErrorText(
            3007,
            "Failed to decode catalog payload: {detail}",
            "Unable to process the server response.",
        ),
    }

    _RETRYABLE = frozenset(
        {
            NetworkErrorKind.NO_CONNECTION,
            NetworkErrorKind.TIMEOUT,
            NetworkErrorKind.HOST_UNREACHABLE,
            NetworkErrorKind.SERVER_ERROR,
            NetworkErrorKind.UNEXPECTED_STATUS,
        }
    )

    @property
    def status_code(self) -> int | None:
        return self.context.get("status_code")

    @property
    def is_retryable(self) -> bool:
        """Client errors and undecodable payloads are terminal."""

        return self.kind in self._RETRYABLE

    @classmethod
    def from_status(cls, status_code: int) -> NetworkError:
        """Map a non-success HTTP status onto the matching kind."""

        if 400 <= status_code < 500:
            kind = NetworkErrorKind.CLIENT_ERROR
        elif 500 <= status_code < 600:
            kind = NetworkErrorKind.SERVER_ERROR
        else:
            kind = NetworkErrorKind.UNEXPECTED_STATUS
        return cls(kind, status_code=status_code)


class StorageFault(CatalogError):
    """Failure raised by the persistence layer."""

    category = ErrorCategory.STORAGE
    kind: StorageFaultKind
    _texts = {
        StorageFaultKind.SAVE: _ErrorText(
            2001,
            "Failed to save data: {detail}",
            "Unable to save data. Please try again.",
        ),
        StorageFaultKind.FETCH: _ErrorText(
            2002,
            "Failed to fetch data: {detail}",
            "Unable to load data. Please try again.",
        ),
        StorageFaultKind.INVALID_ENTITY: _ErrorText(
            2003,
            "Invalid entity: {detail}",
            "The requested city could not be found.",
        ),
        StorageFaultKind.INITIALIZATION: _ErrorText(
            2004,
            "Failed to initialize storage: {detail}",
            "Local storage is unavailable. Please restart the application.",
        ),
    }


class DomainValidationError(CatalogError):
    """Business rule violation detected before any I/O."""

    category = ErrorCategory.VALIDATION
    kind: ValidationErrorKind
    _texts = {
        ValidationErrorKind.EMPTY_QUERY: _ErrorText(
            4001,
            "Search query is empty",
            "Please enter a search term.",
        ),
        ValidationErrorKind.QUERY_TOO_SHORT: _ErrorText(
            4002,
            "Search query shorter than {minimum} characters",
            "Search term must be at least {minimum} characters.",
        ),
        ValidationErrorKind.QUERY_TOO_LONG: _ErrorText(
            4003,
            "Search query longer than {maximum} characters",
            "Search term is too long. Maximum {maximum} characters.",
        ),
        ValidationErrorKind.INVALID_QUERY: _ErrorText(
            4004,
            "Invalid search query: {detail}",
            "Invalid search query. Please try a different search.",
        ),
        ValidationErrorKind.FAVORITE_LIMIT_EXCEEDED: _ErrorText(
            1001,
            "Favorite limit of {limit} reached",
            "You can only have up to {limit} favorite cities. Remove some to add more.",
        ),
        ValidationErrorKind.ALREADY_FAVORITE: _ErrorText(
            1002,
            "City {city_id} is already a favorite",
            "This city is already in your favorites.",
        ),
        ValidationErrorKind.NOT_FAVORITE: _ErrorText(
            1003,
            "City {city_id} is not a favorite",
            "This city is not in your favorites.",
        ),
    }


class OrchestrationError(CatalogError):
    """Service-level failure, usually wrapping a lower-level cause."""

    category = ErrorCategory.ORCHESTRATION
    kind: OrchestrationErrorKind
    _texts = {
        OrchestrationErrorKind.DOWNLOAD_FAILED: _ErrorText(
            5001,
            "Catalog download failed: {detail}",
            "Unable to download city data. Please check your connection and try again.",
        ),
        OrchestrationErrorKind.DATA_INFO_UNAVAILABLE: _ErrorText(
            5002,
            "Catalog information unavailable: {detail}",
            "Unable to read the local city data.",
        ),
        OrchestrationErrorKind.SEARCH_FAILED: _ErrorText(
            5003,
            "Search failed: {detail}",
            "Search failed. Please try again.",
        ),
        OrchestrationErrorKind.FAVORITES_OPERATION_FAILED: _ErrorText(
            5004,
            "Favorites operation failed: {detail}",
            "Unable to update favorites. Please try again.",
        ),
        OrchestrationErrorKind.CITY_LOOKUP_FAILED: _ErrorText(
            5005,
            "City lookup failed: {detail}",
            "Unable to load this city. Please try again.",
        ),
    }

    @classmethod
    def wrap(
        cls, kind: OrchestrationErrorKind, cause: BaseException
    ) -> OrchestrationError:
        """Build an error whose detail is the technical message of ``cause``."""

        detail = getattr(cause, "technical_message", None) or str(cause)
        error = cls(kind, detail=detail)
        error.__cause__ = cause
        return error
