"""Bulk download of the remote city catalog.

The whole catalog is a single JSON array fetched with one GET request.
Transient failures (connection problems, timeouts, 5xx and other unexpected
statuses) are retried a fixed number of times with a constant pause in
between. Client errors (4xx) and undecodable payloads are terminal. Every
failure is reported as a typed :class:`~citycatalog.errors.NetworkError`.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

import httpx
from pydantic import TypeAdapter, ValidationError

from citycatalog.errors import NetworkError, NetworkErrorKind
from citycatalog.schemas.city import City

logger = logging.getLogger(__name__)

_CATALOG_ADAPTER = TypeAdapter(list[City])

_DNS_FAILURE_MARKERS = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
    "temporary failure in name resolution",
    "no address associated with hostname",
)

Sleep = Callable[[float], Awaitable[None]]


def _map_transport_error(exc: httpx.TransportError) -> NetworkError:
    """Translate an ``httpx`` transport failure into a network error kind."""

    detail = str(exc) or type(exc).__name__
    if isinstance(exc, httpx.TimeoutException):
        return NetworkError(NetworkErrorKind.TIMEOUT, detail=detail)
    if isinstance(exc, httpx.ConnectError) and any(
        marker in detail.lower() for marker in _DNS_FAILURE_MARKERS
    ):
        return NetworkError(NetworkErrorKind.HOST_UNREACHABLE, detail=detail)
    return NetworkError(NetworkErrorKind.NO_CONNECTION, detail=detail)


def decode_catalog(payload: bytes | str) -> list[City]:
    """Decode the remote JSON array into cities (favorite flags default off)."""

    try:
        return _CATALOG_ADAPTER.validate_json(payload)
    except ValidationError as exc:
        raise NetworkError(
            NetworkErrorKind.DECODING_FAILED,
            detail=f"{exc.error_count()} validation error(s): {exc.errors()[0]['msg']}",
        ) from exc


class CatalogFetcher:
    """Downloads the full catalog with a fixed-delay retry policy.

    ``client`` is optional; when omitted the fetcher opens a short-lived
    ``httpx.AsyncClient`` per download. ``sleep`` is injectable so tests can
    skip the real pause between attempts.
    """

    def __init__(
        self,
        source_url: str,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
        max_attempts: int = 3,
        retry_delay: float = 1.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.source_url = source_url
        self._client = client
        self._timeout = timeout
        self._max_attempts = max_attempts
        self._retry_delay = retry_delay
        self._sleep = sleep

    async def fetch_cities(self) -> list[City]:
        if self._client is not None:
            return await self._fetch_with_retry(self._client)
        async with httpx.AsyncClient(
            timeout=self._timeout, follow_redirects=True
        ) as client:
            return await self._fetch_with_retry(client)

    async def _fetch_with_retry(self, client: httpx.AsyncClient) -> list[City]:
        for attempt in range(1, self._max_attempts + 1):
            try:
                cities = await self._fetch_once(client)
            except NetworkError as exc:
                if not exc.is_retryable or attempt == self._max_attempts:
                    logger.error(
                        "Catalog download failed after %d attempt(s): %s",
                        attempt,
                        exc.technical_message,
                    )
                    raise
                logger.warning(
                    "Catalog download attempt %d/%d failed: %s. Retrying in %.1fs",
                    attempt,
                    self._max_attempts,
                    exc.technical_message,
                    self._retry_delay,
                )
                await self._sleep(self._retry_delay)
                continue

            logger.info(
                "Downloaded %d cities from %s (attempt %d)",
                len(cities),
                self.source_url,
                attempt,
            )
            return cities

        raise AssertionError("unreachable")  # pragma: no cover

    async def _fetch_once(self, client: httpx.AsyncClient) -> list[City]:
        try:
            response = await client.get(self.source_url, timeout=self._timeout)
        except httpx.TransportError as exc:
            raise _map_transport_error(exc) from exc

        if not response.is_success:
            raise NetworkError.from_status(response.status_code)

        return decode_catalog(response.content)


__all__ = ["CatalogFetcher", "decode_catalog"]
