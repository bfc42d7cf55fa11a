"""HTTP transport for VSS calls.

A transport executes one POST to a URL with a byte body and returns the
status code and raw body bytes. Failures that never produce a status are
raised as VssTransportError. Connection pooling, TLS and redirects are left
to the underlying httpx client.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import httpx

from vss_client.config import DEFAULT_TIMEOUT_SECONDS
from vss_client.errors import VssTransportError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransportResponse:
    """Raw outcome of a completed call.

    Attributes:
        status_code: HTTP status code.
        content: Response body bytes, unmodified.
    """

    status_code: int
    content: bytes


@runtime_checkable
class Transport(Protocol):
    """Async POST primitive consumed by VssClient."""

    async def send(self, url: str, body: bytes, *, content_type: str) -> TransportResponse:
        """POST body to url.

        Raises:
            VssTransportError: If no response status could be obtained.
        """
        ...

    async def aclose(self) -> None:
        """Release any resources held by the transport."""
        ...


class HttpxTransport:
    """Transport backed by httpx.AsyncClient.

    Owns the client it creates; an injected client is borrowed and left
    open on aclose().
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize the transport.

        Args:
            http_client: Optional httpx.AsyncClient for dependency injection.
            timeout_seconds: Timeout for a client created by this transport.
        """
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout_seconds)

    async def send(self, url: str, body: bytes, *, content_type: str) -> TransportResponse:
        try:
            response = await self._client.post(
                url,
                content=body,
                headers={"Content-Type": content_type},
            )
            content = await response.aread()
        except httpx.TimeoutException as e:
            logger.warning("VSS request timed out: %s", type(e).__name__)
            raise VssTransportError(f"Timeout: {e}", cause=e) from e
        except httpx.HTTPError as e:
            logger.warning("VSS request failed: %s", type(e).__name__)
            raise VssTransportError(f"Connection error: {e}", cause=e) from e

        return TransportResponse(status_code=response.status_code, content=content)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
