"""
Transport - the "send request, get response" capability used by the sources.

Sources only depend on the Transport protocol, so the network can be reached
directly (HttpTransport) or through any proxy that returns the same shape.
"""

import json
from dataclasses import dataclass
from typing import Any, Protocol

import httpx
from loguru import logger

from substance_lookup.services.errors import NetworkError


@dataclass
class TransportResponse:
    """Outcome of one network call."""

    ok: bool
    status: int
    json: Any = None


class Transport(Protocol):
    async def send_request(
        self,
        url: str,
        method: str = "GET",
        headers: dict[str, str] | None = None,
        body: Any = None,
    ) -> TransportResponse: ...


class HttpTransport:
    """
    Transport backed by httpx.AsyncClient.

    Usage:
        async with HttpTransport(timeout=15.0) as transport:
            response = await transport.send_request(url)
    """

    def __init__(
        self,
        timeout: float = 30.0,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._timeout = timeout
        self._http_transport = http_transport
        self._http_client: httpx.AsyncClient | None = None

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                follow_redirects=True,
                transport=self._http_transport,
            )
        return self._http_client

    async def send_request(
        self,
        url: str,
        method: str = "GET",
        headers: dict[str, str] | None = None,
        body: Any = None,
    ) -> TransportResponse:
        """
        Send one request.

        A non-2xx status is reported through ``ok``; only transport-level
        failures raise.

        Raises:
            NetworkError: If the request times out or cannot be sent
        """
        client = await self._get_http_client()
        service_id = httpx.URL(url).host

        try:
            response = await client.request(
                method=method,
                url=url,
                headers=headers,
                json=body,
            )
        except httpx.TimeoutException as e:
            raise NetworkError(
                f"Request timed out after {self._timeout}s", service_id=service_id
            ) from e
        except httpx.RequestError as e:
            raise NetworkError(str(e) or type(e).__name__, service_id=service_id) from e

        try:
            data = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.debug(f"Non-JSON response from {service_id}: {response.text[:200]}")
            data = None

        return TransportResponse(
            ok=response.is_success,
            status=response.status_code,
            json=data,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
        logger.debug("HttpTransport closed")

    async def __aenter__(self) -> "HttpTransport":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
