"""
ServiceClient - Shared request pipeline for the substance sources.

Combines:
- ExpiringCache for normalized substance records
- ErrorBreaker + RetryingFetcher for failure protection
- RequestDeduplicator for concurrent request optimization
- Transport for the actual network call
"""

import asyncio
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable

import httpx
from loguru import logger

from substance_lookup.services.cache import ExpiringCache
from substance_lookup.services.circuit_breaker import ErrorBreaker
from substance_lookup.services.deduplicator import RequestDeduplicator, request_key
from substance_lookup.services.errors import NetworkError, ValidationError
from substance_lookup.services.retry import RetryingFetcher
from substance_lookup.services.transport import HttpTransport, Transport
from substance_lookup.settings import Settings, global_settings

JSON_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


class ServiceClient:
    """
    Request pipeline shared by every source: dedup -> retry (breaker) -> transport.

    Sources sharing one client also share its cache, its breaker counters and
    its in-flight map.

    Usage:
        client = ServiceClient()

        drugs = await client.make_api_request(
            "https://tripbot.tripsit.me/api/tripsit/getAllDrugs"
        )

        data = await client.make_graphql_request(
            "https://api.psychonautwiki.org",
            query,
            {"names": ["lsd"]},
            endpoint_id="psychonaut",
        )
    """

    def __init__(
        self,
        transport: Transport | None = None,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = datetime.now,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.settings = settings or global_settings

        self.cache = ExpiringCache(
            ttl=timedelta(minutes=self.settings.cache_ttl_minutes),
            clock=clock,
            debug=self.settings.cache_debug,
        )
        self.breaker = ErrorBreaker(
            threshold=self.settings.error_threshold,
            reset_interval=timedelta(minutes=self.settings.error_reset_minutes),
            clock=clock,
        )
        self.fetcher = RetryingFetcher(
            self.breaker,
            max_attempts=self.settings.max_retries,
            base_delay=self.settings.retry_base_delay,
            sleep=sleep,
        )
        self.deduplicator = RequestDeduplicator(debug=self.settings.cache_debug)

        self._owns_transport = transport is None
        self.transport: Transport = transport or HttpTransport(
            timeout=self.settings.request_timeout
        )

    async def make_api_request(
        self,
        url: str,
        method: str = "GET",
        headers: dict[str, str] | None = None,
        body: Any = None,
    ) -> Any:
        """
        Request JSON from a REST endpoint.

        The endpoint's hostname is the breaker accounting key.

        Raises:
            ValidationError: If url is empty
            CircuitOpenError: If the endpoint is tripped
            RetriesExhaustedError: If every attempt failed
        """
        if not url:
            raise ValidationError("URL is required")

        endpoint_id = httpx.URL(url).host or url
        req_headers = {"Accept": "application/json"}
        if headers:
            req_headers.update(headers)

        return await self._request(
            key=request_key(url=url, method=method, body=body),
            endpoint_id=endpoint_id,
            url=url,
            method=method,
            headers=req_headers,
            body=body,
        )

    async def make_graphql_request(
        self,
        url: str,
        query: str,
        variables: dict[str, Any] | None = None,
        endpoint_id: str | None = None,
    ) -> Any:
        """
        POST a GraphQL query.

        Overlapping calls with the same (query, variables) share one request.

        Raises:
            ValidationError: If query or url is empty
            CircuitOpenError: If the endpoint is tripped
            RetriesExhaustedError: If every attempt failed
        """
        if not query:
            raise ValidationError("Query is required")
        if not url:
            raise ValidationError("URL is required")

        variables = variables or {}
        return await self._request(
            key=request_key(query=query, variables=variables),
            endpoint_id=endpoint_id or httpx.URL(url).host or url,
            url=url,
            method="POST",
            headers=dict(JSON_HEADERS),
            body={"query": query, "variables": variables},
        )

    async def _request(
        self,
        key: str,
        endpoint_id: str,
        url: str,
        method: str,
        headers: dict[str, str],
        body: Any,
    ) -> Any:
        async def do_request() -> Any:
            return await self.fetcher.execute(
                lambda: self._send(url, method, headers, body, endpoint_id),
                endpoint_id,
            )

        return await self.deduplicator.get_or_create(key, do_request)

    async def _send(
        self,
        url: str,
        method: str,
        headers: dict[str, str],
        body: Any,
        endpoint_id: str,
    ) -> Any:
        """Execute one attempt."""
        response = await self.transport.send_request(
            url, method=method, headers=headers, body=body
        )

        if not response.ok:
            raise NetworkError(
                f"API request failed with status {response.status}",
                service_id=endpoint_id,
                status=response.status,
            )
        if response.json is None:
            raise NetworkError(
                "Empty response received",
                service_id=endpoint_id,
                status=response.status,
            )
        return response.json

    async def close(self) -> None:
        """Close the transport if this client created it."""
        if self._owns_transport and isinstance(self.transport, HttpTransport):
            await self.transport.close()
        logger.debug("ServiceClient closed")

    async def __aenter__(self) -> "ServiceClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    # Health and status methods

    def get_health_status(self) -> dict[str, Any]:
        """Get health status of the pipeline."""
        return {
            "cache": self.cache.get_stats().to_dict(),
            "circuit_breakers": self.breaker.get_all_status(),
            "deduplicator": self.deduplicator.get_stats().to_dict(),
            "open_circuits": self.breaker.get_open_circuits(),
        }

    def reset_circuit(self, endpoint_id: str) -> bool:
        """Reset the error count of one endpoint."""
        return self.breaker.reset(endpoint_id)

    def clear_cache(self) -> None:
        """Drop every cached record."""
        self.cache.clear()


# Global client instance
_global_client: ServiceClient | None = None


def get_service_client() -> ServiceClient:
    """Get the global service client instance."""
    global _global_client
    if _global_client is None:
        _global_client = ServiceClient()
    return _global_client


async def close_service_client() -> None:
    """Close the global service client."""
    global _global_client
    if _global_client:
        await _global_client.close()
        _global_client = None
