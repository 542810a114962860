"""
Tests for the ServiceClient request pipeline: dedup -> retry/breaker -> transport.
"""

import asyncio

import pytest

from substance_lookup.services.errors import (
    CircuitOpenError,
    NetworkError,
    RetriesExhaustedError,
    ValidationError,
)
from substance_lookup.services.transport import TransportResponse

TRIPSIT_URL = "https://tripbot.tripsit.me/api/tripsit/getAllDrugs"
PW_URL = "https://api.psychonautwiki.org"


class TestValidation:
    async def test_empty_url(self, make_client):
        client, transport = make_client(lambda url, method, body: {"ok": 1})
        with pytest.raises(ValidationError, match="URL is required"):
            await client.make_api_request("")
        assert transport.calls == []

    async def test_empty_query(self, make_client):
        client, transport = make_client(lambda url, method, body: {"ok": 1})
        with pytest.raises(ValidationError, match="Query is required"):
            await client.make_graphql_request(PW_URL, "", {})
        assert transport.calls == []


class TestApiRequest:
    async def test_returns_json_and_sends_accept_header(self, make_client):
        client, transport = make_client(lambda url, method, body: {"data": {"x": 1}})

        assert await client.make_api_request(TRIPSIT_URL) == {"data": {"x": 1}}
        assert transport.calls[0]["method"] == "GET"
        assert transport.calls[0]["headers"]["Accept"] == "application/json"

    async def test_bad_status_is_retried_then_counted_once(self, make_client, sleep):
        client, transport = make_client(
            lambda url, method, body: TransportResponse(ok=False, status=502)
        )

        with pytest.raises(RetriesExhaustedError) as exc_info:
            await client.make_api_request(TRIPSIT_URL)

        assert len(transport.calls) == 3
        assert sleep.delays == [1.0, 2.0]
        assert isinstance(exc_info.value.last_error, NetworkError)
        assert exc_info.value.last_error.status == 502
        assert client.breaker.failure_count("tripbot.tripsit.me") == 1

    async def test_empty_body_is_a_failure(self, make_client):
        responses = iter([TransportResponse(ok=True, status=200, json=None), {"a": 1}])
        client, transport = make_client(lambda url, method, body: next(responses))

        assert await client.make_api_request(TRIPSIT_URL) == {"a": 1}
        assert len(transport.calls) == 2
        assert client.breaker.failure_count("tripbot.tripsit.me") == 0

    @pytest.mark.parametrize("payload", [[], {}])
    async def test_empty_json_container_is_a_valid_body(self, make_client, payload):
        client, transport = make_client(lambda url, method, body: payload)

        assert await client.make_api_request(TRIPSIT_URL) == payload
        assert len(transport.calls) == 1

    async def test_thrown_transport_error_is_retried(self, make_client):
        outcomes = iter([ConnectionError("reset"), {"a": 1}])
        client, transport = make_client(lambda url, method, body: next(outcomes))

        assert await client.make_api_request(TRIPSIT_URL) == {"a": 1}
        assert len(transport.calls) == 2

    async def test_tripped_endpoint_fails_fast(self, make_client):
        client, transport = make_client(lambda url, method, body: {"a": 1})
        for _ in range(5):
            client.breaker.record_failure("tripbot.tripsit.me")

        with pytest.raises(CircuitOpenError):
            await client.make_api_request(TRIPSIT_URL)
        assert transport.calls == []

    async def test_five_failed_requests_trip_the_endpoint(self, make_client):
        client, transport = make_client(
            lambda url, method, body: TransportResponse(ok=False, status=500)
        )

        for _ in range(5):
            with pytest.raises(RetriesExhaustedError):
                await client.make_api_request(TRIPSIT_URL)

        assert client.breaker.is_tripped("tripbot.tripsit.me")
        assert len(transport.calls) == 15
        with pytest.raises(CircuitOpenError):
            await client.make_api_request(TRIPSIT_URL)
        assert len(transport.calls) == 15

    async def test_concurrent_identical_requests_share_one_call(self, make_client):
        client, transport = make_client(lambda url, method, body: {"a": 1})

        results = await asyncio.gather(
            client.make_api_request(TRIPSIT_URL),
            client.make_api_request(TRIPSIT_URL),
            client.make_api_request(TRIPSIT_URL),
        )

        assert results == [{"a": 1}] * 3
        assert len(transport.calls) == 1


class TestGraphQLRequest:
    async def test_posts_query_and_variables(self, make_client):
        client, transport = make_client(
            lambda url, method, body: {"data": {"substances": []}}
        )

        await client.make_graphql_request(
            PW_URL, "query { x }", {"names": ["lsd"]}, endpoint_id="psychonaut"
        )

        call = transport.calls[0]
        assert call["method"] == "POST"
        assert call["body"] == {"query": "query { x }", "variables": {"names": ["lsd"]}}
        assert call["headers"]["Content-Type"] == "application/json"

    async def test_breaker_key_is_endpoint_id(self, make_client):
        client, _ = make_client(
            lambda url, method, body: TransportResponse(ok=False, status=500)
        )

        with pytest.raises(RetriesExhaustedError):
            await client.make_graphql_request(PW_URL, "q", endpoint_id="psychonaut")

        assert client.breaker.failure_count("psychonaut") == 1
        assert client.breaker.failure_count("api.psychonautwiki.org") == 0


class TestHealth:
    async def test_health_status(self, make_client):
        client, _ = make_client(lambda url, method, body: {"a": 1})
        await client.make_api_request(TRIPSIT_URL)

        status = client.get_health_status()
        assert status["open_circuits"] == []
        assert status["deduplicator"]["total_requests"] == 1
        assert "cache" in status
