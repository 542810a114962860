"""
Shared fixtures: a controllable clock, a recording transport and an instant sleep.

Nothing here touches the real network or really sleeps.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Any, Callable

import pytest

from substance_lookup.services.client import ServiceClient
from substance_lookup.services.transport import TransportResponse
from substance_lookup.settings import Settings


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


class RecordingSleep:
    """Stands in for asyncio.sleep; records delays and yields once."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


class FakeTransport:
    """
    Transport driven by a handler(url, method, body).

    The handler may return a payload (wrapped as a 200 response), a
    TransportResponse, or an exception instance to raise.
    """

    def __init__(self, handler: Callable[[str, str, Any], Any]):
        self.handler = handler
        self.calls: list[dict[str, Any]] = []

    async def send_request(
        self,
        url: str,
        method: str = "GET",
        headers: dict[str, str] | None = None,
        body: Any = None,
    ) -> TransportResponse:
        self.calls.append(
            {"url": url, "method": method, "headers": headers, "body": body}
        )
        # Let concurrent callers interleave, like a real network wait
        await asyncio.sleep(0)

        result = self.handler(url, method, body)
        if isinstance(result, Exception):
            raise result
        if isinstance(result, TransportResponse):
            return result
        return TransportResponse(ok=True, status=200, json=result)

    def urls(self) -> list[str]:
        return [call["url"] for call in self.calls]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        enable_psychonautwiki=True,
        enable_tripsit=True,
        psychonaut_url="https://api.psychonautwiki.org",
        tripsit_base_url="https://tripbot.tripsit.me/api/tripsit",
        cache_ttl_minutes=60,
        max_retries=3,
        retry_base_delay=1.0,
        error_threshold=5,
        error_reset_minutes=5,
    )


@pytest.fixture
def make_client(settings, clock, sleep):
    """Factory for a ServiceClient wired to fakes."""

    def _make(handler: Callable[[str, str, Any], Any]) -> tuple[ServiceClient, FakeTransport]:
        transport = FakeTransport(handler)
        client = ServiceClient(
            transport=transport,
            settings=settings,
            clock=clock,
            sleep=sleep,
        )
        return client, transport

    return _make
