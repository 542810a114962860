"""
RequestDeduplicator - one shared request per key while it is in flight.

The first caller for a key starts the work as a task; callers arriving before
it settles join that task. A settled key is forgotten, so the next call
starts fresh.
"""

import asyncio
import json
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

from loguru import logger

T = TypeVar("T")


def request_key(**parts: Any) -> str:
    """Deterministic key for a request, e.g. request_key(query=q, variables=v)."""
    return json.dumps(parts, sort_keys=True, separators=(",", ":"), default=str)


@dataclass
class DeduplicatorStats:
    total: int = 0  # Tasks started
    deduplicated: int = 0  # Calls that joined a running task
    in_flight: int = 0

    @property
    def dedup_rate(self) -> float:
        calls = self.total + self.deduplicated
        return self.deduplicated / calls if calls else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_requests": self.total,
            "deduplicated": self.deduplicated,
            "in_flight": self.in_flight,
            "dedup_rate": f"{self.dedup_rate:.2%}",
        }


class RequestDeduplicator:
    """
    Shares the outcome of concurrent requests with the same key.

    Every caller for a key observes the same result object or the same
    exception. A caller that is cancelled stops waiting, but the shared task
    keeps running for the others.

    Usage:
        dedup = RequestDeduplicator()
        data = await dedup.get_or_create(
            request_key(url=url),
            lambda: transport.send_request(url),
        )
    """

    def __init__(self, debug: bool = False):
        self._in_flight: dict[str, asyncio.Task[Any]] = {}
        self._debug = debug
        self._stats = DeduplicatorStats()

    async def get_or_create(
        self,
        key: str,
        factory: Callable[[], Awaitable[T]],
    ) -> T:
        """
        Join the in-flight task for `key`, or start one with `factory`.

        Lookup and registration happen without yielding to the event loop,
        so two callers can never both start a task for the same key.
        """
        task = self._in_flight.get(key)
        if task is None:
            self._stats.total += 1
            self._log(f"start {key[:50]}")
            task = asyncio.ensure_future(factory())
            self._in_flight[key] = task
            task.add_done_callback(lambda done: self._forget(key, done))
        else:
            self._stats.deduplicated += 1
            self._log(f"join {key[:50]}")

        return await asyncio.shield(task)

    def _forget(self, key: str, task: asyncio.Future) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
        # Mark the outcome as observed even if every caller was cancelled
        if not task.cancelled():
            task.exception()
        self._log(f"settled {key[:50]}")

    def get_in_flight_count(self) -> int:
        return len(self._in_flight)

    def get_in_flight_keys(self) -> list[str]:
        return list(self._in_flight)

    def get_stats(self) -> DeduplicatorStats:
        self._stats.in_flight = len(self._in_flight)
        return self._stats

    def _log(self, message: str) -> None:
        if self._debug:
            logger.debug(f"[Deduplicator] {message}")
