"""
ErrorBreaker - Per-endpoint failure counter that fails fast once tripped.

Rules:
- Each failed request (not each attempt) increments the endpoint's count
- The first failure of a streak fixes a reset deadline (reset_interval later)
- Any success clears the count immediately
- The endpoint is tripped while count >= threshold
- The reset deadline is checked lazily on access, no background timers
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable

from loguru import logger


@dataclass
class EndpointFailureState:
    """Failure streak of one endpoint. Only exists while count > 0."""

    endpoint_id: str
    count: int
    first_failure_at: datetime
    reset_at: datetime


class ErrorBreaker:
    """
    Failure-threshold gate shared by every endpoint of a client.

    Usage:
        breaker = ErrorBreaker()

        if breaker.is_tripped("psychonaut"):
            raise CircuitOpenError(...)

        try:
            result = await make_request()
            breaker.record_success("psychonaut")
        except Exception:
            breaker.record_failure("psychonaut")
            raise
    """

    def __init__(
        self,
        threshold: int = 5,
        reset_interval: timedelta = timedelta(minutes=5),
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.threshold = threshold
        self.reset_interval = reset_interval
        self._clock = clock
        self._states: dict[str, EndpointFailureState] = {}

    def _current(self, endpoint_id: str) -> EndpointFailureState | None:
        """Get the live streak for an endpoint, dropping it if its timer ran out."""
        state = self._states.get(endpoint_id)
        if state is None:
            return None

        if self._clock() >= state.reset_at:
            del self._states[endpoint_id]
            logger.info(
                f"Error count for '{endpoint_id}' reset after {self.reset_interval}"
            )
            return None

        return state

    def record_failure(self, endpoint_id: str) -> bool:
        """Record a failed request. Returns True if the endpoint is now tripped."""
        state = self._current(endpoint_id)

        if state is None:
            now = self._clock()
            state = EndpointFailureState(
                endpoint_id=endpoint_id,
                count=0,
                first_failure_at=now,
                reset_at=now + self.reset_interval,
            )
            self._states[endpoint_id] = state

        state.count += 1
        tripped = state.count >= self.threshold

        if state.count == self.threshold:
            logger.warning(
                f"Circuit for '{endpoint_id}' OPENED after {state.count} failures"
            )
        return tripped

    def record_success(self, endpoint_id: str) -> None:
        """Record a successful request."""
        if self._states.pop(endpoint_id, None) is not None:
            logger.debug(f"Error count for '{endpoint_id}' cleared by success")

    def is_tripped(self, endpoint_id: str) -> bool:
        """Check if requests to this endpoint must fail fast."""
        state = self._current(endpoint_id)
        return state is not None and state.count >= self.threshold

    def failure_count(self, endpoint_id: str) -> int:
        state = self._current(endpoint_id)
        return state.count if state else 0

    def time_until_reset(self, endpoint_id: str) -> float | None:
        """Get seconds until the endpoint's failure count resets."""
        state = self._current(endpoint_id)
        if state is None:
            return None

        remaining = (state.reset_at - self._clock()).total_seconds()
        return max(0.0, remaining)

    def reset(self, endpoint_id: str) -> bool:
        """Manually reset one endpoint."""
        if self._states.pop(endpoint_id, None) is not None:
            logger.info(f"Circuit for '{endpoint_id}' manually reset")
            return True
        return False

    def reset_all(self) -> None:
        """Reset all endpoints."""
        count = len(self._states)
        self._states.clear()
        logger.info(f"Reset {count} endpoint failure counters")

    def get_open_circuits(self) -> list[str]:
        """Get list of endpoints that are currently tripped."""
        return [
            endpoint_id
            for endpoint_id in list(self._states)
            if self.is_tripped(endpoint_id)
        ]

    def get_status(self, endpoint_id: str) -> dict[str, Any]:
        """Get current status of one endpoint as dictionary."""
        state = self._current(endpoint_id)
        return {
            "endpoint_id": endpoint_id,
            "tripped": state is not None and state.count >= self.threshold,
            "failure_count": state.count if state else 0,
            "first_failure": state.first_failure_at.isoformat() if state else None,
            "time_until_reset": self.time_until_reset(endpoint_id),
        }

    def get_all_status(self) -> dict[str, dict[str, Any]]:
        """Get status of every endpoint with a live failure streak."""
        return {
            endpoint_id: self.get_status(endpoint_id)
            for endpoint_id in list(self._states)
        }
