"""
RetryingFetcher - Bounded exponential backoff gated by the ErrorBreaker.

The breaker counts request outcomes, not attempts: a request that fails on
every attempt is recorded once, and a request that eventually succeeds clears
the endpoint's count.
"""

import asyncio
from typing import Awaitable, Callable, TypeVar

from loguru import logger

from substance_lookup.services.circuit_breaker import ErrorBreaker
from substance_lookup.services.errors import (
    CircuitOpenError,
    RetriesExhaustedError,
    ValidationError,
)

T = TypeVar("T")


class RetryingFetcher:
    """
    Runs an async operation with retries.

    Usage:
        fetcher = RetryingFetcher(ErrorBreaker())

        data = await fetcher.execute(
            lambda: transport.send_request(url),
            endpoint_id="tripbot.tripsit.me",
        )
    """

    def __init__(
        self,
        breaker: ErrorBreaker,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.breaker = breaker
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self._sleep = sleep

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        endpoint_id: str,
        max_attempts: int | None = None,
        base_delay: float | None = None,
    ) -> T:
        """
        Execute operation with retries.

        Args:
            operation: Zero-argument coroutine function, called once per attempt
            endpoint_id: Breaker accounting key
            max_attempts: Override the number of attempts
            base_delay: Override the first backoff delay in seconds

        Returns:
            Result of the first successful attempt

        Raises:
            CircuitOpenError: If the endpoint is tripped (no attempt is made)
            ValidationError: If the operation rejects its input
            RetriesExhaustedError: If every attempt failed
        """
        attempts = max_attempts if max_attempts is not None else self.max_attempts
        delay = base_delay if base_delay is not None else self.base_delay

        if attempts < 1:
            raise ValidationError(
                f"max_attempts must be at least 1, got {attempts}",
                service_id=endpoint_id,
            )

        if self.breaker.is_tripped(endpoint_id):
            raise CircuitOpenError(
                endpoint_id,
                self.breaker.time_until_reset(endpoint_id) or 0,
            )

        last_error: Exception | None = None

        for attempt in range(attempts):
            try:
                result = await operation()
            except ValidationError:
                raise
            except Exception as e:
                last_error = e
                if attempt < attempts - 1:
                    wait = delay * (2**attempt)
                    logger.debug(
                        f"Retry {attempt + 1}/{attempts} for '{endpoint_id}' "
                        f"in {wait:.1f}s: {e}"
                    )
                    await self._sleep(wait)
                continue

            self.breaker.record_success(endpoint_id)
            return result

        self.breaker.record_failure(endpoint_id)
        raise RetriesExhaustedError(endpoint_id, attempts, last_error) from last_error
