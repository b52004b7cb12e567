"""
Async Utilities for polite API access.

Provides:
- Circuit breaker guarding one upstream provider
- Pacing delay between outbound requests
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .exceptions import ErrorContext, RateLimitError

logger = logging.getLogger(__name__)


async def pace(seconds: float) -> None:
    """Sleep for a fixed pacing delay. Non-positive delays return immediately."""
    if seconds > 0:
        logger.debug(f"Pacing: waiting {seconds:.2f}s")
        await asyncio.sleep(seconds)


# =============================================================================
# Circuit Breaker Pattern
# =============================================================================

class BreakerState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitBreaker:
    """
    Per-provider circuit breaker.

    Each adapter owns one breaker named after its source. Consecutive
    failures open it; while open, calls are rejected with RateLimitError
    until ``recovery_timeout`` has passed, after which a limited number of
    trial calls decide between closing and reopening.

    ``reset()`` forgets all failures. Clients that talk to unrelated hosts
    through one breaker (literal page fetching) reset it per host.

    Example:
        breaker = CircuitBreaker(name="OpenAlex", failure_threshold=5)

        async with breaker:
            response = await client.get(url)
    """
    name: str = "API"
    failure_threshold: int = 5
    recovery_timeout: float = 30.0
    half_open_max_calls: int = 3

    _failure_count: int = field(init=False, default=0)
    _opened_at: float | None = field(init=False, default=None)
    _state: BreakerState = field(init=False, default=BreakerState.CLOSED)
    _half_open_calls: int = field(init=False, default=0)
    _lock: asyncio.Lock = field(init=False, default_factory=asyncio.Lock)

    @property
    def state(self) -> str:
        return self._state.value

    @property
    def failure_count(self) -> int:
        return self._failure_count

    @property
    def is_open(self) -> bool:
        """True while calls are rejected (open and still cooling down)."""
        if self._state is not BreakerState.OPEN:
            return False
        if self._opened_at is None:
            return True
        return time.monotonic() - self._opened_at <= self.recovery_timeout

    def reset(self) -> None:
        """Close the breaker and forget recorded failures."""
        if self._state is not BreakerState.CLOSED or self._failure_count:
            logger.debug(f"{self.name}: circuit breaker reset")
        self._state = BreakerState.CLOSED
        self._failure_count = 0
        self._opened_at = None
        self._half_open_calls = 0

    def _reject(self, reason: str, retry_after: float) -> RateLimitError:
        return RateLimitError(
            f"{self.name}: circuit breaker {reason}",
            retry_after=retry_after,
            context=ErrorContext(operation=self.name),
        )

    async def __aenter__(self) -> CircuitBreaker:
        async with self._lock:
            if self.is_open:
                raise self._reject("is open", self.recovery_timeout)

            if self._state is BreakerState.OPEN:
                self._state = BreakerState.HALF_OPEN
                self._half_open_calls = 0

            if self._state is BreakerState.HALF_OPEN:
                if self._half_open_calls >= self.half_open_max_calls:
                    raise self._reject("is half-open (trial calls used up)", self.recovery_timeout / 2)
                self._half_open_calls += 1

        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        async with self._lock:
            if exc_val is None:
                self._record_success()
            else:
                self._record_failure()

    def _record_success(self) -> None:
        if self._state is BreakerState.HALF_OPEN:
            self._state = BreakerState.CLOSED
            self._failure_count = 0
            logger.info(f"{self.name}: circuit breaker closed (recovered)")
        else:
            self._failure_count = max(0, self._failure_count - 1)

    def _record_failure(self) -> None:
        self._failure_count += 1
        if self._state is BreakerState.HALF_OPEN or self._failure_count >= self.failure_threshold:
            self._state = BreakerState.OPEN
            self._opened_at = time.monotonic()
            logger.warning(f"{self.name}: circuit breaker opened after {self._failure_count} failures")
