"""Retry policy value object shared by every remote-calling component."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import FrozenSet

import httpx

RETRYABLE_STATUS_CODES: FrozenSet[int] = frozenset({429, 500, 502, 503, 504})


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff parameters for one class of remote call."""

    max_retries: int = 3
    initial_delay: float = 0.5
    max_delay: float = 10.0
    backoff_factor: float = 2.0
    request_timeout: float = 30.0

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must be >= 0")
        if self.backoff_factor < 1:
            raise ValueError("backoff_factor must be >= 1")
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be > 0")

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def backoff_delay(self, attempt: int) -> float:
        """Delay after 0-indexed failed attempt ``attempt``."""
        return min(self.initial_delay * (self.backoff_factor ** attempt), self.max_delay)


# Read calls: run lookups and listings
DEFAULT_POLICY = RetryPolicy()

# A retried completion may be seen as a second completion by the service
COMPLETION_POLICY = RetryPolicy(
    max_retries=2,
    initial_delay=0.3,
    max_delay=5.0,
    backoff_factor=2.0,
    request_timeout=20.0,
)


def is_retryable_status(status_code: int) -> bool:
    return status_code in RETRYABLE_STATUS_CODES


def is_retryable_exception(exc: BaseException) -> bool:
    """Transport-level failures (refused, reset, DNS, timeouts) are retryable."""
    return isinstance(exc, (httpx.TransportError, TimeoutError, asyncio.TimeoutError))
