"""Bounded-concurrency, rate-limited, retrying driver for remote calls."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

import httpx
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception_type, stop_after_attempt, wait_exponential

from utils.exceptions import (
    RemoteCallError,
    RetriesExhaustedError,
    TerminalRemoteError,
    TransientRemoteError,
)
from .policy import DEFAULT_POLICY, RetryPolicy, is_retryable_exception, is_retryable_status
from .rate_limiter import RateLimiter


logger = logging.getLogger(__name__)

RemoteCall = Callable[[], Awaitable[httpx.Response]]


@dataclass
class ExecutionResult:
    """Either the successful response or the error that ended the call."""

    response: Optional[httpx.Response] = None
    error: Optional[RemoteCallError] = None
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None and self.response is not None

    def unwrap(self) -> httpx.Response:
        if self.error is not None:
            raise self.error
        if self.response is None:
            raise TerminalRemoteError("call produced no response")
        return self.response


class RateLimitedExecutor:
    """
    Runs remote calls under a global rate ceiling and a bounded number of
    concurrent slots, retrying transient failures with exponential backoff.

    One instance is built per pipeline execution and shared by every stage
    so that all calls draw from the same ticks and slots. A slot is held for
    the whole ``execute`` call; a rate tick is taken before every attempt.
    """

    def __init__(
        self,
        *,
        max_concurrent: int = 5,
        requests_per_second: float = 5.0,
        policy: RetryPolicy = DEFAULT_POLICY,
        rate_limiter: Optional[RateLimiter] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")
        self._max_concurrent = int(max_concurrent)
        self._slots = asyncio.Semaphore(self._max_concurrent)
        self._rate_limiter = rate_limiter or RateLimiter(requests_per_second, sleep=sleep)
        self._policy = policy
        self._sleep = sleep

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    @property
    def max_concurrent(self) -> int:
        return self._max_concurrent

    def with_rate_limit(self, requests_per_second: float) -> "RateLimitedExecutor":
        """Executor drawing from the same slots under its own rate ceiling."""
        sibling = RateLimitedExecutor(
            max_concurrent=self._max_concurrent,
            requests_per_second=requests_per_second,
            policy=self._policy,
            sleep=self._sleep,
        )
        sibling._slots = self._slots
        return sibling

    async def execute(
        self,
        call: RemoteCall,
        *,
        policy: Optional[RetryPolicy] = None,
        label: str = "request",
    ) -> ExecutionResult:
        """
        Run ``call`` until it succeeds, fails terminally or exhausts retries.

        Remote failures are returned, never raised. Exceptions that are not
        remote failures (bugs in ``call``) propagate after the slot is
        released.
        """
        policy = policy or self._policy
        attempts = 0

        async with self._slots:
            retrying = AsyncRetrying(
                stop=stop_after_attempt(policy.max_attempts),
                wait=wait_exponential(
                    multiplier=policy.initial_delay,
                    exp_base=policy.backoff_factor,
                    max=policy.max_delay,
                ),
                retry=retry_if_exception_type(TransientRemoteError),
                before_sleep=self._log_retry(label, policy),
                sleep=self._sleep,
                reraise=True,
            )
            try:
                async for attempt in retrying:
                    with attempt:
                        attempts = attempt.retry_state.attempt_number
                        response = await self._attempt(call, policy)
            except TransientRemoteError as exc:
                error = RetriesExhaustedError(
                    f"{label} failed after {attempts} attempts: {exc.message}",
                    last_error=exc,
                    attempts=attempts,
                )
                logger.error(str(error))
                return ExecutionResult(error=error, attempts=attempts)
            except TerminalRemoteError as exc:
                logger.error(f"{label} failed: {exc}")
                return ExecutionResult(error=exc, attempts=attempts)

        return ExecutionResult(response=response, attempts=attempts)

    async def _attempt(self, call: RemoteCall, policy: RetryPolicy) -> httpx.Response:
        await self._rate_limiter.acquire()

        try:
            response = await asyncio.wait_for(call(), timeout=policy.request_timeout)
        except Exception as exc:
            if is_retryable_exception(exc):
                raise TransientRemoteError(f"transport error: {exc!r}") from exc
            if isinstance(exc, httpx.HTTPError):
                # Undecodable body, redirect loop and the like
                raise TerminalRemoteError(f"response error: {exc!r}") from exc
            raise

        if response.is_success:
            return response

        if is_retryable_status(response.status_code):
            raise TransientRemoteError(
                f"retryable HTTP error: {response.status_code}",
                status_code=response.status_code,
            )

        raise TerminalRemoteError(
            f"non-retryable HTTP error: {response.status_code}",
            status_code=response.status_code,
            body=_body_excerpt(response),
        )

    @staticmethod
    def _log_retry(label: str, policy: RetryPolicy) -> Callable[[RetryCallState], None]:
        def _before_sleep(retry_state: RetryCallState) -> None:
            delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
            exc = retry_state.outcome.exception() if retry_state.outcome else None
            logger.warning(
                f"{label} failed (attempt {retry_state.attempt_number}/{policy.max_attempts}): "
                f"{exc}; retrying in {delay:.2f}s"
            )

        return _before_sleep


def _body_excerpt(response: httpx.Response, limit: int = 200) -> str:
    try:
        return response.text[:limit]
    except (httpx.ResponseNotRead, UnicodeDecodeError):
        return ""
