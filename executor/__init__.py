"""Rate-limited retrying executor shared by every remote-calling stage."""

from .executor import ExecutionResult, RateLimitedExecutor, RemoteCall
from .policy import (
    COMPLETION_POLICY,
    DEFAULT_POLICY,
    RETRYABLE_STATUS_CODES,
    RetryPolicy,
    is_retryable_exception,
    is_retryable_status,
)
from .rate_limiter import RateLimiter

__all__ = [
    "COMPLETION_POLICY",
    "DEFAULT_POLICY",
    "RETRYABLE_STATUS_CODES",
    "ExecutionResult",
    "RateLimitedExecutor",
    "RateLimiter",
    "RemoteCall",
    "RetryPolicy",
    "is_retryable_exception",
    "is_retryable_status",
]
