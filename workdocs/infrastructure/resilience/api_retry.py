"""Service for executing API calls with automatic retries.

Implements exponential backoff for handling transient errors like
rate limits (429), temporary server issues (5xx) and network failures
(connection resets, timeouts, name resolution). Any other failure is
treated as final and propagates immediately without consuming the
remaining attempts.

The delay before attempt n+1 is min(base_delay * multiplier**(n-1), max_delay).
No jitter is applied, so the delay sequence is deterministic.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

import httpx

from workdocs.domain.errors import TransportError
from workdocs.domain.events.api_events import (
    ApiCallFailed, ApiCallSucceeded, RetryScheduled, dispatch_event
)

logger = logging.getLogger(__name__)

# Exceptions raised when no response was received at all
NETWORK_EXCEPTIONS = (
    httpx.TimeoutException,
    httpx.NetworkError,
    asyncio.TimeoutError,
    ConnectionError,
)


def _is_retryable_status(status_code: int) -> bool:
    return status_code >= 500 or status_code == 429


def is_retryable_error(error: BaseException) -> bool:
    """Default retry classification.

    Args:
        error: The exception raised by the failed attempt.

    Returns:
        True for network failures, server errors (>= 500) and rate limiting (429).
    """
    if isinstance(error, TransportError):
        # No status means the request never got a response
        return error.status_code is None or _is_retryable_status(error.status_code)
    if isinstance(error, httpx.HTTPStatusError):
        return _is_retryable_status(error.response.status_code)
    return isinstance(error, NETWORK_EXCEPTIONS)


@dataclass(frozen=True)
class RetryPolicy:
    """Retry configuration for one call site.

    Attributes:
        max_attempts: Total number of attempts, including the first one.
        base_delay: Delay in seconds after the first failed attempt.
        max_delay: Upper bound for any single delay, in seconds.
        backoff_multiplier: Growth factor between consecutive delays.
        should_retry: Predicate deciding whether an error is transient.
    """
    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    backoff_multiplier: float = 2.0
    should_retry: Callable[[BaseException], bool] = is_retryable_error

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must not be negative")

    def delay_for_attempt(self, attempt: int) -> float:
        """Returns the delay to wait after failed attempt `attempt` (1-based)."""
        return min(self.base_delay * self.backoff_multiplier ** (attempt - 1), self.max_delay)


DEFAULT_RETRY_POLICY = RetryPolicy()


class ApiRetryService:
    """Handles API call execution with retries and exponential backoff."""

    def __init__(
        self,
        default_policy: RetryPolicy = DEFAULT_RETRY_POLICY,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """Initializes the ApiRetryService.

        Args:
            default_policy: Policy used when a call site does not pass one.
            sleep: Coroutine function used to wait between attempts.
        """
        self.default_policy = default_policy
        self._sleep = sleep

        logger.info(
            f"ApiRetryService initialized: max_attempts={default_policy.max_attempts}, "
            f"base_delay={default_policy.base_delay}s, factor={default_policy.backoff_multiplier}, "
            f"max_delay={default_policy.max_delay}s"
        )

    async def execute_with_retry(
        self,
        func: Callable[..., Awaitable[Any]],
        *args: Any,
        policy: Optional[RetryPolicy] = None,
        operation_name: Optional[str] = None,
        **kwargs: Any
    ) -> Any:
        """Executes an async function, retrying transient failures.

        Args:
            func: The async function (API call) to execute.
            *args: Positional arguments for the function.
            policy: Overrides the default policy for this call.
            operation_name: Label used in logs and events.
            **kwargs: Keyword arguments for the function.

        Returns:
            The result of the first successful attempt.

        Raises:
            Exception: The error of the last attempt once attempts are exhausted,
                or the first non-retryable error.
        """
        effective_policy = policy or self.default_policy
        name = operation_name or getattr(func, "__name__", "operation")
        max_attempts = effective_policy.max_attempts
        last_exception: Optional[Exception] = None
        start_time = time.perf_counter()

        for attempt in range(1, max_attempts + 1):
            try:
                logger.debug(f"Attempting {name} (attempt {attempt}/{max_attempts})")
                result = await func(*args, **kwargs)
                if attempt > 1:
                    logger.info(f"{name} succeeded after {attempt} attempts")
                latency_ms = (time.perf_counter() - start_time) * 1000
                dispatch_event(ApiCallSucceeded(operation=name, attempts=attempt, latency_ms=latency_ms))
                return result

            except Exception as e:
                last_exception = e
                if not effective_policy.should_retry(e):
                    logger.warning(f"{name} failed with non-retryable error on attempt {attempt}: {type(e).__name__}: {e}")
                    dispatch_event(ApiCallFailed(
                        operation=name, attempts=attempt, error_type=type(e).__name__,
                        error_message=str(e), retryable=False
                    ))
                    raise

                logger.warning(f"{name} failed on attempt {attempt}/{max_attempts}: {type(e).__name__}: {e}")
                if attempt >= max_attempts:
                    break

                delay = effective_policy.delay_for_attempt(attempt)
                logger.info(f"Retrying {name} in {delay:.2f}s (attempt {attempt + 1}/{max_attempts})")
                dispatch_event(RetryScheduled(operation=name, attempt_number=attempt + 1, delay_seconds=delay))
                await self._sleep(delay)

        logger.error(f"{name} failed after {max_attempts} attempts. Last error: {last_exception}")
        dispatch_event(ApiCallFailed(
            operation=name, attempts=max_attempts, error_type=type(last_exception).__name__,
            error_message=str(last_exception), retryable=True
        ))
        raise last_exception
