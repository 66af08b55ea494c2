"""Retry helpers for GitHub API calls and eventually consistent operations.

This module provides two independent retry policies:

- ``retry_on_rate_limit``: a decorator that implements rate limit aware retry
  logic for GitHub API calls, including respect for rate limit headers and
  exponential backoff.
- ``retry_with_fixed_delay``: a bounded combinator that waits a fixed delay
  before every attempt and reports whether the operation succeeded or the
  attempts were exhausted.
"""

import asyncio
import functools
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, Mapping, TypeVar

import structlog
from github import GithubException, RateLimitExceededException

logger = structlog.get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])
T = TypeVar("T")

Sleeper = Callable[[float], Awaitable[None]]


def _get_header(headers: Mapping[str, Any] | None, name: str) -> str | None:
    """Case-insensitive header lookup on a GithubException's headers."""
    if not headers:
        return None
    for key, value in headers.items():
        if key.lower() == name:
            return str(value)
    return None


def _is_rate_limit_error(exc: GithubException) -> bool:
    """Whether a GitHub exception represents a primary or secondary rate limit."""
    if isinstance(exc, RateLimitExceededException):
        return True
    if exc.status == 429:
        return True
    message = str(exc.data).lower() if exc.data else ""
    return exc.status == 403 and "rate limit" in message


def retry_on_rate_limit(
    max_retries: int = 100,
    initial_delay: float = 10.0,
    max_delay: float = 300.0,
    exponential_base: float = 2.0,
) -> Callable[[F], F]:
    """Decorator for retrying async functions when they encounter GitHub rate limits.

    This decorator handles:
    - GitHub rate limit errors (403/429)
    - Secondary rate limits
    - Respects retry-after and x-ratelimit-reset headers
    - Implements exponential backoff when no header guidance is available

    Any other exception is raised immediately.

    Args:
        max_retries: Maximum number of retry attempts (default: 100)
        initial_delay: Initial delay in seconds between retries (default: 10.0)
        max_delay: Maximum delay in seconds between retries (default: 300.0)
        exponential_base: Base for exponential backoff calculation (default: 2.0)

    Returns:
        Decorated function with retry logic

    Example:
        @retry_on_rate_limit()
        async def list_pull_requests(self):
            return await asyncio.to_thread(...)
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            delay = initial_delay

            for attempt in range(max_retries + 1):
                try:
                    return await func(*args, **kwargs)
                except GithubException as e:
                    if not _is_rate_limit_error(e):
                        raise

                    if attempt == max_retries:
                        logger.error(
                            "Max retries reached for GitHub rate limit error",
                            function=func.__name__,
                            attempt=attempt + 1,
                            status_code=e.status,
                        )
                        raise

                    wait_time = delay
                    retry_after = _get_header(e.headers, "retry-after")
                    rate_limit_reset = _get_header(e.headers, "x-ratelimit-reset")
                    if retry_after:
                        try:
                            wait_time = float(retry_after)
                            logger.info("Using retry-after header value", retry_after=wait_time, function=func.__name__)
                        except ValueError:
                            logger.warning("Invalid retry-after header value", retry_after=retry_after, function=func.__name__)
                    elif rate_limit_reset:
                        try:
                            reset_timestamp = int(rate_limit_reset)
                            current_timestamp = int(time.time())
                            if reset_timestamp > current_timestamp:
                                wait_time = reset_timestamp - current_timestamp + 1
                                logger.info("Using x-ratelimit-reset header", wait_time=wait_time, function=func.__name__)
                        except ValueError:
                            logger.warning(
                                "Invalid x-ratelimit-reset header value",
                                rate_limit_reset=rate_limit_reset,
                                function=func.__name__,
                            )

                    wait_time = min(wait_time, max_delay)

                    logger.warning(
                        f"GitHub rate limit hit, retrying in {wait_time} seconds",
                        function=func.__name__,
                        attempt=attempt + 1,
                        max_retries=max_retries,
                        wait_time=wait_time,
                        status_code=e.status,
                    )

                    await asyncio.sleep(wait_time)

                    # Exponential backoff for next attempt
                    delay = min(delay * exponential_base, max_delay)

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            """Sync version of the retry wrapper - raises error since we only support async."""
            raise RuntimeError(
                f"Function {func.__name__} decorated with @retry_on_rate_limit must be async. This decorator only supports async functions."
            )

        if asyncio.iscoroutinefunction(func):
            return async_wrapper  # type: ignore
        else:
            return sync_wrapper  # type: ignore

    return decorator


class RetryStatus(str, Enum):
    """Lifecycle of a bounded retry loop."""

    PENDING = "pending"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"


@dataclass
class RetryOutcome(Generic[T]):
    """Result of ``retry_with_fixed_delay``.

    ``attempts`` is the 1-based index of the successful attempt, or the total
    number of attempts made when the loop was exhausted.
    """

    status: RetryStatus
    attempts: int
    value: T | None = None
    last_error: BaseException | None = None

    @property
    def succeeded(self) -> bool:
        """Whether an attempt succeeded."""
        return self.status == RetryStatus.SUCCEEDED


async def retry_with_fixed_delay(
    operation: Callable[[int], Awaitable[T]],
    max_attempts: int,
    delay: float,
    retry_on: tuple[type[Exception], ...] = (Exception,),
    sleep: Sleeper = asyncio.sleep,
    description: str = "operation",
) -> RetryOutcome[T]:
    """Run ``operation`` up to ``max_attempts`` times, waiting ``delay`` seconds before each attempt.

    The delay is applied before every attempt, including the first, and never
    grows between attempts. The loop stops at the first attempt that returns
    without raising one of ``retry_on``; exceptions outside ``retry_on``
    propagate immediately.

    Args:
        operation: Coroutine function called with the 1-based attempt number.
        max_attempts: Upper bound on the number of attempts (must be >= 1).
        delay: Seconds to wait before each attempt (must be >= 0).
        retry_on: Exception types that count as a failed, retryable attempt.
        sleep: Awaitable sleep used for the delay; injectable for tests.
        description: Human-readable name of the operation used in log events.

    Returns:
        A ``RetryOutcome`` that is either SUCCEEDED at attempt ``k`` or EXHAUSTED
        after ``max_attempts`` attempts.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
    if delay < 0:
        raise ValueError(f"delay must not be negative, got {delay}")

    last_error: Exception | None = None
    for attempt in range(1, max_attempts + 1):
        logger.info(f"Waiting {delay} seconds before attempting {description}", attempt=attempt, max_attempts=max_attempts, delay=delay)
        await sleep(delay)
        try:
            value = await operation(attempt)
        except retry_on as exc:
            last_error = exc
            logger.warning(
                f"Attempt to {description} failed",
                attempt=attempt,
                max_attempts=max_attempts,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            continue
        logger.info(f"Attempt to {description} succeeded", attempt=attempt, max_attempts=max_attempts)
        return RetryOutcome(status=RetryStatus.SUCCEEDED, attempts=attempt, value=value)

    logger.error(f"Exhausted all attempts to {description}", attempts=max_attempts, last_error=str(last_error))
    return RetryOutcome(status=RetryStatus.EXHAUSTED, attempts=max_attempts, last_error=last_error)
