"""Error Handling Utilities

This module provides the shared exception types for infrastructure failures and
retry logic with exponential backoff for transient startup/refresh failures.

Job-level failures (Reddit fetch errors, duplicate posts, write API errors) are
NOT retried here: they are reported as JobResult values and retried by the
ingestion queue, so that retries respect the global rate limiter.
"""

import time
from typing import Callable, Optional, Tuple, Type, TypeVar

import structlog

logger = structlog.get_logger()

T = TypeVar('T')


class DevTrackerError(Exception):
    """Base exception for developer tracker infrastructure errors."""
    pass


class QueueUnavailableError(DevTrackerError):
    """Raised when the ingestion queue backing store is missing or unreachable.

    This is a hard fault for the ingestion worker only; the HTTP API keeps
    serving reads and writes without a queue.
    """
    pass


def retry_with_backoff(
    fn: Callable[[], T],
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    retryable_exceptions: Tuple[Type[Exception], ...] = (Exception,),
    operation: Optional[str] = None,
) -> T:
    """Execute a callable with exponential backoff retry logic.

    Used for the Redis connectivity check at worker startup and for account
    cache refreshes.

    Args:
        fn: Callable to execute (should take no arguments)
        max_retries: Maximum number of retry attempts (default: 3)
        base_delay: Initial delay in seconds (default: 1.0)
        max_delay: Maximum delay cap in seconds (default: 30.0)
        retryable_exceptions: Tuple of exception types to retry on (default: all exceptions)
        operation: Optional name included in the retry log events

    Returns:
        The result of fn() on successful execution

    Raises:
        The final exception if all retries are exhausted, or immediately if the exception
        type is not in retryable_exceptions

    Example:
        >>> client = redis.Redis.from_url(url)
        >>> retry_with_backoff(
        ...     client.ping,
        ...     max_retries=3,
        ...     base_delay=0.5,
        ...     retryable_exceptions=(redis.ConnectionError,),
        ...     operation="redis_ping",
        ... )

    Backoff schedule (base_delay=1.0, max_delay=30.0):
        - Attempt 1: immediate
        - Attempt 2: wait 1.0s (base_delay * 2^0)
        - Attempt 3: wait 2.0s (base_delay * 2^1)
        - Attempt 4: wait 4.0s (base_delay * 2^2)
        - etc., capped at max_delay
    """
    for attempt in range(max_retries + 1):
        try:
            return fn()
        except Exception as e:
            if not isinstance(e, retryable_exceptions):
                raise

            if attempt >= max_retries:
                logger.warning(
                    "retry_exhausted",
                    operation=operation,
                    attempts=attempt + 1,
                    error=str(e),
                    error_type=type(e).__name__
                )
                raise

            delay = min(base_delay * (2 ** attempt), max_delay)
            logger.debug(
                "retry_scheduled",
                operation=operation,
                attempt=attempt + 1,
                delay=delay,
                error=str(e)
            )
            time.sleep(delay)

    raise RuntimeError("Unreachable code")
