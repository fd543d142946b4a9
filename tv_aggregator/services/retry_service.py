"""
Bounded retry for fallible fetch operations.

Attempts run strictly one after another with a fixed, non-blocking wait in
between. Only transient failures are retried.
"""
import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from tv_aggregator.errors import RetryExhaustedError, TransientFetchError


logger = logging.getLogger(__name__)

T = TypeVar("T")

AttemptCallback = Callable[[int], Awaitable[None] | None]


async def run_with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    max_attempts: int,
    interval: float,
    on_attempt: AttemptCallback | None = None,
    retry_on: tuple[type[BaseException], ...] = (TransientFetchError,),
) -> T:
    """
    Run an async operation, retrying transient failures.

    Args:
        operation: Zero-argument coroutine function to call for each attempt
        max_attempts: Total number of calls allowed (first call included)
        interval: Seconds to wait between attempts
        on_attempt: Called with the number of the attempt about to start,
            before every retry (never before the first call)
        retry_on: Exception types that are worth retrying

    Returns:
        Result of the first successful call

    Raises:
        RetryExhaustedError: If all attempts failed with retryable errors
        Exception: Any non-retryable error, on first occurrence
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    attempt = 1
    while True:
        try:
            return await operation()
        except retry_on as exc:
            if attempt >= max_attempts:
                logger.error(f"Attempt {attempt}/{max_attempts} failed, giving up: {exc}")
                raise RetryExhaustedError(exc, attempts=attempt) from exc

            logger.warning(
                f"Attempt {attempt}/{max_attempts} failed ({type(exc).__name__}: {exc}). "
                f"Retrying in {interval:.1f}s..."
            )

        attempt += 1
        if on_attempt is not None:
            result = on_attempt(attempt)
            if inspect.isawaitable(result):
                await result
        await asyncio.sleep(interval)
