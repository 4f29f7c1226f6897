"""
Retry helper for upstream calls.

Used for ENTSO-E requests: transport errors are retried, HTTP-level and
parse errors are not.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry_with_exponential_backoff(
    func: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    initial_delay: float = 0.5,
    max_delay: float = 10.0,
    exponential_base: float = 2.0,
    exceptions: tuple[type[BaseException], ...] = (Exception,),
    description: str = "call",
) -> T:
    """
    Await func() with exponential backoff between failed attempts.

    Args:
        func: zero-argument coroutine factory (called once per attempt)
        max_retries: retries after the first attempt
        initial_delay: first wait (seconds)
        max_delay: upper bound for a single wait (seconds)
        exponential_base: growth factor
        exceptions: exception types that trigger a retry
        description: label for log lines

    Returns:
        func() result

    Raises:
        the last exception once attempts are exhausted
    """
    delay = initial_delay
    attempts = max_retries + 1

    for attempt in range(1, attempts + 1):
        try:
            result = await func()
            if attempt > 1:
                logger.info(f"{description} succeeded on attempt {attempt}/{attempts}")
            return result

        except exceptions as e:
            if attempt == attempts:
                logger.error(f"{description}: all {attempts} attempts failed. Last error: {e}")
                raise

            logger.warning(
                f"{description}: attempt {attempt}/{attempts} failed: {e}. "
                f"Retrying in {delay:.1f}s..."
            )
            await asyncio.sleep(delay)
            delay = min(delay * exponential_base, max_delay)

    # Should never reach here
    msg = "Unexpected retry logic error"
    raise RuntimeError(msg)
