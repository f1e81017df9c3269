"""Retry-with-backoff executor for fallible async operations.

There is no attempt cap: attempts continue until one succeeds or the
wall-clock ceiling measured from the first attempt is exceeded.
"""

import asyncio
import logging
import random
import time
from collections.abc import Awaitable, Callable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRY_CEILING = 60.0  # seconds since the first attempt
BASE_DELAY = 0.5  # seconds
GROWTH_FACTOR = 1.5
JITTER_MIN = 0.75
JITTER_MAX = 1.25


def random_jitter() -> float:
    """Draw a jitter multiplier uniformly from [0.75, 1.25)."""
    return JITTER_MIN + random.random() * (JITTER_MAX - JITTER_MIN)


def backoff_delay(
    attempt: int,
    jitter: float,
    *,
    base: float = BASE_DELAY,
    growth: float = GROWTH_FACTOR,
) -> float:
    """Sleep duration in seconds before retrying after failed attempt ``attempt`` (0-based)."""
    return base * growth**attempt * jitter


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    *,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    ceiling: float = RETRY_CEILING,
    base: float = BASE_DELAY,
    growth: float = GROWTH_FACTOR,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    jitter: Callable[[], float] = random_jitter,
) -> T:
    """Await ``operation`` until it succeeds or the time ceiling is exceeded.

    Args:
        operation: Zero-argument coroutine function to invoke.
        retry_on: Exception types that count as retryable failures. Anything
            else propagates immediately.
        ceiling: Seconds after the first attempt past which a failure is
            treated as permanent.
        base: Delay before the first retry, before jitter.
        growth: Multiplier applied to the delay for each further attempt.
        clock: Monotonic time source, injectable for tests.
        sleep: Async sleep, injectable for tests.
        jitter: Source of the jitter multiplier.

    Returns:
        Whatever ``operation`` returned on its first successful call.

    Raises:
        The last retryable exception once the ceiling is exceeded.
    """
    start = clock()
    attempt = 0

    while True:
        try:
            return await operation()
        except retry_on as exc:
            elapsed = clock() - start
            if elapsed > ceiling:
                logger.warning("Retry time exceeded after %d attempt(s) (%.1fs)", attempt + 1, elapsed)
                raise

            delay = backoff_delay(attempt, jitter(), base=base, growth=growth)
            logger.debug("Attempt %d failed (%s), retrying in %.2fs", attempt + 1, exc, delay)
            await sleep(delay)
            attempt += 1
