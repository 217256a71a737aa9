"""
Retry with exponential backoff for rate-limited lookups.

Only rate-limit-shaped failures are retried; anything else propagates on the
first attempt so the caller can classify it or fall back.
"""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from .config import LookupConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Case-insensitive substrings that mark a throttling response
RATE_LIMIT_INDICATORS = ("rate limit", "too many requests")


def is_rate_limit_message(text: str | None) -> bool:
    """Check if a message or response body indicates rate limiting."""
    if not text:
        return False
    lowered = text.lower()
    return any(indicator in lowered for indicator in RATE_LIMIT_INDICATORS)


def is_rate_limit_error(error: BaseException) -> bool:
    """Check if an exception's message indicates rate limiting."""
    return is_rate_limit_message(str(error))


async def with_backoff(
    operation: Callable[[], Awaitable[T]],
    config: LookupConfig | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Run an async operation, retrying rate-limited failures with backoff.

    Makes at most config.max_retries attempts. Before retry n (0-based
    attempt index of the failed call), waits
    initial_delay * backoff_multiplier ** n seconds.

    Args:
        operation: Zero-argument coroutine function to call
        config: Retry tuning (defaults to LookupConfig())
        sleep: Awaitable sleep, injectable for tests

    Returns:
        The operation's result

    Raises:
        The operation's exception if it is not rate-limit-shaped, or if
        attempts are exhausted.
    """
    config = config or LookupConfig()
    attempts = max(1, config.max_retries)

    for attempt in range(attempts):
        try:
            return await operation()
        except Exception as e:
            if not is_rate_limit_error(e) or attempt >= attempts - 1:
                raise
            delay = config.backoff_delay(attempt)
            logger.debug(
                "Rate limited (attempt %d/%d), retrying in %.2fs: %s",
                attempt + 1, attempts, delay, e,
            )
            await sleep(delay)

    # Unreachable: the loop either returns or raises
    raise RuntimeError("retry loop exited without result")
