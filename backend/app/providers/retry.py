"""Backoff for rate-limited generation calls.

A plan is generated in one or two sequential calls; a 429 on either call
should wait and try again rather than fail the customer's submission. Any
other provider error ends the attempt immediately.
"""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, TypeVar

from app.providers.errors import RateLimitError

__all__ = ["backoff_delay", "with_retries"]

if TYPE_CHECKING:
    from app.providers.config import ProviderConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

_JITTER_FRACTION = 0.1


def backoff_delay(attempt: int, error: Exception, config: "ProviderConfig") -> float:
    """Seconds to wait before retry number ``attempt + 1``.

    A provider ``retry_after_seconds`` hint wins over the exponential
    schedule. Both are capped at ``retry_max_delay_ms``.
    """
    cap_seconds = config.retry_max_delay_ms / 1000
    hint = getattr(error, "retry_after_seconds", None)
    if hint:
        return min(hint, cap_seconds)

    delay_ms = config.retry_base_delay_ms * 2**attempt
    delay_ms += random.uniform(0, delay_ms * _JITTER_FRACTION)
    return min(delay_ms / 1000, cap_seconds)


async def with_retries(
    func: Callable[[], Awaitable[T]],
    config: "ProviderConfig",
    retryable_errors: tuple[type[Exception], ...] = (RateLimitError,),
) -> T:
    """Await ``func`` until it succeeds or the retry budget is spent.

    Args:
        func: Zero-argument coroutine factory (called once per attempt).
        config: Supplies ``max_retries`` and the backoff bounds.
        retryable_errors: Errors that earn another attempt.

    Returns:
        Whatever ``func`` returned on the first successful attempt.

    Raises:
        The last retryable error once ``max_retries`` retries have failed,
        or any non-retryable error as soon as it occurs.
    """
    attempts = config.max_retries + 1
    attempt = 0
    while True:
        try:
            return await func()
        except retryable_errors as e:
            if attempt + 1 >= attempts:
                logger.error("Giving up after %d attempts: %s", attempts, e)
                raise
            delay = backoff_delay(attempt, e, config)
            logger.warning(
                "Attempt %d/%d rate limited (%s); sleeping %.2fs",
                attempt + 1,
                attempts,
                e,
                delay,
            )
            await asyncio.sleep(delay)
            attempt += 1
