# SPDX-License-Identifier: MIT
"""Backoff for calls to rate-limited web services."""

import asyncio
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, TypeVar

from .exceptions import RateLimitError
from .logging_config import get_detail_logger


detail_logger = get_detail_logger()

T = TypeVar("T")


def _wait_before_retry(error: Exception, backoff: float, max_delay: float) -> float:
    """Seconds to sleep; a server-supplied Retry-After wins over the backoff."""
    if isinstance(error, RateLimitError) and error.retry_after:
        return min(float(error.retry_after), max_delay)
    return backoff


def async_retry_with_backoff(
    max_retries: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    exceptions: tuple[type[Exception], ...] = (Exception,),
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Retry a coroutine function when it raises one of ``exceptions``.

    The first retry waits ``initial_delay`` seconds and every further retry
    multiplies the wait by ``exponential_base``, never beyond ``max_delay``.
    Once ``max_retries`` retries are spent the last error propagates.

    Example:
        >>> @async_retry_with_backoff(max_retries=2, exceptions=(RateLimitError,))
        ... async def lookup(doi):
        ...     return await registry.fetch(doi)
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            backoff = initial_delay
            attempt = 0
            while True:
                attempt += 1
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    if attempt > max_retries:
                        detail_logger.debug(
                            f"{func.__name__} gave up after {max_retries} retries: {e}"
                        )
                        raise

                    wait = _wait_before_retry(e, backoff, max_delay)
                    detail_logger.debug(
                        f"{func.__name__} attempt {attempt}/{max_retries + 1} failed: "
                        f"{e}. Retrying in {wait:.1f}s"
                    )
                    await asyncio.sleep(wait)
                    backoff = min(backoff * exponential_base, max_delay)

        return wrapper

    return decorator
