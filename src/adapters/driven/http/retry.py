"""Retry logic for the startup probe.

Deliveries are never retried; only the optional downstream health check
goes through this decorator.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from functools import wraps

import aiohttp
from aiohttp import ClientResponse

__all__ = ["retry", "RETRYABLE_ERRORS"]

logger = logging.getLogger(__name__)

# Transient failures worth another probe attempt
RETRYABLE_ERRORS = (
    aiohttp.ClientConnectorError,
    aiohttp.ClientConnectionError,
    aiohttp.ClientOSError,
    aiohttp.ServerTimeoutError,
    aiohttp.ClientPayloadError,
    asyncio.TimeoutError,
)

AsyncHttpFn = Callable[..., Awaitable[ClientResponse]]


def retry(
    times: int = 3,
    delay_sec: tuple[float, ...] = (0.2, 0.5, 1.0),
) -> Callable[[AsyncHttpFn], AsyncHttpFn]:
    """Decorate an async HTTP call with backoff retry on transient errors.

    Other exceptions propagate on the first attempt.

    Args:
        times: Number of attempts (1 = no retry).
        delay_sec: Delays between attempts; the last one is reused.

    Returns:
        Decorator function.
    """
    if times < 1:
        raise ValueError("times must be at least 1")

    def decorator(func: AsyncHttpFn) -> AsyncHttpFn:
        @wraps(func)
        async def wrapper(*args: object, **kwargs: object) -> ClientResponse:
            for attempt in range(1, times + 1):
                try:
                    return await func(*args, **kwargs)
                except RETRYABLE_ERRORS as e:
                    if attempt == times:
                        logger.debug(f"{func.__name__}: giving up after {times} attempts: {e!r}")
                        raise
                    delay = delay_sec[min(attempt - 1, len(delay_sec) - 1)]
                    logger.debug(f"{func.__name__}: attempt {attempt}/{times} failed ({e!r}), retrying in {delay}s")
                    await asyncio.sleep(delay)
            raise RuntimeError("Retry wrapper exhausted")

        return wrapper

    return decorator
