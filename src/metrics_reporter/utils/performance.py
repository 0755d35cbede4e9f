"""
Timing and retry helpers for report runs and bulk requests.
"""
import asyncio
import logging
import time
from functools import wraps
from typing import Any, Callable, Coroutine, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')

DEFAULT_RETRY_DELAY = 1.0  # seconds
DEFAULT_RETRY_BACKOFF = 2.0


def async_timed(func: Callable[..., Coroutine[Any, Any, T]]) -> Callable[..., Coroutine[Any, Any, T]]:
    """Log how long each call of an async function takes, at debug level."""
    @wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        started = time.perf_counter()
        try:
            return await func(*args, **kwargs)
        finally:
            logger.debug(f"{func.__qualname__} finished in {time.perf_counter() - started:.4f} seconds")

    return wrapper


async def with_retry(
    func: Callable[..., Coroutine[Any, Any, T]],
    *args: Any,
    retries: int = 3,
    delay: float = DEFAULT_RETRY_DELAY,
    backoff: float = DEFAULT_RETRY_BACKOFF,
    exceptions: Tuple[Type[BaseException], ...] = (Exception,),
    **kwargs: Any
) -> T:
    """
    Await ``func`` until it succeeds or the retries are used up.

    Args:
        func: Async function to call
        *args: Positional arguments for the function
        retries: Retries after the first attempt; 0 calls the function once
        delay: Seconds to wait before the first retry
        backoff: Factor the delay grows by after each retry
        exceptions: Exceptions that trigger a retry; anything else propagates at once
        **kwargs: Keyword arguments for the function

    Returns:
        T: Result of the first successful call

    Raises:
        Exception: The error of the final attempt
    """
    if retries < 0:
        raise ValueError(f"retries must not be negative, got {retries}")

    attempts = retries + 1
    wait = delay

    for attempt in range(1, attempts + 1):
        try:
            return await func(*args, **kwargs)
        except exceptions as e:
            if attempt == attempts:
                logger.error(f"Giving up after {attempts} attempts: {e}")
                raise
            logger.warning(f"Attempt {attempt}/{attempts} failed: {e}. Retrying in {wait:.2f} seconds")
            await asyncio.sleep(wait)
            wait *= backoff

