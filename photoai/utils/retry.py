"""Backoff retries for idempotent provider calls."""

import asyncio
import functools
from typing import Callable, Iterator, TypeVar

from .errors import ProviderUnavailable
from .logger import get_logger

logger = get_logger(__name__)

T = TypeVar('T')


def backoff_delays(
    retries: int,
    initial_delay: float = 1.0,
    backoff_factor: float = 2.0,
    max_delay: float = 30.0,
) -> Iterator[float]:
    """Sleep before each of ``retries`` further attempts: 1, 2, 4, ... capped."""
    delay = initial_delay
    for _ in range(retries):
        yield min(delay, max_delay)
        delay *= backoff_factor


def retry_async(
    max_attempts: int = 3,
    backoff_factor: float = 2.0,
    initial_delay: float = 1.0,
    max_delay: float = 30.0,
    exceptions: tuple = (ProviderUnavailable,),
):
    """
    Retry an async call on transient provider failures.

    Only wrap calls that are safe to repeat. Queue submissions are not:
    a retried submission can start a second paid job whose webhook then
    matches nothing.

    Example:
        @retry_async(max_attempts=3)
        async def generate_image_sync(self, tensor_path): ...
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            delays = backoff_delays(max_attempts - 1, initial_delay, backoff_factor, max_delay)
            attempt = 1

            while True:
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    delay = next(delays, None)
                    extra = {
                        "function": func.__name__,
                        "attempt": attempt,
                        "max_attempts": max_attempts,
                        "upstream_status": getattr(e, "upstream_status", None),
                        "error": str(e),
                    }
                    if delay is None:
                        logger.error(f"{func.__name__} gave up after {attempt} attempts", extra=extra)
                        raise

                    logger.warning(
                        f"{func.__name__} attempt {attempt}/{max_attempts} failed, retrying in {delay}s",
                        extra=extra
                    )
                    await asyncio.sleep(delay)
                    attempt += 1

        return wrapper
    return decorator
