"""
Retry utility with exponential backoff for durable store reads
"""
import asyncio
import logging
import random
from functools import wraps
from typing import Callable, Type, Tuple

import httpx

logger = logging.getLogger(__name__)


def retry_with_backoff(
    max_retries: int = 3,
    initial_delay: float = 0.5,
    max_delay: float = 8.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    retryable_exceptions: Tuple[Type[Exception], ...] = (
        httpx.TimeoutException,
        httpx.TransportError,
    ),
):
    """
    Decorator to retry a coroutine with exponential backoff.

    Only transport-level failures are retried; HTTP status handling belongs
    to the caller. The last exception is re-raised once retries run out.

    Args:
        max_retries: Maximum number of retry attempts
        initial_delay: Initial delay in seconds
        max_delay: Maximum delay in seconds
        exponential_base: Base for exponential backoff
        jitter: Add random jitter to prevent thundering herd
        retryable_exceptions: Exceptions that should trigger retry
    """
    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            for attempt in range(max_retries + 1):
                try:
                    return await func(*args, **kwargs)
                except retryable_exceptions as e:
                    if attempt >= max_retries:
                        logger.warning(
                            "Max retries exceeded",
                            extra={"func": func.__name__, "attempts": attempt + 1},
                        )
                        raise

                    delay = min(initial_delay * (exponential_base ** attempt), max_delay)
                    if jitter:
                        delay += delay * 0.1 * random.random()

                    logger.info(
                        "Retrying after transport error",
                        extra={
                            "func": func.__name__,
                            "attempt": attempt + 1,
                            "delay": round(delay, 2),
                            "error": type(e).__name__,
                        },
                    )
                    await asyncio.sleep(delay)

        return wrapper
    return decorator
