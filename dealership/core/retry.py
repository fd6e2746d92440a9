"""
Retry helper for async operations that can lose a race on a generated identifier.

Booking ids and application ids are derived from counters and timestamps, so two
concurrent requests can produce the same value. The unique constraint rejects
the second insert; the operation raises RetryableError and is run again with a
fresh identifier.
"""

import asyncio
import logging
from functools import wraps
from typing import Any, Callable, TypeVar

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


class RetryableError(Exception):
    """
    Transient failure that should be retried with backoff.

    Raised when a generated identifier collides with one committed by a
    concurrent request.
    """


def async_retry(
    max_attempts: int = 3,
    base_delay: float = 0.05,
    max_delay: float = 1.0
) -> Callable[[F], F]:
    """Decorator for async functions with exponential backoff retry logic.

    Only RetryableError is retried; every other exception propagates at once.

    Args:
        max_attempts: Maximum number of attempts (default: 3)
        base_delay: Initial delay in seconds between attempts
        max_delay: Maximum delay in seconds between attempts

    Backoff Strategy:
    - delay = base_delay * (2 ^ attempt), capped at max_delay
    - Logs a warning per retry and an error when attempts are exhausted
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            for attempt in range(max_attempts):
                try:
                    return await func(*args, **kwargs)
                except RetryableError as e:
                    if attempt == max_attempts - 1:
                        logger.error(
                            f"All {max_attempts} attempts failed for {func.__name__}. "
                            f"Final error: {str(e)}"
                        )
                        raise
                    delay = min(base_delay * (2 ** attempt), max_delay)
                    logger.warning(
                        f"Retry attempt {attempt + 1}/{max_attempts} for {func.__name__}. "
                        f"Error: {str(e)}. Waiting {delay:.2f}s..."
                    )
                    await asyncio.sleep(delay)

        return wrapper
    return decorator
