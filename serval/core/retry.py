"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Serval, a product of Garudex Labs

Retry logic utilities for Serval.

Provides a retry decorator for transient failures while persisting the
credentials file. Controller calls are never retried here: the request engine
owns its single login retry.
"""

import functools
import time
from typing import Callable, Type, Tuple, TypeVar, Any

from serval.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar('T')


def retry_on_transient_failure(
    max_retries: int = 3,
    base_delay: float = 0.1,
    backoff_factor: float = 2.0,
    transient_exceptions: Tuple[Type[Exception], ...] = (OSError,)
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator to retry a function on transient failures with exponential backoff.

    Args:
        max_retries: Maximum number of retry attempts (default: 3)
        base_delay: Initial delay in seconds before first retry (default: 0.1)
        backoff_factor: Multiplier for delay between retries (default: 2.0)
        transient_exceptions: Tuple of exception types to retry on (default: OSError)

    Returns:
        Decorated function that retries on transient failures

    Example:
        @retry_on_transient_failure(max_retries=3)
        def write_file(path, content):
            with open(path, 'w') as f:
                f.write(content)
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            last_exception = None

            for attempt in range(max_retries + 1):  # +1 for initial attempt
                try:
                    return func(*args, **kwargs)
                except transient_exceptions as e:
                    last_exception = e

                    if attempt < max_retries:
                        delay = base_delay * (backoff_factor ** attempt)

                        logger.warning(
                            f"Transient failure in {func.__name__} (attempt {attempt + 1}/{max_retries + 1}): {e}. "
                            f"Retrying in {delay:.2f}s..."
                        )

                        time.sleep(delay)
                    else:
                        logger.error(
                            f"Permanent failure in {func.__name__} after {max_retries + 1} attempts: {e}",
                            exc_info=True
                        )

            raise last_exception

        return wrapper
    return decorator
