"""
Graceful degradation for relay endpoints.

Provides:
- fallback: answer with a substitute value when a specific failure occurs
"""

import asyncio
import functools
import logging
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


def fallback(
    fallback_value: Any = None,
    fallback_func: Optional[Callable] = None,
    exceptions: tuple = (Exception,),
    log_error: bool = True,
):
    """
    Decorator for graceful degradation when operations fail.

    Args:
        fallback_value: Static value to return on failure
        fallback_func: Function to call on failure (receives original args/kwargs and exception)
        exceptions: Exception types that trigger the fallback; anything else propagates
        log_error: Whether to log the error

    Usage:
        @fallback(fallback_func=lambda args, kwargs, e: empty_summary(),
                  exceptions=(PrimaryUnavailableError,))
        async def relay_status(context, user_agent):
            ...
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except exceptions as e:
                if log_error:
                    logger.warning(f"Fallback triggered for {func.__name__}: {e}")

                if fallback_func is not None:
                    result = fallback_func(args, kwargs, e)
                    if asyncio.iscoroutine(result):
                        return await result
                    return result

                return fallback_value

        return wrapper
    return decorator
