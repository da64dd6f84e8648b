"""Retry decorator with exponential backoff and HTTP 429 Retry-After support."""

import functools
import logging
import random
import time
from typing import Callable, Optional, Tuple, Type

logger = logging.getLogger(__name__)


def _retry_after_seconds(error: Exception) -> Optional[float]:
    """Extract Retry-After (seconds) from a 429 response attached to an error."""
    response = getattr(error, "response", None)
    if response is None or getattr(response, "status_code", None) != 429:
        return None
    value = response.headers.get("Retry-After") if response.headers else None
    if value is None:
        return None
    try:
        return max(0.0, float(value))
    except (TypeError, ValueError):
        return None


def _is_client_error(error: Exception) -> bool:
    """4xx other than 429 will not succeed on retry."""
    response = getattr(error, "response", None)
    status = getattr(response, "status_code", None)
    return status is not None and 400 <= status < 500 and status != 429


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exceptions: Tuple[Type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], None] = time.sleep,
):
    """Retry the wrapped call on `exceptions`, doubling the delay each time.

    A 429 response with a Retry-After header overrides the computed delay.
    Other 4xx responses are raised immediately.
    """

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if attempt >= max_retries or _is_client_error(e):
                        raise
                    delay = _retry_after_seconds(e)
                    if delay is None:
                        delay = min(max_delay, base_delay * (2 ** attempt))
                        delay += random.uniform(0, delay * 0.1)
                    logger.warning(
                        f"{func.__name__} failed ({e}); retry {attempt + 1}/{max_retries} in {delay:.1f}s"
                    )
                    sleep(delay)

        return wrapper

    return decorator
