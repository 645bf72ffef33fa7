"""
Retry with exponential backoff and jitter.

The Cloud Storage client retries API calls on its own; this decorator covers
failures that happen around those calls (connection resets while reading the
local file into a resumable session, token refresh hiccups) so a single
object does not fail the whole run.

Usage:
    from gcs_uploader.utils.retry import retry_with_backoff

    @retry_with_backoff(max_attempts=5, base_delay=1.0)
    def upload_file(path):
        ...
"""

import time
import random
import functools
from typing import Any, Callable, Optional, Tuple, Type

from gcs_uploader.utils.logging import get_logger

# Module-level logger
logger = get_logger(__name__)


def calculate_backoff_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    multiplier: float,
    jitter: bool,
) -> float:
    """
    Calculate delay for exponential backoff with optional jitter.

    Formula:
        delay = min(base_delay * (multiplier ** attempt), max_delay)
        if jitter:
            delay = delay * random.uniform(0.5, 1.5)

    Args:
        attempt: Current attempt number (0-indexed)
        base_delay: Base delay in seconds
        max_delay: Maximum delay cap
        multiplier: Exponential multiplier
        jitter: Whether to add random jitter

    Returns:
        Calculated delay in seconds

    Example:
        >>> calculate_backoff_delay(2, base_delay=1.0, max_delay=60.0,
        ...                         multiplier=2.0, jitter=False)
        4.0
    """
    delay = min(base_delay * (multiplier ** attempt), max_delay)

    if jitter:
        delay = delay * random.uniform(0.5, 1.5)

    return delay


def is_transient_error(exception: BaseException) -> bool:
    """
    Determine if an exception is likely transient (retryable).

    Common transient errors include connection errors, timeouts, rate
    limiting (429) and server errors (500, 502, 503, 504).
    """
    if isinstance(exception, (ConnectionError, TimeoutError)):
        return True

    # google.api_core exceptions carry the HTTP status in `code`
    code = getattr(exception, "code", None)
    if isinstance(code, int) and code in {408, 429, 500, 502, 503, 504}:
        return True

    # requests-style exceptions
    response = getattr(exception, "response", None)
    status_code = getattr(response, "status_code", None)
    if isinstance(status_code, int) and status_code in {408, 429, 500, 502, 503, 504}:
        return True

    return False


def retry_with_backoff(
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    backoff_multiplier: float = 2.0,
    jitter: bool = True,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    retry_if: Optional[Callable[[BaseException], bool]] = None,
    sleep: Optional[Callable[[float], None]] = None,
) -> Callable[[Callable], Callable]:
    """
    Decorator for retrying functions with exponential backoff.

    Args:
        max_attempts: Maximum number of attempts (including initial)
        base_delay: Initial delay between retries in seconds
        max_delay: Maximum delay between retries
        backoff_multiplier: Multiplier for exponential backoff
        jitter: Add randomness to prevent thundering herd
        exceptions: Tuple of exception types to retry on
        retry_if: Optional predicate; errors it rejects are raised immediately
        sleep: Function used to wait between attempts (time.sleep if None)

    Returns:
        Decorated function with retry logic

    Example:
        >>> @retry_with_backoff(max_attempts=5, retry_if=is_transient_error)
        ... def upload_to_gcs(file_path):
        ...     return blob.upload_from_filename(file_path)
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            for attempt in range(max_attempts):
                try:
                    result = func(*args, **kwargs)
                    if attempt > 0:
                        logger.info(f"{func.__name__} succeeded on attempt {attempt + 1}")
                    return result

                except exceptions as e:
                    if retry_if is not None and not retry_if(e):
                        raise

                    if attempt >= max_attempts - 1:
                        logger.error(
                            f"{func.__name__} failed after {max_attempts} attempts. "
                            f"Last error: {e}"
                        )
                        raise

                    delay = calculate_backoff_delay(
                        attempt=attempt,
                        base_delay=base_delay,
                        max_delay=max_delay,
                        multiplier=backoff_multiplier,
                        jitter=jitter,
                    )
                    logger.warning(
                        f"{func.__name__} failed on attempt {attempt + 1}: {e}. "
                        f"Retrying in {delay:.2f}s..."
                    )
                    (sleep or time.sleep)(delay)

            raise RuntimeError(f"{func.__name__} called with max_attempts={max_attempts}")

        return wrapper
    return decorator
