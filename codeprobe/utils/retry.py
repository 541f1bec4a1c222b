"""
Retry decorator for resilient LLM provider calls.
Implements exponential backoff.
"""
import time
import functools
from typing import Callable, Optional, Type, Tuple
from codeprobe.utils.logger import setup_logger

logger = setup_logger(__name__)


def retry_with_backoff(
    max_attempts: int = 3,
    initial_delay: float = 1.0,
    backoff_factor: float = 2.0,
    max_delay: float = 30.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    giveup_on: Tuple[Type[Exception], ...] = (),
    sleep: Optional[Callable[[float], None]] = None
):
    """
    Decorator for retrying functions with exponential backoff.

    Args:
        max_attempts: Maximum number of attempts
        initial_delay: Initial delay between retries in seconds
        backoff_factor: Multiplier for delay after each retry
        max_delay: Maximum delay between retries
        exceptions: Tuple of exception types to catch and retry
        giveup_on: Exception types re-raised at once, even when they match exceptions
        sleep: Function used to wait between attempts (time.sleep when None)

    Example:
        @retry_with_backoff(max_attempts=3, initial_delay=2.0)
        def call_provider():
            response = requests.post('https://api.example.com/chat/completions')
            response.raise_for_status()
            return response.json()
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            delay = initial_delay

            for attempt in range(1, max_attempts + 1):
                try:
                    result = func(*args, **kwargs)

                    if attempt > 1:
                        logger.info(
                            f"{func.__name__} succeeded on attempt {attempt}/{max_attempts}"
                        )

                    return result

                except giveup_on:
                    raise

                except exceptions as e:
                    if attempt == max_attempts:
                        logger.error(
                            f"{func.__name__} failed after {max_attempts} attempts: {str(e)}"
                        )
                        raise

                    current_delay = min(delay, max_delay)

                    logger.warning(
                        f"{func.__name__} attempt {attempt}/{max_attempts} failed: {str(e)}. "
                        f"Retrying in {current_delay:.1f}s..."
                    )

                    (sleep or time.sleep)(current_delay)
                    delay *= backoff_factor

        return wrapper
    return decorator
