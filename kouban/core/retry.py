"""
Retry utilities with backoff.

Provides retry configuration and helpers for oracle calls. Backoff is linear
by default (delay proportional to the attempt number); exponential backoff
is available for callers that want it.
"""

import asyncio
import random
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, TypeVar, Any, Optional, Tuple, Type

from kouban.core.logging_config import get_logger
from kouban.core.exceptions import OracleCallError, OracleSchemaError, ContentBlockedError

logger = get_logger("core.retry")

T = TypeVar("T")


class BackoffStrategy(Enum):
    """How the delay grows between attempts."""
    LINEAR = "linear"
    EXPONENTIAL = "exponential"


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""
    max_retries: int = 3
    base_delay: float = 2.0  # Base delay in seconds
    max_delay: float = 30.0  # Maximum delay in seconds
    strategy: BackoffStrategy = BackoffStrategy.LINEAR
    exponential_base: float = 2.0
    jitter: bool = False
    jitter_range: Tuple[float, float] = (0.5, 1.5)
    retryable_exceptions: Tuple[Type[Exception], ...] = (
        OracleCallError,
        OracleSchemaError,
    )
    # Never retried even though they subclass a retryable type
    fatal_exceptions: Tuple[Type[Exception], ...] = (
        ContentBlockedError,
    )

    def is_retryable(self, error: Exception) -> bool:
        """Check whether an error should trigger another attempt."""
        if isinstance(error, self.fatal_exceptions):
            return False
        return isinstance(error, self.retryable_exceptions)


DEFAULT_RETRY_CONFIG = RetryConfig()


def calculate_delay(
    attempt: int,
    config: RetryConfig
) -> float:
    """
    Calculate delay before the next attempt.

    Args:
        attempt: Number of the attempt that just failed (1-indexed)
        config: Retry configuration

    Returns:
        Delay in seconds before next attempt
    """
    attempt = max(attempt, 1)
    if config.strategy == BackoffStrategy.EXPONENTIAL:
        delay = config.base_delay * (config.exponential_base ** (attempt - 1))
    else:
        delay = config.base_delay * attempt

    delay = min(delay, config.max_delay)

    if config.jitter:
        delay *= random.uniform(*config.jitter_range)

    return delay


async def retry_async_call(
    func: Callable[..., Any],
    *args: Any,
    config: Optional[RetryConfig] = None,
    on_retry: Optional[Callable[[Exception, int], None]] = None,
    deadline: Optional[float] = None,
    clock: Callable[[], float] = time.monotonic,
    **kwargs: Any
) -> Any:
    """
    Retry an async function call with backoff.

    Args:
        func: Async function to call
        *args: Positional arguments for the function
        config: Retry configuration (uses defaults if not provided)
        on_retry: Optional callback called on each retry with (exception, attempt)
        deadline: Absolute clock time after which no retry may end
        clock: Time source the deadline is measured on
        **kwargs: Keyword arguments for the function

    Returns:
        Result of the function call

    Example:
        payload = await retry_async_call(
            oracle.prescan,
            sample,
            config=RetryConfig(max_retries=2)
        )
    """
    config = config or DEFAULT_RETRY_CONFIG
    total_attempts = config.max_retries + 1

    for attempt in range(1, total_attempts + 1):
        try:
            return await func(*args, **kwargs)
        except Exception as e:
            if not config.is_retryable(e) or attempt == total_attempts:
                if config.is_retryable(e):
                    logger.error(f"All {total_attempts} attempts failed. Last error: {e}")
                raise

            delay = calculate_delay(attempt, config)
            if deadline is not None and clock() + delay > deadline:
                logger.warning(f"Attempt {attempt}/{total_attempts} failed: {e}. No time left for a retry")
                raise

            logger.warning(
                f"Attempt {attempt}/{total_attempts} failed: {e}. "
                f"Retrying in {delay:.2f}s..."
            )
            if on_retry:
                on_retry(e, attempt)
            await asyncio.sleep(delay)

    raise RuntimeError("Retry logic failed unexpectedly")
