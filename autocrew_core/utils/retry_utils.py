"""Shared retry utilities with exponential backoff."""
import asyncio
import random
from typing import TypeVar, Callable, Optional, Awaitable
import logging

logger = logging.getLogger(__name__)

T = TypeVar('T')


class RetryConfig:
    """Configuration for retry behavior."""
    def __init__(
        self,
        max_retries: int = 3,
        initial_delay: float = 1.0,
        exponential_base: float = 2.0,
        max_delay: float = 60.0,
        jitter: bool = True,
    ):
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.exponential_base = exponential_base
        self.max_delay = max_delay
        self.jitter = jitter

    def get_delay(self, attempt: int) -> float:
        """Calculate delay for a given attempt number (0-indexed)."""
        delay = min(
            self.initial_delay * (self.exponential_base ** attempt),
            self.max_delay
        )

        if self.jitter:
            # Add random jitter between 0-25% of delay
            delay = delay * (1 + random.random() * 0.25)

        return delay


async def retry_with_exponential_backoff(
    func: Callable[..., Awaitable[T]],
    *args,
    config: Optional[RetryConfig] = None,
    retry_on: Optional[tuple] = None,
    should_retry: Optional[Callable[[BaseException], bool]] = None,
    **kwargs
) -> T:
    """
    Execute a function with exponential backoff retry logic.

    Args:
        func: The async function to execute
        config: Retry configuration (uses defaults if not provided)
        retry_on: Tuple of exception types to retry on (default: all exceptions)
        should_retry: Optional predicate; exceptions it rejects are raised immediately
        *args, **kwargs: Arguments to pass to the function

    Returns:
        The result of the function call

    Raises:
        The last exception if all retries are exhausted
    """
    config = config or RetryConfig()
    retry_on = retry_on or (Exception,)

    for attempt in range(config.max_retries + 1):
        try:
            return await func(*args, **kwargs)
        except retry_on as e:
            if should_retry is not None and not should_retry(e):
                raise

            if attempt >= config.max_retries:
                logger.error(
                    f"All {config.max_retries + 1} attempts failed. Last error: {str(e)}"
                )
                raise

            delay = config.get_delay(attempt)
            logger.warning(
                f"Attempt {attempt + 1}/{config.max_retries + 1} failed: {str(e)}. "
                f"Retrying in {delay:.2f} seconds..."
            )
            await asyncio.sleep(delay)
