"""Retry helper for optimistic progress writes.

Only write conflicts are retried. Anything else a store raises (lost
connection, constraint violation) propagates on the first attempt.
"""

import asyncio
import functools
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import ParamSpec, TypeVar

from aimrank.repositories.exceptions import ConcurrencyError
from aimrank.shared.utils.logging import get_logger

logger = get_logger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retry behavior.

    Attributes:
        max_retries: Retry attempts after the first call
        base_delay: Delay before the first retry, in seconds
        max_delay: Upper bound on any single delay, in seconds
        exponential_base: Growth factor between consecutive delays
        jitter: Scale each delay by a random factor in [0.5, 1.5)
        retryable_exceptions: Exception types that trigger a retry
    """

    max_retries: int = 5
    base_delay: float = 0.01
    max_delay: float = 0.5
    exponential_base: float = 2.0
    jitter: bool = True
    retryable_exceptions: tuple[type[Exception], ...] = field(
        default_factory=lambda: (ConcurrencyError,)
    )

    def calculate_delay(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (0-indexed)."""
        delay = min(
            self.base_delay * (self.exponential_base**attempt),
            self.max_delay,
        )
        if self.jitter:
            delay = delay * (0.5 + random.random())
        return delay


def with_retry(
    config: RetryConfig | None = None,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Decorator re-running an async function on retryable errors.

    Example:
        @with_retry(RetryConfig(max_retries=3))
        async def write_progress():
            ...
    """
    _config = config or RetryConfig()

    def decorator(
        func: Callable[P, Awaitable[T]],
    ) -> Callable[P, Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            for attempt in range(_config.max_retries + 1):
                try:
                    return await func(*args, **kwargs)
                except _config.retryable_exceptions as e:
                    if attempt >= _config.max_retries:
                        logger.error(
                            "retry_exhausted",
                            function=func.__name__,
                            max_retries=_config.max_retries,
                            error_type=type(e).__name__,
                        )
                        raise
                    delay = _config.calculate_delay(attempt)
                    logger.warning(
                        "retry_attempt",
                        function=func.__name__,
                        attempt=attempt + 1,
                        max_retries=_config.max_retries,
                        delay=round(delay, 3),
                        error_type=type(e).__name__,
                    )
                    await asyncio.sleep(delay)
            raise RuntimeError("Unexpected state: no result and no exception")

        return wrapper

    return decorator


__all__ = ["RetryConfig", "with_retry"]
