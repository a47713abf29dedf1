"""Backoff retry for routing and geocoding calls."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

from .exceptions import TransientError

T = TypeVar("T")
logger = logging.getLogger(__name__)


@dataclass
class RetryConfig:
    """How often and how patiently a collaborator call is repeated.

    ``max_attempts`` counts the first call, so ``max_attempts=1`` disables
    retrying altogether.
    """

    max_attempts: int = 2
    base_delay: float = 0.5
    multiplier: float = 2.0
    max_delay: float = 5.0
    retryable_exceptions: tuple[type[Exception], ...] = field(
        default_factory=lambda: (TransientError,)
    )

    @classmethod
    def from_retries(cls, retries: int, base_delay: float = 0.5) -> "RetryConfig":
        """Build a config from a number of *extra* attempts."""
        return cls(max_attempts=retries + 1, base_delay=base_delay)

    def delay_for(self, attempt: int) -> float:
        return min(self.base_delay * (self.multiplier**attempt), self.max_delay)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    config: RetryConfig | None = None,
    operation_name: str = "operation",
) -> T:
    """Await ``operation`` until it succeeds or the attempts run out.

    Only ``config.retryable_exceptions`` are retried; anything else
    propagates on the first failure. The last retryable error is re-raised.
    """
    config = config or RetryConfig()

    for attempt in range(config.max_attempts):
        try:
            return await operation()
        except config.retryable_exceptions as e:
            if attempt == config.max_attempts - 1:
                logger.warning(f"{operation_name} gave up after {attempt + 1} attempt(s): {e}")
                raise
            delay = config.delay_for(attempt)
            logger.info(
                f"{operation_name} failed (attempt {attempt + 1}/{config.max_attempts}), "
                f"retrying in {delay:.1f}s: {e}"
            )
            await asyncio.sleep(delay)

    raise RuntimeError(f"{operation_name}: max_attempts must be at least 1")


def with_retry_sync(
    operation: Callable[[], T],
    config: RetryConfig | None = None,
    operation_name: str = "operation",
) -> T:
    """Blocking counterpart of :func:`with_retry`."""
    config = config or RetryConfig()

    for attempt in range(config.max_attempts):
        try:
            return operation()
        except config.retryable_exceptions as e:
            if attempt == config.max_attempts - 1:
                logger.warning(f"{operation_name} gave up after {attempt + 1} attempt(s): {e}")
                raise
            delay = config.delay_for(attempt)
            logger.info(f"{operation_name} failed (attempt {attempt + 1}), retrying in {delay:.1f}s")
            time.sleep(delay)

    raise RuntimeError(f"{operation_name}: max_attempts must be at least 1")
