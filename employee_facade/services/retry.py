"""
RetryPolicy - bounded retries with exponential backoff and jitter.

Only transient failures (upstream 5xx, transport/decode failures, 429) are
retried. Everything else, including CircuitOpenError, propagates on the first
attempt.
"""

import asyncio
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from loguru import logger

from employee_facade.services.errors import (
    RETRYABLE_ERRORS,
    RateLimitError,
    UpstreamClientError,
)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_attempts: int = 3
    base_delay: float = 0.1  # seconds before the second attempt
    max_delay: float = 2.0
    multiplier: float = 2.0
    jitter: bool = True


class RetryPolicy:
    """
    Named retry policy shared by every upstream operation.

    Usage:
        policy = RetryPolicy("employee_api", RetryConfig(max_attempts=3))
        employees = await policy.run("list_all", client.list_all)
    """

    def __init__(
        self,
        name: str,
        config: RetryConfig | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.name = name
        self.config = config or RetryConfig()
        self._sleep = sleep

    async def run(self, operation: str, call: Callable[[], Awaitable[T]]) -> T:
        """Invoke ``call`` until it succeeds, fails permanently, or attempts run out."""
        attempt = 1
        while True:
            try:
                result = await call()
            except RETRYABLE_ERRORS as e:
                if attempt >= self.config.max_attempts:
                    if attempt > 1:
                        logger.error(
                            f"Retry '{self.name}': {operation} exhausted {attempt} attempts: {e}"
                        )
                    # A 429 that outlives the retry budget is reported as an upstream failure
                    if attempt > 1 and isinstance(e, RateLimitError):
                        raise UpstreamClientError(
                            f"Upstream still rate limiting after {attempt} attempts",
                            status=429,
                            service_id=e.service_id,
                        ) from e
                    raise

                delay = self.compute_delay(attempt)
                if isinstance(e, RateLimitError) and e.retry_after is not None:
                    # Never sooner than the upstream asked, never beyond max_delay
                    delay = min(max(delay, e.retry_after), self.config.max_delay)
                logger.warning(
                    f"Retry '{self.name}': {operation} attempt {attempt}/"
                    f"{self.config.max_attempts} failed with {e.kind}, "
                    f"retrying in {delay:.3f}s"
                )
                await self._sleep(delay)
                attempt += 1
                continue

            if attempt > 1:
                logger.info(f"Retry '{self.name}': {operation} succeeded on attempt {attempt}")
            return result

    def compute_delay(self, attempt: int) -> float:
        """Backoff before attempt ``attempt + 1``."""
        delay = self.config.base_delay * (self.config.multiplier ** (attempt - 1))
        delay = min(delay, self.config.max_delay)

        if self.config.jitter:
            jitter_amount = delay * 0.1
            delay += random.uniform(-jitter_amount, jitter_amount)

        return max(0.0, delay)

