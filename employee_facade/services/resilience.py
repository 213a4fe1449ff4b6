"""
Resilience composition for upstream calls: ``with_breaker(with_retry(call))``.

The breaker is the outermost guard, so one exhausted retry sequence counts as
a single failure in the breaker's window. The per-request deadline sits
between the two and cancels any remaining attempts when it expires.
"""

import asyncio
from datetime import timedelta
from typing import Any, Awaitable, Callable, TypeVar

from loguru import logger

from employee_facade.services.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerRegistry,
    CircuitState,
)
from employee_facade.services.errors import (
    IGNORED_BY_BREAKER,
    CircuitOpenError,
    RequestTimeoutError,
)
from employee_facade.services.retry import RetryConfig, RetryPolicy
from employee_facade.settings import Settings

T = TypeVar("T")

POLICY_NAME = "employee_api"


def retry_config_from_settings(settings: Settings) -> RetryConfig:
    return RetryConfig(
        max_attempts=settings.retry_max_attempts,
        base_delay=settings.retry_base_delay,
        max_delay=settings.retry_max_delay,
        multiplier=settings.retry_multiplier,
        jitter=settings.retry_jitter,
    )


def breaker_config_from_settings(settings: Settings) -> CircuitBreakerConfig:
    return CircuitBreakerConfig(
        failure_rate_threshold=settings.breaker_failure_rate_threshold,
        sliding_window_size=settings.breaker_sliding_window_size,
        minimum_calls=settings.breaker_minimum_calls,
        wait_duration=timedelta(seconds=settings.breaker_wait_duration),
        half_open_max_requests=settings.breaker_half_open_calls,
    )


def with_retry(
    policy: RetryPolicy, operation: str, call: Callable[[], Awaitable[T]]
) -> Callable[[], Awaitable[T]]:
    """Wrap ``call`` in the retry policy."""

    async def retried() -> T:
        return await policy.run(operation, call)

    return retried


def with_deadline(
    seconds: float | None, service_id: str, call: Callable[[], Awaitable[T]]
) -> Callable[[], Awaitable[T]]:
    """Abort ``call`` (and its pending retries) once ``seconds`` have elapsed."""
    if seconds is None:
        return call

    async def bounded() -> T:
        try:
            return await asyncio.wait_for(call(), timeout=seconds)
        except asyncio.TimeoutError as e:
            raise RequestTimeoutError(service_id, seconds) from e

    return bounded


def with_breaker(
    breaker: CircuitBreaker, call: Callable[[], Awaitable[T]]
) -> Callable[[], Awaitable[T]]:
    """Guard ``call`` with the breaker and feed it the logical outcome."""

    async def guarded() -> T:
        admission = breaker.try_acquire()
        if not admission:
            raise CircuitOpenError(
                breaker.service_id,
                breaker.get_time_until_reset() or 0,
            )

        try:
            result = await call()
        except asyncio.CancelledError:
            breaker.release(admission)
            raise
        except IGNORED_BY_BREAKER:
            breaker.record_success()
            raise
        except Exception:
            breaker.record_failure()
            raise

        breaker.record_success()
        return result

    return guarded


class ResilientExecutor:
    """
    One retry policy and one circuit breaker shared by every upstream operation.

    Usage:
        executor = ResilientExecutor.from_settings(settings)
        employees = await executor.call("list_all", client.list_all)
    """

    def __init__(
        self,
        retry_policy: RetryPolicy,
        breaker: CircuitBreaker,
        deadline: float | None = None,
        registry: CircuitBreakerRegistry | None = None,
    ):
        self.retry_policy = retry_policy
        self.breaker = breaker
        self.deadline = deadline
        self.registry = registry

    @classmethod
    def from_settings(
        cls, settings: Settings, name: str = POLICY_NAME
    ) -> "ResilientExecutor":
        registry = CircuitBreakerRegistry(breaker_config_from_settings(settings))
        return cls(
            retry_policy=RetryPolicy(name, retry_config_from_settings(settings)),
            breaker=registry.get(name),
            deadline=settings.request_deadline,
            registry=registry,
        )

    async def call(self, operation: str, call: Callable[[], Awaitable[T]]) -> T:
        """Run one logical upstream operation under breaker, deadline and retry."""
        guarded = with_breaker(
            self.breaker,
            with_deadline(
                self.deadline,
                self.breaker.service_id,
                with_retry(self.retry_policy, operation, call),
            ),
        )
        try:
            return await guarded()
        except CircuitOpenError as e:
            logger.warning(f"{operation} short-circuited: {e}")
            raise

    def get_status(self) -> dict[str, Any]:
        if self.registry is not None:
            return self.registry.get_all_status()
        return {self.breaker.service_id: self.breaker.get_status()}

    def get_open_circuits(self) -> list[str]:
        if self.registry is not None:
            return self.registry.get_open_circuits()
        if self.breaker.state == CircuitState.OPEN:
            return [self.breaker.service_id]
        return []
