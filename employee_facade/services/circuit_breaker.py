"""
CircuitBreaker - Prevents cascading failures by stopping requests to failing services.

States:
- CLOSED: Normal operation, requests pass through
- OPEN: Service is failing, requests are blocked
- HALF_OPEN: Testing if service has recovered

Transitions:
- CLOSED → OPEN: When the failure rate over the sliding window reaches the threshold
- OPEN → HALF_OPEN: After wait_duration expires
- HALF_OPEN → CLOSED: When every probe call succeeded
- HALF_OPEN → OPEN: On any failed probe
"""

from collections import deque
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any

from loguru import logger


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "CLOSED"  # Normal operation
    OPEN = "OPEN"  # Blocking requests
    HALF_OPEN = "HALF_OPEN"  # Testing recovery


@dataclass
class CircuitBreakerConfig:
    """Configuration for circuit breaker."""

    failure_rate_threshold: float = 0.5  # Failure ratio (0..1) that opens the circuit
    sliding_window_size: int = 10  # Outcomes remembered while CLOSED
    minimum_calls: int = 5  # Outcomes needed before the rate is evaluated
    wait_duration: timedelta = timedelta(seconds=30)  # Time before half-open
    half_open_max_requests: int = 3  # Probe requests allowed in half-open state


@dataclass(frozen=True)
class Admission:
    """Outcome of ``try_acquire``; truthy when the call may proceed."""

    admitted: bool
    probe_epoch: int | None = None  # set when a HALF_OPEN probe slot was reserved

    def __bool__(self) -> bool:
        return self.admitted


class CircuitBreaker:
    """
    Circuit breaker implementation for a single service.

    Usage:
        cb = CircuitBreaker("my_service")

        if not cb.try_acquire():
            raise CircuitOpenError(...)

        try:
            result = await make_request()
            cb.record_success()
            return result
        except Exception:
            cb.record_failure()
            raise

    All state changes happen synchronously, so concurrent coroutines on one
    event loop always observe a consistent state.
    """

    def __init__(
        self,
        service_id: str,
        config: CircuitBreakerConfig | None = None,
    ):
        self.service_id = service_id
        self.config = config or CircuitBreakerConfig()

        self._state = CircuitState.CLOSED
        self._window: deque[bool] = deque(maxlen=self.config.sliding_window_size)
        self._success_count = 0
        self._last_failure_time: datetime | None = None
        self._opened_at: datetime | None = None
        self._half_open_requests = 0
        self._half_open_epoch = 0

    @property
    def state(self) -> CircuitState:
        """Get current state, checking for automatic transitions."""
        if self._state == CircuitState.OPEN:
            # Check if we should transition to half-open
            if (
                self._opened_at
                and datetime.now() >= self._opened_at + self.config.wait_duration
            ):
                self._state = CircuitState.HALF_OPEN
                self._half_open_epoch += 1
                self._half_open_requests = 0
                self._success_count = 0
                logger.info(
                    f"Circuit breaker '{self.service_id}' transitioned to HALF_OPEN"
                )
        return self._state

    @property
    def failure_rate(self) -> float:
        """Failure ratio over the current sliding window."""
        if not self._window:
            return 0.0
        return self._window.count(False) / len(self._window)

    def can_request(self) -> bool:
        """Check if a request is allowed."""
        current_state = self.state

        if current_state == CircuitState.CLOSED:
            return True

        if current_state == CircuitState.OPEN:
            return False

        # HALF_OPEN: Allow limited requests
        return self._half_open_requests < self.config.half_open_max_requests

    def try_acquire(self) -> Admission:
        """Admit a call, reserving a probe slot while HALF_OPEN."""
        if not self.can_request():
            return Admission(admitted=False)
        if self._state == CircuitState.HALF_OPEN:
            self._half_open_requests += 1
            return Admission(admitted=True, probe_epoch=self._half_open_epoch)
        return Admission(admitted=True)

    def release(self, admission: Admission) -> None:
        """Give back the probe slot of a call that ended without an outcome."""
        if (
            admission.probe_epoch is not None
            and admission.probe_epoch == self._half_open_epoch
            and self._state == CircuitState.HALF_OPEN
            and self._half_open_requests > 0
        ):
            self._half_open_requests -= 1

    def record_success(self) -> None:
        """Record a successful request."""
        if self._state == CircuitState.HALF_OPEN:
            self._success_count += 1
            if self._success_count >= self.config.half_open_max_requests:
                self._close()
        elif self._state == CircuitState.CLOSED:
            self._window.append(True)

    def record_failure(self) -> None:
        """Record a failed request."""
        self._last_failure_time = datetime.now()

        if self._state == CircuitState.HALF_OPEN:
            # Any failure in half-open reopens the circuit
            self._open()
        elif self._state == CircuitState.CLOSED:
            self._window.append(False)
            if (
                len(self._window) >= self.config.minimum_calls
                and self.failure_rate >= self.config.failure_rate_threshold
            ):
                self._open()

    def _open(self) -> None:
        """Transition to OPEN state."""
        self._state = CircuitState.OPEN
        self._opened_at = datetime.now()
        self._half_open_requests = 0
        logger.warning(
            f"Circuit breaker '{self.service_id}' OPENED "
            f"(failure rate {self.failure_rate:.0%} over {len(self._window)} calls)"
        )
        self._window.clear()

    def _close(self) -> None:
        """Transition to CLOSED state."""
        self._state = CircuitState.CLOSED
        self._window.clear()
        self._success_count = 0
        self._opened_at = None
        self._half_open_requests = 0
        logger.info(f"Circuit breaker '{self.service_id}' CLOSED (recovered)")

    def get_time_until_reset(self) -> float | None:
        """Get seconds until circuit transitions to half-open."""
        if self._state != CircuitState.OPEN or not self._opened_at:
            return None

        reset_at = self._opened_at + self.config.wait_duration
        remaining = (reset_at - datetime.now()).total_seconds()
        return max(0, remaining)

    def get_status(self) -> dict[str, Any]:
        """Get current status as dictionary."""
        return {
            "service_id": self.service_id,
            "state": self.state.value,
            "failure_rate": round(self.failure_rate, 4),
            "buffered_calls": len(self._window),
            "half_open_requests": self._half_open_requests,
            "last_failure": (
                self._last_failure_time.isoformat() if self._last_failure_time else None
            ),
            "opened_at": (self._opened_at.isoformat() if self._opened_at else None),
            "time_until_reset": self.get_time_until_reset(),
        }


class CircuitBreakerRegistry:
    """
    Registry for managing named circuit breakers.

    Usage:
        registry = CircuitBreakerRegistry()
        cb = registry.get("my_service")
    """

    def __init__(self, default_config: CircuitBreakerConfig | None = None):
        self._breakers: dict[str, CircuitBreaker] = {}
        self._default_config = default_config or CircuitBreakerConfig()

    def get(
        self,
        service_id: str,
        config: CircuitBreakerConfig | None = None,
    ) -> CircuitBreaker:
        """Get or create a circuit breaker for a service."""
        if service_id not in self._breakers:
            self._breakers[service_id] = CircuitBreaker(
                service_id,
                config or self._default_config,
            )
        return self._breakers[service_id]

    def get_all_status(self) -> dict[str, dict[str, Any]]:
        """Get status of all circuit breakers."""
        return {
            service_id: cb.get_status() for service_id, cb in self._breakers.items()
        }

    def get_open_circuits(self) -> list[str]:
        """Get list of services with open circuits."""
        return [
            service_id
            for service_id, cb in self._breakers.items()
            if cb.state == CircuitState.OPEN
        ]
