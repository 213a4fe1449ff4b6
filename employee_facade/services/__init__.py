"""
Upstream adapter layer - everything between the REST surface and the upstream directory.

Provides:
- EmployeeApiClient: HTTP client mapping upstream statuses to typed errors
- RetryPolicy / CircuitBreaker / ResilientExecutor: resilience around every call
- EmployeeCache: single-slot collection cache with stampede control
- query: pure read operations over a cached snapshot
- EmployeeService: facade operations composing all of the above
"""

from employee_facade.services.errors import (
    ServiceError,
    InvalidInputError,
    NotFoundError,
    RateLimitError,
    UpstreamClientError,
    UpstreamServerError,
    UpstreamUnavailableError,
    RequestTimeoutError,
    CircuitOpenError,
)
from employee_facade.services.cache import EmployeeCache, CacheEntry, Snapshot
from employee_facade.services.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerRegistry,
    CircuitState,
)
from employee_facade.services.retry import RetryConfig, RetryPolicy
from employee_facade.services.resilience import ResilientExecutor
from employee_facade.services.deduplicator import RequestDeduplicator
from employee_facade.services.client import EmployeeApiClient
from employee_facade.services.employee_service import EmployeeService

__all__ = [
    # Errors
    "ServiceError",
    "InvalidInputError",
    "NotFoundError",
    "RateLimitError",
    "UpstreamClientError",
    "UpstreamServerError",
    "UpstreamUnavailableError",
    "RequestTimeoutError",
    "CircuitOpenError",
    # Cache
    "EmployeeCache",
    "CacheEntry",
    "Snapshot",
    # Resilience
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerRegistry",
    "CircuitState",
    "RetryConfig",
    "RetryPolicy",
    "ResilientExecutor",
    # Deduplicator
    "RequestDeduplicator",
    # Client / service
    "EmployeeApiClient",
    "EmployeeService",
]
