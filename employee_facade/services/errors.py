"""
Service layer exceptions.

The set is closed: every failure the upstream adapter can produce is one of
these kinds. Only the API layer turns them into HTTP responses.
"""


class ServiceError(Exception):
    """Base exception for service layer errors."""

    kind = "ServiceError"
    transient = False

    def __init__(self, message: str, service_id: str | None = None):
        self.service_id = service_id
        self.message = message
        super().__init__(message)


class InvalidInputError(ServiceError):
    """Request rejected, either by local validation or by the upstream (400)."""

    kind = "InvalidInput"


class NotFoundError(ServiceError):
    """Requested resource does not exist."""

    kind = "NotFound"

    def __init__(self, resource: str, service_id: str | None = None):
        self.resource = resource
        super().__init__(f"{resource} not found", service_id=service_id)


class RateLimitError(ServiceError):
    """Rate limit exceeded."""

    kind = "RateLimited"
    transient = True

    def __init__(self, service_id: str | None = None, retry_after: float | None = None):
        self.retry_after = retry_after
        msg = f"Rate limit exceeded for service '{service_id}'"
        if retry_after:
            msg += f", retry after {retry_after:g}s"
        super().__init__(msg, service_id=service_id)


class UpstreamClientError(ServiceError):
    """Upstream rejected the request with a 4xx other than 400/404/429, or sent no payload."""

    kind = "UpstreamClient"

    def __init__(self, message: str, status: int | None = None, service_id: str | None = None):
        self.status = status
        super().__init__(message, service_id=service_id)


class UpstreamServerError(ServiceError):
    """Upstream answered with a 5xx."""

    kind = "UpstreamServer"
    transient = True

    def __init__(self, status: int, message: str | None = None, service_id: str | None = None):
        self.status = status
        super().__init__(
            message or f"Upstream server error: HTTP {status}", service_id=service_id
        )


class UpstreamUnavailableError(ServiceError):
    """Upstream could not be reached or its response could not be decoded."""

    kind = "UpstreamUnavailable"
    transient = True

    def __init__(
        self,
        message: str,
        cause: BaseException | None = None,
        service_id: str | None = None,
    ):
        self.cause = cause
        super().__init__(message, service_id=service_id)


class RequestTimeoutError(UpstreamUnavailableError):
    """Request deadline expired."""

    def __init__(self, service_id: str, timeout: float):
        self.timeout = timeout
        super().__init__(
            f"Request to service '{service_id}' timed out after {timeout}s",
            service_id=service_id,
        )


class CircuitOpenError(ServiceError):
    """Circuit breaker is open, request blocked."""

    kind = "CircuitOpen"
    transient = True

    def __init__(self, service_id: str, reset_after_seconds: float):
        self.reset_after_seconds = reset_after_seconds
        super().__init__(
            f"Circuit breaker open for service '{service_id}', "
            f"retry after {reset_after_seconds:.1f}s",
            service_id=service_id,
        )


# CircuitOpenError is transient for callers but never retried in-process
RETRYABLE_ERRORS: tuple[type[ServiceError], ...] = (
    UpstreamServerError,
    UpstreamUnavailableError,
    RateLimitError,
)

# Outcomes that mean the upstream answered sensibly; they do not trip the breaker
IGNORED_BY_BREAKER: tuple[type[ServiceError], ...] = (
    InvalidInputError,
    NotFoundError,
)
