"""
EmployeeApiClient - async HTTP client for the upstream employee directory.

Speaks the upstream protocol only:
- GET    <base>            -> {"data": [Employee, ...]}
- POST   <base>  request   -> {"data": Employee}
- DELETE <base>  {"name"}  -> {"data": bool}

Every response status is translated into the closed error taxonomy in
``employee_facade.services.errors``; retries, breaking and caching live elsewhere.
"""

from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, TypeVar

import httpx
from loguru import logger
from pydantic import ValidationError

from employee_facade.models import (
    CreateEmployeeRequest,
    DeleteEmployeeInput,
    Employee,
    Envelope,
)
from employee_facade.services.errors import (
    InvalidInputError,
    NotFoundError,
    RateLimitError,
    ServiceError,
    UpstreamClientError,
    UpstreamServerError,
    UpstreamUnavailableError,
)

T = TypeVar("T")

SERVICE_ID = "employee_api"


def parse_retry_after(value: str | None) -> float | None:
    """Parse a ``Retry-After`` header given as delta-seconds or an HTTP-date."""
    if not value:
        return None

    value = value.strip()
    try:
        return max(0.0, float(value))
    except ValueError:
        pass

    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())


class EmployeeApiClient:
    """
    Thin client over one configured base URL.

    Usage:
        client = EmployeeApiClient("http://localhost:8112/api/v1/employee")
        employees = await client.list_all()
        await client.close()
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
        service_id: str = SERVICE_ID,
    ):
        self.base_url = base_url
        self.service_id = service_id
        self._timeout = timeout
        self._transport = transport

        # HTTP client (lazy initialization)
        self._http_client: httpx.AsyncClient | None = None

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                transport=self._transport,
                follow_redirects=True,
            )
        return self._http_client

    async def list_all(self) -> list[Employee]:
        """Fetch the whole employee collection."""
        logger.info("Fetching all employees from upstream")
        employees = await self._request("list_all", "GET", list[Employee])
        logger.debug(f"Fetched {len(employees)} employees")
        return employees

    async def create(self, request: CreateEmployeeRequest) -> Employee:
        """Create an employee; id and email are assigned upstream."""
        logger.info(f"Creating employee upstream: {request.name}")
        employee = await self._request(
            "create", "POST", Employee, json_data=request.model_dump()
        )
        logger.debug(f"Created employee with id: {employee.id}")
        return employee

    async def delete_by_name(self, name: str) -> bool:
        """Delete an employee by name; returns the upstream's confirmation flag."""
        logger.info(f"Deleting employee upstream: {name}")
        return await self._request(
            "delete_by_name",
            "DELETE",
            bool,
            json_data=DeleteEmployeeInput(name=name).model_dump(),
        )

    async def _request(
        self,
        operation: str,
        method: str,
        payload_type: type[T] | Any,
        json_data: dict[str, Any] | None = None,
    ) -> T:
        """Execute one HTTP exchange and decode the envelope's ``data``."""
        client = await self._get_http_client()

        try:
            response = await client.request(
                method=method,
                url=self.base_url,
                json=json_data,
            )
        except httpx.TimeoutException as e:
            error = UpstreamUnavailableError(
                f"Request to service '{self.service_id}' timed out",
                cause=e,
                service_id=self.service_id,
            )
            self._log_failure(operation, error, None)
            raise error from e
        except httpx.RequestError as e:
            error = UpstreamUnavailableError(
                f"Failed to communicate with upstream: {e}",
                cause=e,
                service_id=self.service_id,
            )
            self._log_failure(operation, error, None)
            raise error from e

        if not response.is_success:
            error = self._map_status(operation, response)
            self._log_failure(operation, error, response.status_code)
            raise error

        return self._decode(operation, response, payload_type)

    def _decode(self, operation: str, response: httpx.Response, payload_type: Any) -> Any:
        """Decode ``{"data": T, ...}``, ignoring the other envelope fields."""
        try:
            envelope = Envelope[payload_type].model_validate_json(response.content)
        except ValidationError as e:
            error = UpstreamUnavailableError(
                f"Could not decode upstream response for {operation}",
                cause=e,
                service_id=self.service_id,
            )
            self._log_failure(operation, error, response.status_code)
            raise error from e

        if envelope.data is None:
            error = UpstreamClientError(
                "empty payload", status=response.status_code, service_id=self.service_id
            )
            self._log_failure(operation, error, response.status_code)
            raise error

        return envelope.data

    def _map_status(self, operation: str, response: httpx.Response) -> ServiceError:
        """Translate a non-2xx upstream status into a typed error."""
        status = response.status_code

        if status == 400:
            return InvalidInputError(
                self._upstream_message(response) or "Invalid employee data provided",
                service_id=self.service_id,
            )
        if status == 404:
            resource = "Employees endpoint" if operation == "list_all" else "Employee"
            return NotFoundError(resource, service_id=self.service_id)
        if status == 429:
            return RateLimitError(
                service_id=self.service_id,
                retry_after=parse_retry_after(response.headers.get("Retry-After")),
            )
        if status < 500:
            return UpstreamClientError(
                f"Failed to {operation}: HTTP {status}",
                status=status,
                service_id=self.service_id,
            )
        return UpstreamServerError(
            status,
            f"External API server error during {operation}: HTTP {status}",
            service_id=self.service_id,
        )

    @staticmethod
    def _upstream_message(response: httpx.Response) -> str | None:
        try:
            body = response.json()
        except ValueError:
            return response.text[:200] or None
        if isinstance(body, dict):
            for key in ("message", "error", "status"):
                if isinstance(body.get(key), str):
                    return body[key]
        return None

    def _log_failure(
        self, operation: str, error: ServiceError, status: int | None
    ) -> None:
        """Warn on client-side outcomes, error on server/transport failures."""
        message = (
            f"Upstream {operation} failed: kind={error.kind} "
            f"status={status if status is not None else '-'} ({error.message})"
        )
        if status is not None and status < 500 and not isinstance(
            error, UpstreamUnavailableError
        ):
            logger.warning(message)
        else:
            logger.error(message)

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
        logger.debug("EmployeeApiClient closed")
