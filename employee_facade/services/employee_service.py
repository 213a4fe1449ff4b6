"""
EmployeeService - facade operations over the upstream employee directory.

Reads are answered from the cached collection (filled through the resilient
client on a miss); writes go straight upstream and invalidate the cache.
"""

from loguru import logger

from employee_facade.models import CreateEmployeeRequest, Employee, validate
from employee_facade.services import query
from employee_facade.services.cache import EmployeeCache, Snapshot
from employee_facade.services.client import EmployeeApiClient
from employee_facade.services.errors import InvalidInputError, NotFoundError
from employee_facade.services.resilience import ResilientExecutor


class EmployeeService:
    """
    Usage:
        service = EmployeeService(client, executor, cache)

        employees = await service.get_all_employees()
        name = await service.delete_employee_by_id("4f1c...")
    """

    def __init__(
        self,
        client: EmployeeApiClient,
        executor: ResilientExecutor,
        cache: EmployeeCache,
    ):
        self.client = client
        self.executor = executor
        self.cache = cache

    async def get_all_employees(self) -> Snapshot:
        return await self.cache.get_or_load(self._fetch_all)

    async def _fetch_all(self) -> list[Employee]:
        return await self.executor.call("list_all", self.client.list_all)

    async def search_employees_by_name(self, search_string: str) -> list[Employee]:
        if not search_string or not search_string.strip():
            raise InvalidInputError("Search string cannot be blank")

        employees = await self.get_all_employees()
        matches = query.search_by_name(employees, search_string)
        logger.info(f"Found {len(matches)} employees matching '{search_string}'")
        return matches

    async def get_employee_by_id(self, employee_id: str) -> query.Lookup:
        if not employee_id or not employee_id.strip():
            raise InvalidInputError("Employee ID cannot be blank")

        employees = await self.get_all_employees()
        return query.by_id(employees, employee_id)

    async def get_highest_salary(self) -> int | None:
        return query.highest_salary(await self.get_all_employees())

    async def get_top_ten_highest_earning_employee_names(self) -> list[str]:
        return query.top_earner_names(await self.get_all_employees())

    async def create_employee(self, request: CreateEmployeeRequest) -> Employee:
        """Validate, create upstream, then drop the cached collection."""
        errors = validate(request)
        if errors:
            raise InvalidInputError("; ".join(str(error) for error in errors))

        employee = await self.executor.call(
            "create", lambda: self.client.create(request)
        )
        await self.cache.invalidate()
        logger.info(f"Created employee with id: {employee.id}")
        return employee

    async def delete_employee_by_id(self, employee_id: str) -> str:
        """
        Delete by id against an upstream that only deletes by name.

        The id is resolved through the cached collection first; an unknown id
        is reported as NotFound without any upstream delete.
        """
        lookup = await self.get_employee_by_id(employee_id)
        if isinstance(lookup, query.Missing):
            logger.warning(f"Employee with id {employee_id} not found for deletion")
            raise NotFoundError(f"Employee with id '{employee_id}'")

        name = lookup.employee.name
        deleted = await self.executor.call(
            "delete_by_name", lambda: self.client.delete_by_name(name)
        )
        await self.cache.invalidate()

        if not deleted:
            logger.warning(f"Upstream did not delete employee {employee_id} (name: {name})")
            raise NotFoundError(f"Employee with id '{employee_id}'")

        logger.info(f"Deleted employee: {name} (id: {employee_id})")
        return name

    def get_health_status(self) -> dict:
        open_circuits = self.executor.get_open_circuits()
        return {
            "status": "degraded" if open_circuits else "ok",
            "circuit_breakers": self.executor.get_status(),
            "open_circuits": open_circuits,
            "cache": self.cache.get_stats().to_dict(),
            "deduplicator": self.cache.get_deduplicator_stats(),
        }

    async def close(self) -> None:
        await self.cache.close()
        await self.client.close()
