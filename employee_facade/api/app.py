"""FastAPI application exposing the employee facade under ``/api/v1``."""

from typing import Any

import httpx
from fastapi import APIRouter, FastAPI
from loguru import logger

from employee_facade.api.dependencies import EmployeeServiceDep, make_lifespan
from employee_facade.api.exceptions import register_exception_handlers
from employee_facade.models import CreateEmployeeRequest, Employee
from employee_facade.services import query
from employee_facade.services.errors import NotFoundError
from employee_facade.settings import Settings, global_settings

router = APIRouter(prefix="/api/v1", tags=["employees"])


@router.get("/", response_model=list[Employee])
async def get_all_employees(service: EmployeeServiceDep) -> list[Employee]:
    logger.info("Received request to get all employees")
    return list(await service.get_all_employees())


@router.get("/search/{search_string}", response_model=list[Employee])
async def get_employees_by_name_search(
    search_string: str, service: EmployeeServiceDep
) -> list[Employee]:
    logger.info(f"Received request to search employees by name: {search_string}")
    return await service.search_employees_by_name(search_string)


@router.get("/highestSalary", response_model=int)
async def get_highest_salary_of_employees(service: EmployeeServiceDep) -> int:
    logger.info("Received request to get highest salary")
    salary = await service.get_highest_salary()
    if salary is None:
        raise NotFoundError("Employees")
    return salary


@router.get("/topTenHighestEarningEmployeeNames", response_model=list[str])
async def get_top_ten_highest_earning_employee_names(
    service: EmployeeServiceDep,
) -> list[str]:
    logger.info("Received request to get top 10 highest earning employees")
    return await service.get_top_ten_highest_earning_employee_names()


@router.get("/{id}", response_model=Employee)
async def get_employee_by_id(id: str, service: EmployeeServiceDep) -> Employee:
    logger.info(f"Received request to get employee by id: {id}")
    lookup = await service.get_employee_by_id(id)
    if isinstance(lookup, query.Missing):
        raise NotFoundError(f"Employee with id '{lookup.id}'")
    return lookup.employee


@router.post("/", response_model=Employee)
async def create_employee(
    employee_input: CreateEmployeeRequest, service: EmployeeServiceDep
) -> Employee:
    logger.info(f"Received request to create employee: {employee_input.name}")
    return await service.create_employee(employee_input)


@router.delete("/{id}", response_model=str)
async def delete_employee_by_id(id: str, service: EmployeeServiceDep) -> str:
    logger.info(f"Received request to delete employee by id: {id}")
    return await service.delete_employee_by_id(id)


def create_app(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the facade app; ``transport`` replaces the network in tests."""
    settings = settings or global_settings

    app = FastAPI(
        title="Employee Facade API",
        description="Caching, resilient facade over the employee directory",
        version="0.1.0",
        lifespan=make_lifespan(settings, transport),
    )
    register_exception_handlers(app)
    app.include_router(router)

    @app.get("/health")
    async def health(service: EmployeeServiceDep) -> dict[str, Any]:
        """Health check endpoint."""
        return service.get_health_status()

    return app
