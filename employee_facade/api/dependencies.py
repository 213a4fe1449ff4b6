"""Dependency wiring for the FastAPI app.

Components are built once in the lifespan and kept on ``app.state``; route
handlers get them through ``Depends``.
"""

from contextlib import asynccontextmanager
from typing import Annotated

import httpx
from fastapi import Depends, FastAPI, Request
from loguru import logger

from employee_facade.services.cache import EmployeeCache
from employee_facade.services.client import EmployeeApiClient
from employee_facade.services.employee_service import EmployeeService
from employee_facade.services.resilience import ResilientExecutor
from employee_facade.settings import Settings


def build_service(
    settings: Settings, transport: httpx.AsyncBaseTransport | None = None
) -> EmployeeService:
    """Assemble the process-wide client, policies and cache."""
    client = EmployeeApiClient(
        settings.employee_api_base_url,
        timeout=settings.upstream_timeout,
        transport=transport,
    )
    return EmployeeService(
        client=client,
        executor=ResilientExecutor.from_settings(settings),
        cache=EmployeeCache(debug=settings.cache_debug),
    )


def get_employee_service(request: Request) -> EmployeeService:
    """Dependency injection for EmployeeService from app.state.

    Raises:
        RuntimeError: If service is not initialized
    """
    service = getattr(request.app.state, "employee_service", None)
    if service is None:
        raise RuntimeError("EmployeeService not initialized. Check lifespan setup.")
    return service


EmployeeServiceDep = Annotated[EmployeeService, Depends(get_employee_service)]


def make_lifespan(settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        service = build_service(settings, transport)
        app.state.employee_service = service
        logger.info(f"Employee facade started, upstream: {settings.employee_api_base_url}")

        yield

        await service.close()
        del app.state.employee_service
        logger.info("Employee facade stopped")

    return lifespan
