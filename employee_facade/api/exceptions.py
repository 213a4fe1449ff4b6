"""
Error responses for the REST surface.

This is the only place where service errors become HTTP statuses. Every
error body has the shape ``{status, error, message, path}``.
"""

import math
from http import HTTPStatus

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from employee_facade.services.errors import (
    CircuitOpenError,
    InvalidInputError,
    NotFoundError,
    RateLimitError,
    ServiceError,
    UpstreamClientError,
    UpstreamServerError,
    UpstreamUnavailableError,
)

UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred."


class ErrorResponse(BaseModel):
    """Standard error response format."""

    status: int
    error: str
    message: str
    path: str


def error_response(
    request: Request,
    status_code: int,
    message: str,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    body = ErrorResponse(
        status=status_code,
        error=HTTPStatus(status_code).phrase,
        message=message,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=status_code, content=body.model_dump(), headers=headers
    )


def status_for(error: ServiceError) -> int:
    """HTTP status for a service error kind."""
    if isinstance(error, InvalidInputError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(error, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(error, RateLimitError):
        return status.HTTP_429_TOO_MANY_REQUESTS
    if isinstance(error, UpstreamUnavailableError):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    if isinstance(error, (UpstreamClientError, UpstreamServerError, CircuitOpenError)):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    status_code = status_for(exc)

    headers = None
    if isinstance(exc, RateLimitError) and exc.retry_after is not None:
        headers = {"Retry-After": str(math.ceil(exc.retry_after))}

    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} -> {status_code} {exc.kind}: {exc}")
    else:
        logger.warning(f"{request.method} {request.url.path} -> {status_code} {exc.kind}: {exc}")

    message = exc.message
    if status_code == status.HTTP_502_BAD_GATEWAY:
        message = f"Error communicating with external service: {exc.message}"
    return error_response(request, status_code, message, headers)


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'] if part != 'body')}: {error['msg']}"
        for error in exc.errors()
    )
    logger.warning(f"Validation error on {request.url.path}: {details}")
    return error_response(
        request, status.HTTP_400_BAD_REQUEST, details or "Validation failed"
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return error_response(
        request,
        exc.status_code,
        str(exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.opt(exception=exc).error(
        f"Unexpected error on {request.method} {request.url.path}: {exc}"
    )
    return error_response(
        request, status.HTTP_500_INTERNAL_SERVER_ERROR, UNEXPECTED_ERROR_MESSAGE
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
