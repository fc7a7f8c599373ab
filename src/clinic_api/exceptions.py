import logging

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ClinicSchedulerException(Exception):
    """Base exception for the clinic scheduler API"""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, error_code: str | None = None):
        self.message = message
        self.error_code = error_code
        super().__init__(message)


class ResourceNotFoundError(ClinicSchedulerException):
    """Unknown session, doctor or other referenced resource"""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource_type: str, resource_id: str | None = None):
        message = f"{resource_type} not found"
        if resource_id:
            message += f" with ID: {resource_id}"
        super().__init__(message, "RESOURCE_NOT_FOUND")


class ValidationError(ClinicSchedulerException):
    """Request data the scheduler cannot interpret, e.g. a malformed clock time"""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        if field:
            message = f"Validation error for field '{field}': {message}"
        super().__init__(message, "VALIDATION_ERROR")


def _error_response(
    request: Request, status_code: int, detail, error_code: str | None, **extra
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "detail": detail,
            "error_code": error_code,
            "path": str(request.url),
            **extra,
        },
    )


async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions raised by the routers.

    Router errors carry an ``ErrorResponse`` body as detail; its code is
    lifted to the top-level ``error_code``.
    """
    error_code = None
    if isinstance(exc.detail, dict):
        error_code = exc.detail.get("error", {}).get("code")
    return _error_response(request, exc.status_code, exc.detail, error_code)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request body validation errors"""
    errors = [
        {
            "field": " -> ".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    return _error_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Request validation failed",
        "VALIDATION_ERROR",
        errors=errors,
    )


async def clinic_scheduler_exception_handler(
    request: Request, exc: ClinicSchedulerException
):
    """Handle scheduler exceptions raised outside a router try block"""
    return _error_response(request, exc.status_code, exc.message, exc.error_code)


async def general_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.url.path}: {exc}")
    return _error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal server error",
        "INTERNAL_ERROR",
    )
