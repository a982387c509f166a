"""
Error Handling Module for the Recurring Billing Scheduler

This module provides centralized error handling with:
- Custom exception hierarchy
- Scheduler failure taxonomy (calculation, template, tenant, notification)
- Standardized error responses for the admin trigger API
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union
from uuid import UUID
import logging

from fastapi import FastAPI, Request, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

# Configure logging
logger = logging.getLogger("billing_scheduler.errors")


class ErrorCode(str, Enum):
    """Standardized error codes for the application"""

    # Validation Errors (4xx)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_SCHEDULE = "INVALID_SCHEDULE"

    # Authorization Errors (403)
    FORBIDDEN = "FORBIDDEN"

    # Conflict Errors (409)
    SCHEDULE_CONFLICT = "SCHEDULE_CONFLICT"

    # Scheduler Errors
    TEMPLATE_GENERATION_FAILED = "TEMPLATE_GENERATION_FAILED"
    TENANT_JOB_FAILED = "TENANT_JOB_FAILED"

    # External Service Errors (502)
    NOTIFICATION_FAILED = "NOTIFICATION_FAILED"

    # Database Errors (500)
    DATABASE_ERROR = "DATABASE_ERROR"

    # Internal Errors (500)
    INTERNAL_ERROR = "INTERNAL_ERROR"


class AppException(Exception):
    """Base exception for all application exceptions"""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
        field: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.field = field
        self.original_error = original_error
        self.timestamp = datetime.now(timezone.utc)
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response"""
        result = {
            "code": self.code.value,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.field:
            result["field"] = self.field
        if self.details:
            result["details"] = self.details
        return result


# ============================================================================
# Scheduler Exceptions
# ============================================================================

class CalculationError(AppException):
    """Invalid frequency / interval / options combination for a schedule"""

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            code=ErrorCode.INVALID_SCHEDULE,
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=details,
            field=field,
        )


class ScheduleConflictError(AppException):
    """The template's next_run_date changed between scan and generation"""

    def __init__(self, template_id: Union[str, UUID], expected_next_run: Any):
        super().__init__(
            code=ErrorCode.SCHEDULE_CONFLICT,
            message=(
                f"Recurring template {template_id} was advanced by another run "
                f"(expected next_run_date {expected_next_run})"
            ),
            status_code=status.HTTP_409_CONFLICT,
            details={"template_id": str(template_id), "expected_next_run_date": str(expected_next_run)},
        )


class TemplateGenerationError(AppException):
    """Failure while evaluating or generating from one recurring template"""

    def __init__(self, template_id: Union[str, UUID], message: str, original_error: Optional[Exception] = None):
        super().__init__(
            code=ErrorCode.TEMPLATE_GENERATION_FAILED,
            message=f"Recurring template {template_id}: {message}",
            details={"template_id": str(template_id)},
            original_error=original_error,
        )


class TenantJobError(AppException):
    """Failure while running a tenant's job sequence"""

    def __init__(self, tenant_id: Union[str, UUID], step: str, original_error: Optional[Exception] = None):
        reason = str(original_error) if original_error else "unknown error"
        super().__init__(
            code=ErrorCode.TENANT_JOB_FAILED,
            message=f"Tenant {tenant_id} failed during {step}: {reason}",
            details={"tenant_id": str(tenant_id), "step": step},
            original_error=original_error,
        )
        self.step = step


class NotificationDeliveryError(AppException):
    """Notification could not be delivered (always non-fatal to the scheduler)"""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(
            code=ErrorCode.NOTIFICATION_FAILED,
            message=message,
            status_code=status.HTTP_502_BAD_GATEWAY,
            original_error=original_error,
        )


class ForbiddenException(AppException):
    """Caller is not allowed to perform the operation"""

    def __init__(self, message: str = "Not allowed"):
        super().__init__(
            code=ErrorCode.FORBIDDEN,
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
        )


def describe_error(exc: BaseException) -> str:
    """Short, log-friendly description of an exception."""
    if isinstance(exc, AppException):
        return f"{exc.code.value}: {exc.message}"
    return f"{type(exc).__name__}: {exc}"


# ============================================================================
# Exception Handlers
# ============================================================================

def create_error_response(
    code: ErrorCode,
    message: str,
    status_code: int,
    details: Optional[Dict[str, Any]] = None,
    field: Optional[str] = None,
) -> JSONResponse:
    """Create a standardized error response"""
    content = {
        "detail": {
            "code": code.value,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
    }
    if field:
        content["detail"]["field"] = field
    if details:
        content["detail"]["details"] = details

    return JSONResponse(status_code=status_code, content=content)


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handle AppException"""
    logger.warning(
        f"AppException: {exc.code.value} - {exc.message}",
        extra={"path": request.url.path, "method": request.method},
    )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_dict()})


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle FastAPI/Starlette HTTP exceptions"""
    if exc.status_code == status.HTTP_403_FORBIDDEN:
        code = ErrorCode.FORBIDDEN
    elif exc.status_code < 500:
        code = ErrorCode.VALIDATION_ERROR
    else:
        code = ErrorCode.INTERNAL_ERROR
    return create_error_response(
        code=code,
        message=str(exc.detail),
        status_code=exc.status_code,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request validation errors"""
    return create_error_response(
        code=ErrorCode.VALIDATION_ERROR,
        message="Request validation failed",
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        details={"errors": exc.errors()},
    )


async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Handle database errors"""
    logger.error(
        f"SQLAlchemyError: {type(exc).__name__} - {str(exc)}",
        extra={"path": request.url.path, "method": request.method},
        exc_info=True,
    )
    return create_error_response(
        code=ErrorCode.DATABASE_ERROR,
        message="Database operation failed",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unhandled exceptions"""
    logger.critical(
        f"UnhandledException: {type(exc).__name__} - {str(exc)}",
        extra={"path": request.url.path, "method": request.method},
        exc_info=True,
    )

    # In production, don't expose internal error details
    return create_error_response(
        code=ErrorCode.INTERNAL_ERROR,
        message="An unexpected error occurred. Please try again later.",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application"""
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)


__all__ = [
    "AppException",
    "ErrorCode",
    "CalculationError",
    "ScheduleConflictError",
    "TemplateGenerationError",
    "TenantJobError",
    "NotificationDeliveryError",
    "ForbiddenException",
    "describe_error",
    "setup_exception_handlers",
    "create_error_response",
]
