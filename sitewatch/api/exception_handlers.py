"""Exception handlers for FastAPI application"""
import logging

from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from sitewatch.exceptions import (
    SitewatchError,
    AuditStateError,
    ScheduleValidationError,
    MonitoringError,
    WebhookError,
)
from sitewatch.utils.dates import utcnow

logger = logging.getLogger(__name__)

# Error codes that mean "the entity does not exist"
NOT_FOUND_CODES = {"WEBSITE_001", "AUDIT_001", "AUDIT_005", "SCHEDULE_007", "MONITORING_001", "SYSTEM_001"}
UNAVAILABLE_CODES = {"SYSTEM_002"}


def _error_response(request: Request, status_code: int, exc: SitewatchError) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder({
            "error": exc.to_dict(),
            "path": str(request.url.path),
        }),
    )


async def sitewatch_error_handler(request: Request, exc: SitewatchError) -> JSONResponse:
    """Handle domain errors not covered by a more specific handler"""
    code = exc.error_code.code
    if code in NOT_FOUND_CODES:
        status_code = status.HTTP_404_NOT_FOUND
    elif code in UNAVAILABLE_CODES:
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    else:
        status_code = status.HTTP_400_BAD_REQUEST
    return _error_response(request, status_code, exc)


async def audit_state_error_handler(request: Request, exc: AuditStateError) -> JSONResponse:
    """Handle audit state conflicts"""
    return _error_response(request, status.HTTP_409_CONFLICT, exc)


async def schedule_validation_error_handler(request: Request, exc: ScheduleValidationError) -> JSONResponse:
    """Handle invalid schedule definitions"""
    if exc.error_code.code in NOT_FOUND_CODES:
        return _error_response(request, status.HTTP_404_NOT_FOUND, exc)
    return _error_response(request, status.HTTP_422_UNPROCESSABLE_ENTITY, exc)


async def monitoring_error_handler(request: Request, exc: MonitoringError) -> JSONResponse:
    """Handle invalid monitoring configuration"""
    if exc.error_code.code in NOT_FOUND_CODES:
        return _error_response(request, status.HTTP_404_NOT_FOUND, exc)
    return _error_response(request, status.HTTP_422_UNPROCESSABLE_ENTITY, exc)


async def webhook_error_handler(request: Request, exc: WebhookError) -> JSONResponse:
    """Handle invalid webhook configuration"""
    return _error_response(request, status.HTTP_422_UNPROCESSABLE_ENTITY, exc)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle Pydantic validation errors"""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=jsonable_encoder({
            "error": {
                "code": "VALIDATION_ERROR",
                "message": "Request validation failed",
                "details": exc.errors(),
            },
            "path": str(request.url.path),
        }),
    )


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """Handle database integrity errors (e.g., unique constraint violations)"""
    error_message = str(exc.orig) if hasattr(exc, "orig") else str(exc)

    if "unique" in error_message.lower() or "duplicate" in error_message.lower():
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={
                "error": {
                    "code": "UNIQUE_CONSTRAINT_VIOLATION",
                    "message": "A record with this value already exists",
                    "details": error_message,
                },
                "path": str(request.url.path),
            },
        )

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": {
                "code": "DATABASE_ERROR",
                "message": "Database constraint violation",
                "details": error_message,
            },
            "path": str(request.url.path),
        },
    )


def internal_error_response(message: str, exc: Exception) -> JSONResponse:
    """500 body used by batch endpoints that must always answer with JSON"""
    logger.exception(f"{message}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": message,
            "message": str(exc) or exc.__class__.__name__,
            "timestamp": utcnow().isoformat(),
        },
    )


def register_exception_handlers(app) -> None:
    """Attach all handlers; subclasses first so they win over the base class"""
    app.add_exception_handler(AuditStateError, audit_state_error_handler)
    app.add_exception_handler(ScheduleValidationError, schedule_validation_error_handler)
    app.add_exception_handler(MonitoringError, monitoring_error_handler)
    app.add_exception_handler(WebhookError, webhook_error_handler)
    app.add_exception_handler(SitewatchError, sitewatch_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
