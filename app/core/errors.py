"""
Central error handling for Hope Pharmacy IMS Backend
"""
import logging
import traceback

from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi import HTTPException
from sqlalchemy.exc import OperationalError

from app.core.config import settings
from app.services.clock_errors import ClockError, ClockErrorKind

logger = logging.getLogger(__name__)

CLOCK_ERROR_STATUS = {
    ClockErrorKind.UNSUPPORTED: status.HTTP_400_BAD_REQUEST,
    ClockErrorKind.PERMISSION_DENIED: status.HTTP_403_FORBIDDEN,
    ClockErrorKind.POSITION_UNAVAILABLE: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ClockErrorKind.TIMEOUT: status.HTTP_408_REQUEST_TIMEOUT,
    ClockErrorKind.NO_BRANCH_ASSIGNED: status.HTTP_400_BAD_REQUEST,
    ClockErrorKind.NO_WORKPLACE_CONFIGURED: status.HTTP_400_BAD_REQUEST,
    ClockErrorKind.MUTATION_FAILED: status.HTTP_400_BAD_REQUEST,
    ClockErrorKind.FEATURE_UNAVAILABLE: status.HTTP_501_NOT_IMPLEMENTED,
}


def _error_response(request: Request, status_code: int, detail, **extra) -> JSONResponse:
    content = {
        "error": True,
        "status_code": status_code,
        "detail": detail,
        "path": str(request.url.path),
    }
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """
    Handle HTTPException with consistent JSON response format

    Args:
        request: FastAPI request object
        exc: HTTPException instance

    Returns:
        JSONResponse with error details
    """
    response = _error_response(request, exc.status_code, exc.detail)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def clock_error_handler(request: Request, exc: ClockError) -> JSONResponse:
    """
    Handle typed clock-flow errors; detail carries code, message and needs_permission
    """
    status_code = CLOCK_ERROR_STATUS.get(exc.kind, status.HTTP_400_BAD_REQUEST)
    return _error_response(request, status_code, exc.to_dict())


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Handle RequestValidationError with consistent JSON response format

    Does not leak internal validation details in production.
    """
    if settings.APP_ENV == "prod":
        return _error_response(
            request, status.HTTP_422_UNPROCESSABLE_ENTITY, "Validation error: Invalid request data"
        )

    # Sanitize for JSON: e.g. ctx.error ValueError -> str
    errors = []
    for e in exc.errors():
        err = dict(e)
        if "ctx" in err and isinstance(err["ctx"], dict):
            err["ctx"] = {
                k: (str(v) if not isinstance(v, (str, int, float, bool, type(None))) else v)
                for k, v in err["ctx"].items()
            }
        errors.append(err)
    return _error_response(request, status.HTTP_422_UNPROCESSABLE_ENTITY, "Validation error", errors=errors)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected exceptions with consistent JSON response format

    Does not leak internal error details in production.
    """
    logger.error("Unhandled exception: %s", exc, exc_info=True)

    if settings.APP_ENV == "prod":
        return _error_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")

    return _error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        str(exc),
        traceback=traceback.format_exc() if settings.APP_ENV == "local" else None,
    )


async def operational_error_handler(request: Request, exc: OperationalError) -> JSONResponse:
    """
    Handle database errors; a missing table means migrations have not been applied
    """
    if "no such table" in str(exc).lower():
        logger.error("Database schema missing: %s", exc)
        return _error_response(
            request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Database schema missing. Run alembic upgrade head"
        )
    return await generic_exception_handler(request, exc)
