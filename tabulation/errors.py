"""
tabulation/errors.py
Centralized error rendering for the HTTP surface

ERROR RESPONSE STRUCTURE:
{
    "success": false,
    "error": "ErrorType",
    "message": "Human-readable description",
    "code": "UNIQUE_ERROR_CODE",
    "details": {} (optional)
}

HTTP STATUS CODE DISCIPLINE:
- 401: No session / principal not found
- 404: Record does not exist
- 409: Event inactive, scoring suspended
- 422: Validation error (score range, incomplete submit-all, pydantic)
- 429: Rate limit exceeded
- 500: Configuration error (internal only)
- 503: Backing store failure
"""

import logging
import uuid
from typing import Optional, Dict, Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from tabulation.exceptions import TabulationException

logger = logging.getLogger(__name__)


class ErrorCode:
    """Unique error codes for machine-readable error handling"""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"

    SESSION_MISSING = "SESSION_MISSING"
    PRINCIPAL_NOT_FOUND = "PRINCIPAL_NOT_FOUND"
    AUTH_INVALID = "AUTH_INVALID"

    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    EVENT_INACTIVE = "EVENT_INACTIVE"

    RATE_LIMITED = "RATE_LIMITED"

    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    STORE_ERROR = "STORE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorResponse(BaseModel):
    """Standard error response model"""
    success: bool = False
    error: str
    message: str
    code: str
    details: Optional[Dict[str, Any]] = None


def error_content(
    error: str,
    message: str,
    code: str,
    details: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Build the error body shared by every handler"""
    return ErrorResponse(
        error=error,
        message=message,
        code=code,
        details=details or None
    ).model_dump(exclude_none=True)


def exception_to_response(exc: TabulationException) -> JSONResponse:
    """Convert a domain exception to a JSONResponse"""
    return JSONResponse(
        status_code=exc.status_code,
        content=error_content(exc.error, exc.message, exc.code, exc.details)
    )


async def tabulation_error_handler(request: Request, exc: TabulationException):
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.url.path}: {exc.message}")
    else:
        logger.warning(f"{exc.code} on {request.url.path}: {exc.message}")
    return exception_to_response(exc)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")

    error_details = [
        {
            "loc": error.get("loc"),
            "msg": error.get("msg"),
            "type": error.get("type")
        }
        for error in exc.errors()
    ]

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_content(
            "Validation Error",
            "Request validation failed",
            ErrorCode.VALIDATION_ERROR,
            {"errors": error_details}
        )
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    logger.warning(f"HTTP exception on {request.url.path}: {exc.detail}")

    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content=exc.detail)

    return JSONResponse(
        status_code=exc.status_code,
        content=error_content(
            "Error",
            str(exc.detail),
            ErrorCode.INTERNAL_ERROR if exc.status_code >= 500 else ErrorCode.INVALID_INPUT
        )
    )


async def global_exception_handler(request: Request, exc: Exception):
    log_id = str(uuid.uuid4())[:8]
    logger.error(f"[{log_id}] Unhandled exception on {request.url.path}: {type(exc).__name__}: {str(exc)}")

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_content(
            "Internal Error",
            "An unexpected error occurred. Please try again later.",
            ErrorCode.INTERNAL_ERROR,
            {"log_id": log_id}
        )
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach every handler to the application"""
    app.add_exception_handler(TabulationException, tabulation_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
