"""
Error taxonomy for the interview coach.

Every ``AppError`` carries the HTTP status it maps to, so routes and the
orchestrator raise domain errors and the handlers below turn them into
JSON responses.
"""
import logging
from typing import Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base exception for all application errors."""

    status_code = 500
    error_code = "app_error"

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(AppError):
    """Missing or inconsistent fields in a request."""

    status_code = 400
    error_code = "validation_error"


class InvalidIndexError(ValidationError):
    """The submitted question index is not the current (last) question."""

    error_code = "invalid_index"


class UnauthorizedError(AppError):
    status_code = 401
    error_code = "unauthorized"


class NotFoundError(AppError):
    status_code = 404
    error_code = "not_found"


class ConflictError(AppError):
    """A concurrent or repeated submission lost the race."""

    status_code = 409
    error_code = "conflict"


class AIOverloadedError(AppError):
    """The LLM stayed unavailable after bounded retries."""

    status_code = 503
    error_code = "ai_overloaded"

    def __init__(self, message: str = "The AI service is currently busy. Please try again shortly.", details: Optional[dict] = None):
        super().__init__(message, details)


class PersistenceError(AppError):
    status_code = 500
    error_code = "persistence_error"


class LLMOverloadedError(Exception):
    """A single LLM call was rejected as transiently overloaded (HTTP 503)."""


# ============================================================================
# FastAPI Exception Handlers
# ============================================================================

async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.error_code, request.method, request.url.path, exc.message)
    else:
        logger.info("%s on %s %s: %s", exc.error_code, request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": exc.error_code},
    )


async def request_validation_handler(request: Request, exc: RequestValidationError):
    # Request parsing failures share the validation_error shape and status
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        problems.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    message = "Invalid request: " + "; ".join(problems) if problems else "Invalid request"
    return await app_error_handler(request, ValidationError(message))


async def stale_data_handler(request: Request, exc: StaleDataError):
    logger.warning("Concurrent update rejected on %s: %s", request.url.path, exc)
    return await app_error_handler(request, ConflictError("Interview was modified concurrently. Please reload and retry."))


async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Database error: %s", exc, exc_info=True)
    return await app_error_handler(request, PersistenceError("A database error occurred."))


async def global_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error", "error": "internal_error"},
    )
