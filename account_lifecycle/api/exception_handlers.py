"""
===============================================================================
CRC CARD — api/exception_handlers.py (central exception mapping)
===============================================================================

Responsibilities:
  - Translate lifecycle errors into RFC 7807 responses.
  - Log every mapped error with request_id + error_id.
  - Never leak internals for untyped exceptions in production.

Mapping:
  ConflictError      -> 409 CONFLICT
  NotFoundError      -> 404 NOT_FOUND
  InvalidStateError  -> 409 INVALID_STATE
  ValidationError    -> 422 VALIDATION_ERROR
  DatabaseError      -> 503 DATABASE_ERROR
  LifecycleError     -> 500 INTERNAL_ERROR
  Exception          -> 500 INTERNAL_ERROR

Collaborators:
  - crosscutting.error_responses (AppHTTPException, ErrorCode, handler)
  - domain.errors / crosscutting.exceptions
  - crosscutting.config.get_settings
===============================================================================
"""

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from ..crosscutting.config import get_settings
from ..crosscutting.error_responses import (
    AppHTTPException,
    ErrorCode,
    app_exception_handler,
)
from ..crosscutting.exceptions import DatabaseError
from ..crosscutting.logger import logger
from ..domain.errors import (
    ConflictError,
    InvalidStateError,
    LifecycleError,
    NotFoundError,
    ValidationError,
)


def _request_id_from(request: Request) -> str | None:
    return getattr(getattr(request, "state", None), "request_id", None)


async def _handle_lifecycle_error(
    request: Request,
    *,
    exc: LifecycleError,
    code: ErrorCode,
    status_code: int,
    level: int = logging.WARNING,
) -> JSONResponse:
    request_id = _request_id_from(request)

    logger.log(
        level,
        "Lifecycle error",
        extra={
            "code": code.value,
            "error_id": exc.error_id,
            "error_message": exc.message,
            "request_id": request_id,
        },
    )

    app_exc = AppHTTPException(
        status_code=status_code,
        code=code,
        detail=exc.message,
        errors=[{"error_id": exc.error_id}],
    )
    return await app_exception_handler(request, app_exc)


async def conflict_error_handler(request: Request, exc: ConflictError) -> JSONResponse:
    return await _handle_lifecycle_error(
        request, exc=exc, code=ErrorCode.CONFLICT, status_code=409
    )


async def not_found_error_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return await _handle_lifecycle_error(
        request, exc=exc, code=ErrorCode.NOT_FOUND, status_code=404
    )


async def invalid_state_error_handler(
    request: Request, exc: InvalidStateError
) -> JSONResponse:
    return await _handle_lifecycle_error(
        request, exc=exc, code=ErrorCode.INVALID_STATE, status_code=409
    )


async def validation_error_handler(
    request: Request, exc: ValidationError
) -> JSONResponse:
    return await _handle_lifecycle_error(
        request, exc=exc, code=ErrorCode.VALIDATION_ERROR, status_code=422
    )


async def database_error_handler(request: Request, exc: DatabaseError) -> JSONResponse:
    return await _handle_lifecycle_error(
        request,
        exc=exc,
        code=ErrorCode.DATABASE_ERROR,
        status_code=503,
        level=logging.ERROR,
    )


async def lifecycle_error_handler(request: Request, exc: LifecycleError) -> JSONResponse:
    return await _handle_lifecycle_error(
        request,
        exc=exc,
        code=ErrorCode.INTERNAL_ERROR,
        status_code=500,
        level=logging.ERROR,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    request_id = _request_id_from(request)
    settings = get_settings()

    logger.error(
        "Unhandled exception",
        exc_info=True,
        extra={"request_id": request_id, "error": str(exc)},
    )

    detail = str(exc) if not settings.is_production() else "Internal error."

    app_exc = AppHTTPException(
        status_code=500,
        code=ErrorCode.INTERNAL_ERROR,
        detail=detail,
    )
    return await app_exception_handler(request, app_exc)


def register_exception_handlers(app) -> None:
    """
    Register handlers on the FastAPI app.

    Subclasses first; the generic Exception handler last.
    """
    app.add_exception_handler(ConflictError, conflict_error_handler)
    app.add_exception_handler(NotFoundError, not_found_error_handler)
    app.add_exception_handler(InvalidStateError, invalid_state_error_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(DatabaseError, database_error_handler)
    app.add_exception_handler(LifecycleError, lifecycle_error_handler)
    app.add_exception_handler(AppHTTPException, app_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)


__all__ = ["register_exception_handlers"]
