"""Custom exception hierarchy and handlers."""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base application exception."""

    status_code = 400

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationException(AppException):
    """Raised when required input is missing or malformed."""

    status_code = 400


class AuthException(AppException):
    """Raised when caller identity is missing or does not match."""

    status_code = 401


class ForbiddenException(AppException):
    """Raised when caller has no rights for operation."""

    status_code = 403


class NotFoundException(AppException):
    """Raised when entity is not found."""

    status_code = 404


class ConflictException(AppException):
    """Raised on duplicate enrollment or cart attempts.

    Reported as 400 to match the public HTTP contract.
    """

    status_code = 400


class PreconditionException(AppException):
    """Raised when entity state does not allow the operation."""

    status_code = 400


class InternalException(AppException):
    """Raised when a downstream call fails."""

    status_code = 500


class PaymentGatewayException(AppException):
    """Raised when the payment gateway rejects or cannot process a request."""

    def __init__(self, message: str, status_code: int = 502, code: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class DuplicateEntityError(Exception):
    """Raised by repositories when a store uniqueness constraint rejects an insert."""


async def app_exception_handler(_: Request, exc: AppException) -> JSONResponse:
    """Handle custom domain exceptions."""
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def http_exception_handler(_: Request, exc: HTTPException) -> JSONResponse:
    """Handle FastAPI HTTP exceptions in unified shape."""
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


async def request_validation_exception_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request payloads as 400."""
    logger.info("Rejected request payload: %s", exc.errors())
    return JSONResponse(status_code=400, content={"error": "잘못된 요청입니다."})


async def unhandled_exception_handler(_: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception("Unhandled error: %s", exc)
    return JSONResponse(status_code=500, content={"error": "서버 오류가 발생했습니다."})


def register_exception_handlers(app) -> None:
    """Register global exception handlers."""
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
