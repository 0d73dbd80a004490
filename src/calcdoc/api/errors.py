"""calcdoc API error handling.

Provides CalcdocHttpError and FastAPI exception handlers producing a single
JSON error envelope: ``{"code", "message", "details"}``.

Global exception handlers:
- CalcdocHttpError: Application errors (parse failures, bad inputs)
- RequestValidationError: Pydantic validation errors
- Exception: Catch-all for unhandled exceptions (no stack traces)
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class ErrorResponse(BaseModel):
    """Error envelope returned by every failing endpoint."""

    code: str
    message: str
    details: dict[str, Any] | None = None


class CalcdocHttpError(Exception):
    """Application-level HTTP error with structured error envelope.

    Attributes:
        status_code: HTTP status code (e.g., 422).
        code: Machine-readable error code (e.g., "PARSE_FAILED").
        message: Human-readable error message.
        details: Optional dict with additional error context.
    """

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details


def make_error_response(
    *,
    code: str,
    message: str,
    http_status: int,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    """Build an error JSON response."""
    body = ErrorResponse(code=code, message=message, details=details)
    return JSONResponse(status_code=http_status, content=body.model_dump())


async def calcdoc_http_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """FastAPI exception handler for CalcdocHttpError."""
    assert isinstance(exc, CalcdocHttpError)

    return make_error_response(
        code=exc.code,
        message=exc.message,
        http_status=exc.status_code,
        details=exc.details,
    )


async def request_validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """FastAPI exception handler for RequestValidationError.

    Reports each failing field without echoing the raw validation internals.
    """
    assert isinstance(exc, RequestValidationError)

    safe_details: list[dict[str, Any]] = []
    for error in exc.errors():
        loc = error.get("loc", ())
        safe_loc = [str(part) for part in loc if part not in ("body", "query", "path")]
        safe_details.append(
            {
                "field": ".".join(safe_loc) if safe_loc else "request",
                "message": error.get("msg", "Validation error"),
            }
        )

    return make_error_response(
        code="REQUEST_VALIDATION_FAILED",
        message="Request validation failed",
        http_status=422,
        details={"errors": safe_details} if safe_details else None,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler: logs the exception and returns a generic 500."""
    logger.exception("Unhandled exception: %s", type(exc).__name__)

    return make_error_response(
        code="INTERNAL_ERROR",
        message="An internal error occurred",
        http_status=500,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the calcdoc exception handlers on an app."""
    app.add_exception_handler(CalcdocHttpError, calcdoc_http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
