"""Error responses for secretforge.

Every error body has one shape:

    {"success": false, "error": "<text>", "code": "<code>"}
"""

from __future__ import annotations

import logging
import traceback
from typing import Any

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from secretforge.config import settings
from secretforge.persistence.base import PersistenceError

logger = logging.getLogger(__name__)


def error_body(code: str, text: str) -> dict[str, Any]:
    return {"success": False, "error": text, "code": code}


class ApiError(HTTPException):
    """Base exception for secretforge API errors."""

    def __init__(self, status_code: int, code: str, text: str):
        self.code = code
        self.text = text
        super().__init__(status_code=status_code, detail=text)

    def to_body(self) -> dict[str, Any]:
        return error_body(self.code, self.text)


class BadRequestError(ApiError):
    """Invalid request (400)."""

    def __init__(self, text: str):
        super().__init__(status_code=400, code="ValidationError", text=text)


class NotFoundError(ApiError):
    """Resource not found (404)."""

    def __init__(self, resource_type: str, identifier: str):
        super().__init__(
            status_code=404,
            code="NotFound",
            text=f"{resource_type} with identifier '{identifier}' not found",
        )


class ServiceUnavailableError(ApiError):
    """Required backing service unavailable (503)."""

    def __init__(self, text: str):
        super().__init__(status_code=503, code="ServiceUnavailable", text=text)


async def api_exception_handler(request: Request, exc: ApiError) -> JSONResponse:
    """Exception handler for secretforge API errors."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed query parameters or bodies are client errors (400)."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        text = f"{location}: {first.get('msg', 'invalid value')}"
    else:
        text = "Invalid request"
    return JSONResponse(status_code=400, content=error_body("ValidationError", text))


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Framework-raised HTTP errors, including unknown routes."""
    if exc.status_code == 404:
        text = f"Route {request.url.path} not found"
        return JSONResponse(status_code=404, content=error_body("NotFound", text))
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body("HttpError", str(exc.detail)),
    )


async def persistence_exception_handler(request: Request, exc: PersistenceError) -> JSONResponse:
    """Record store failures are server errors and are not retried."""
    logger.error(f"Record store failure on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content=error_body("PersistenceError", "Record store unavailable"),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Exception handler for unexpected errors."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    body = error_body("InternalServerError", str(exc) or "Internal Server Error")
    if settings.env == "dev":
        body["stack"] = "".join(traceback.format_exception(exc))
    return JSONResponse(status_code=500, content=body)
