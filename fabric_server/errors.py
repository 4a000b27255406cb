"""HTTP-facing error types and the handlers that render them."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from fabric_server.services.llm.base import LLMProviderError

AI_SERVICE_MESSAGE = "Failed to communicate with AI service. Please try again."
INTERNAL_MESSAGE = "An unexpected error occurred"


class ApiError(Exception):
    status_code = 500
    label = "Internal server error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_body(self) -> dict:
        return {"error": self.label, "message": self.message}


class NotFoundError(ApiError):
    status_code = 404
    label = "Not found"


class StorageError(ApiError):
    """File persistence failed."""

    status_code = 500
    label = "Storage error"


class EmailDeliveryError(ApiError):
    """Email could not be sent; the reason is passed through to the caller."""

    status_code = 500
    label = "Email error"

    def to_body(self) -> dict:
        return {"success": False, "error": self.message}


def _error_body(label: str, message: str) -> dict:
    return {"error": label, "message": message}


def _missing_fields_message(exc: RequestValidationError) -> str:
    missing: list[str] = []
    invalid: list[str] = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        name = ".".join(loc) or "body"
        if error.get("type") in ("missing", "string_too_short"):
            if name not in missing:
                missing.append(name)
        elif name not in invalid:
            invalid.append(name)
    parts: list[str] = []
    if missing:
        parts.append(f"Missing required fields: {', '.join(missing)}")
    if invalid:
        parts.append(f"Invalid fields: {', '.join(invalid)}")
    return "; ".join(parts) or "Invalid request body"


def register_error_handlers(app: FastAPI, logger: Optional[logging.Logger] = None) -> None:
    logger = logger or logging.getLogger("fabric.api.errors")

    @app.exception_handler(RequestValidationError)
    async def handle_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        message = _missing_fields_message(exc)
        logger.info("Validation failed: %s %s %s", request.method, request.url.path, message)
        return JSONResponse(status_code=400, content=_error_body("Validation error", message))

    @app.exception_handler(ApiError)
    async def handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s on %s %s: %s", exc.label, request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_body())

    @app.exception_handler(LLMProviderError)
    async def handle_ai_error(request: Request, exc: LLMProviderError) -> JSONResponse:
        # Provider internals stay in the log; callers get the generic text.
        logger.error("AI service error on %s %s: %s", request.method, request.url.path, exc)
        message = getattr(exc, "public_message", AI_SERVICE_MESSAGE)
        return JSONResponse(status_code=502, content=_error_body("AI service error", message))

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            message = f"Route {request.method} {request.url.path} not found"
            return JSONResponse(status_code=404, content=_error_body("Not found", message))
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body("Request error", str(exc.detail)),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Server error on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=500,
            content=_error_body("Internal server error", INTERNAL_MESSAGE),
        )
