"""Translate service errors into HTTP responses."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..services.errors import (
    BatchAlreadyReviewed,
    BatchNotFound,
    FlashcardError,
    FlashcardLimitExceeded,
    FlashcardNotFound,
    GenerationError,
    GenerationOutputInvalid,
    GenerationRateLimited,
    GenerationUnavailable,
    ValidationError,
)
from .schemas import ErrorDetailModel, ErrorResponse

logger = logging.getLogger(__name__)

ERROR_STATUS: dict[type[FlashcardError], int] = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    FlashcardNotFound: status.HTTP_404_NOT_FOUND,
    BatchNotFound: status.HTTP_404_NOT_FOUND,
    BatchAlreadyReviewed: status.HTTP_409_CONFLICT,
    FlashcardLimitExceeded: status.HTTP_403_FORBIDDEN,
    GenerationRateLimited: status.HTTP_429_TOO_MANY_REQUESTS,
    GenerationUnavailable: status.HTTP_503_SERVICE_UNAVAILABLE,
    GenerationOutputInvalid: status.HTTP_400_BAD_REQUEST,
    GenerationError: status.HTTP_503_SERVICE_UNAVAILABLE,
}

_HTTP_ERROR_CODES = {
    status.HTTP_400_BAD_REQUEST: "BAD_REQUEST",
    status.HTTP_401_UNAUTHORIZED: "UNAUTHORIZED",
    status.HTTP_403_FORBIDDEN: "FORBIDDEN",
    status.HTTP_404_NOT_FOUND: "NOT_FOUND",
    status.HTTP_405_METHOD_NOT_ALLOWED: "METHOD_NOT_ALLOWED",
}


def status_for(exc: FlashcardError) -> int:
    """Resolve the status for an error, honouring the most specific registered class."""
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS:
            return ERROR_STATUS[cls]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_response(status_code: int, body: ErrorResponse, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(body, exclude_none=True),
        headers=headers,
    )


async def handle_flashcard_error(_: Request, exc: FlashcardError) -> JSONResponse:
    body = ErrorResponse(error=exc.code, message=exc.message)
    if isinstance(exc, ValidationError) and exc.issues:
        body.details = [ErrorDetailModel(field=issue.field, message=issue.message) for issue in exc.issues]
    if isinstance(exc, FlashcardLimitExceeded):
        body.current_count = exc.current_count
        body.limit = exc.limit
    if isinstance(exc, GenerationError):
        body.suggestion = exc.suggestion
        logger.warning("Generation failed: code=%s, message=%s", exc.code, exc.message)
    return error_response(status_for(exc), body)


async def handle_request_validation_error(_: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        ErrorDetailModel(field=_format_location(error.get("loc", ())), message=_format_message(error))
        for error in exc.errors()
    ]
    body = ErrorResponse(error=ValidationError.code, message="Invalid request data.", details=details)
    return error_response(status.HTTP_400_BAD_REQUEST, body)


async def handle_http_exception(_: Request, exc: StarletteHTTPException) -> JSONResponse:
    body = ErrorResponse(
        error=_HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR"),
        message=str(exc.detail),
    )
    return error_response(exc.status_code, body, headers=getattr(exc, "headers", None))


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error: method=%s, path=%s", request.method, request.url.path, exc_info=exc)
    body = ErrorResponse(error="INTERNAL_SERVER_ERROR", message="An unexpected error occurred.")
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, body)


def register_exception_handlers(app: FastAPI) -> None:
    """Install the handlers mapping every failure to the shared error body."""
    app.add_exception_handler(FlashcardError, handle_flashcard_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(Exception, handle_unexpected_error)


def _format_location(location: tuple[Any, ...] | list[Any]) -> str:
    parts = list(location)
    if parts and parts[0] in {"body", "query", "path", "header"}:
        parts = parts[1:]
    return ".".join(str(part) for part in parts) or "body"


def _format_message(error: dict[str, Any]) -> str:
    if error.get("type") == "json_invalid":
        return "Malformed JSON body."
    return str(error.get("msg", "Invalid value."))
