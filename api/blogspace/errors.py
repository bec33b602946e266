"""Exception handlers that render every error in the shared response envelope."""

from __future__ import annotations

import logging
import traceback

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import schemas
from .settings import is_production

logger = logging.getLogger(__name__)


def _envelope(status_code: int, body: schemas.ErrorResponse, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(by_alias=True, exclude_none=True),
        headers=headers,
    )


def _field_name(loc: tuple) -> str:
    # Drop the leading "body"/"query"/"path"/"form" segment
    parts = [str(part) for part in loc[1:]] if len(loc) > 1 else [str(part) for part in loc]
    return ".".join(parts)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        message = "API endpoint not found"
    return _envelope(
        exc.status_code,
        schemas.ErrorResponse(message=message),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        schemas.FieldError(field=_field_name(tuple(error.get("loc", ()))), message=error.get("msg", ""))
        for error in exc.errors()
    ]
    return _envelope(
        status.HTTP_400_BAD_REQUEST,
        schemas.ErrorResponse(message="Validation failed", errors=errors),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc
    )
    body = schemas.ErrorResponse(message="Something went wrong!", error=str(exc))
    if not is_production():
        body.stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    else:
        body.error = None
    return _envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, body)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
