"""
FastAPI application entry point for the Dry Craft API.
"""

from __future__ import annotations

import logging
import os

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from drycraft.config import get_settings
from drycraft.cors import (
    CORS_HEADERS,
    CORS_METHODS,
    PreflightCORSMiddleware,
    error_cors_headers,
)
from drycraft.errors import DryCraftError
from drycraft.routes import router

logger = logging.getLogger(__name__)


def _error(message: str, status_code: int, headers: dict | None = None) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code, headers=headers)


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    field = ".".join(
        str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")
    )
    message = str(first.get("msg", "Invalid value")).removeprefix("Value error, ")
    return f"{field}: {message}" if field else message


async def _handle_app_error(request: Request, exc: DryCraftError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "%s %s failed: %s",
            request.method,
            request.url.path,
            exc.__cause__ or exc,
            exc_info=exc,
        )
    return _error(exc.message, exc.status_code)


async def _handle_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return _error(_validation_message(exc), 400)


async def _handle_http_error(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return _error(str(exc.detail), exc.status_code, headers=getattr(exc, "headers", None))


async def _handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled error on %s %s", request.method, request.url.path, exc_info=exc
    )
    # Rendered outside the CORS middleware, so the headers are added here.
    headers = error_cors_headers(request, get_settings().cors_origins)
    return _error("Internal server error", 500, headers=headers)


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    app = FastAPI(title="Dry Craft API", version="0.1.0")
    app.add_middleware(
        PreflightCORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=CORS_METHODS,
        allow_headers=CORS_HEADERS,
    )
    app.add_exception_handler(DryCraftError, _handle_app_error)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)
    app.add_exception_handler(StarletteHTTPException, _handle_http_error)
    app.add_exception_handler(Exception, _handle_unexpected_error)
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
