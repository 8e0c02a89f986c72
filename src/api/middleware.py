"""API middleware: CORS, request logging and error handling.

Starlette runs middleware as a stack, last added first.  main.py adds
ErrorHandlingMiddleware before RequestLoggingMiddleware, so a request
flows::

    client -> RequestLogging -> ErrorHandling -> route handler

and the request log records the final status code, including responses
that ErrorHandling produced from an exception.
"""

from __future__ import annotations

import time

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from src.api.schemas import ErrorResponse
from src.utils.errors import RateLimitExceededError, ShelfwiseError
from src.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------


def configure_cors(app: FastAPI, *, allowed_origins: list[str] | None = None) -> None:
    """Add CORS middleware to the FastAPI application.

    Parameters
    ----------
    app:
        The FastAPI application instance.
    allowed_origins:
        Explicit list of allowed origins.  Defaults to ``["*"]`` for
        development; the UI's own origin should be set in production.
    """
    origins = allowed_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


# ---------------------------------------------------------------------------
# Request Logging
# ---------------------------------------------------------------------------


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every HTTP request with method, path, status code, and duration."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        start = time.perf_counter()
        response: Response | None = None

        try:
            response = await call_next(request)
            return response
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            status_code = response.status_code if response else 500
            _logger.info(
                "http_request",
                method=request.method,
                path=str(request.url.path),
                status=status_code,
                duration_ms=duration_ms,
            )


# ---------------------------------------------------------------------------
# Error Handling
# ---------------------------------------------------------------------------


def rate_limit_response(exc: RateLimitExceededError) -> JSONResponse:
    """Render a rate-limit rejection as HTTP 429.

    ``Retry-After`` is only sent when the limiter could compute it; the
    daily cap leaves it out.
    """
    body = ErrorResponse(
        error=exc.code,
        detail=exc.reason,
        retry_after=exc.retry_after,
        limit=exc.limit,
    )
    headers = {"Retry-After": str(exc.retry_after)} if exc.retry_after is not None else None
    return JSONResponse(status_code=429, content=body.model_dump(), headers=headers)


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Turn ``ShelfwiseError`` subclasses into structured JSON errors.

    Rate-limit rejections become 429s; any other application error
    becomes a 500 carrying only the error class name and message.  Stack
    traces stay in the server log.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except RateLimitExceededError as exc:
            _logger.info(
                "rate_limited_request",
                limit=exc.limit,
                retry_after=exc.retry_after,
                path=str(request.url.path),
            )
            return rate_limit_response(exc)
        except ShelfwiseError as exc:
            _logger.error(
                "application_error",
                error_type=type(exc).__name__,
                message=exc.message,
                provider=exc.provider_name,
                path=str(request.url.path),
            )
            body = ErrorResponse(
                error=type(exc).__name__,
                detail=exc.message,
            )
            return JSONResponse(
                status_code=500,
                content=body.model_dump(),
            )
