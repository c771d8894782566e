"""API middleware: CORS, request logging, and error handling.

Starlette middleware is a stack (last added, first executed).  In
``src/main.py``::

    app.add_middleware(ErrorHandlingMiddleware)    # inner
    app.add_middleware(RequestLoggingMiddleware)   # outermost

so the request log records the final status code, including errors that
ErrorHandlingMiddleware turned into JSON.

Error codes returned to clients:

    AuthenticationError          401  unauthenticated
    ValidationError              400  invalid-argument
    malformed request body       400  invalid-argument
    any other KnowledgeBaseError 500  internal
"""

from __future__ import annotations

import time

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from src.api.schemas import ErrorResponse
from src.utils.errors import AuthenticationError, KnowledgeBaseError, ValidationError
from src.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

ERROR_UNAUTHENTICATED = "unauthenticated"
ERROR_INVALID_ARGUMENT = "invalid-argument"
ERROR_INTERNAL = "internal"


def error_status(exc: KnowledgeBaseError) -> tuple[int, str]:
    """Map an engine error to its HTTP status and client-facing code."""
    if isinstance(exc, AuthenticationError):
        return 401, ERROR_UNAUTHENTICATED
    if isinstance(exc, ValidationError):
        return 400, ERROR_INVALID_ARGUMENT
    return 500, ERROR_INTERNAL


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------


def configure_cors(app: FastAPI, *, allowed_origins: list[str] | None = None) -> None:
    """Add CORS middleware.  Defaults to all origins for development."""
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


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Catch ``KnowledgeBaseError`` subclasses and return structured JSON errors.

    Stack traces stay in the server log; the client sees the error code and
    the exception message only.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except KnowledgeBaseError as exc:
            status_code, code = error_status(exc)
            log = _logger.warning if status_code < 500 else _logger.error
            log(
                "application_error",
                error_type=type(exc).__name__,
                message=exc.message,
                provider=exc.provider_name,
                path=str(request.url.path),
                status=status_code,
            )
            body = ErrorResponse(error=code, detail=exc.message)
            return JSONResponse(status_code=status_code, content=body.model_dump())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies as 400 ``invalid-argument``."""
    errors = exc.errors()
    detail = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', '')}" for err in errors
    )
    _logger.warning("request_validation_failed", path=str(request.url.path), detail=detail)
    body = ErrorResponse(error=ERROR_INVALID_ARGUMENT, detail=detail or "Invalid request")
    return JSONResponse(status_code=400, content=body.model_dump())


def install_error_handling(app: FastAPI) -> None:
    """Register the error middleware and the request validation handler on *app*."""
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_middleware(ErrorHandlingMiddleware)
