"""Middleware — CORS, API key authentication, request logging, error handling."""

from __future__ import annotations

import time
import uuid
from typing import Callable

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from swip.config import get_settings
from swip.errors import (
    ConsentError,
    InitializationError,
    PermissionDeniedError,
    SessionError,
    SessionNotFoundError,
    SwipError,
)

logger = structlog.get_logger(__name__)

_PLACEHOLDER_KEYS = ("change-me-to-a-random-secret", "")


# ── CORS ──────────────────────────────────────────────────────


def add_cors(app: FastAPI) -> None:
    """Configure CORS from ``settings.cors_origins`` (comma-separated, or ``"*"``)."""
    origins_raw = get_settings().cors_origins.strip()

    if origins_raw == "*":
        origins = ["*"]
    else:
        origins = [o.strip() for o in origins_raw.split(",") if o.strip()]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )


# ── API key authentication ────────────────────────────────────

_PUBLIC_PATHS: set[str] = {
    "/health",
    "/docs",
    "/openapi.json",
    "/redoc",
}


def _api_key_from(request: Request) -> str:
    key = request.headers.get("X-API-Key")
    if key:
        return key
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    return token.strip() if scheme.lower() == "bearer" else ""


class APIKeyMiddleware(BaseHTTPMiddleware):
    """Require ``X-API-Key`` or ``Authorization: Bearer <key>`` outside the public paths.

    Disabled while ``api_secret_key`` is empty or the shipped placeholder.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        secret = get_settings().api_secret_key
        if secret in _PLACEHOLDER_KEYS or request.url.path in _PUBLIC_PATHS:
            return await call_next(request)
        if _api_key_from(request) != secret:
            return JSONResponse(status_code=401, content={"detail": "Invalid or missing API key."})
        return await call_next(request)


# ── Request logging ───────────────────────────────────────────


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tag each request with an id and log its outcome.

    The id is bound into structlog's context, so SDK events emitted while
    serving the request carry it too, and is echoed as ``X-Request-ID``.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]
        structlog.contextvars.bind_contextvars(request_id=request_id)
        start = time.monotonic()
        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id")
        response.headers["X-Request-ID"] = request_id

        if request.url.path != "/health":
            logger.info(
                "api.request",
                request_id=request_id,
                method=request.method,
                path=request.url.path,
                status=response.status_code,
                elapsed_ms=round((time.monotonic() - start) * 1000, 1),
            )
        return response


# ── Error handling ────────────────────────────────────────────


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Turn anything the routes did not handle into a JSON 500."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            logger.exception("api.unhandled_error", path=request.url.path, error=str(exc))
            return JSONResponse(
                status_code=500,
                content={"detail": "Internal server error.", "error": type(exc).__name__},
            )


def status_for_error(exc: SwipError) -> int:
    """HTTP status code for an SDK error."""
    if isinstance(exc, SessionNotFoundError):
        return 404
    if isinstance(exc, SessionError):
        return 409
    if isinstance(exc, (ConsentError, PermissionDeniedError)):
        return 403
    if isinstance(exc, InitializationError):
        return 503
    return 400


async def swip_error_handler(request: Request, exc: SwipError) -> JSONResponse:
    status = status_for_error(exc)
    logger.warning("api.sdk_error", path=request.url.path, status=status, error=str(exc))
    return JSONResponse(status_code=status, content={"detail": str(exc)})


# ── Wiring ────────────────────────────────────────────────────


def setup_middleware(app: FastAPI) -> None:
    """Install CORS, auth, logging and error middleware plus the SDK error handler.

    Starlette runs the last-added middleware outermost, so the error
    handler wraps everything else.
    """
    add_cors(app)
    app.add_middleware(APIKeyMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_exception_handler(SwipError, swip_error_handler)
