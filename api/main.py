"""
api/main.py -- FastAPI application entry point for the auth service.

Run with:      python main.py serve
               uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware   -- adds CORS headers for allowed browser origins
  2. log_requests     -- one access-log line per request with latency

Lifespan builds the whole object graph once per process: stores, password
hasher, token issuer, AuthService. Everything lands on app.state; route
dependencies read it from there. Tests swap the lifespan to inject isolated
stores (see tests/conftest.py).
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from auth.exceptions import AuthError, AuthRejected, RefreshTokenNotFound, StoreFailure, TokenError
from auth.hashing import PasswordHasher
from auth.service import AuthService
from auth.store import RefreshTokenStore, UserStore
from auth.tokens import TokenConfig, TokenIssuer
from core.config import get_settings

__version__ = "1.0.0"

_settings = get_settings()

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=_settings.log_level.upper(),
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("authservice.api")


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the service graph on startup and dispose the DB engines on shutdown.

    The signing secret is read once here and lives for the process lifetime;
    it is never rotated while running.
    """
    settings = get_settings()
    logger.info("Auth service starting up")
    app.state.user_store = UserStore(settings.database_url)
    app.state.token_store = RefreshTokenStore(settings.database_url)
    app.state.token_issuer = TokenIssuer(TokenConfig.from_settings(settings))
    app.state.auth_service = AuthService(
        users=app.state.user_store,
        tokens=app.state.token_store,
        hasher=PasswordHasher(rounds=settings.bcrypt_rounds),
        issuer=app.state.token_issuer,
    )
    logger.info("Auth initialized (backend=%s)", settings.database_url.split(":", 1)[0])

    yield

    app.state.user_store.close()
    app.state.token_store.close()
    logger.info("Auth service shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Auth Service API",
    description="User registration, password sign-in and refresh-token rotation.",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)


# ---------------------------------------------------------------------------
# Request logging middleware
#
# Every request passes through this coroutine before reaching any route
# handler. Wall-clock time is captured around call_next so latency is
# reported on every response.
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/auth", tags=["Auth"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------

# Most specific class first; the first isinstance() match wins.
# A TokenError reaching this handler comes from sign-out and fails the whole
# operation as a server failure. /auth/protected builds its own 401 in
# get_current_user_id and never gets here.
_AUTH_ERROR_STATUS: tuple[tuple[type[AuthError], int], ...] = (
    (AuthRejected, 400),
    (RefreshTokenNotFound, 404),
    (TokenError, 500),
    (StoreFailure, 500),
)


def _status_for(exc: AuthError) -> int:
    for cls, status in _AUTH_ERROR_STATUS:
        if isinstance(exc, cls):
            return status
    return 500


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Map the auth core's exception taxonomy onto HTTP statuses.

    StoreFailure was already logged with its traceback by AuthService. Every
    500 carries the opaque StoreFailure code and message; a token error's own
    code only goes to the log.
    """
    status = _status_for(exc)
    if isinstance(exc, TokenError):
        logger.info("Rejected token on %s %s: %s", request.method, request.url.path, exc.code)
    shown = StoreFailure() if status == 500 else exc
    return JSONResponse(
        status_code=status,
        content=ErrorResponse(error=ErrorDetail(code=shown.code, message=shown.message)).model_dump(
            exclude_none=True
        ),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when the request body is not the expected JSON shape."""
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=str(exc.errors()),
            )
        ).model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions.

    When detail is already a structured dict, use it directly as the error
    field rather than stringifying it -- str(dict) produces a Python repr,
    not JSON.
    """
    if isinstance(exc.detail, dict):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=exc.headers,
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(exclude_none=True),
        headers=exc.headers,
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="internal_error",
                message="An unexpected error occurred.",
            )
        ).model_dump(exclude_none=True),
    )


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly here (not in a router) so it is reachable regardless of
# router registration state.
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Health"])
async def health() -> HealthResponse:
    """Return API liveness and current version."""
    return HealthResponse(version=__version__)
