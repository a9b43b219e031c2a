"""
api/main.py -- FastAPI application entry point for postboard.

Run with:      uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware   -- adds CORS headers for the configured browser origins
  2. log_requests     -- one access-log line per request with latency

Lifespan builds every long-lived collaborator from get_settings() and hangs
it on app.state:
  app.state.users     UserStore
  app.state.post_store PostStore
  app.state.hasher    PasswordHasher
  app.state.tokens    TokenService (signing key injected here)
  app.state.accounts  AccountService
  app.state.posts     PostService
Shutdown disposes both engines.

Error boundary:
  Services raise core.errors types. The exception handlers at the bottom of
  this module are the one place those are turned into HTTP responses, all
  with the same ErrorResponse envelope.
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
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import ErrorDetail, ErrorResponse, FieldErrorDetail, HealthResponse
from api.routes.v1.auth import router as auth_router
from api.routes.v1.posts import router as posts_router
from api.routes.v1.users import router as users_router
from auth.passwords import PasswordHasher
from auth.service import AccountService
from auth.store import UserStore
from auth.tokens import TokenService
from core.config import get_settings
from core.errors import AppError, ValidationError
from posts.service import PostService
from posts.store import PostStore

__version__ = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("postboard.api")

# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build stores and services on startup; dispose engines on shutdown."""
    settings = get_settings()
    logger.info("postboard API starting up")

    users = UserStore(settings.database_url)
    post_store = PostStore(settings.database_url)
    hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    tokens = TokenService(settings.secret_key, default_ttl=settings.token_expire_seconds)

    app.state.users = users
    app.state.post_store = post_store
    app.state.hasher = hasher
    app.state.tokens = tokens
    app.state.accounts = AccountService(users, hasher, tokens, settings)
    app.state.posts = PostService(post_store, users)
    logger.info("Stores initialized")

    yield

    post_store.close()
    users.close()
    logger.info("postboard API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="postboard API",
    description="Accounts, bearer-token auth, and a shared board of posts with likes.",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization", "x-auth-token"],
    max_age=3600,
)


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

app.include_router(users_router, prefix="/api/v1", tags=["Users"])
app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
app.include_router(posts_router, prefix="/api/v1", tags=["Posts"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


def _error_response(status_code: int, error: ErrorDetail) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error).model_dump(exclude_none=True),
    )


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render a domain error raised by a service or the auth gate."""
    fields = None
    if isinstance(exc, ValidationError):
        fields = [FieldErrorDetail(field=e.field, message=e.message) for e in exc.errors]
    return _error_response(exc.status_code, ErrorDetail(code=exc.code, message=exc.message, fields=fields))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 with per-field detail when the body or a path parameter has the wrong shape.

    Same envelope and status as a service-level ValidationError, so clients
    handle "bad input" one way regardless of which layer caught it.
    """
    fields = [
        FieldErrorDetail(field=str(err["loc"][-1]) if err.get("loc") else "body", message=err.get("msg", "invalid"))
        for err in exc.errors()
    ]
    return _error_response(
        400,
        ErrorDetail(code="validation_error", message="Request validation failed.", fields=fields),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Structured body for framework-raised errors (unknown route, wrong method)."""
    return _error_response(exc.status_code, ErrorDetail(code=f"http_{exc.status_code}", message=str(exc.detail)))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(500, ErrorDetail(code="internal_error", message="An unexpected error occurred."))


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"])
async def health() -> HealthResponse:
    """Return API liveness and current version. No auth."""
    return HealthResponse(version=__version__)
