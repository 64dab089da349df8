"""
api/main.py -- FastAPI application entry point for the session auth service.

Run with:      uvicorn asgi:app --reload
               python main.py serve

Middleware stack (outermost to innermost):
  1. CORSMiddleware -- adds CORS headers for allowed browser origins
  2. log_requests   -- one access log line per request with latency

Rate limiting is applied per route by the shared slowapi limiter
(api/limiter.py); it only needs app.state.limiter and the 429 handler here.

Lifespan handles startup (engine, auth components, session reaper) and
shutdown (stop reaper, dispose engine) symmetrically.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy.engine import Engine
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import auth_window_seconds, limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.auth import router as auth_router
from auth.db import create_db_engine
from auth.errors import AuthError, InternalError, RateLimited, ValidationError
from auth.guard import AuthGuard
from auth.reaper import SessionReaper
from auth.sessions import SessionRegistry
from auth.store import CredentialStore
from auth.tokens import TokenIssuer
from core.config import Settings, get_settings

__version__ = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("sessionauth.api")

# ---------------------------------------------------------------------------
# Service wiring
# ---------------------------------------------------------------------------


def init_auth_state(app: FastAPI, settings: Settings, engine: Engine) -> None:
    """Build the auth components on top of engine and attach them to app.state.

    Everything a route needs is reached through app.state; nothing in auth/
    holds module-level state. Tests call this with their own engine.
    """
    app.state.engine = engine
    app.state.credential_store = CredentialStore(engine, bcrypt_rounds=settings.bcrypt_rounds)
    app.state.token_issuer = TokenIssuer(
        settings.secret_key,
        default_ttl=timedelta(seconds=settings.token_expire_seconds),
    )
    app.state.session_registry = SessionRegistry(engine, settings.secret_key)
    app.state.auth_guard = AuthGuard(app.state.token_issuer, app.state.session_registry)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Everything before yield runs on startup; everything after yield runs on
    shutdown. Startup order: engine first (creates tables), then the
    components that use it, then the reaper that sweeps through them.
    """
    settings = get_settings()
    logger.info("Session auth API starting up")
    engine = create_db_engine(
        settings.database_url,
        pool_size=settings.db_pool_size,
        pool_timeout=settings.db_pool_timeout,
    )
    init_auth_state(app, settings, engine)
    logger.info("Auth store initialized")
    app.state.reaper = SessionReaper(
        app.state.session_registry,
        interval_seconds=settings.session_sweep_interval_seconds,
    )
    app.state.reaper.start()

    yield

    await app.state.reaper.stop()
    engine.dispose()
    logger.info("Session auth API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Session Auth API",
    description="Account registration, password signin and revocable bearer sessions.",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

# slowapi looks for the limiter on app.state by convention.
app.state.limiter = limiter

# ---------------------------------------------------------------------------
# Request logging middleware
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

app.include_router(auth_router, tags=["Auth"])

# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


def _error_response(exc: AuthError, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(code=exc.code, message=exc.message, details=exc.details),
        ).model_dump(),
        headers=headers,
    )


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Render any auth-core failure. 401s advertise the Bearer scheme."""
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return _error_response(exc, headers=headers)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 when the auth attempt window is exhausted.

    Retry-After is the full window length -- an upper bound, since the fixed
    window may already be partly elapsed.
    """
    logger.warning("Rate limit exceeded for %s on %s", request.client.host if request.client else "unknown", request.url.path)
    return _error_response(RateLimited(), headers={"Retry-After": str(auth_window_seconds())})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 when the request body is missing, not JSON, or mistyped."""
    details = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body") or "body",
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    return _error_response(ValidationError(details=details))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Envelope for framework-level HTTP errors (unknown route, wrong method)."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(code=f"http_{exc.status_code}", message=str(exc.detail)),
        ).model_dump(),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception goes to the server log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(InternalError())


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py so it is always reachable regardless of router
# registration state. No rate limit -- load balancers must not be throttled.
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Health"])
async def health() -> HealthResponse:
    """Return liveness and the current server time."""
    return HealthResponse(timestamp=datetime.now(timezone.utc).isoformat())
