"""
api/main.py -- FastAPI application entry point for the job board.

Run with:  uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. log_requests      -- method, path, status and latency for every request
  2. SlowAPIMiddleware -- enforces per-route rate limits from api.limiter

Lifespan builds the stores and services once and hangs them on app.state;
routes read them from there. Shutdown closes every store symmetrically.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import link_router as reset_link_router
from api.routes.v1.auth import router as auth_router
from api.routes.v1.vacancies import router as vacancies_router
from auth.accounts import AccountService
from auth.authenticator import SessionAuthenticator
from auth.errors import AuthError
from auth.guard import AuthorizationGuard
from auth.passwords import PasswordHasher
from auth.reset import Notifier, PasswordResetFlow
from auth.sessions import SessionStore
from auth.store import UserStore
from auth.tokens import TokenIssuer
from board.store import VacancyStore
from core.config import Settings, get_settings
from notify.mailer import notifier_from_settings

VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("jobboard.api")


# ---------------------------------------------------------------------------
# Service wiring
# ---------------------------------------------------------------------------


def wire_services(
    app: FastAPI,
    settings: Settings,
    user_store: UserStore,
    session_store: SessionStore,
    vacancy_store: VacancyStore,
    notifier: Notifier,
    hasher: PasswordHasher | None = None,
) -> None:
    """Build the auth services over the given stores and attach everything to app.state.

    Shared by the real lifespan and the test fixtures so both run the same graph.
    """
    hasher = hasher or PasswordHasher(rounds=settings.bcrypt_rounds)
    app.state.user_store = user_store
    app.state.session_store = session_store
    app.state.vacancy_store = vacancy_store
    app.state.notifier = notifier
    app.state.authenticator = SessionAuthenticator(user_store, hasher, session_store)
    app.state.accounts = AccountService(user_store, hasher)
    app.state.guard = AuthorizationGuard()
    app.state.reset_flow = PasswordResetFlow(
        users=user_store,
        issuer=TokenIssuer(ttl_seconds=settings.reset_token_ttl_seconds),
        hasher=hasher,
        notifier=notifier,
        base_url=settings.base_url,
        sessions=session_store,
    )


# ---------------------------------------------------------------------------
# Background purge task
# ---------------------------------------------------------------------------


async def _purge_loop(app: FastAPI) -> None:
    """Delete expired session rows every hour.

    CancelledError from task.cancel() during shutdown propagates out of
    asyncio.sleep and unwinds the coroutine cleanly.
    """
    while True:
        await asyncio.sleep(60 * 60)
        removed = app.state.session_store.purge_expired()
        if removed:
            logger.info("Purged %d expired sessions", removed)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create stores and services on startup; close them on shutdown."""
    settings = get_settings()
    logger.info("Job board API starting up")
    wire_services(
        app,
        settings,
        user_store=UserStore(settings.database_url),
        session_store=SessionStore(settings.database_url),
        vacancy_store=VacancyStore(settings.database_url),
        notifier=notifier_from_settings(settings),
    )
    logger.info("Stores initialized")
    app.state.purge_task = asyncio.create_task(_purge_loop(app))

    yield

    app.state.purge_task.cancel()
    app.state.vacancy_store.close()
    app.state.session_store.close()
    app.state.user_store.close()
    logger.info("Job board API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Job Board API",
    description="Vacancy postings with session login, password reset, and author-only editing.",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


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

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
app.include_router(vacancies_router, prefix="/api/v1", tags=["Vacancies"])
app.include_router(reset_link_router, tags=["Auth"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Render a typed auth outcome with its fixed status, code and message.

    InvalidCredentials and Forbidden are expected user-facing outcomes and are
    not logged here. Availability errors were already logged by the store or
    notifier that raised them.
    """
    response = JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=ErrorDetail(code=exc.code, message=exc.message)).model_dump(),
    )
    response.headers["Cache-Control"] = "no-store"
    return response


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = JSONResponse(
        status_code=429,
        content=ErrorResponse(
            error=ErrorDetail(
                code="rate_limited",
                message="Too many requests.",
                detail=str(exc),
            )
        ).model_dump(),
    )
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when request body or path params fail validation."""
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

    Route handlers raise HTTPException with a dict detail ({"code", "message"});
    use it directly as the error field rather than stringifying it.
    """
    if isinstance(exc.detail, dict):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(),
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
        ).model_dump(),
    )


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable
# regardless of router registration state. No rate limit applied.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return API liveness, version, and whether the user store answers."""
    components = {"app": "ok", "database": "ok"}
    try:
        request.app.state.user_store.get_by_id(0)
    except AuthError:
        components["database"] = "error"
    status = "healthy" if components["database"] == "ok" else "degraded"
    return HealthResponse(status=status, version=VERSION, components=components)
