"""RecipeBox API — FastAPI application with DB-backed storage."""
from __future__ import annotations

import logging

from recipebox.logging_config import setup_logging
setup_logging()
from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

from recipebox.auth import (
    SignUpRequest, LoginRequest, RefreshRequest, create_tokens, verify_token,
)
from recipebox.db.engine import engine, get_session
from recipebox.db.routines import install_routines, reset_probe_cache
from recipebox.db.tables import Base
from recipebox.db.user_tables import UserRow
from recipebox.errors import RecipeBoxError, Unauthenticated
from recipebox.services.profiles import ProfileService
from config.settings import settings

# ── Sentry Error Tracking ────────────────────────
if settings.SENTRY_DSN:
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
    from sentry_sdk.integrations.logging import LoggingIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.SENTRY_ENVIRONMENT,
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
        integrations=[
            FastApiIntegration(),
            SqlalchemyIntegration(),
            LoggingIntegration(level=logging.WARNING, event_level=logging.ERROR),
        ],
        # Scrub sensitive data
        send_default_pii=False,
        before_send=lambda event, hint: (
            {**event, "request": {**event.get("request", {}), "cookies": None}}
            if "request" in event else event
        ),
    )

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Validate config, create tables and install stored routines on startup."""
    from recipebox.startup_checks import validate_settings
    validate_settings()

    # Import all tables so they're registered with Base.metadata
    import recipebox.db.user_tables  # noqa: F401
    import recipebox.db.social_tables  # noqa: F401
    import recipebox.db.comment_tables  # noqa: F401
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        await install_routines(conn)
    reset_probe_cache()
    logger.info("Database tables ready")

    yield

    logger.info("Shutting down — draining connections...")
    await engine.dispose()
    logger.info("Shutdown complete")


app = FastAPI(
    title="RecipeBox API",
    version=VERSION,
    description="Recipe sharing with likes, comments and engagement stats",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Response caching for recipe reads; services revalidate the paths they write
from recipebox.middleware.cache import ResponseCacheMiddleware
app.add_middleware(ResponseCacheMiddleware)

# Request ID tracing, registered last so it wraps cached responses too
from recipebox.middleware.request_id import RequestIDMiddleware
app.add_middleware(RequestIDMiddleware)


# ---- Auth routes ----


def _auth_payload(user: UserRow, username: str) -> dict:
    return {"user": {"id": user.id, "email": user.email, "username": username}, **create_tokens(user.id)}


@app.post("/api/v1/auth/signup", status_code=201)
async def signup(req: SignUpRequest, session: AsyncSession = Depends(get_session)):
    """Create a new account together with its profile."""
    user, profile = await ProfileService(session).register(req)
    return _auth_payload(user, profile.username)


@app.post("/api/v1/auth/login")
async def login(req: LoginRequest, session: AsyncSession = Depends(get_session)):
    """Log in with email + password, returns JWT tokens."""
    service = ProfileService(session)
    user = await service.authenticate(req.email, req.password)
    profile = await service.get_profile(user.id)
    return _auth_payload(user, profile.username)


@app.post("/api/v1/auth/refresh")
async def refresh_token(req: RefreshRequest, session: AsyncSession = Depends(get_session)):
    """Exchange a valid refresh token for new access + refresh tokens."""
    payload = verify_token(req.refresh_token, "refresh")
    if not payload:
        raise Unauthenticated("Invalid or expired refresh token")
    result = await session.execute(select(UserRow).where(UserRow.id == payload.get("sub")))
    user = result.scalar_one_or_none()
    if not user:
        raise Unauthenticated("User not found")
    profile = await ProfileService(session).get_profile(user.id)
    return _auth_payload(user, profile.username)


# ---- Feature routers ----

from recipebox.api.recipes import router as recipes_router
app.include_router(recipes_router)

from recipebox.api.social import router as social_router
app.include_router(social_router)

from recipebox.api.comments import router as comments_router
app.include_router(comments_router)

from recipebox.api.users import router as users_router
app.include_router(users_router)

from recipebox.api.password_reset import router as password_router
app.include_router(password_router)


@app.get("/health")
async def health(session: AsyncSession = Depends(get_session)):
    """Deep health check — validates DB connectivity."""
    try:
        await session.execute(text("SELECT 1"))
        db_status = "connected"
    except SQLAlchemyError:
        logger.warning("Health check could not reach the database", exc_info=True)
        db_status = "error"
    status = "ok" if db_status == "connected" else "degraded"
    return {"status": status, "db": db_status, "version": VERSION}


@app.get("/ready")
async def readiness(session: AsyncSession = Depends(get_session)):
    """Readiness probe for orchestrators.

    Returns 503 if not ready to serve traffic.
    """
    try:
        await session.execute(text("SELECT 1"))
    except SQLAlchemyError:
        return JSONResponse(status_code=503, content={"ready": False, "reason": "database unavailable"})
    return {"ready": True}


# --- Structured Error Responses ---


@app.exception_handler(RecipeBoxError)
async def recipebox_error_handler(request: Request, exc: RecipeBoxError):
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={
        "error": exc.code,
        "message": exc.message,
    })


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Return clean, structured validation errors instead of raw Pydantic output."""
    errors = []
    for err in exc.errors():
        field = " → ".join(str(loc) for loc in err["loc"]) if err.get("loc") else "unknown"
        errors.append({"field": field, "message": err["msg"]})
    return JSONResponse(status_code=422, content={
        "error": "validation_error",
        "message": "Invalid request data",
        "details": errors,
    })


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    """Consistent error envelope for all HTTP errors."""
    return JSONResponse(status_code=exc.status_code, content={
        "error": exc.detail if isinstance(exc.detail, str) else "error",
        "message": exc.detail,
    }, headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    """Catch-all for unhandled exceptions — never leak stack traces."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={
        "error": "internal_error",
        "message": "Something went wrong. Please try again.",
    })
