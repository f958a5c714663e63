"""FastAPI application entry point.

Meowchi API - daily meow counter and claim ledger for the Telegram Mini App.
"""

import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from starlette.middleware.base import BaseHTTPMiddleware

from meowchi.api import auth_router, meow_router, streak_router
from meowchi.config import get_settings
from meowchi.logging_config import bind_context, clear_context, configure_logging, get_logger
from meowchi.middleware.prometheus import setup_prometheus
from meowchi.middleware.sentry import init_sentry
from meowchi.schemas.responses import HealthCheckResponse
from meowchi.services.tap_throttle import TapThrottle
from meowchi.utils.db import close_db, engine, init_db
from meowchi.utils.errors import ErrorCode, MeowchiError, StorageUnavailableError
from meowchi.utils.json_utils import ORJSONResponse

APP_VERSION = "1.0.0"

settings = get_settings()

configure_logging(
    log_level=settings.log_level,
    json_logs=settings.app_env == "production",
    app_env=settings.app_env,
)
logger = get_logger(__name__)

sentry_enabled = init_sentry(
    dsn=settings.sentry_dsn,
    environment=settings.app_env,
    release=APP_VERSION,
    traces_sample_rate=settings.sentry_traces_sample_rate
    if settings.app_env == "production"
    else 0.0,
    profiles_sample_rate=settings.sentry_profiles_sample_rate
    if settings.app_env == "production"
    else 0.0,
)
if sentry_enabled:
    logger.info("Sentry error tracking initialized")
elif settings.app_env == "production":
    logger.warning("Sentry DSN not configured - error tracking disabled")


# =============================================================================
# Lifespan Events
# =============================================================================


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Application lifespan handler for startup and shutdown events."""
    logger.info("Starting application...")

    try:
        await init_db()
        logger.info("Database connection established")
    except Exception as e:
        logger.error("startup_failed", error=str(e))
        raise

    _app.state.tap_throttle = TapThrottle(
        cooldown_ms=settings.tap_cooldown_ms,
        max_entries=settings.tap_throttle_max_entries,
    )
    logger.info(
        "Application startup complete",
        tap_cap=settings.meow_tap_cap,
        daily_quota=settings.meow_daily_quota,
        tap_cooldown_ms=settings.tap_cooldown_ms,
    )

    yield

    logger.info("Shutting down application...")
    try:
        await close_db()
        logger.info("Database connection closed")
    except Exception as e:
        logger.error("shutdown_error", error=str(e))


# =============================================================================
# FastAPI Application
# =============================================================================


app = FastAPI(
    title="Meowchi API",
    version=APP_VERSION,
    description="Daily meow counter and discount claim ledger",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
    default_response_class=ORJSONResponse,
)

prometheus_instrumentator = setup_prometheus(app, app_version=APP_VERSION)


# =============================================================================
# Middleware
# =============================================================================


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Adds X-Request-ID to every response and to the log context."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        request.state.start_time = datetime.now(timezone.utc)

        clear_context()
        bind_context(request_id=request_id)
        try:
            response = await call_next(request)
        finally:
            clear_context()

        response.headers["X-Request-ID"] = request_id

        duration = (
            datetime.now(timezone.utc) - request.state.start_time
        ).total_seconds()
        logger.info(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration=round(duration, 3),
            request_id=request_id,
        )
        return response


app.add_middleware(RequestIDMiddleware)

cors_origins = [origin.strip() for origin in settings.cors_origins.split(",")]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=[
        "Authorization",
        "Content-Type",
        "X-Request-ID",
        "X-Telegram-Init-Data",
    ],
    expose_headers=["X-Request-ID"],
)


# =============================================================================
# Error Handlers
# =============================================================================

ERROR_STATUS = {
    ErrorCode.INVALID_REQUEST.value: status.HTTP_400_BAD_REQUEST,
    ErrorCode.AUTH_INIT_DATA_REQUIRED.value: status.HTTP_400_BAD_REQUEST,
    ErrorCode.AUTH_INVALID_INIT_DATA.value: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.USER_NOT_FOUND.value: status.HTTP_404_NOT_FOUND,
    ErrorCode.CLAIM_NOT_FOUND.value: status.HTTP_404_NOT_FOUND,
    ErrorCode.CLAIM_ALREADY_CONSUMED.value: status.HTTP_409_CONFLICT,
    ErrorCode.ALREADY_CLAIMED.value: status.HTTP_409_CONFLICT,
    ErrorCode.STREAK_ALREADY_CLAIMED.value: status.HTTP_409_CONFLICT,
    ErrorCode.QUOTA_EXHAUSTED.value: status.HTTP_429_TOO_MANY_REQUESTS,
    ErrorCode.NOT_ELIGIBLE.value: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INSUFFICIENT_TAPS.value: status.HTTP_400_BAD_REQUEST,
    ErrorCode.STORAGE_UNAVAILABLE.value: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def get_request_id(request: Request) -> str:
    """Get request ID from request state or headers."""
    if hasattr(request.state, "request_id"):
        return request.state.request_id
    return request.headers.get("X-Request-ID", str(uuid.uuid4()))


def create_error_response(
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
    trace_id: str | None = None,
    retryable: bool = False,
) -> dict[str, Any]:
    """Create standardized error response."""
    return {
        "error": {
            "code": code,
            "message": message,
            "details": details or {},
            "retryable": retryable,
        },
        "traceId": trace_id,
    }


@app.exception_handler(MeowchiError)
async def meowchi_error_handler(request: Request, exc: MeowchiError) -> ORJSONResponse:
    """Handle service errors."""
    trace_id = get_request_id(request)
    status_code = ERROR_STATUS.get(exc.code, status.HTTP_400_BAD_REQUEST)

    logger.info("service_error", code=exc.code, message=exc.message, trace_id=trace_id)

    return ORJSONResponse(
        status_code=status_code,
        content=create_error_response(
            code=exc.code,
            message=exc.message,
            details=exc.details,
            trace_id=trace_id,
            retryable=exc.retryable,
        ),
    )


@app.exception_handler(DBAPIError)
async def storage_error_handler(request: Request, exc: DBAPIError) -> ORJSONResponse:
    """Lock timeouts and lost connections; the transaction was rolled back."""
    trace_id = get_request_id(request)
    error = StorageUnavailableError()

    logger.error(
        "storage_unavailable",
        error_type=type(exc.orig).__name__ if exc.orig is not None else type(exc).__name__,
        trace_id=trace_id,
        exc_info=exc,
    )

    return ORJSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=create_error_response(
            code=error.code,
            message=error.message,
            trace_id=trace_id,
            retryable=True,
        ),
        headers={"Retry-After": "1"},
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> ORJSONResponse:
    trace_id = get_request_id(request)
    return ORJSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=create_error_response(
            code=ErrorCode.INVALID_REQUEST.value,
            message="Request validation failed",
            details={"errors": jsonable_encoder(exc.errors())},
            trace_id=trace_id,
        ),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(
    request: Request, exc: HTTPException
) -> ORJSONResponse:
    """Handle HTTP exceptions."""
    trace_id = get_request_id(request)

    if isinstance(exc.detail, dict) and "error" in exc.detail:
        content = dict(exc.detail)
        content["traceId"] = trace_id
    else:
        content = create_error_response(
            code="HTTP_ERROR",
            message=str(exc.detail),
            trace_id=trace_id,
        )

    return ORJSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> ORJSONResponse:
    """Handle unexpected exceptions."""
    trace_id = get_request_id(request)

    logger.error(
        "unexpected_error",
        error_type=type(exc).__name__,
        error_message=str(exc),
        trace_id=trace_id,
        exc_info=exc,
    )

    # Don't expose internal error details in production
    message = "Internal server error"
    if settings.app_debug:
        message = f"{type(exc).__name__}: {exc}"

    return ORJSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=create_error_response(
            code=ErrorCode.INTERNAL_ERROR.value,
            message=message,
            trace_id=trace_id,
        ),
    )


# =============================================================================
# Health Check Endpoints
# =============================================================================


@app.get(
    "/health",
    tags=["Health"],
    summary="Health check endpoint",
    response_model=HealthCheckResponse,
)
async def health_check() -> dict[str, Any]:
    """Application health including database connectivity."""
    health_status = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": APP_VERSION,
        "services": {"database": "unknown"},
    }

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        health_status["services"]["database"] = "healthy"
    except Exception as e:
        health_status["services"]["database"] = f"unhealthy: {e}"
        health_status["status"] = "degraded"
        logger.error("database_health_check_failed", error=str(e))

    return health_status


@app.get("/health/live", tags=["Health"], summary="Liveness probe")
async def liveness_probe() -> dict[str, str]:
    return {"status": "alive"}


@app.get("/health/ready", tags=["Health"], summary="Readiness probe")
async def readiness_probe():
    """Ready once the database answers."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return {"status": "ready"}
    except Exception as e:
        logger.error("readiness_probe_failed", error=str(e))
        return ORJSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not ready", "error": str(e)},
        )


# =============================================================================
# API Routers
# =============================================================================

API_V1_PREFIX = "/api/v1"

app.include_router(auth_router, prefix=API_V1_PREFIX)
app.include_router(meow_router, prefix=API_V1_PREFIX)
app.include_router(streak_router, prefix=API_V1_PREFIX)


@app.get("/", tags=["Root"], summary="API root endpoint")
async def root() -> dict[str, str]:
    return {
        "name": "Meowchi API",
        "version": APP_VERSION,
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "meowchi.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_debug,
        workers=1 if settings.app_debug else settings.uvicorn_workers,
    )
