# backend/app/main.py
"""
FastAPI application entry point.

This file:
- Configures application-wide logging
- Creates the FastAPI application and its lifespan (engine, session
  factory and price refresh job)
- Registers global exception handlers
- Registers all routers
- Defines global endpoints (health check)
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy.orm import Session

from app.config import settings
from app.database import (
    check_database_health,
    create_db_engine,
    create_session_factory,
    get_db,
)
from app.middleware import (
    CorrelationIdMiddleware,
    limiter,
    rate_limit_exceeded_handler,
    SlowAPIMiddleware,
    RATE_LIMIT_HEALTH,
)
from app.models import Base
from app.routers import rewards_router, users_router
from app.schemas.errors import ErrorDetail, ValidationErrorDetail
from app.services.exceptions import (
    ServiceError,
    ValidationError,
    NotFoundError,
    UserExistsError,
    StoreError,
    InternalError,
)
from app.services.pricing import PriceRefreshJob
from app.utils import get_correlation_id, setup_logging

logger = logging.getLogger(__name__)

# =============================================================================
# LOGGING SETUP (must be before app creation)
# =============================================================================

setup_logging()


# =============================================================================
# LIFESPAN
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Own the database engine and the price refresh job for the app's lifetime.

    SQLite databases get their tables created here; PostgreSQL schemas are
    created with init_db.py.
    """
    engine = create_db_engine(settings)
    session_factory = create_session_factory(engine)
    app.state.engine = engine
    app.state.session_factory = session_factory

    if settings.is_sqlite:
        Base.metadata.create_all(bind=engine)

    job = None
    if settings.price_refresh_enabled:
        job = PriceRefreshJob.from_settings(session_factory, settings)
        job.start()
    app.state.price_refresh_job = job

    logger.info(f"{settings.app_name} started ({settings.environment})")
    try:
        yield
    finally:
        if job is not None:
            await job.stop()
        engine.dispose()
        logger.info(f"{settings.app_name} stopped")


# =============================================================================
# APPLICATION SETUP
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description="Records stock rewards and values them in INR",
    version="0.1.0",
    lifespan=lifespan,
)


# =============================================================================
# CORS MIDDLEWARE
# =============================================================================
# Origins are configured via CORS_ORIGINS environment variable

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)


# =============================================================================
# MIDDLEWARE (order matters: last added = first executed)
# =============================================================================

# Attach limiter to app state (required by slowapi)
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)

# Outermost, so rate-limit rejections are tagged too
app.add_middleware(CorrelationIdMiddleware)


# =============================================================================
# GLOBAL EXCEPTION HANDLERS
# =============================================================================
# Service exceptions carry no HTTP knowledge; these handlers give every
# error response the same ErrorDetail body. Starlette picks the handler of
# the closest class in the exception's MRO.
# =============================================================================

def _error_response(
        status_code: int,
        error: str,
        message: str,
        details: dict | None = None,
        headers: dict | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorDetail(
            error=error,
            message=message,
            details=details,
            correlation_id=get_correlation_id(),
        ).model_dump(),
        headers=headers,
    )


app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Handle validation errors (400)."""
    logger.warning(f"Validation error: {exc}")
    return _error_response(
        400,
        "ValidationError",
        str(exc),
        details={"field": exc.field} if exc.field else None,
    )


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    """Handle unknown instrument/user (404)."""
    logger.warning(f"Not found: {exc}")
    return _error_response(
        404,
        type(exc).__name__,
        str(exc),
        details={"resource_type": exc.resource_type, "resource_id": exc.resource_id},
    )


@app.exception_handler(UserExistsError)
async def user_exists_handler(request: Request, exc: UserExistsError) -> JSONResponse:
    """Handle duplicate registration (409)."""
    logger.warning("Registration attempt with existing email")
    return _error_response(409, "UserExistsError", "Email already exists")


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    """Handle database failures (503). Details stay in the logs."""
    logger.error(f"Store error on {request.url.path}: {exc}")
    return _error_response(
        503,
        "StoreError",
        "The service is temporarily unavailable, please retry",
        headers={"Retry-After": "5"},
    )


@app.exception_handler(InternalError)
async def internal_error_handler(request: Request, exc: InternalError) -> JSONResponse:
    """Handle unexpected failures (500). The cause was logged by the service."""
    return _error_response(500, "InternalError", "Something went wrong")


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Handle any other service error (500)."""
    logger.error(f"Service error: {exc}")
    return _error_response(500, "ServiceError", "Something went wrong")


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """
    Handle all HTTPExceptions with consistent error format.

    Converts FastAPI's default {"detail": "..."} format to our standard
    ErrorDetail format for API consistency.
    """
    error_types = {
        400: "BadRequestError",
        404: "NotFoundError",
        405: "MethodNotAllowedError",
        409: "ConflictError",
        429: "RateLimitError",
        500: "InternalServerError",
        503: "ServiceUnavailableError",
    }
    return _error_response(
        exc.status_code,
        error_types.get(exc.status_code, "HTTPError"),
        str(exc.detail) if exc.detail else "An error occurred",
        headers=exc.headers,
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Handle Pydantic validation errors (422) with consistent format.

    Malformed types land here; missing or non-positive values are reported
    by the service as 400.
    """
    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]

    return JSONResponse(
        status_code=422,
        content=ValidationErrorDetail(
            details=errors,
            correlation_id=get_correlation_id(),
        ).model_dump(),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort (500). Never leaks the exception text."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return _error_response(500, "InternalServerError", "Something went wrong")


# =============================================================================
# ROUTER REGISTRATION
# =============================================================================

app.include_router(users_router)  # /api/user
app.include_router(rewards_router)  # /api/reward, /api/today-stocks, ...


# =============================================================================
# GLOBAL ENDPOINTS
# =============================================================================

@app.get("/api/health", tags=["Health"])
@limiter.limit(RATE_LIMIT_HEALTH)
def health_check(request: Request, db: Session = Depends(get_db)):
    """
    Health check endpoint.

    **Response Status Codes:**
    - 200: Database reachable
    - 503: Database unreachable - do not route traffic here
    """
    database = check_database_health(db)
    job = getattr(request.app.state, "price_refresh_job", None)

    response_data = {
        "status": database["status"],
        "checks": {
            "database": database,
            "price_refresh": {"running": job is not None and job.is_running},
        },
    }

    if database["status"] != "healthy":
        return JSONResponse(status_code=503, content=response_data)

    return response_data
