"""
FastAPI application entry point for the gigboard backend.

This module initializes the FastAPI application with:
- Application state (failed-credential TTLStore, principal resolver)
- CORS middleware from settings
- Exception handlers producing the uniform {"error", "message"} body
- Logging configuration

Environment Variables:
    GIGBOARD_DB_URL: Database URL (default: local PostgreSQL)
    AUTH_JWT_SECRET: HS256 secret of the identity provider
    GIGBOARD_ENV: Environment (production/development, default: development)
    GIGBOARD_LOG_LEVEL: Log level (DEBUG/INFO/WARNING/ERROR/CRITICAL, default: INFO)
"""

from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from backend.src.auth.principal_resolver import build_principal_resolver
from backend.src.config.settings import get_settings
from backend.src.db.database import dispose_engine
from backend.src.schemas.common import ErrorResponse
from backend.src.utils.logging_config import init_logging, get_logger
from backend.src.utils.ttl_store import TTLStore


APP_VERSION = "1.0.0"

# HTTP status -> error kind of the uniform error body
ERROR_KINDS = {
    status.HTTP_400_BAD_REQUEST: "validation",
    status.HTTP_401_UNAUTHORIZED: "unauthenticated",
    status.HTTP_403_FORBIDDEN: "forbidden",
    status.HTTP_404_NOT_FOUND: "not_found",
    status.HTTP_409_CONFLICT: "conflict",
    status.HTTP_429_TOO_MANY_REQUESTS: "rate_limited",
    status.HTTP_500_INTERNAL_SERVER_ERROR: "internal",
}


def error_kind(status_code: int) -> str:
    if status_code in ERROR_KINDS:
        return ERROR_KINDS[status_code]
    return "internal" if status_code >= 500 else "validation"


def error_body(status_code: int, message: str) -> Dict[str, str]:
    return ErrorResponse(error=error_kind(status_code), message=message).model_dump()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Startup creates the process-wide failed-credential store and the
    principal resolver; shutdown drops them and closes pooled connections.
    """
    logger = get_logger("api")
    logger.info("Starting gigboard backend application")

    settings = get_settings()
    app.state.auth_failures = TTLStore()
    app.state.principal_resolver = build_principal_resolver(settings)
    if app.state.principal_resolver is None:
        logger.warning(
            "AUTH_JWT_SECRET is not set; every authenticated request will get 401"
        )

    logger.info("Gigboard backend started successfully")

    yield

    logger.info("Shutting down gigboard backend application")
    app.state.auth_failures.clear()
    dispose_engine()


# Initialize logging before creating app
init_logging()

app = FastAPI(
    title="Gigboard API",
    description="Shared calendar for bands: group events, member unavailability, "
                "conflict checks and song lists.",
    version=APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Exception handlers


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Render HTTPExceptions (raised by endpoints and routing) as the uniform body."""
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Handle request validation errors as 400.

    The message names the first offending field; every error is logged.
    """
    logger = get_logger("api")
    errors = exc.errors()
    logger.warning(
        "Validation error",
        extra={
            "path": request.url.path,
            "method": request.method,
            "errors": errors,
        }
    )

    message = "Request validation failed"
    if errors:
        first = errors[0]
        location = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(status.HTTP_400_BAD_REQUEST, message),
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(
    request: Request, exc: SQLAlchemyError
) -> JSONResponse:
    """Handle SQLAlchemy database errors."""
    logger = get_logger("db")
    logger.error(
        "Database error",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error": str(exc),
        }
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "An error occurred while accessing the database. Please try again later.",
        ),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """Handle all other unhandled exceptions."""
    logger = get_logger("api")
    logger.error(
        "Unhandled exception",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error_type": type(exc).__name__,
            "error": str(exc),
        },
        exc_info=True,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "An unexpected error occurred. Please try again later.",
        ),
    )


# Health check endpoint


@app.get("/health", tags=["Health"])
async def health_check() -> Dict[str, Any]:
    """Liveness probe; does not touch the database."""
    return {
        "status": "healthy",
        "service": "gigboard-backend",
        "version": APP_VERSION,
    }


# Documented error bodies of every API route
ERROR_RESPONSES = {code: {"model": ErrorResponse} for code in ERROR_KINDS}

# API routers
from backend.src.api import calendar, events, groups, songs, users

app.include_router(users.router, prefix="/api", responses=ERROR_RESPONSES)
app.include_router(groups.router, prefix="/api", responses=ERROR_RESPONSES)
app.include_router(events.router, prefix="/api", responses=ERROR_RESPONSES)
app.include_router(calendar.router, prefix="/api", responses=ERROR_RESPONSES)
app.include_router(songs.router, prefix="/api", responses=ERROR_RESPONSES)
