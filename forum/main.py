import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import NamedTuple

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError
from sqlalchemy.exc import (
    DatabaseError,
    DBAPIError,
    IntegrityError,
    OperationalError,
)
from sqlalchemy.exc import (
    TimeoutError as SQLAlchemyTimeoutError,
)
from sqlalchemy.ext.asyncio import AsyncEngine
from starlette.exceptions import HTTPException as StarletteHTTPException

from forum.db.connection import dispose_engine, ensure_sqlite_directory, init_db
from forum.db.connection import (
    get_database_type as _connection_get_database_type,
)
from forum.db.connection import (
    get_database_url as _connection_get_database_url,
)
from forum.db.connection import (
    get_engine as _connection_get_engine,
)
from forum.settings import settings

from .api import engagement, users
from .errors import ForumError
from .schemas.error import ErrorType, ValidationErrorDetail
from .utils.error_responses import (
    build_domain_error_response,
    build_error_response,
    build_validation_error_response,
)
from .utils.request_context import (
    REQUEST_ID_HEADER,
    clear_request_id,
    get_request_id,
    resolve_request_id,
    set_request_id,
)

logging.basicConfig(
    level=settings.log_level_numeric,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def validate_environment() -> None:
    """Log a warning block for every optional setting left unset."""

    warnings = settings.optional_config_warnings()
    if not warnings:
        return

    logger.warning("=" * 60)
    logger.warning("Environment Configuration Warnings:")
    for warning in warnings:
        logger.warning("  • %s", warning)
    logger.warning("=" * 60)


def _sanitize_database_url(url: str) -> str:
    """Sanitize database URL to hide password in logs."""
    if "://" not in url:
        return url

    scheme, rest = url.split("://", 1)

    if "@" in rest:
        auth, host_db = rest.split("@", 1)
        if ":" in auth:
            user, _ = auth.split(":", 1)
            return f"{scheme}://{user}:***@{host_db}"
        return f"{scheme}://{auth}@{host_db}"

    return url


# Module-level proxies so tests can patch ``forum.main.get_*`` directly.
def get_database_type() -> str:
    return _connection_get_database_type()


def get_database_url() -> str:
    return _connection_get_database_url()


def get_engine() -> AsyncEngine:
    return _connection_get_engine()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Preflight the database on startup and release the pool on shutdown."""
    validate_environment()

    db_type = get_database_type()
    db_url = get_database_url()

    logger.info("=" * 60)
    logger.info("Restaurant Forum API - Database Preflight Check")
    logger.info("=" * 60)
    logger.info("Database Type: %s", db_type.upper())
    logger.info("Database URL: %s", _sanitize_database_url(db_url))

    if db_type == "sqlite":
        logger.info("SQLite mode - creating tables from ORM metadata")
        ensure_sqlite_directory(db_url)
        await init_db(get_engine())
    else:
        logger.info("PostgreSQL mode - using Alembic migrations")
        logger.info("Ensure migrations are up to date (run: alembic upgrade head)")
    logger.info("=" * 60)

    from forum.warmup import warmup_database

    await warmup_database(resolve_engine=get_engine)

    yield

    logger.info("Shutting down Restaurant Forum API")
    await dispose_engine()


app = FastAPI(
    title="Restaurant Forum API",
    version="0.1.0",
    description="User profiles, follower rankings and restaurant engagement toggles.",
    lifespan=lifespan,
    redirect_slashes=False,
)


def _default_origins() -> list[str]:
    ports = list(range(3000, 3011)) + [5173]
    origins = []
    for host in ("localhost", "127.0.0.1"):
        origins.extend([f"http://{host}:{port}" for port in ports])
    return origins


def _combine_origins(*origin_groups: list[str]) -> list[str]:
    """Merge origins preserving order and removing duplicates."""
    seen: set[str] = set()
    combined: list[str] = []
    for group in origin_groups:
        for origin in group:
            normalized = origin.rstrip("/")
            if normalized and normalized not in seen:
                seen.add(normalized)
                combined.append(normalized)
    return combined


allow_origins = _combine_origins(_default_origins(), settings.cors_allow_origins)
logger.info("Configured CORS allow_origins: %s", ", ".join(allow_origins))

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[REQUEST_ID_HEADER],
)


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Tag the request with an id, echoing a sane inbound ``X-Request-ID``."""
    request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
    token = set_request_id(request_id)
    response = await call_next(request)
    response.headers[REQUEST_ID_HEADER] = request_id
    # Skipped when call_next raises; the 500 handler still reads the id.
    clear_request_id(token)
    return response


def _error_json(payload) -> JSONResponse:
    return JSONResponse(
        status_code=payload.status_code,
        content=payload.model_dump(mode="json"),
    )


@app.exception_handler(ForumError)
async def forum_exception_handler(request: Request, exc: ForumError):
    """Translate domain errors raised by the services."""
    error_response = build_domain_error_response(exc, path=str(request.url.path))

    logger.info(
        "Rejected request %s to %s: %s (%s)",
        get_request_id(),
        request.url.path,
        exc.message,
        error_response.error_type.value,
    )

    return _error_json(error_response)


_HTTP_ERROR_TYPES: dict[int, ErrorType] = {
    status.HTTP_401_UNAUTHORIZED: ErrorType.AUTHENTICATION_ERROR,
    status.HTTP_403_FORBIDDEN: ErrorType.AUTHORIZATION_ERROR,
    status.HTTP_404_NOT_FOUND: ErrorType.NOT_FOUND,
    status.HTTP_409_CONFLICT: ErrorType.CONFLICT,
}


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Wrap ``HTTPException`` (e.g. the missing ``X-User-Id`` 401) in ErrorResponse."""
    if exc.status_code in _HTTP_ERROR_TYPES:
        error_type = _HTTP_ERROR_TYPES[exc.status_code]
    elif exc.status_code >= 500:
        error_type = ErrorType.INTERNAL_ERROR
    else:
        error_type = ErrorType.INVALID_OPERATION

    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    error_response = build_error_response(
        error_type=error_type,
        message=detail,
        detail=detail,
        status_code=exc.status_code,
        path=str(request.url.path),
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=error_response.model_dump(mode="json"),
        headers=getattr(exc, "headers", None),
    )


def _validation_details(errors) -> list[ValidationErrorDetail]:
    return [
        ValidationErrorDetail(
            field=".".join(str(loc) for loc in error["loc"]),
            message=error["msg"],
            value=error.get("input"),
        )
        for error in errors
    ]


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle FastAPI request validation errors."""
    errors = _validation_details(exc.errors())

    logger.warning(
        "Validation error for request %s to %s: %s errors",
        get_request_id(),
        request.url.path,
        len(errors),
    )

    error_response = build_validation_error_response(
        message="Request validation failed",
        detail=f"{len(errors)} validation error(s)",
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        path=str(request.url.path),
        errors=errors,
    )

    return _error_json(error_response)


@app.exception_handler(ValidationError)
async def pydantic_validation_exception_handler(request: Request, exc: ValidationError):
    """Handle Pydantic validation errors."""
    errors = _validation_details(exc.errors())

    logger.warning(
        "Pydantic validation error for request %s to %s: %s errors",
        get_request_id(),
        request.url.path,
        len(errors),
    )

    error_response = build_validation_error_response(
        message="Data validation failed",
        detail=f"{len(errors)} validation error(s)",
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        path=str(request.url.path),
        errors=errors,
    )

    return _error_json(error_response)


class _DatabaseFailure(NamedTuple):
    error_type: ErrorType
    status_code: int
    message: str
    detail: str
    retry_after: int | None


# Looked up along the exception MRO, so subclasses win over DatabaseError.
_DATABASE_ERROR_RESPONSES: dict[type[Exception], _DatabaseFailure] = {
    OperationalError: _DatabaseFailure(
        ErrorType.DATABASE_ERROR,
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "Database connection failed",
        "Unable to connect to the database. Please try again later.",
        5,
    ),
    SQLAlchemyTimeoutError: _DatabaseFailure(
        ErrorType.TIMEOUT_ERROR,
        status.HTTP_504_GATEWAY_TIMEOUT,
        "Database query timeout",
        "The database query took too long to complete. Please try again.",
        3,
    ),
    IntegrityError: _DatabaseFailure(
        ErrorType.CONFLICT,
        status.HTTP_409_CONFLICT,
        "Data integrity constraint violation",
        "The operation would violate a database constraint.",
        None,
    ),
    DatabaseError: _DatabaseFailure(
        ErrorType.DATABASE_ERROR,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Database operation failed",
        "An error occurred while accessing the database. Please try again.",
        3,
    ),
    DBAPIError: _DatabaseFailure(
        ErrorType.DATABASE_ERROR,
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "Database connection failed",
        "Unable to connect to the database. Please try again later.",
        5,
    ),
}


def _classify_database_error(exc: Exception) -> _DatabaseFailure:
    for klass in type(exc).__mro__:
        if klass in _DATABASE_ERROR_RESPONSES:
            return _DATABASE_ERROR_RESPONSES[klass]
    return _DATABASE_ERROR_RESPONSES[DatabaseError]


async def database_exception_handler(request: Request, exc: Exception):
    """Handle SQLAlchemy errors that escaped the services."""
    failure = _classify_database_error(exc)
    logger.error(
        "%s for request %s to %s: %s",
        type(exc).__name__,
        get_request_id(),
        request.url.path,
        str(exc),
    )

    error_response = build_error_response(
        error_type=failure.error_type,
        message=failure.message,
        detail=failure.detail,
        status_code=failure.status_code,
        path=str(request.url.path),
        retry_after=failure.retry_after,
    )

    return _error_json(error_response)


for _exc_class in _DATABASE_ERROR_RESPONSES:
    app.add_exception_handler(_exc_class, database_exception_handler)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Handle all other unhandled exceptions."""
    logger.exception(
        "Unhandled exception for request %s to %s: %s",
        get_request_id(),
        request.url.path,
        type(exc).__name__,
    )

    error_response = build_error_response(
        error_type=ErrorType.INTERNAL_ERROR,
        message="Internal server error",
        detail=f"An unexpected error occurred: {type(exc).__name__}",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        path=str(request.url.path),
        retry_after=5,
    )

    return _error_json(error_response)


# Locally stored avatars; Imgur-hosted ones are absolute URLs.
if not settings.imgur_client_id:
    upload_dir = Path(settings.upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)
    app.mount("/upload", StaticFiles(directory=str(upload_dir)), name="upload")


@app.get("/health", tags=["system"])
async def healthcheck() -> dict[str, str]:
    """Simple health endpoint for readiness checks."""
    return {"status": "ok"}


app.include_router(users.router, prefix="/users", tags=["users"])
app.include_router(engagement.favorites_router, prefix="/favorites", tags=["favorites"])
app.include_router(engagement.likes_router, prefix="/likes", tags=["likes"])
app.include_router(engagement.following_router, prefix="/following", tags=["following"])
