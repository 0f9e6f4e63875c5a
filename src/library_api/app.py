"""
FastAPI application factory for the Library API.

``create_app`` assembles the service:

1. **Lifespan**: verifies the database is reachable (startup fails otherwise),
   creates missing tables and disposes the pool at shutdown
2. **Middleware**: CORS and a one-line access log per request
3. **Routers**: ``/api/books``, ``/api/users`` and ``/api/loans``
4. **Error handlers**: map repository errors to HTTP statuses and the
   ``{success: false, ...}`` envelope

Error mapping:

- ``InvalidInputError`` / ``LoanRejectedError`` / request validation -> 400
- ``NotFoundError`` -> 404
- ``DuplicateError`` -> 409
- ``RepositoryException`` and anything else -> 500
"""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import AppConfig, get_config
from .database.errors import (
    DuplicateError,
    InvalidInputError,
    NotFoundError,
    RepositoryException,
)
from .database.session import DatabaseManager
from .routes import build_api_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    db_manager: DatabaseManager = app.state.db_manager
    config: AppConfig = app.state.config

    if not db_manager.verify_connection():
        raise RuntimeError("Could not connect to the database; check the DB_* settings")
    if config.create_schema:
        db_manager.init_database()

    logger.info("%s %s started", config.app_name, config.app_version)
    try:
        yield
    finally:
        db_manager.close()
        logger.info("%s stopped", config.app_name)


def _error_response(status_code: int, **body) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, **body})


def register_exception_handlers(app: FastAPI) -> None:
    """Map the error taxonomy onto HTTP responses."""

    @app.exception_handler(InvalidInputError)
    async def invalid_input_handler(request: Request, exc: InvalidInputError):
        logger.info("Rejected %s %s: %s", request.method, request.url.path, exc.message)
        return _error_response(
            status.HTTP_400_BAD_REQUEST, message=exc.message, **jsonable_encoder(exc.details)
        )

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return _error_response(status.HTTP_404_NOT_FOUND, message=exc.message)

    @app.exception_handler(DuplicateError)
    async def duplicate_handler(request: Request, exc: DuplicateError):
        logger.info("Conflict on %s %s: %s", request.method, request.url.path, exc.message)
        return _error_response(status.HTTP_409_CONFLICT, message=exc.message)

    @app.exception_handler(RepositoryException)
    async def repository_error_handler(request: Request, exc: RepositoryException):
        logger.error(
            "Database error on %s %s: %s", request.method, request.url.path, exc.message,
            exc_info=exc,
        )
        cause = exc.__cause__
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            message=exc.message,
            error=str(getattr(cause, "orig", None) or cause or exc.message),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = "Invalid request"
        if errors:
            first = errors[0]
            loc = [str(part) for part in first.get("loc", ())]
            # Drop the "body" / "path" / "query" prefix
            field = ".".join(loc[1:] if loc and loc[0] in ("body", "path", "query") else loc)
            message = f"{field}: {first['msg']}" if field else first["msg"]
        return _error_response(
            status.HTTP_400_BAD_REQUEST,
            message=message,
            errors=jsonable_encoder(errors, custom_encoder={Exception: str}),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == status.HTTP_404_NOT_FOUND:
            return _error_response(exc.status_code, error="Route not found", path=request.url.path)
        return _error_response(exc.status_code, message=str(exc.detail))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            error="Something went wrong",
            message=str(exc),
        )


def create_app(
    db_manager: DatabaseManager | None = None,
    config: AppConfig | None = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        db_manager: Connection pool owner; built from ``config`` if omitted
        config: Application configuration; ``get_config()`` if omitted
    """
    config = config or get_config()
    if db_manager is None:
        db_manager = DatabaseManager(config.get_database_url())

    app = FastAPI(
        title="Library API",
        description="Books, users and loans for a small library",
        version=config.app_version,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.db_manager = db_manager

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            # The traceback is logged by the error handler
            logger.info(
                "%s %s -> 500 (%.1f ms)",
                request.method,
                request.url.path,
                (time.perf_counter() - start) * 1000,
            )
            raise
        logger.info(
            "%s %s -> %d (%.1f ms)",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - start) * 1000,
        )
        return response

    register_exception_handlers(app)
    app.include_router(build_api_router())

    @app.get("/", tags=["meta"])
    def root():
        return {"message": f"{config.app_name} is running", "version": config.app_version}

    @app.get("/health", tags=["meta"])
    def health(request: Request):
        if request.app.state.db_manager.verify_connection():
            return {"status": "ok", "database": "connected"}
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "error", "database": "disconnected"},
        )

    return app
