"""FastAPI application entry point with lifespan, CORS, and structured logging.

This module initializes the FastAPI application with:
- Lifespan context manager that opens the database and creates the schema
- CORS middleware (origins from CORS_ORIGINS, default "*")
- Structured logging (JSON) to logs/api.log
- Exception handlers for consistent error responses
- Basic health check endpoints

The database connection is stored in app.state.db for access by route
handlers throughout the application lifecycle.

Usage:
    uvicorn devtracker.api.app:app --reload
"""

import traceback
from contextlib import asynccontextmanager
import os
from typing import Dict

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from devtracker.api.models import ErrorDetail, ErrorEnvelope
from devtracker.api.responses import (
    DATABASE_ERROR,
    DUPLICATE_RESOURCE,
    FORBIDDEN,
    NOT_FOUND,
    UNAUTHORIZED,
    VALIDATION_ERROR,
)
from devtracker.api.routes import games, posts
from devtracker.backend.db.connection import DEFAULT_DB_PATH, init_schema, open_connection
from devtracker.backend.utils.logging_config import get_logger, setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the database on startup, close it on shutdown."""
    logger = get_logger(__name__)

    db_path = os.environ.get('DB_PATH', DEFAULT_DB_PATH)

    try:
        conn = open_connection(db_path)
        init_schema(conn)
        app.state.db = conn

        logger.info("database_connection_acquired", db_path=db_path)

        yield

    finally:
        if hasattr(app.state, 'db') and app.state.db is not None:
            app.state.db.close()
            app.state.db = None
            logger.info("database_connection_closed")


setup_logging(log_dir="logs", log_filename="api.log")

app = FastAPI(
    title="Developer Tracker API",
    description="Stores and serves posts made by game developers across community sites",
    version="1.0.0",
    lifespan=lifespan,
)

cors_origins = os.environ.get('CORS_ORIGINS', '*').split(',')

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger = get_logger(__name__)
logger.info("fastapi_app_initialized", cors_origins=cors_origins)

app.include_router(games.router)
app.include_router(posts.router)

_STATUS_CODES = {
    401: UNAUTHORIZED,
    403: FORBIDDEN,
    404: NOT_FOUND,
    409: DUPLICATE_RESOURCE,
    422: VALIDATION_ERROR,
}


def _error_response(status_code: int, code: str, message: str) -> JSONResponse:
    error_envelope = ErrorEnvelope(error=ErrorDetail(code=code, message=message))
    return JSONResponse(
        status_code=status_code,
        content=error_envelope.model_dump(),
        headers={"Content-Type": "application/json"}
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Convert request validation errors into a 422 ErrorEnvelope."""
    logger = get_logger(__name__)
    logger.warning("validation_error", path=request.url.path, errors=exc.errors())

    return _error_response(
        422, VALIDATION_ERROR, f"Request validation failed: {exc.errors()[0]['msg']}"
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTPException with error envelope format.

    Routes exceptions raised via raise_api_error() or raw HTTPException
    into the standard ErrorEnvelope structure.
    """
    logger = get_logger(__name__)
    logger.warning("http_exception", path=request.url.path, status=exc.status_code)

    if isinstance(exc.detail, dict) and "code" in exc.detail:
        code = exc.detail["code"]
        message = exc.detail["message"]
    else:
        code = _STATUS_CODES.get(exc.status_code, DATABASE_ERROR)
        message = str(exc.detail) if exc.detail else "An error occurred"

    return _error_response(exc.status_code, code, message)


@app.exception_handler(404)
async def not_found_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle 404 Not Found errors, keeping the message of raise_api_error()."""
    logger = get_logger(__name__)
    logger.warning("not_found", path=request.url.path)

    detail = getattr(exc, "detail", None)
    if isinstance(detail, dict) and "code" in detail:
        return _error_response(404, detail["code"], detail["message"])

    return _error_response(404, NOT_FOUND, f"Resource not found: {request.url.path}")


@app.exception_handler(500)
async def internal_server_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Convert uncaught server errors into a 500 ErrorEnvelope."""
    logger = get_logger(__name__)
    logger.error(
        "internal_server_error",
        path=request.url.path,
        error=str(exc),
        traceback=traceback.format_exc(),
    )

    return _error_response(500, DATABASE_ERROR, "An internal server error occurred")


@app.get("/")
async def root() -> Dict[str, str]:
    """Root endpoint for basic health check.

    Example:
        GET / -> {"status": "ok", "message": "Developer Tracker API"}
    """
    return {
        "status": "ok",
        "message": "Developer Tracker API"
    }


@app.get("/health")
async def health() -> Dict[str, str]:
    """Health check endpoint.

    Example:
        GET /health -> {"status": "healthy"}
    """
    return {"status": "healthy"}
