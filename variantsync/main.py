"""VariantSync API main application module.

This module initializes the FastAPI application and configures
core middleware, routers, exception handlers and startup/shutdown events.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from variantsync.api.codes import router as codes_router
from variantsync.api.dependencies import close_dependencies
from variantsync.api.health import router as health_router
from variantsync.api.middleware import setup_middleware
from variantsync.api.orders import router as orders_router
from variantsync.api.variants import router as variants_router
from variantsync.domain.exceptions import (
    CodeConflictError,
    DomainError,
    InvalidStateTransitionError,
    LineItemNotFoundError,
    NoCodeAvailableError,
    OrderBusyError,
    RemoteCatalogError,
    RemoteDuplicateError,
    UnknownAttributeValueError,
    ValidationError,
)
from variantsync.infrastructure.config import settings
from variantsync.infrastructure.database import create_tables, dispose_engine
from variantsync.infrastructure.logging_setup import configure_logging

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup and shutdown events.

    Args:
        app: The FastAPI application instance.

    Yields:
        None after startup, cleanup happens after yield.
    """
    configure_logging()
    logger.info(
        "Starting VariantSync API",
        version=settings.api_version,
        debug=settings.debug,
        storage=settings.storage_backend,
        remote_catalog=settings.remote_catalog_url,
    )

    if settings.storage_backend == "sql":
        await create_tables()
        logger.info("Database tables ready")

    yield

    logger.info("Shutting down VariantSync API")
    await close_dependencies()
    if settings.storage_backend == "sql":
        await dispose_engine()


app = FastAPI(
    title="VariantSync API",
    description="Variant generation, product code allocation and remote catalog sync",
    version=settings.api_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware (must be added before custom middleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_middleware(app)

app.include_router(health_router, tags=["Health"])
app.include_router(variants_router)
app.include_router(codes_router)
app.include_router(orders_router)


# ============================================================================
# Custom Exception Handlers
# ============================================================================

# First match wins, so subclasses come before their bases.
DOMAIN_ERROR_STATUS: list[tuple[type[DomainError], int]] = [
    (ValidationError, 422),
    (RemoteDuplicateError, 409),
    (CodeConflictError, 409),
    (NoCodeAvailableError, 409),
    (OrderBusyError, 409),
    (InvalidStateTransitionError, 409),
    (LineItemNotFoundError, 404),
    (UnknownAttributeValueError, 404),
    (RemoteCatalogError, 502),
]


def status_for(exc: DomainError) -> int:
    """HTTP status code for a domain error."""
    for error_type, status_code in DOMAIN_ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return 400


def _error_details(exc: DomainError) -> list[dict[str, str | None]]:
    if isinstance(exc, ValidationError):
        return [
            {"field": line, "message": f"missing {', '.join(fields)}"}
            for line, fields in exc.problems.items()
        ]
    return []


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Map domain errors to the standard error body."""
    status_code = status_for(exc)
    log = logger.error if status_code >= 500 else logger.info
    log(
        "Domain error",
        path=request.url.path,
        error_code=exc.error_code,
        error=exc.message,
        status_code=status_code,
    )
    return JSONResponse(
        status_code=status_code,
        content={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": _error_details(exc),
            "request_id": getattr(request.state, "request_id", None),
        },
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTP exceptions with consistent format."""
    detail = exc.detail
    if isinstance(detail, dict):
        error_code = detail.get("error_code", "ERROR")
        message = detail.get("message", str(detail))
        details = detail.get("details", [])
    else:
        error_code = "ERROR"
        message = str(detail)
        details = []

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": error_code,
            "message": message,
            "details": details,
            "request_id": getattr(request.state, "request_id", None),
        },
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle uncaught exceptions with consistent format."""
    logger.exception(
        "Unhandled exception in handler",
        path=request.url.path,
        method=request.method,
        error=str(exc),
    )
    return JSONResponse(
        status_code=500,
        content={
            "error_code": "INTERNAL_ERROR",
            "message": "An internal error occurred",
            "details": [],
            "request_id": getattr(request.state, "request_id", None),
        },
    )
