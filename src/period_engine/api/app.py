"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from period_engine import __version__
from period_engine.api.routes import (
    currency_router,
    health_router,
    payslips_router,
    periods_router,
    tax_bands_router,
)
from period_engine.config import configure_logging
from period_engine.database import dispose_db, init_db
from period_engine.exceptions import (
    ConfigurationError,
    NotFoundError,
    PayrollEngineError,
    PermissionDeniedError,
    PreconditionError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def status_for(exc: PayrollEngineError) -> int:
    """HTTP status for a typed engine error."""
    if isinstance(exc, PermissionDeniedError):
        return status.HTTP_403_FORBIDDEN
    if isinstance(exc, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, PreconditionError):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, (ValidationError, ConfigurationError)):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    return status.HTTP_400_BAD_REQUEST


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    init_db()
    yield
    await dispose_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    configure_logging()

    app = FastAPI(
        title="Payroll Period Engine API",
        description="Period processing and PAYE computation",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(PayrollEngineError)
    async def engine_error_handler(request: Request, exc: PayrollEngineError) -> JSONResponse:
        """Map typed engine errors to HTTP responses."""
        return JSONResponse(
            status_code=status_for(exc),
            content={"detail": exc.message, "code": exc.code, "details": exc.details},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    app.include_router(health_router)
    app.include_router(periods_router, prefix="/api/v1")
    app.include_router(payslips_router, prefix="/api/v1")
    app.include_router(tax_bands_router, prefix="/api/v1")
    app.include_router(currency_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
