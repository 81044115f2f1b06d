"""API routes."""

from period_engine.api.routes.currency import router as currency_router
from period_engine.api.routes.health import router as health_router
from period_engine.api.routes.payslips import router as payslips_router
from period_engine.api.routes.periods import router as periods_router
from period_engine.api.routes.tax_bands import router as tax_bands_router

__all__ = [
    "currency_router",
    "health_router",
    "payslips_router",
    "periods_router",
    "tax_bands_router",
]
