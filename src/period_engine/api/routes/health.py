"""Liveness, health and readiness probes."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from period_engine.api.dependencies import DbSession
from period_engine.calculators.rate_resolver import configured_base_currency
from period_engine.config import get_settings
from period_engine.exceptions import BaseCurrencyNotConfiguredError
from period_engine.models import TaxBand
from period_engine.models.enums import BandTable, TaxPeriod

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    database: str
    version: str
    base_currency: str | None
    band_counts: dict[str, int]


class ReadinessResponse(BaseModel):
    status: str
    missing: list[str] = []


async def _band_counts(db: DbSession) -> dict[str, int]:
    rows = await db.execute(
        select(TaxBand.currency, TaxBand.period, func.count()).group_by(
            TaxBand.currency, TaxBand.period
        )
    )
    counts = {table.slug: 0 for table in BandTable}
    for currency, period, count in rows:
        counts[BandTable.for_key(currency, period).slug] = count
    return counts


def _base_currency() -> str | None:
    try:
        return configured_base_currency().value
    except BaseCurrencyNotConfiguredError:
        return None


@router.get("/health", response_model=HealthResponse)
async def health_check(db: DbSession) -> HealthResponse:
    """Database reachability plus the configuration a run depends on."""
    band_counts: dict[str, int] = {}
    try:
        band_counts = await _band_counts(db)
        db_status = "healthy"
    except SQLAlchemyError:
        logger.warning("Database health check failed", exc_info=True)
        db_status = "unhealthy"

    base = _base_currency()
    healthy = db_status == "healthy" and base is not None
    return HealthResponse(
        status="healthy" if healthy else "degraded",
        timestamp=datetime.now(timezone.utc),
        database=db_status,
        version=get_settings().engine_version,
        base_currency=base,
        band_counts=band_counts,
    )


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    responses={503: {"model": ReadinessResponse}},
)
async def readiness_check(db: DbSession):
    """Ready once the base currency is valid and both monthly tables have bands."""
    missing: list[str] = []
    if _base_currency() is None:
        missing.append("base_currency")
    counts = await _band_counts(db)
    missing.extend(
        table.slug
        for table in BandTable
        if table.period == TaxPeriod.MONTHLY and counts[table.slug] == 0
    )

    if missing:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=ReadinessResponse(status="not_ready", missing=missing).model_dump(),
        )
    return ReadinessResponse(status="ready")


@router.get("/live")
async def liveness_check() -> dict[str, str]:
    return {"status": "alive"}
