"""Tax band table endpoints.

Tables are addressed by slug: annual_usd, annual_zwl, monthly_usd, monthly_zwl.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Path, status

from period_engine.api.dependencies import CurrentActor, DbSession
from period_engine.api.schemas import (
    ErrorResponse,
    TaxBandCreate,
    TaxBandResponse,
    TaxBandTableResponse,
    TaxBandUpdate,
)
from period_engine.models.enums import BandTable
from period_engine.services.authorization import authorize_admin
from period_engine.services.tax_band_service import TaxBandService

router = APIRouter(prefix="/tax-bands", tags=["tax-bands"])

BandId = Annotated[UUID, Path()]


def _table(slug: str) -> BandTable:
    try:
        return BandTable.from_slug(slug)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invalid band type")


@router.get("", response_model=list[TaxBandTableResponse])
async def list_tables(db: DbSession) -> list[TaxBandTableResponse]:
    """All four band tables with their bands."""
    service = TaxBandService(db)
    tables = []
    for table in BandTable:
        bands = await service.list_bands(table)
        tables.append(
            TaxBandTableResponse(
                table=table.slug,
                label=table.label,
                bands=[TaxBandResponse.model_validate(b) for b in bands],
            )
        )
    return tables


@router.get("/{band_type}", response_model=TaxBandTableResponse)
async def list_table(db: DbSession, band_type: str) -> TaxBandTableResponse:
    table = _table(band_type)
    bands = await TaxBandService(db).list_bands(table)
    return TaxBandTableResponse(
        table=table.slug,
        label=table.label,
        bands=[TaxBandResponse.model_validate(b) for b in bands],
    )


@router.post(
    "/{band_type}",
    response_model=TaxBandResponse,
    status_code=status.HTTP_201_CREATED,
    responses={403: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def create_band(
    db: DbSession,
    actor: CurrentActor,
    band_type: str,
    payload: TaxBandCreate,
) -> TaxBandResponse:
    authorize_admin(actor, "tax_band.create")
    band = await TaxBandService(db).create_band(
        _table(band_type),
        payload.min_salary,
        payload.max_salary,
        payload.tax_rate,
        payload.tax_amount,
    )
    await db.commit()
    return TaxBandResponse.model_validate(band)


@router.put(
    "/{band_type}/{band_id}",
    response_model=TaxBandResponse,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def update_band(
    db: DbSession,
    actor: CurrentActor,
    band_type: str,
    band_id: BandId,
    payload: TaxBandUpdate,
) -> TaxBandResponse:
    authorize_admin(actor, "tax_band.update")
    table = _table(band_type)
    service = TaxBandService(db)
    existing = await service.get_band(band_id)
    if existing.table != table:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tax band not found")

    changes = payload.model_dump(exclude_unset=True)
    band = await service.update_band(band_id, **changes)
    await db.commit()
    return TaxBandResponse.model_validate(band)


@router.delete(
    "/{band_type}/{band_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}},
)
async def delete_band(
    db: DbSession,
    actor: CurrentActor,
    band_type: str,
    band_id: BandId,
) -> None:
    authorize_admin(actor, "tax_band.delete")
    table = _table(band_type)
    service = TaxBandService(db)
    existing = await service.get_band(band_id)
    if existing.table != table:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tax band not found")
    await service.delete_band(band_id)
    await db.commit()
