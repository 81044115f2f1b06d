"""Tax band table maintenance with overlap validation."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from period_engine.calculators.band_table import find_overlapping_band, validate_band_shape
from period_engine.calculators.types import BandSpec
from period_engine.exceptions import TaxBandNotFoundError, TaxBandOverlapError
from period_engine.models import TaxBand
from period_engine.models.enums import BandTable

logger = logging.getLogger(__name__)

_UNSET = object()


def _spec(band: TaxBand) -> BandSpec:
    return BandSpec(
        min_salary=band.min_salary,
        max_salary=band.max_salary,
        tax_rate=band.tax_rate,
        tax_amount=band.tax_amount,
        band_id=band.band_id,
    )


class TaxBandService:
    """CRUD over the four band tables.

    Every write checks the band against its siblings in the same table;
    overlapping ranges are rejected before anything is persisted. Bands that
    only share a boundary are allowed.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_bands(self, table: BandTable) -> list[TaxBand]:
        result = await self.session.execute(
            select(TaxBand)
            .where(
                TaxBand.currency == table.currency.value,
                TaxBand.period == table.period.value,
            )
            .order_by(TaxBand.min_salary)
        )
        return list(result.scalars())

    async def get_band(self, band_id: UUID) -> TaxBand:
        band = await self.session.get(TaxBand, band_id)
        if band is None:
            raise TaxBandNotFoundError(band_id)
        return band

    async def create_band(
        self,
        table: BandTable,
        min_salary: Decimal,
        max_salary: Decimal | None,
        tax_rate: Decimal,
        tax_amount: Decimal = Decimal("0"),
    ) -> TaxBand:
        candidate = BandSpec(
            min_salary=Decimal(min_salary),
            max_salary=Decimal(max_salary) if max_salary is not None else None,
            tax_rate=Decimal(tax_rate),
            tax_amount=Decimal(tax_amount),
        )
        await self._validate(table, candidate)

        band = TaxBand(
            currency=table.currency.value,
            period=table.period.value,
            min_salary=candidate.min_salary,
            max_salary=candidate.max_salary,
            tax_rate=candidate.tax_rate,
            tax_amount=candidate.tax_amount,
        )
        self.session.add(band)
        await self.session.flush()
        logger.info(
            "Created %s band %s-%s @ %s", table.slug, band.min_salary, band.max_salary, band.tax_rate
        )
        return band

    async def update_band(
        self,
        band_id: UUID,
        min_salary: Decimal | None = None,
        max_salary: Decimal | None | object = _UNSET,
        tax_rate: Decimal | None = None,
        tax_amount: Decimal | None = None,
    ) -> TaxBand:
        """Update a band in place. Pass ``max_salary=None`` to make it open-ended."""
        band = await self.get_band(band_id)
        candidate = BandSpec(
            min_salary=Decimal(min_salary) if min_salary is not None else band.min_salary,
            max_salary=(
                band.max_salary
                if max_salary is _UNSET
                else (Decimal(max_salary) if max_salary is not None else None)  # type: ignore[arg-type]
            ),
            tax_rate=Decimal(tax_rate) if tax_rate is not None else band.tax_rate,
            tax_amount=Decimal(tax_amount) if tax_amount is not None else band.tax_amount,
            band_id=band.band_id,
        )
        await self._validate(band.table, candidate)

        band.min_salary = candidate.min_salary
        band.max_salary = candidate.max_salary
        band.tax_rate = candidate.tax_rate
        band.tax_amount = candidate.tax_amount
        await self.session.flush()
        logger.info("Updated %s band %s", band.table.slug, band_id)
        return band

    async def delete_band(self, band_id: UUID) -> None:
        band = await self.get_band(band_id)
        await self.session.delete(band)
        await self.session.flush()
        logger.info("Deleted %s band %s", band.table.slug, band_id)

    async def replace_table(self, table: BandTable, bands: Iterable[BandSpec]) -> list[TaxBand]:
        """Swap a whole table for a new set of bands, validated as a set."""
        await self.session.execute(
            delete(TaxBand).where(
                TaxBand.currency == table.currency.value,
                TaxBand.period == table.period.value,
            )
        )
        created: list[TaxBand] = []
        for spec in sorted(bands, key=lambda b: b.min_salary):
            created.append(
                await self.create_band(
                    table, spec.min_salary, spec.max_salary, spec.tax_rate, spec.tax_amount
                )
            )
        return created

    async def _validate(self, table: BandTable, candidate: BandSpec) -> None:
        validate_band_shape(candidate)
        siblings = [_spec(b) for b in await self.list_bands(table)]
        conflict = find_overlapping_band(candidate, siblings)
        if conflict is not None:
            raise TaxBandOverlapError(table.slug, conflict.band_id)
