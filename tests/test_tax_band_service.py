"""Tests for tax band table maintenance."""

from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest

from period_engine.calculators.types import BandSpec
from period_engine.exceptions import (
    InvalidTaxBandError,
    TaxBandNotFoundError,
    TaxBandOverlapError,
)
from period_engine.models.enums import BandTable
from period_engine.services.tax_band_service import TaxBandService


class TestBandTable:
    def test_slug_round_trip(self):
        for table in BandTable:
            assert BandTable.from_slug(table.slug) is table

    def test_unknown_slug(self):
        with pytest.raises(ValueError):
            BandTable.from_slug("weekly_usd")

    def test_label(self):
        assert BandTable.MONTHLY_ZWL.label == "ZWL - Monthly Table"
        assert BandTable.ANNUAL_USD.label == "USD - Annual Table"


class TestCreateBand:
    async def test_create_adjacent_bands(self, session):
        service = TaxBandService(session)

        await service.create_band(BandTable.MONTHLY_USD, Decimal("0"), Decimal("3000"), Decimal("0.20"))
        await service.create_band(BandTable.MONTHLY_USD, Decimal("3000"), None, Decimal("0.25"))

        bands = await service.list_bands(BandTable.MONTHLY_USD)
        assert [b.min_salary for b in bands] == [Decimal("0"), Decimal("3000")]
        assert bands[1].max_salary is None

    async def test_overlap_rejected(self, session, monthly_usd_bands):
        conflicting_id = monthly_usd_bands[0].band_id

        with pytest.raises(TaxBandOverlapError) as exc_info:
            await TaxBandService(session).create_band(
                BandTable.MONTHLY_USD, Decimal("2500"), Decimal("3500"), Decimal("0.30")
            )

        assert exc_info.value.table == "monthly_usd"
        assert exc_info.value.conflicting_band_id == conflicting_id

    async def test_tables_are_independent(self, session, monthly_usd_bands):
        band = await TaxBandService(session).create_band(
            BandTable.MONTHLY_ZWL, Decimal("0"), Decimal("3000"), Decimal("0.20")
        )

        assert band.table is BandTable.MONTHLY_ZWL

    async def test_open_ended_band_blocks_higher_bands(self, session):
        service = TaxBandService(session)
        await service.create_band(BandTable.ANNUAL_USD, Decimal("0"), None, Decimal("0.10"))

        with pytest.raises(TaxBandOverlapError):
            await service.create_band(
                BandTable.ANNUAL_USD, Decimal("50000"), Decimal("60000"), Decimal("0.20")
            )

    async def test_malformed_band_rejected(self, session):
        with pytest.raises(InvalidTaxBandError):
            await TaxBandService(session).create_band(
                BandTable.MONTHLY_USD, Decimal("3000"), Decimal("1000"), Decimal("0.20")
            )


class TestUpdateAndDelete:
    async def test_update_own_range(self, session, monthly_usd_bands):
        band_id = monthly_usd_bands[1].band_id

        band = await TaxBandService(session).update_band(
            band_id, max_salary=Decimal("12000"), tax_rate=Decimal("0.30")
        )

        assert band.max_salary == Decimal("12000")
        assert band.tax_rate == Decimal("0.30")
        assert band.min_salary == Decimal("3000")

    async def test_update_to_open_ended(self, session, monthly_usd_bands):
        band_id = monthly_usd_bands[1].band_id

        band = await TaxBandService(session).update_band(band_id, max_salary=None)

        assert band.max_salary is None

    async def test_update_into_sibling_rejected(self, session, monthly_usd_bands):
        band_id = monthly_usd_bands[1].band_id

        with pytest.raises(TaxBandOverlapError):
            await TaxBandService(session).update_band(band_id, min_salary=Decimal("2000"))

    async def test_delete(self, session, monthly_usd_bands):
        service = TaxBandService(session)
        band_id = monthly_usd_bands[0].band_id

        await service.delete_band(band_id)

        with pytest.raises(TaxBandNotFoundError):
            await service.get_band(band_id)

    async def test_delete_unknown(self, session):
        with pytest.raises(TaxBandNotFoundError):
            await TaxBandService(session).delete_band(uuid4())


class TestReplaceTable:
    async def test_replace_swaps_all_bands(self, session, monthly_usd_bands):
        service = TaxBandService(session)

        created = await service.replace_table(
            BandTable.MONTHLY_USD,
            [
                BandSpec(Decimal("100"), None, Decimal("0.20")),
                BandSpec(Decimal("0"), Decimal("100"), Decimal("0")),
            ],
        )

        bands = await service.list_bands(BandTable.MONTHLY_USD)
        assert len(created) == 2
        assert [(b.min_salary, b.tax_rate) for b in bands] == [
            (Decimal("0"), Decimal("0")),
            (Decimal("100"), Decimal("0.20")),
        ]

    async def test_replace_rejects_overlapping_set(self, session):
        with pytest.raises(TaxBandOverlapError):
            await TaxBandService(session).replace_table(
                BandTable.ANNUAL_ZWL,
                [
                    BandSpec(Decimal("0"), Decimal("1000"), Decimal("0.10")),
                    BandSpec(Decimal("500"), None, Decimal("0.20")),
                ],
            )
