"""Tests for period generation, center status views and summaries."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from period_engine.exceptions import (
    CostCenterNotFoundError,
    InvalidPeriodError,
    InvalidTransitionError,
    PayrollNotFoundError,
    PermissionDeniedError,
)
from period_engine.models.enums import CurrencyMode, PeriodTiming
from period_engine.services.payroll_processor import PayrollProcessor
from period_engine.services.payslip_service import PayslipService
from period_engine.services.period_service import PeriodService, month_bounds
from period_engine.services.state_machine import CenterPeriodState


class TestPeriodGeneration:
    async def test_generates_twelve_months(self, session, payroll):
        service = PeriodService(session)

        created = await service.generate_periods_for_year(payroll.payroll_id, 2026)
        periods = await service.list_periods(payroll_id=payroll.payroll_id, year=2026)

        assert created == 12
        assert [p.month_name for p in periods][:2] == ["December", "November"]
        assert periods[-1].period_start == date(2026, 1, 1)
        assert periods[-1].period_end == date(2026, 1, 31)

    async def test_generation_is_idempotent(self, session, payroll, period):
        """January 2025 already exists; only the other months are added."""
        service = PeriodService(session)

        first = await service.generate_periods_for_year(payroll.payroll_id, 2025)
        second = await service.generate_periods_for_year(payroll.payroll_id, 2025)

        assert first == 11
        assert second == 0
        assert len(await service.list_periods(year=2025)) == 12

    @pytest.mark.parametrize("year", [2019, 2101])
    async def test_year_out_of_range(self, session, payroll, year):
        with pytest.raises(InvalidPeriodError):
            await PeriodService(session).generate_periods_for_year(payroll.payroll_id, year)

    async def test_unknown_payroll(self, session):
        with pytest.raises(PayrollNotFoundError):
            await PeriodService(session).generate_periods_for_year(uuid4(), 2025)

    def test_month_bounds_handles_leap_year(self):
        assert month_bounds(2024, 2) == (date(2024, 2, 1), date(2024, 2, 29))
        assert month_bounds(2025, 2) == (date(2025, 2, 1), date(2025, 2, 28))

    async def test_current_period(self, session, payroll, period):
        service = PeriodService(session)

        current = await service.current_period(payroll.payroll_id, today=date(2025, 1, 15))
        none = await service.current_period(payroll.payroll_id, today=date(2025, 3, 1))

        assert current.period_id == period.period_id
        assert none is None

    def test_timing(self, period):
        assert period.timing(date(2025, 1, 15)) == PeriodTiming.CURRENT
        assert period.timing(date(2024, 12, 31)) == PeriodTiming.FUTURE
        assert period.timing(date(2025, 2, 1)) == PeriodTiming.PAST
        assert period.display_name == "January 2025"
        assert period.month_number == 1


class TestCurrencyUpdate:
    async def test_update_while_pending(self, session, period, center, admin):
        status = await PeriodService(session).update_currency(
            period.period_id, center.center_id, CurrencyMode.ZWL, actor=admin
        )

        assert status.period_currency == "ZWL"

    async def test_update_existing_pending_row(self, session, period, center, admin):
        service = PeriodService(session)
        await service.get_or_create_center_status(period.period_id, center.center_id)

        status = await service.update_currency(
            period.period_id, center.center_id, "USD", actor=admin
        )

        assert status.period_currency == "USD"

    async def test_update_after_run_rejected(
        self, session, period, center, employees, monthly_usd_bands, admin
    ):
        period_id, center_id = period.period_id, center.center_id
        await PayrollProcessor(session).run_period(period_id, center_id, "USD", actor=admin)

        with pytest.raises(InvalidTransitionError) as exc_info:
            await PeriodService(session).update_currency(
                period_id, center_id, "ZWL", actor=admin
            )

        assert exc_info.value.message == "Cannot update currency after period has been run"

    async def test_update_requires_center_access(self, session, period, other_center, clerk):
        with pytest.raises(PermissionDeniedError):
            await PeriodService(session).update_currency(
                period.period_id, other_center.center_id, "USD", actor=clerk
            )

    async def test_unknown_center(self, session, period, admin):
        with pytest.raises(CostCenterNotFoundError):
            await PeriodService(session).update_currency(
                period.period_id, uuid4(), "USD", actor=admin
            )


class TestCenterStatuses:
    async def test_centers_without_rows_are_pending(self, session, period, center, other_center):
        views = await PeriodService(session).center_statuses(period.period_id)

        assert [v.center_code for v in views] == ["HQ", "MTR"]
        assert all(v.state == CenterPeriodState.PENDING for v in views)
        assert all(v.can_run and not v.can_close for v in views)
        assert all(v.period_currency == "DEFAULT" for v in views)

    async def test_processed_and_closed_views(
        self, session, period, center, other_center, employees, monthly_usd_bands, admin
    ):
        period_id, center_id = period.period_id, center.center_id
        processor = PayrollProcessor(session)
        await processor.run_period(period_id, center_id, "USD", actor=admin)

        processed = (await PeriodService(session).center_statuses(period_id))[0]
        assert processed.state == CenterPeriodState.PROCESSED
        assert processed.can_refresh and processed.can_close and not processed.can_run

        await processor.close_period(period_id, center_id, actor=admin)

        closed = (await PeriodService(session).center_statuses(period_id))[0]
        assert closed.state == CenterPeriodState.CLOSED
        assert closed.is_completed is True
        assert not (closed.can_run or closed.can_refresh or closed.can_close)


class TestSummary:
    async def test_completion_percentage(
        self, session, period, center, other_center, employees, monthly_usd_bands, admin
    ):
        period_id, center_id = period.period_id, center.center_id
        service = PeriodService(session)

        assert await service.completion_percentage(period_id) == Decimal("0")

        await PayrollProcessor(session).run_period(period_id, center_id, "USD", actor=admin)

        assert await service.completion_percentage(period_id) == Decimal("50.00")

    async def test_period_summary_totals(
        self, session, period, center, other_center, employees, monthly_usd_bands, admin
    ):
        period_id, center_id = period.period_id, center.center_id
        processor = PayrollProcessor(session)
        await processor.run_period(period_id, center_id, "USD", actor=admin)
        await processor.close_period(period_id, center_id, actor=admin)

        summary = await PeriodService(session).period_summary(period_id, today=date(2025, 3, 1))

        assert summary.display_name == "January 2025"
        assert summary.timing == PeriodTiming.PAST
        assert summary.total_payslips == 2
        assert summary.total_gross_usd == Decimal("7000")
        assert summary.total_deductions_usd == Decimal("1500")
        assert summary.total_net_usd == Decimal("5500")
        assert summary.total_gross_zwl == Decimal("0")
        assert summary.centers_total == 2
        assert summary.centers_completed == 1
        assert summary.completion_percentage == Decimal("50.00")

    async def test_period_summary_skips_cancelled(
        self, session, period, center, employees, monthly_usd_bands, admin
    ):
        period_id, center_id = period.period_id, center.center_id
        await PayrollProcessor(session).run_period(period_id, center_id, "USD", actor=admin)
        payslips = await PayslipService(session).list_for_period(period_id, center_id)
        await PayslipService(session).cancel(payslips[0].payslip_id, actor=admin)
        await session.commit()

        summary = await PeriodService(session).period_summary(period_id)

        # Only E002 (2000 gross, 400 PAYE) still counts
        assert summary.total_payslips == 1
        assert summary.total_gross_usd == Decimal("2000")
        assert summary.total_deductions_usd == Decimal("400")
        assert summary.total_net_usd == Decimal("1600")
