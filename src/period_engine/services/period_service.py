"""Accounting period administration: generation, status views and summaries."""

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from period_engine.exceptions import (
    CostCenterNotFoundError,
    InvalidPeriodError,
    InvalidTransitionError,
    PayrollNotFoundError,
    PeriodNotFoundError,
)
from period_engine.models import (
    MONTH_NAMES,
    AccountingPeriod,
    CenterPeriodStatus,
    CostCenter,
    Payroll,
    Payslip,
)
from period_engine.models.enums import CurrencyMode, PayslipStatus, PeriodTiming
from period_engine.services.authorization import Actor, authorize_center
from period_engine.services.state_machine import (
    CenterPeriodState,
    PeriodAction,
    PeriodStateMachine,
    derive_state,
)

logger = logging.getLogger(__name__)

MIN_YEAR = 2020
MAX_YEAR = 2100


@dataclass
class CenterStatusView:
    """One center's progress in a period, with the actions open to it."""

    center_id: UUID
    center_code: str
    center_name: str
    state: CenterPeriodState
    period_currency: str
    period_run_date: datetime | None = None
    pay_run_date: datetime | None = None
    is_closed_confirmed: bool = False

    @property
    def can_run(self) -> bool:
        return PeriodStateMachine.can_apply(self.state, PeriodAction.RUN)

    @property
    def can_refresh(self) -> bool:
        return PeriodStateMachine.can_apply(self.state, PeriodAction.REFRESH)

    @property
    def can_close(self) -> bool:
        return PeriodStateMachine.can_apply(self.state, PeriodAction.CLOSE)

    @property
    def is_completed(self) -> bool:
        return self.state == CenterPeriodState.CLOSED and self.is_closed_confirmed


@dataclass
class PeriodSummary:
    """Dual-currency totals and center progress for one period."""

    period_id: UUID
    display_name: str
    timing: PeriodTiming
    total_payslips: int = 0
    total_gross_usd: Decimal = Decimal("0")
    total_gross_zwl: Decimal = Decimal("0")
    total_deductions_usd: Decimal = Decimal("0")
    total_deductions_zwl: Decimal = Decimal("0")
    total_net_usd: Decimal = Decimal("0")
    total_net_zwl: Decimal = Decimal("0")
    centers_completed: int = 0
    centers_total: int = 0
    completion_percentage: Decimal = Decimal("0")
    centers: list[CenterStatusView] = field(default_factory=list)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last day of a calendar month."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


class PeriodService:
    """Service for accounting periods and per-center status rows."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def generate_periods_for_year(self, payroll_id: UUID, year: int) -> int:
        """Create any missing monthly periods of ``year`` for a payroll.

        Existing months are left alone. Returns the number created.
        """
        if not (MIN_YEAR <= year <= MAX_YEAR):
            raise InvalidPeriodError(
                f"Year must be between {MIN_YEAR} and {MAX_YEAR}", year=year
            )
        payroll = await self.session.get(Payroll, payroll_id)
        if payroll is None:
            raise PayrollNotFoundError(payroll_id)

        result = await self.session.execute(
            select(AccountingPeriod.month_name).where(
                AccountingPeriod.payroll_id == payroll_id,
                AccountingPeriod.period_year == year,
            )
        )
        existing = set(result.scalars())

        created = 0
        for index, month_name in enumerate(MONTH_NAMES, start=1):
            if month_name in existing:
                continue
            start, end = month_bounds(year, index)
            self.session.add(
                AccountingPeriod(
                    payroll_id=payroll_id,
                    month_name=month_name,
                    period_year=year,
                    period_start=start,
                    period_end=end,
                )
            )
            created += 1

        await self.session.flush()
        logger.info("Generated %d periods for payroll %s year %d", created, payroll_id, year)
        return created

    async def get_period(self, period_id: UUID) -> AccountingPeriod:
        period = await self.session.get(AccountingPeriod, period_id)
        if period is None:
            raise PeriodNotFoundError(period_id)
        return period

    async def list_periods(
        self,
        payroll_id: UUID | None = None,
        year: int | None = None,
    ) -> list[AccountingPeriod]:
        """Periods newest first, optionally filtered by payroll and year."""
        stmt = select(AccountingPeriod).order_by(AccountingPeriod.period_start.desc())
        if payroll_id is not None:
            stmt = stmt.where(AccountingPeriod.payroll_id == payroll_id)
        if year is not None:
            stmt = stmt.where(AccountingPeriod.period_year == year)
        result = await self.session.execute(stmt)
        return list(result.scalars())

    async def current_period(
        self,
        payroll_id: UUID,
        today: date | None = None,
    ) -> AccountingPeriod | None:
        today = today or date.today()
        result = await self.session.execute(
            select(AccountingPeriod).where(
                AccountingPeriod.payroll_id == payroll_id,
                AccountingPeriod.period_start <= today,
                AccountingPeriod.period_end >= today,
            )
        )
        return result.scalar_one_or_none()

    async def get_center_status(
        self,
        period_id: UUID,
        center_id: UUID,
    ) -> CenterPeriodStatus | None:
        result = await self.session.execute(
            select(CenterPeriodStatus).where(
                CenterPeriodStatus.period_id == period_id,
                CenterPeriodStatus.center_id == center_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_or_create_center_status(
        self,
        period_id: UUID,
        center_id: UUID,
        currency_mode: CurrencyMode | str = CurrencyMode.DEFAULT,
    ) -> CenterPeriodStatus:
        """Return the status row for the pair, creating a pending one if missing."""
        status = await self.get_center_status(period_id, center_id)
        if status is not None:
            return status

        await self.get_period(period_id)
        if await self.session.get(CostCenter, center_id) is None:
            raise CostCenterNotFoundError(center_id)

        status = CenterPeriodStatus(
            period_id=period_id,
            center_id=center_id,
            period_currency=CurrencyMode(currency_mode).value,
            is_closed_confirmed=False,
        )
        self.session.add(status)
        await self.session.flush()
        return status

    async def update_currency(
        self,
        period_id: UUID,
        center_id: UUID,
        currency_mode: CurrencyMode | str,
        *,
        actor: Actor,
    ) -> CenterPeriodStatus:
        """Change the pair's currency mode. Only allowed while pending."""
        authorize_center(actor, center_id, "update_currency")
        mode = CurrencyMode(currency_mode)
        status = await self.get_or_create_center_status(period_id, center_id, mode)

        state = derive_state(status)
        if state != CenterPeriodState.PENDING:
            raise InvalidTransitionError(
                state.value,
                "update_currency",
                "Cannot update currency after period has been run",
            )

        status.period_currency = mode.value
        await self.session.flush()
        logger.info(
            "Currency for period %s center %s set to %s", period_id, center_id, mode.value
        )
        return status

    async def center_statuses(self, period_id: UUID) -> list[CenterStatusView]:
        """Status of every active center in a period; missing rows are pending."""
        await self.get_period(period_id)
        centers = (
            await self.session.execute(
                select(CostCenter)
                .where(CostCenter.is_active.is_(True))
                .order_by(CostCenter.center_code)
            )
        ).scalars()
        rows = (
            await self.session.execute(
                select(CenterPeriodStatus).where(CenterPeriodStatus.period_id == period_id)
            )
        ).scalars()
        by_center = {row.center_id: row for row in rows}

        views: list[CenterStatusView] = []
        for center in centers:
            status = by_center.get(center.center_id)
            views.append(
                CenterStatusView(
                    center_id=center.center_id,
                    center_code=center.center_code,
                    center_name=center.center_name,
                    state=derive_state(status),
                    period_currency=(
                        status.period_currency if status else CurrencyMode.DEFAULT.value
                    ),
                    period_run_date=status.period_run_date if status else None,
                    pay_run_date=status.pay_run_date if status else None,
                    is_closed_confirmed=status.is_closed_confirmed if status else False,
                )
            )
        return views

    async def completion_percentage(self, period_id: UUID) -> Decimal:
        """Share of active centers that have been run, as a percentage (2dp)."""
        total = await self.session.scalar(
            select(func.count()).select_from(CostCenter).where(CostCenter.is_active.is_(True))
        )
        if not total:
            return Decimal("0")
        run = await self.session.scalar(
            select(func.count())
            .select_from(CenterPeriodStatus)
            .join(CostCenter, CenterPeriodStatus.center_id == CostCenter.center_id)
            .where(
                CenterPeriodStatus.period_id == period_id,
                CenterPeriodStatus.period_run_date.is_not(None),
                CostCenter.is_active.is_(True),
            )
        )
        return (Decimal(run or 0) / Decimal(total) * 100).quantize(
            Decimal("0.01"), rounding=ROUND_HALF_UP
        )

    async def period_summary(self, period_id: UUID, today: date | None = None) -> PeriodSummary:
        period = await self.get_period(period_id)

        totals = (
            await self.session.execute(
                select(
                    func.count(Payslip.payslip_id),
                    func.coalesce(func.sum(Payslip.gross_salary_usd), 0),
                    func.coalesce(func.sum(Payslip.gross_salary_zwl), 0),
                    func.coalesce(func.sum(Payslip.total_deductions_usd), 0),
                    func.coalesce(func.sum(Payslip.total_deductions_zwl), 0),
                    func.coalesce(func.sum(Payslip.net_salary_usd), 0),
                    func.coalesce(func.sum(Payslip.net_salary_zwl), 0),
                ).where(
                    Payslip.period_id == period_id,
                    Payslip.status != PayslipStatus.CANCELLED.value,
                )
            )
        ).one()

        centers = await self.center_statuses(period_id)
        summary = PeriodSummary(
            period_id=period.period_id,
            display_name=period.display_name,
            timing=period.timing(today),
            total_payslips=int(totals[0]),
            total_gross_usd=Decimal(str(totals[1])),
            total_gross_zwl=Decimal(str(totals[2])),
            total_deductions_usd=Decimal(str(totals[3])),
            total_deductions_zwl=Decimal(str(totals[4])),
            total_net_usd=Decimal(str(totals[5])),
            total_net_zwl=Decimal(str(totals[6])),
            centers_completed=sum(1 for c in centers if c.is_completed),
            centers_total=len(centers),
            completion_percentage=await self.completion_percentage(period_id),
            centers=centers,
        )
        return summary
