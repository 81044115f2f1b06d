"""Accounting period and per-center status models."""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from period_engine.models.base import Base, TimestampMixin
from period_engine.models.enums import CurrencyMode, PeriodTiming

if TYPE_CHECKING:
    from period_engine.models.organization import CostCenter, Payroll


MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


class AccountingPeriod(Base, TimestampMixin):
    """A calendar-month payroll cycle for one payroll."""

    __tablename__ = "accounting_period"

    period_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    payroll_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll.payroll_id", ondelete="CASCADE"),
        nullable=False,
    )
    month_name: Mapped[str] = mapped_column(String, nullable=False)
    period_year: Mapped[int] = mapped_column(Integer, nullable=False)
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "payroll_id", "month_name", "period_year", name="accounting_period_month_unique"
        ),
        CheckConstraint("period_end > period_start", name="accounting_period_dates_check"),
        CheckConstraint(
            "period_year >= 2020 AND period_year <= 2100",
            name="accounting_period_year_check",
        ),
    )

    payroll: Mapped[Payroll] = relationship(back_populates="periods")
    center_statuses: Mapped[list[CenterPeriodStatus]] = relationship(
        back_populates="period",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def month_number(self) -> int:
        return MONTH_NAMES.index(self.month_name) + 1

    @property
    def display_name(self) -> str:
        return f"{self.month_name} {self.period_year}"

    def timing(self, today: date | None = None) -> PeriodTiming:
        """Classify the period as current, future or past relative to today."""
        today = today or date.today()
        if self.period_start <= today <= self.period_end:
            return PeriodTiming.CURRENT
        if self.period_start > today:
            return PeriodTiming.FUTURE
        return PeriodTiming.PAST


class CenterPeriodStatus(Base, TimestampMixin):
    """Run/pay/close progress of one cost center within one period.

    The state (pending/processed/closed) is derived from the timestamps; see
    ``period_engine.services.state_machine.derive_state``.
    """

    __tablename__ = "center_period_status"

    status_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    period_id: Mapped[UUID] = mapped_column(
        ForeignKey("accounting_period.period_id", ondelete="CASCADE"),
        nullable=False,
    )
    center_id: Mapped[UUID] = mapped_column(
        ForeignKey("cost_center.center_id"),
        nullable=False,
    )
    period_currency: Mapped[str] = mapped_column(
        String, nullable=False, default=CurrencyMode.DEFAULT.value
    )
    period_run_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    pay_run_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    is_closed_confirmed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        UniqueConstraint("period_id", "center_id", name="center_period_status_unique"),
        CheckConstraint(
            "period_currency IN ('USD', 'ZWL', 'DEFAULT')",
            name="center_period_status_currency_check",
        ),
        CheckConstraint(
            "pay_run_date IS NULL OR period_run_date IS NOT NULL",
            name="center_period_status_pay_after_run",
        ),
        CheckConstraint(
            "is_closed_confirmed = false OR pay_run_date IS NOT NULL",
            name="center_period_status_confirmed_requires_pay",
        ),
    )

    period: Mapped[AccountingPeriod] = relationship(back_populates="center_statuses")
    center: Mapped[CostCenter] = relationship()

    @property
    def is_completed(self) -> bool:
        return self.pay_run_date is not None and self.is_closed_confirmed

    def snapshot(self) -> dict[str, object]:
        """JSON-safe view of the state fields, used for audit before/after."""
        return {
            "period_currency": self.period_currency,
            "period_run_date": self.period_run_date.isoformat() if self.period_run_date else None,
            "pay_run_date": self.pay_run_date.isoformat() if self.pay_run_date else None,
            "is_closed_confirmed": self.is_closed_confirmed,
        }
