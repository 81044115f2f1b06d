"""Payslip and payslip transaction models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from period_engine.models.base import Base, Money, Rate, TimestampMixin
from period_engine.models.enums import PayslipStatus

ZERO = Decimal("0")


class Payslip(Base, TimestampMixin):
    """Dual-currency pay statement for one employee in one period."""

    __tablename__ = "payslip"

    payslip_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id"),
        nullable=False,
    )
    payroll_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll.payroll_id"),
        nullable=False,
    )
    period_id: Mapped[UUID] = mapped_column(
        ForeignKey("accounting_period.period_id"),
        nullable=False,
    )
    created_by: Mapped[UUID | None] = mapped_column(nullable=True)
    payslip_number: Mapped[str] = mapped_column(String, nullable=False)
    period_month: Mapped[int] = mapped_column(Integer, nullable=False)
    period_year: Mapped[int] = mapped_column(Integer, nullable=False)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=PayslipStatus.DRAFT.value
    )
    currency_mode: Mapped[str] = mapped_column(String, nullable=False)

    gross_salary_zwl: Mapped[Decimal] = mapped_column(Money, nullable=False, default=ZERO)
    total_deductions_zwl: Mapped[Decimal] = mapped_column(
        Money, nullable=False, default=ZERO
    )
    net_salary_zwl: Mapped[Decimal] = mapped_column(Money, nullable=False, default=ZERO)
    gross_salary_usd: Mapped[Decimal] = mapped_column(Money, nullable=False, default=ZERO)
    total_deductions_usd: Mapped[Decimal] = mapped_column(
        Money, nullable=False, default=ZERO
    )
    net_salary_usd: Mapped[Decimal] = mapped_column(Money, nullable=False, default=ZERO)

    ytd_gross_zwl: Mapped[Decimal] = mapped_column(Money, nullable=False, default=ZERO)
    ytd_gross_usd: Mapped[Decimal] = mapped_column(Money, nullable=False, default=ZERO)
    ytd_paye_zwl: Mapped[Decimal] = mapped_column(Money, nullable=False, default=ZERO)
    ytd_paye_usd: Mapped[Decimal] = mapped_column(Money, nullable=False, default=ZERO)

    exchange_rate: Mapped[Decimal] = mapped_column(
        Rate, nullable=False, default=Decimal("1")
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    finalized_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    distributed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        UniqueConstraint(
            "employee_id", "payroll_id", "period_id", name="payslip_employee_period_unique"
        ),
        CheckConstraint(
            "status IN ('draft', 'finalized', 'distributed', 'cancelled')",
            name="payslip_status_check",
        ),
        CheckConstraint(
            "period_month >= 1 AND period_month <= 12", name="payslip_month_check"
        ),
        Index("payslip_period_idx", "period_id", "status"),
    )

    transactions: Mapped[list[PayslipTransaction]] = relationship(
        back_populates="payslip",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="PayslipTransaction.display_order",
    )

    @property
    def is_editable(self) -> bool:
        return self.status == PayslipStatus.DRAFT


class PayslipTransaction(Base, TimestampMixin):
    """Earning or deduction line on a payslip."""

    __tablename__ = "payslip_transaction"

    transaction_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    payslip_id: Mapped[UUID] = mapped_column(
        ForeignKey("payslip.payslip_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    description: Mapped[str] = mapped_column(String, nullable=False)
    code_number: Mapped[str | None] = mapped_column(String, nullable=True)
    transaction_type: Mapped[str] = mapped_column(String, nullable=False)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    amount_zwl: Mapped[Decimal] = mapped_column(Money, nullable=False, default=ZERO)
    amount_usd: Mapped[Decimal] = mapped_column(Money, nullable=False, default=ZERO)
    is_taxable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_recurring: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    calculation_metadata: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "transaction_type IN ('earning', 'deduction')",
            name="payslip_transaction_type_check",
        ),
    )

    payslip: Mapped[Payslip] = relationship(back_populates="transactions")
