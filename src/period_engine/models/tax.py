"""Tax band and tax credit models."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from period_engine.models.base import Base, Fraction, Money, TimestampMixin
from period_engine.models.enums import BandTable


class TaxBand(Base, TimestampMixin):
    """One progressive range of a band table.

    All four band sets share this table; ``currency`` and ``period`` select
    the set (see ``BandTable``).
    """

    __tablename__ = "tax_band"

    band_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    period: Mapped[str] = mapped_column(String, nullable=False)
    min_salary: Mapped[Decimal] = mapped_column(Money, nullable=False)
    max_salary: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    tax_rate: Mapped[Decimal] = mapped_column(Fraction, nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(
        Money, nullable=False, default=Decimal("0")
    )

    __table_args__ = (
        CheckConstraint("currency IN ('USD', 'ZWL')", name="tax_band_currency_check"),
        CheckConstraint("period IN ('monthly', 'annual')", name="tax_band_period_check"),
        CheckConstraint("min_salary >= 0", name="tax_band_min_check"),
        CheckConstraint(
            "max_salary IS NULL OR max_salary > min_salary", name="tax_band_range_check"
        ),
        CheckConstraint("tax_rate >= 0 AND tax_rate <= 1", name="tax_band_rate_check"),
        CheckConstraint("tax_amount >= 0", name="tax_band_amount_check"),
        Index("tax_band_table_idx", "currency", "period", "min_salary"),
    )

    @property
    def table(self) -> BandTable:
        return BandTable.for_key(self.currency, self.period)


class TaxCredit(Base, TimestampMixin):
    """Named allowance deducted from gross income before banding."""

    __tablename__ = "tax_credit"

    credit_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    credit_name: Mapped[str] = mapped_column(String, nullable=False)
    credit_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    period: Mapped[str] = mapped_column(String, nullable=False, default="monthly")
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint("currency IN ('USD', 'ZWL')", name="tax_credit_currency_check"),
        CheckConstraint("period IN ('monthly', 'annual')", name="tax_credit_period_check"),
        CheckConstraint("credit_amount >= 0", name="tax_credit_amount_check"),
    )
