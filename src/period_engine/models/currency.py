"""Exchange rate and currency split models."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    String,
    Text,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column

from period_engine.exceptions import CurrencySplitError
from period_engine.models.base import Base, Percentage, Rate, TimestampMixin

SPLIT_TOLERANCE = Decimal("0.01")


class ExchangeRate(Base, TimestampMixin):
    """Effective-dated conversion rate between two currencies."""

    __tablename__ = "exchange_rate"

    rate_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    from_currency: Mapped[str] = mapped_column(String(3), nullable=False)
    to_currency: Mapped[str] = mapped_column(String(3), nullable=False)
    rate: Mapped[Decimal] = mapped_column(Rate, nullable=False)
    effective_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint("rate > 0", name="exchange_rate_positive"),
        CheckConstraint("from_currency <> to_currency", name="exchange_rate_distinct_pair"),
        Index("exchange_rate_pair_idx", "from_currency", "to_currency", "effective_date"),
    )


def split_is_balanced(zwl_percentage: Decimal, usd_percentage: Decimal) -> bool:
    """True when the two percentages total 100 within tolerance."""
    total = Decimal(str(zwl_percentage)) + Decimal(str(usd_percentage))
    return abs(total - Decimal("100")) < SPLIT_TOLERANCE


class CurrencySplit(Base, TimestampMixin):
    """Per-center apportionment of pay between ZWL and USD."""

    __tablename__ = "currency_split"

    split_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    center_id: Mapped[UUID] = mapped_column(
        ForeignKey("cost_center.center_id", ondelete="CASCADE"),
        nullable=False,
    )
    zwl_percentage: Mapped[Decimal] = mapped_column(Percentage, nullable=False)
    usd_percentage: Mapped[Decimal] = mapped_column(Percentage, nullable=False)
    effective_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "zwl_percentage >= 0 AND zwl_percentage <= 100",
            name="currency_split_zwl_range",
        ),
        CheckConstraint(
            "usd_percentage >= 0 AND usd_percentage <= 100",
            name="currency_split_usd_range",
        ),
        CheckConstraint(
            "abs(zwl_percentage + usd_percentage - 100) < 0.01",
            name="currency_split_total_100",
        ),
        Index("currency_split_center_idx", "center_id", "effective_date"),
    )

    def validate_percentages(self) -> None:
        if not split_is_balanced(self.zwl_percentage, self.usd_percentage):
            raise CurrencySplitError(self.zwl_percentage, self.usd_percentage)


@event.listens_for(CurrencySplit, "before_insert")
@event.listens_for(CurrencySplit, "before_update")
def _validate_split_on_write(mapper: Any, connection: Any, target: CurrencySplit) -> None:
    target.validate_percentages()
