"""Transaction codes and the default and custom transactions that use them.

Codes, default transactions and custom transactions are maintained by
administrative flows outside the engine; a period run only reads them.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from period_engine.models.base import Base, Hours, Money, TimestampMixin
from period_engine.models.enums import TransactionType


class TransactionCode(Base, TimestampMixin):
    """An earning or deduction type that payslip lines can be raised under."""

    __tablename__ = "transaction_code"

    code_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    code_number: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    code_name: Mapped[str] = mapped_column(String, nullable=False)
    # +1 adds to pay, -1 deducts from it
    effect: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    apply_to_tax: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint("effect IN (1, -1)", name="transaction_code_effect_check"),
    )

    @property
    def transaction_type(self) -> TransactionType:
        return TransactionType.EARNING if self.effect > 0 else TransactionType.DEDUCTION


class DefaultTransaction(Base, TimestampMixin):
    """A code applied to every employee of a center in one period."""

    __tablename__ = "default_transaction"

    default_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    code_id: Mapped[UUID] = mapped_column(
        ForeignKey("transaction_code.code_id"), nullable=False
    )
    period_id: Mapped[UUID] = mapped_column(
        ForeignKey("accounting_period.period_id", ondelete="CASCADE"), nullable=False
    )
    center_id: Mapped[UUID] = mapped_column(
        ForeignKey("cost_center.center_id", ondelete="CASCADE"), nullable=False
    )
    employee_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    employer_amount: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))
    # USD, ZWL, or DEFAULT for every currency the payslip is paid in
    transaction_currency: Mapped[str] = mapped_column(String(7), nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "code_id",
            "period_id",
            "center_id",
            "transaction_currency",
            name="default_transaction_unique",
        ),
        CheckConstraint(
            "transaction_currency IN ('USD', 'ZWL', 'DEFAULT')",
            name="default_transaction_currency_check",
        ),
        CheckConstraint("employee_amount >= 0", name="default_transaction_amount_check"),
        Index("default_transaction_lookup_idx", "period_id", "center_id"),
    )

    code: Mapped[TransactionCode] = relationship()


class CustomTransaction(Base, TimestampMixin):
    """A code prorated by hours worked for one employee in one period."""

    __tablename__ = "custom_transaction"

    custom_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    code_id: Mapped[UUID] = mapped_column(
        ForeignKey("transaction_code.code_id"), nullable=False
    )
    period_id: Mapped[UUID] = mapped_column(
        ForeignKey("accounting_period.period_id", ondelete="CASCADE"), nullable=False
    )
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"), nullable=False
    )
    worked_hours: Mapped[Decimal] = mapped_column(Hours, nullable=False)
    base_hours: Mapped[Decimal] = mapped_column(Hours, nullable=False)
    # USD amount to prorate; ignored when use_basic is set
    base_amount: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    use_basic: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        CheckConstraint(
            "worked_hours >= 0 AND base_hours >= 0", name="custom_transaction_hours_check"
        ),
        Index("custom_transaction_lookup_idx", "period_id", "employee_id"),
    )

    code: Mapped[TransactionCode] = relationship()
