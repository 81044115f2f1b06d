"""Payroll, cost center and employee models.

These records are maintained by external administrative flows; the engine
only reads them.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from period_engine.exceptions import InvalidEmploymentTransition
from period_engine.models.base import Base, Money, Percentage, TimestampMixin
from period_engine.models.enums import EmploymentStatus

if TYPE_CHECKING:
    from period_engine.models.period import AccountingPeriod


class Payroll(Base, TimestampMixin):
    """A payroll that accounting periods hang off."""

    __tablename__ = "payroll"

    payroll_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    payroll_name: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    periods: Mapped[list[AccountingPeriod]] = relationship(back_populates="payroll")


class CostCenter(Base, TimestampMixin):
    """Organizational unit that payroll processing is scoped to."""

    __tablename__ = "cost_center"

    center_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    center_code: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    center_name: Mapped[str] = mapped_column(String, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


# Lifecycle: {from_status: allowed to_statuses}
EMPLOYMENT_TRANSITIONS: dict[EmploymentStatus, set[EmploymentStatus]] = {
    EmploymentStatus.ACTIVE: {EmploymentStatus.SUSPENDED, EmploymentStatus.DISCHARGED},
    EmploymentStatus.SUSPENDED: {EmploymentStatus.ACTIVE, EmploymentStatus.DISCHARGED},
    EmploymentStatus.DISCHARGED: {EmploymentStatus.ACTIVE},
}


class Employee(Base, TimestampMixin):
    """Employee with the salary attributes the engine consumes."""

    __tablename__ = "employee"

    employee_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_code: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    first_name: Mapped[str] = mapped_column(String, nullable=False)
    last_name: Mapped[str] = mapped_column(String, nullable=False)
    center_id: Mapped[UUID] = mapped_column(
        ForeignKey("cost_center.center_id"),
        nullable=False,
        index=True,
    )
    employment_status: Mapped[str] = mapped_column(
        String, nullable=False, default=EmploymentStatus.ACTIVE.value
    )
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Salary in each currency; either may be zero
    basic_salary_usd: Mapped[Decimal] = mapped_column(
        Money, nullable=False, default=Decimal("0")
    )
    basic_salary_zwl: Mapped[Decimal] = mapped_column(
        Money, nullable=False, default=Decimal("0")
    )

    # Own split for DEFAULT mode runs; None falls back to 50/50
    usd_percentage: Mapped[Decimal | None] = mapped_column(Percentage, nullable=True)
    zwl_percentage: Mapped[Decimal | None] = mapped_column(Percentage, nullable=True)

    dependents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    disability_status: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        CheckConstraint(
            "employment_status IN ('active', 'suspended', 'discharged')",
            name="employee_status_check",
        ),
        CheckConstraint("dependents >= 0", name="employee_dependents_check"),
    )

    center: Mapped[CostCenter] = relationship()

    def age_on(self, as_of: date) -> int | None:
        """Completed years of age on a date, or None if unknown."""
        if self.date_of_birth is None:
            return None
        dob = self.date_of_birth
        years = as_of.year - dob.year
        if (as_of.month, as_of.day) < (dob.month, dob.day):
            years -= 1
        return years

    def change_status(self, to_status: EmploymentStatus) -> None:
        """Move the employee along the lifecycle, rejecting illegal moves."""
        current = EmploymentStatus(self.employment_status)
        if to_status not in EMPLOYMENT_TRANSITIONS[current]:
            raise InvalidEmploymentTransition(current.value, to_status.value)
        self.employment_status = to_status.value
