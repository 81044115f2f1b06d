"""Type definitions for the calculation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any
from uuid import UUID

from period_engine.models.enums import Currency, TaxPeriod

ZERO = Decimal("0")
CENT = Decimal("0.01")


@dataclass(frozen=True)
class BandSpec:
    """A progressive band, detached from the ORM."""

    min_salary: Decimal
    max_salary: Decimal | None  # None = no upper limit
    tax_rate: Decimal  # As fraction, e.g. 0.25 for 25%
    tax_amount: Decimal = ZERO  # Fixed amount added once when the band is touched
    band_id: UUID | None = None


@dataclass(frozen=True)
class BandPortion:
    """How much of the taxable income one band taxed."""

    band: BandSpec
    taxable_in_band: Decimal
    tax_in_band: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "min_salary": str(self.band.min_salary),
            "max_salary": str(self.band.max_salary) if self.band.max_salary is not None else None,
            "rate": str(self.band.tax_rate),
            "fixed_amount": str(self.band.tax_amount),
            "taxable_in_band": str(self.taxable_in_band),
            "tax_in_band": str(self.tax_in_band),
        }


@dataclass(frozen=True)
class AppliedCredit:
    """A credit as applied to one calculation, already in the target currency."""

    name: str
    unit_value: Decimal
    quantity: int
    total_value: Decimal
    source_currency: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "unit_value": str(self.unit_value),
            "quantity": self.quantity,
            "total_value": str(self.total_value),
            "source_currency": self.source_currency,
        }


@dataclass
class TaxComputation:
    """Result of one tax calculation."""

    currency: Currency
    period: TaxPeriod
    gross_income: Decimal
    total_credits: Decimal = ZERO
    taxable_income: Decimal = ZERO
    tax_amount: Decimal = ZERO
    effective_rate: Decimal = ZERO
    credits_applied: list[AppliedCredit] = field(default_factory=list)
    band_breakdown: list[BandPortion] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "currency": self.currency.value,
            "period": self.period.value,
            "gross_income": str(self.gross_income),
            "total_credits": str(self.total_credits),
            "taxable_income": str(self.taxable_income),
            "tax_amount": str(self.tax_amount),
            "effective_rate": str(self.effective_rate),
            "credits_applied": [c.to_dict() for c in self.credits_applied],
            "band_breakdown": [b.to_dict() for b in self.band_breakdown],
        }


@dataclass(frozen=True)
class SalarySplit:
    """An employee's pay for one run, apportioned between currencies."""

    usd: Decimal
    zwl: Decimal
    usd_percentage: Decimal
    zwl_percentage: Decimal
    exchange_rate: Decimal = Decimal("1")  # USD -> ZWL rate used, 1 if none needed


@dataclass
class EmployeePayResult:
    """Everything the processor needs to write one payslip."""

    employee_id: UUID
    split: SalarySplit
    tax_usd: TaxComputation
    tax_zwl: TaxComputation

    @property
    def net_usd(self) -> Decimal:
        return self.split.usd - self.tax_usd.tax_amount

    @property
    def net_zwl(self) -> Decimal:
        return self.split.zwl - self.tax_zwl.tax_amount
