"""Enumerations shared by models, calculators and services."""

from __future__ import annotations

from enum import Enum


class Currency(str, Enum):
    """Currencies a payslip can carry."""

    USD = "USD"
    ZWL = "ZWL"


class CurrencyMode(str, Enum):
    """How a period run apportions pay between currencies."""

    USD = "USD"
    ZWL = "ZWL"
    DEFAULT = "DEFAULT"


class TaxPeriod(str, Enum):
    """Granularity of a tax band table or credit."""

    MONTHLY = "monthly"
    ANNUAL = "annual"


class PayslipStatus(str, Enum):
    DRAFT = "draft"
    FINALIZED = "finalized"
    DISTRIBUTED = "distributed"
    CANCELLED = "cancelled"


class TransactionType(str, Enum):
    EARNING = "earning"
    DEDUCTION = "deduction"


class EmploymentStatus(str, Enum):
    """Employee lifecycle status."""

    ACTIVE = "active"
    SUSPENDED = "suspended"
    DISCHARGED = "discharged"


class PeriodTiming(str, Enum):
    """Where a period sits relative to now. Derived, never stored."""

    CURRENT = "Current"
    FUTURE = "Future"
    PAST = "Past"


class BandTable(Enum):
    """The four progressive band sets, keyed by (currency, granularity)."""

    ANNUAL_USD = (Currency.USD, TaxPeriod.ANNUAL)
    ANNUAL_ZWL = (Currency.ZWL, TaxPeriod.ANNUAL)
    MONTHLY_USD = (Currency.USD, TaxPeriod.MONTHLY)
    MONTHLY_ZWL = (Currency.ZWL, TaxPeriod.MONTHLY)

    @property
    def currency(self) -> Currency:
        return self.value[0]

    @property
    def period(self) -> TaxPeriod:
        return self.value[1]

    @property
    def slug(self) -> str:
        return self.name.lower()

    @property
    def label(self) -> str:
        return f"{self.currency.value} - {self.period.value.capitalize()} Table"

    @classmethod
    def from_slug(cls, slug: str) -> BandTable:
        try:
            return cls[slug.upper()]
        except KeyError:
            raise ValueError(f"Unknown band table '{slug}'") from None

    @classmethod
    def for_key(cls, currency: Currency | str, period: TaxPeriod | str) -> BandTable:
        key = (Currency(currency), TaxPeriod(period))
        for table in cls:
            if table.value == key:
                return table
        raise ValueError(f"No band table for {key}")
