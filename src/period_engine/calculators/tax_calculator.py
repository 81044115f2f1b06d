"""PAYE calculation against the configured band tables and credits."""

from __future__ import annotations

import logging
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from period_engine.calculators.band_table import compute_progressive_tax
from period_engine.calculators.rate_resolver import ExchangeRateResolver
from period_engine.calculators.types import (
    CENT,
    ZERO,
    AppliedCredit,
    BandSpec,
    TaxComputation,
)
from period_engine.config import get_settings
from period_engine.models import TaxBand, TaxCredit
from period_engine.models.enums import BandTable, Currency, TaxPeriod

if TYPE_CHECKING:
    from period_engine.models import Employee

logger = logging.getLogger(__name__)

PERSONAL_ALLOWANCE = "PERSONAL_ALLOWANCE"
CHILD_ALLOWANCE = "CHILD_ALLOWANCE"
DISABILITY_ALLOWANCE = "DISABILITY_ALLOWANCE"
ELDERLY_ALLOWANCE = "ELDERLY_ALLOWANCE"

MONTHS_PER_YEAR = Decimal("12")
RATE_PLACES = Decimal("0.0001")


class TaxCalculator:
    """Calculates PAYE for one currency leg of an employee's pay.

    taxable = max(0, gross - credits)
    tax     = progressive walk of taxable over the (currency, period) bands

    Credits applied:
        PERSONAL_ALLOWANCE    always
        CHILD_ALLOWANCE       once per dependent
        DISABILITY_ALLOWANCE  when the employee is flagged disabled
        ELDERLY_ALLOWANCE     when the employee is at least ``elderly_age``

    Credit amounts are converted into the target currency and scaled
    between monthly and annual values. Bands and credits are cached for the
    life of the calculator.
    """

    def __init__(
        self,
        session: AsyncSession,
        rates: ExchangeRateResolver | None = None,
        as_of: date | None = None,
        elderly_age: int | None = None,
    ):
        self.session = session
        self.as_of = as_of or date.today()
        self.rates = rates or ExchangeRateResolver(session, as_of=self.as_of)
        self.elderly_age = elderly_age if elderly_age is not None else get_settings().elderly_age
        self._band_cache: dict[BandTable, list[BandSpec]] = {}
        self._credit_cache: dict[str, list[TaxCredit]] | None = None

    async def calculate_tax(
        self,
        employee: Employee,
        gross_income: Decimal,
        currency: Currency | str,
        period: TaxPeriod | str = TaxPeriod.MONTHLY,
    ) -> TaxComputation:
        """Calculate tax on ``gross_income`` for one currency and granularity."""
        currency = Currency(currency)
        period = TaxPeriod(period)
        gross = Decimal(gross_income).quantize(CENT, rounding=ROUND_HALF_UP)

        result = TaxComputation(currency=currency, period=period, gross_income=gross)
        if gross <= 0:
            result.gross_income = ZERO.quantize(CENT)
            return result

        credits = await self._applicable_credits(employee, currency, period)
        total_credits = sum((c.total_value for c in credits), ZERO).quantize(CENT)
        taxable = max(ZERO, gross - total_credits)

        bands = await self._get_bands(BandTable.for_key(currency, period))
        if not bands:
            logger.warning("No %s %s tax bands configured; tax is zero", period.value, currency.value)

        tax, breakdown = compute_progressive_tax(taxable, bands)

        result.total_credits = total_credits
        result.taxable_income = taxable.quantize(CENT)
        result.tax_amount = tax
        result.effective_rate = (tax / gross).quantize(RATE_PLACES, rounding=ROUND_HALF_UP)
        result.credits_applied = credits
        result.band_breakdown = breakdown
        return result

    async def calculate_monthly_tax_from_annual(
        self,
        employee: Employee,
        annual_income: Decimal,
        currency: Currency | str,
    ) -> TaxComputation:
        """Tax one month of an annual salary against the monthly table."""
        monthly_income = Decimal(annual_income) / MONTHS_PER_YEAR
        return await self.calculate_tax(employee, monthly_income, currency, TaxPeriod.MONTHLY)

    async def calculate_annual_tax_from_monthly(
        self,
        employee: Employee,
        monthly_income: Decimal,
        currency: Currency | str,
    ) -> TaxComputation:
        """Tax a monthly salary annualised against the annual table."""
        annual_income = Decimal(monthly_income) * MONTHS_PER_YEAR
        return await self.calculate_tax(employee, annual_income, currency, TaxPeriod.ANNUAL)

    async def _get_bands(self, table: BandTable) -> list[BandSpec]:
        """Get the bands of one table, ascending by lower bound (cached)."""
        if table in self._band_cache:
            return self._band_cache[table]

        stmt = (
            select(TaxBand)
            .where(
                TaxBand.currency == table.currency.value,
                TaxBand.period == table.period.value,
            )
            .order_by(TaxBand.min_salary)
        )
        result = await self.session.execute(stmt)
        bands = [
            BandSpec(
                min_salary=b.min_salary,
                max_salary=b.max_salary,
                tax_rate=b.tax_rate,
                tax_amount=b.tax_amount,
                band_id=b.band_id,
            )
            for b in result.scalars()
        ]
        self._band_cache[table] = bands
        return bands

    async def _load_credits(self) -> dict[str, list[TaxCredit]]:
        if self._credit_cache is None:
            result = await self.session.execute(
                select(TaxCredit).where(TaxCredit.is_active.is_(True)).order_by(TaxCredit.created_at)
            )
            grouped: dict[str, list[TaxCredit]] = {}
            for credit in result.scalars():
                grouped.setdefault(credit.credit_name, []).append(credit)
            self._credit_cache = grouped
        return self._credit_cache

    async def _applicable_credits(
        self,
        employee: Employee,
        currency: Currency,
        period: TaxPeriod,
    ) -> list[AppliedCredit]:
        wanted: list[tuple[str, int]] = [(PERSONAL_ALLOWANCE, 1)]
        if employee.dependents and employee.dependents > 0:
            wanted.append((CHILD_ALLOWANCE, employee.dependents))
        if employee.disability_status:
            wanted.append((DISABILITY_ALLOWANCE, 1))
        age = employee.age_on(self.as_of)
        if age is not None and age >= self.elderly_age:
            wanted.append((ELDERLY_ALLOWANCE, 1))

        credits = await self._load_credits()
        applied: list[AppliedCredit] = []
        for name, quantity in wanted:
            credit = _best_match(credits.get(name, []), currency, period)
            if credit is None:
                continue
            unit = await self._credit_value(credit, currency, period)
            applied.append(
                AppliedCredit(
                    name=name,
                    unit_value=unit,
                    quantity=quantity,
                    total_value=(unit * quantity).quantize(CENT, rounding=ROUND_HALF_UP),
                    source_currency=credit.currency,
                )
            )
        return applied

    async def _credit_value(
        self,
        credit: TaxCredit,
        currency: Currency,
        period: TaxPeriod,
    ) -> Decimal:
        """Credit amount expressed in the target currency and granularity."""
        amount = await self.rates.convert(credit.credit_amount, credit.currency, currency.value)

        credit_period = TaxPeriod(credit.period)
        if credit_period == TaxPeriod.ANNUAL and period == TaxPeriod.MONTHLY:
            amount = amount / MONTHS_PER_YEAR
        elif credit_period == TaxPeriod.MONTHLY and period == TaxPeriod.ANNUAL:
            amount = amount * MONTHS_PER_YEAR
        return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def _best_match(
    candidates: list[TaxCredit],
    currency: Currency,
    period: TaxPeriod,
) -> TaxCredit | None:
    """Prefer a credit already in the target currency and period."""
    if not candidates:
        return None

    def score(credit: TaxCredit) -> int:
        return (2 if credit.currency == currency.value else 0) + (
            1 if credit.period == period.value else 0
        )

    return max(candidates, key=score)
