"""Apportion an employee's salary between USD and ZWL for one run."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from period_engine.calculators.types import CENT, ZERO, SalarySplit
from period_engine.models.enums import Currency, CurrencyMode

if TYPE_CHECKING:
    from period_engine.calculators.rate_resolver import ExchangeRateResolver
    from period_engine.models import Employee

HUNDRED = Decimal("100")
HALF = Decimal("50")


def employee_percentages(employee: Employee) -> tuple[Decimal, Decimal]:
    """(usd%, zwl%) for DEFAULT mode; 50/50 when the employee has none on file."""
    if employee.usd_percentage is None or employee.zwl_percentage is None:
        return HALF, HALF
    return Decimal(employee.usd_percentage), Decimal(employee.zwl_percentage)


class SalaryApportioner:
    """Splits basic salary into a USD leg and a ZWL leg.

    USD mode pays everything in USD, converting the ZWL salary when no USD
    salary is on file. ZWL mode is the mirror image. DEFAULT mode takes the
    employee's total comparable salary in the base currency and multiplies
    it by each of the employee's percentages; the non-base share is then
    converted out of the base currency.
    """

    def __init__(
        self,
        rates: ExchangeRateResolver,
        base_currency: Currency | str = Currency.USD,
    ):
        self.rates = rates
        self.base_currency = Currency(base_currency)

    async def split(self, employee: Employee, mode: CurrencyMode | str) -> SalarySplit:
        mode = CurrencyMode(mode)
        basic_usd = Decimal(employee.basic_salary_usd or 0)
        basic_zwl = Decimal(employee.basic_salary_zwl or 0)

        if mode == CurrencyMode.USD:
            usd = basic_usd if basic_usd > 0 else await self._to_usd(basic_zwl)
            rate = Decimal("1")
            if basic_usd <= 0 and basic_zwl > 0:
                rate = await self.rates.require_rate(Currency.USD.value, Currency.ZWL.value)
            return SalarySplit(
                usd=_cents(usd),
                zwl=ZERO,
                usd_percentage=HUNDRED,
                zwl_percentage=ZERO,
                exchange_rate=rate,
            )

        if mode == CurrencyMode.ZWL:
            zwl = basic_zwl if basic_zwl > 0 else await self._to_zwl(basic_usd)
            rate = Decimal("1")
            if basic_zwl <= 0 and basic_usd > 0:
                rate = await self.rates.require_rate(Currency.USD.value, Currency.ZWL.value)
            return SalarySplit(
                usd=ZERO,
                zwl=_cents(zwl),
                usd_percentage=ZERO,
                zwl_percentage=HUNDRED,
                exchange_rate=rate,
            )

        usd_pct, zwl_pct = employee_percentages(employee)
        if self.base_currency == Currency.ZWL:
            return await self._split_in_zwl(basic_usd, basic_zwl, usd_pct, zwl_pct)

        total_usd = basic_usd if basic_usd > 0 else await self._to_usd(basic_zwl)

        usd_leg = _cents(total_usd * usd_pct / HUNDRED)
        zwl_share_in_usd = _cents(total_usd * zwl_pct / HUNDRED)

        rate = Decimal("1")
        zwl_leg = ZERO
        if zwl_share_in_usd > 0:
            rate = await self.rates.require_rate(Currency.USD.value, Currency.ZWL.value)
            zwl_leg = _cents(zwl_share_in_usd * rate)

        return SalarySplit(
            usd=usd_leg,
            zwl=zwl_leg,
            usd_percentage=usd_pct,
            zwl_percentage=zwl_pct,
            exchange_rate=rate,
        )

    async def _split_in_zwl(
        self,
        basic_usd: Decimal,
        basic_zwl: Decimal,
        usd_pct: Decimal,
        zwl_pct: Decimal,
    ) -> SalarySplit:
        """DEFAULT mode with ZWL as the comparison currency."""
        total_zwl = basic_zwl if basic_zwl > 0 else await self._to_zwl(basic_usd)

        zwl_leg = _cents(total_zwl * zwl_pct / HUNDRED)
        usd_share_in_zwl = _cents(total_zwl * usd_pct / HUNDRED)

        rate = Decimal("1")
        usd_leg = ZERO
        if usd_share_in_zwl > 0:
            rate = await self.rates.require_rate(Currency.USD.value, Currency.ZWL.value)
            usd_leg = _cents(usd_share_in_zwl / rate)

        return SalarySplit(
            usd=usd_leg,
            zwl=zwl_leg,
            usd_percentage=usd_pct,
            zwl_percentage=zwl_pct,
            exchange_rate=rate,
        )

    async def _to_usd(self, amount_zwl: Decimal) -> Decimal:
        if amount_zwl <= 0:
            return ZERO
        return await self.rates.convert(amount_zwl, Currency.ZWL.value, Currency.USD.value)

    async def _to_zwl(self, amount_usd: Decimal) -> Decimal:
        if amount_usd <= 0:
            return ZERO
        return await self.rates.convert(amount_usd, Currency.USD.value, Currency.ZWL.value)


def _cents(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
