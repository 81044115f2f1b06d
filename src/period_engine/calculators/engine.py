"""Per-employee pay calculation: apportion salary, then tax each leg."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import AsyncSession

from period_engine.calculators.rate_resolver import ExchangeRateResolver
from period_engine.calculators.salary_split import SalaryApportioner
from period_engine.calculators.tax_calculator import TaxCalculator
from period_engine.calculators.types import EmployeePayResult
from period_engine.models.enums import Currency, CurrencyMode, TaxPeriod

if TYPE_CHECKING:
    from period_engine.models import Employee


class PayCalculator:
    """Computes gross legs and PAYE for employees of one run.

    A single instance shares its rate and band caches across every employee
    of the run.
    """

    def __init__(
        self,
        session: AsyncSession,
        as_of: date | None = None,
        base_currency: Currency | str = Currency.USD,
    ):
        self.session = session
        self.rates = ExchangeRateResolver(session, as_of=as_of)
        self.apportioner = SalaryApportioner(self.rates, base_currency)
        self.tax = TaxCalculator(session, rates=self.rates, as_of=as_of)

    async def calculate(self, employee: Employee, mode: CurrencyMode | str) -> EmployeePayResult:
        split = await self.apportioner.split(employee, mode)
        tax_usd = await self.tax.calculate_tax(employee, split.usd, Currency.USD, TaxPeriod.MONTHLY)
        tax_zwl = await self.tax.calculate_tax(employee, split.zwl, Currency.ZWL, TaxPeriod.MONTHLY)
        return EmployeePayResult(
            employee_id=employee.employee_id,
            split=split,
            tax_usd=tax_usd,
            tax_zwl=tax_zwl,
        )
