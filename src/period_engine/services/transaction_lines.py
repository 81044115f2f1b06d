"""Payslip lines raised from default and custom transactions.

Default transactions apply a code to every employee of a center for a
period. Custom transactions prorate a code for one employee by the hours
worked against the base hours. Both are added after Basic Salary and PAYE.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from period_engine.calculators.types import CENT, ZERO, SalarySplit
from period_engine.models import (
    AccountingPeriod,
    CustomTransaction,
    DefaultTransaction,
    Employee,
    TransactionCode,
)
from period_engine.models.enums import Currency, TransactionType

DEFAULT_CURRENCY = "DEFAULT"

# Shift allowances may pay for more hours than the base
UNCAPPED_CODE_NAMES = frozenset({"SHIFT", "SHIFT ALLOWANCE"})


@dataclass(frozen=True)
class ExtraLine:
    """An earning or deduction to write onto a payslip."""

    description: str
    transaction_type: TransactionType
    amount_usd: Decimal
    amount_zwl: Decimal
    is_taxable: bool
    is_recurring: bool
    code_number: str


class PayslipLineSource(Protocol):
    async def lines_for(
        self,
        period: AccountingPeriod,
        employee: Employee,
        split: SalarySplit,
    ) -> list[ExtraLine]: ...


def default_amounts(currency: str, amount: Decimal, split: SalarySplit) -> tuple[Decimal, Decimal]:
    """(usd, zwl) for a default transaction.

    A DEFAULT-currency transaction is charged in full in every currency the
    payslip pays a basic salary in.
    """
    if currency == Currency.USD.value:
        return amount, ZERO
    if currency == Currency.ZWL.value:
        return ZERO, amount
    return (amount if split.usd > 0 else ZERO), (amount if split.zwl > 0 else ZERO)


def prorated_amount(
    transaction: CustomTransaction,
    employee: Employee,
    currency: Currency,
    exchange_rate: Decimal,
) -> Decimal:
    """Worked/base hours times the base, in ``currency``, to the cent.

    Worked hours are capped at base hours except for shift allowances. The
    base is the employee's basic salary in ``currency`` when ``use_basic``
    is set, otherwise the USD ``base_amount`` converted at ``exchange_rate``.
    """
    worked = Decimal(transaction.worked_hours)
    base_hours = Decimal(transaction.base_hours)
    if transaction.code.code_name.upper() not in UNCAPPED_CODE_NAMES:
        worked = min(worked, base_hours)
    if base_hours <= 0:
        return ZERO

    if transaction.use_basic:
        base = employee.basic_salary_usd if currency == Currency.USD else employee.basic_salary_zwl
    else:
        base = Decimal(transaction.base_amount or ZERO)
        if currency == Currency.ZWL:
            base *= exchange_rate

    return (worked / base_hours * Decimal(base)).quantize(CENT, rounding=ROUND_HALF_UP)


class SqlPayslipLineSource:
    """Reads default and custom transactions for a period from the database."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def lines_for(
        self,
        period: AccountingPeriod,
        employee: Employee,
        split: SalarySplit,
    ) -> list[ExtraLine]:
        return [
            *await self._default_lines(period, employee, split),
            *await self._custom_lines(period, employee, split),
        ]

    async def _default_lines(
        self,
        period: AccountingPeriod,
        employee: Employee,
        split: SalarySplit,
    ) -> list[ExtraLine]:
        result = await self.session.execute(
            select(DefaultTransaction)
            .join(TransactionCode, DefaultTransaction.code_id == TransactionCode.code_id)
            .where(
                DefaultTransaction.period_id == period.period_id,
                DefaultTransaction.center_id == employee.center_id,
                TransactionCode.is_active.is_(True),
            )
            .options(selectinload(DefaultTransaction.code))
            .order_by(TransactionCode.code_number, DefaultTransaction.transaction_currency)
        )
        lines = []
        for transaction in result.scalars():
            usd, zwl = default_amounts(
                transaction.transaction_currency, Decimal(transaction.employee_amount), split
            )
            if usd == 0 and zwl == 0:
                continue
            code = transaction.code
            lines.append(
                ExtraLine(
                    description=code.code_name,
                    transaction_type=code.transaction_type,
                    amount_usd=usd,
                    amount_zwl=zwl,
                    is_taxable=code.apply_to_tax,
                    is_recurring=True,
                    code_number=code.code_number,
                )
            )
        return lines

    async def _custom_lines(
        self,
        period: AccountingPeriod,
        employee: Employee,
        split: SalarySplit,
    ) -> list[ExtraLine]:
        result = await self.session.execute(
            select(CustomTransaction)
            .join(TransactionCode, CustomTransaction.code_id == TransactionCode.code_id)
            .where(
                CustomTransaction.period_id == period.period_id,
                CustomTransaction.employee_id == employee.employee_id,
                TransactionCode.is_active.is_(True),
            )
            .options(selectinload(CustomTransaction.code))
            .order_by(TransactionCode.code_number)
        )
        paid_in = [
            currency
            for currency, amount in ((Currency.USD, split.usd), (Currency.ZWL, split.zwl))
            if amount > 0
        ]
        lines = []
        for transaction in result.scalars():
            code = transaction.code
            for currency in paid_in:
                amount = prorated_amount(transaction, employee, currency, split.exchange_rate)
                if amount == 0:
                    continue
                lines.append(
                    ExtraLine(
                        description=f"{code.code_name} (Custom)",
                        transaction_type=code.transaction_type,
                        amount_usd=amount if currency == Currency.USD else ZERO,
                        amount_zwl=amount if currency == Currency.ZWL else ZERO,
                        is_taxable=code.apply_to_tax,
                        is_recurring=False,
                        code_number=code.code_number,
                    )
                )
        return lines
