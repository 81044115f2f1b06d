"""Tests for default and custom transaction lines on payslips."""

from __future__ import annotations

from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from period_engine.calculators.types import SalarySplit
from period_engine.models import (
    CustomTransaction,
    DefaultTransaction,
    Employee,
    Payslip,
    PayslipTransaction,
    TransactionCode,
)
from period_engine.models.enums import Currency, TransactionType
from period_engine.services.payroll_processor import BASIC_SALARY, PAYE_TAX, PayrollProcessor
from period_engine.services.transaction_lines import (
    ExtraLine,
    SqlPayslipLineSource,
    default_amounts,
    prorated_amount,
)

USD_ONLY = SalarySplit(
    usd=Decimal("5000"),
    zwl=Decimal("0"),
    usd_percentage=Decimal("100"),
    zwl_percentage=Decimal("0"),
)
HALF_AND_HALF = SalarySplit(
    usd=Decimal("2500"),
    zwl=Decimal("62500"),
    usd_percentage=Decimal("50"),
    zwl_percentage=Decimal("50"),
    exchange_rate=Decimal("25"),
)


def _custom(code_name="OVERTIME", worked="10", base="40", amount="400", use_basic=False):
    return CustomTransaction(
        worked_hours=Decimal(worked),
        base_hours=Decimal(base),
        base_amount=Decimal(amount) if amount is not None else None,
        use_basic=use_basic,
        code=TransactionCode(code_number="900", code_name=code_name, effect=1),
    )


@pytest_asyncio.fixture
async def codes(session) -> dict[str, TransactionCode]:
    rows = {
        "transport": TransactionCode(
            code_number="101", code_name="Transport Allowance", effect=1, apply_to_tax=True
        ),
        "union": TransactionCode(code_number="205", code_name="Union Dues", effect=-1),
        "overtime": TransactionCode(
            code_number="110", code_name="Overtime", effect=1, apply_to_tax=True
        ),
        "retired": TransactionCode(
            code_number="199", code_name="Old Bonus", effect=1, is_active=False
        ),
    }
    session.add_all(rows.values())
    await session.commit()
    return rows


@pytest_asyncio.fixture
async def center_transactions(session, period, center, employees, codes):
    """Transport 100 USD and union dues 10 in every paid currency for the center,
    plus 10 of 40 hours' overtime on a 400 USD base for E001."""
    session.add_all(
        [
            DefaultTransaction(
                code_id=codes["transport"].code_id,
                period_id=period.period_id,
                center_id=center.center_id,
                employee_amount=Decimal("100"),
                transaction_currency="USD",
            ),
            DefaultTransaction(
                code_id=codes["union"].code_id,
                period_id=period.period_id,
                center_id=center.center_id,
                employee_amount=Decimal("10"),
                transaction_currency="DEFAULT",
            ),
            DefaultTransaction(
                code_id=codes["retired"].code_id,
                period_id=period.period_id,
                center_id=center.center_id,
                employee_amount=Decimal("999"),
                transaction_currency="USD",
            ),
            CustomTransaction(
                code_id=codes["overtime"].code_id,
                period_id=period.period_id,
                employee_id=employees[0].employee_id,
                worked_hours=Decimal("10"),
                base_hours=Decimal("40"),
                base_amount=Decimal("400"),
            ),
        ]
    )
    await session.commit()


async def _lines(session, employee_id, period_id) -> list[PayslipTransaction]:
    result = await session.execute(
        select(PayslipTransaction)
        .join(Payslip, PayslipTransaction.payslip_id == Payslip.payslip_id)
        .where(Payslip.employee_id == employee_id, Payslip.period_id == period_id)
        .order_by(PayslipTransaction.display_order)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars())


async def _payslip(session, employee_id, period_id) -> Payslip:
    result = await session.execute(
        select(Payslip)
        .where(Payslip.employee_id == employee_id, Payslip.period_id == period_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


class TestDefaultAmounts:
    def test_fixed_currency(self):
        assert default_amounts("USD", Decimal("100"), HALF_AND_HALF) == (Decimal("100"), 0)
        assert default_amounts("ZWL", Decimal("100"), HALF_AND_HALF) == (0, Decimal("100"))

    def test_default_currency_follows_paid_currencies(self):
        assert default_amounts("DEFAULT", Decimal("10"), USD_ONLY) == (Decimal("10"), 0)
        assert default_amounts("DEFAULT", Decimal("10"), HALF_AND_HALF) == (
            Decimal("10"),
            Decimal("10"),
        )


class TestProratedAmount:
    def test_worked_share_of_base_amount(self):
        amount = prorated_amount(_custom(), Employee(), Currency.USD, Decimal("1"))

        assert amount == Decimal("100.00")

    def test_worked_hours_capped_at_base(self):
        amount = prorated_amount(_custom(worked="60"), Employee(), Currency.USD, Decimal("1"))

        assert amount == Decimal("400.00")

    def test_shift_allowance_not_capped(self):
        transaction = _custom(code_name="Shift Allowance", worked="60")

        assert prorated_amount(transaction, Employee(), Currency.USD, Decimal("1")) == Decimal(
            "600.00"
        )

    def test_base_amount_converted_for_zwl(self):
        amount = prorated_amount(_custom(), Employee(), Currency.ZWL, Decimal("25"))

        assert amount == Decimal("2500.00")

    def test_use_basic_takes_salary_in_currency(self):
        employee = Employee(basic_salary_usd=Decimal("3000"), basic_salary_zwl=Decimal("9000"))
        transaction = _custom(worked="20", amount=None, use_basic=True)

        assert prorated_amount(transaction, employee, Currency.USD, Decimal("25")) == Decimal(
            "1500.00"
        )
        assert prorated_amount(transaction, employee, Currency.ZWL, Decimal("25")) == Decimal(
            "4500.00"
        )

    def test_zero_base_hours(self):
        assert prorated_amount(_custom(base="0"), Employee(), Currency.USD, Decimal("1")) == 0


class TestRunWithTransactions:
    async def test_lines_follow_basic_salary_and_paye(
        self, session, period, center, employees, monthly_usd_bands, center_transactions, admin
    ):
        period_id = period.period_id
        e001 = employees[0].employee_id

        await PayrollProcessor(session).run_period(period_id, center.center_id, "USD", actor=admin)

        lines = await _lines(session, e001, period_id)
        assert [(line.description, line.transaction_type, line.amount_usd) for line in lines] == [
            (BASIC_SALARY, "earning", Decimal("5000")),
            (PAYE_TAX, "deduction", Decimal("1100")),
            ("Transport Allowance", "earning", Decimal("100")),
            ("Union Dues", "deduction", Decimal("10")),
            ("Overtime (Custom)", "earning", Decimal("100")),
        ]
        transport, union, overtime = lines[2:]
        assert transport.code_number == "101"
        assert transport.is_taxable is True
        assert transport.is_recurring is True
        assert union.amount_zwl == Decimal("0")
        assert overtime.is_recurring is False

    async def test_totals_rebuilt_from_lines(
        self, session, period, center, employees, monthly_usd_bands, center_transactions, admin
    ):
        period_id = period.period_id

        await PayrollProcessor(session).run_period(period_id, center.center_id, "USD", actor=admin)

        first = await _payslip(session, employees[0].employee_id, period_id)
        assert first.gross_salary_usd == Decimal("5200")
        assert first.total_deductions_usd == Decimal("1110")
        assert first.net_salary_usd == Decimal("4090")
        # PAYE is still computed on the basic salary
        assert first.ytd_paye_usd == Decimal("1100")
        assert first.ytd_gross_usd == Decimal("5200")

        second = await _payslip(session, employees[1].employee_id, period_id)
        assert second.gross_salary_usd == Decimal("2100")
        assert second.net_salary_usd == Decimal("1690")

    async def test_inactive_codes_skipped(
        self, session, period, center, employees, monthly_usd_bands, center_transactions, admin
    ):
        await PayrollProcessor(session).run_period(
            period.period_id, center.center_id, "USD", actor=admin
        )

        lines = await _lines(session, employees[1].employee_id, period.period_id)
        assert "Old Bonus" not in {line.description for line in lines}

    async def test_refresh_picks_up_new_transactions(
        self, session, period, center, employees, monthly_usd_bands, codes, admin
    ):
        period_id, center_id = period.period_id, center.center_id
        e002 = employees[1].employee_id
        processor = PayrollProcessor(session)
        await processor.run_period(period_id, center_id, "USD", actor=admin)
        assert len(await _lines(session, e002, period_id)) == 2

        session.add(
            DefaultTransaction(
                code_id=codes["transport"].code_id,
                period_id=period_id,
                center_id=center_id,
                employee_amount=Decimal("100"),
                transaction_currency="USD",
            )
        )
        await session.commit()
        await processor.refresh_period(period_id, center_id, actor=admin)

        assert len(await _lines(session, e002, period_id)) == 3
        payslip = await _payslip(session, e002, period_id)
        assert payslip.gross_salary_usd == Decimal("2100")

    async def test_other_centers_transactions_ignored(
        self, session, period, center, other_center, employees, monthly_usd_bands, codes, admin
    ):
        session.add(
            DefaultTransaction(
                code_id=codes["transport"].code_id,
                period_id=period.period_id,
                center_id=other_center.center_id,
                employee_amount=Decimal("100"),
                transaction_currency="USD",
            )
        )
        await session.commit()

        await PayrollProcessor(session).run_period(
            period.period_id, center.center_id, "USD", actor=admin
        )

        assert len(await _lines(session, employees[0].employee_id, period.period_id)) == 2


class TestLineSourceSeam:
    async def test_processor_uses_given_source(
        self, session, period, center, employees, monthly_usd_bands, admin
    ):
        class FlatDeduction:
            async def lines_for(self, period, employee, split):
                return [
                    ExtraLine(
                        description="Loan Repayment",
                        transaction_type=TransactionType.DEDUCTION,
                        amount_usd=Decimal("50"),
                        amount_zwl=Decimal("0"),
                        is_taxable=False,
                        is_recurring=True,
                        code_number="301",
                    )
                ]

        await PayrollProcessor(session, lines=FlatDeduction()).run_period(
            period.period_id, center.center_id, "USD", actor=admin
        )

        payslip = await _payslip(session, employees[1].employee_id, period.period_id)
        assert payslip.total_deductions_usd == Decimal("450")
        assert payslip.net_salary_usd == Decimal("1550")

    async def test_sql_source_zwl_custom_line(self, session, period, center, employees, codes):
        session.add(
            CustomTransaction(
                code_id=codes["overtime"].code_id,
                period_id=period.period_id,
                employee_id=employees[0].employee_id,
                worked_hours=Decimal("10"),
                base_hours=Decimal("40"),
                base_amount=Decimal("400"),
            )
        )
        await session.commit()

        lines = await SqlPayslipLineSource(session).lines_for(period, employees[0], HALF_AND_HALF)

        assert [(line.amount_usd, line.amount_zwl) for line in lines] == [
            (Decimal("100.00"), Decimal("0")),
            (Decimal("0"), Decimal("2500.00")),
        ]

    async def test_codes_need_a_valid_effect(self, session):
        session.add(TransactionCode(code_number="999", code_name="Bad", effect=0))

        with pytest.raises(IntegrityError):
            await session.commit()
