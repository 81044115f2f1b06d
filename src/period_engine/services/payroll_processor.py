"""Payroll processor - runs, refreshes, closes and reopens a period for a center."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, AsyncIterator
from uuid import UUID, uuid4

from sqlalchemy import ColumnElement, delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from period_engine.calculators.engine import PayCalculator
from period_engine.calculators.rate_resolver import configured_base_currency
from period_engine.calculators.types import ZERO, EmployeePayResult
from period_engine.exceptions import (
    ConcurrentTransitionError,
    CostCenterInactiveError,
    CostCenterNotFoundError,
    InvalidTransitionError,
    NoEligibleEmployeesError,
    PayrollEngineError,
    PayslipExistsError,
    PeriodNotFoundError,
)
from period_engine.models import (
    AccountingPeriod,
    CenterPeriodStatus,
    CostCenter,
    Employee,
    Payslip,
    PayslipTransaction,
)
from period_engine.models.enums import CurrencyMode, PayslipStatus, TransactionType
from period_engine.services.audit import AuditRecorder
from period_engine.services.authorization import Actor, authorize_center
from period_engine.services.roster import EmployeeRoster, SqlEmployeeRoster
from period_engine.services.state_machine import (
    NOT_YET_RUN,
    CenterPeriodState,
    PeriodAction,
    PeriodStateMachine,
    derive_state,
)
from period_engine.services.transaction_lines import (
    ExtraLine,
    PayslipLineSource,
    SqlPayslipLineSource,
)

logger = logging.getLogger(__name__)

BASIC_SALARY = "Basic Salary"
PAYE_TAX = "PAYE Tax"


def _state_predicate(state: CenterPeriodState) -> ColumnElement[bool]:
    """SQL condition matching status rows in ``state``."""
    if state == CenterPeriodState.PENDING:
        return CenterPeriodStatus.period_run_date.is_(None)
    if state == CenterPeriodState.PROCESSED:
        return CenterPeriodStatus.period_run_date.is_not(None) & CenterPeriodStatus.pay_run_date.is_(
            None
        )
    return CenterPeriodStatus.pay_run_date.is_not(None)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PayrollProcessor:
    """Service for the (period, center) payroll lifecycle.

    Operations:
    - run_period: Create draft payslips for every active employee, mark processed
    - refresh_period: Recompute draft payslips in place
    - close_period: Finalize draft payslips, mark closed
    - reopen_period: Closed → processed, audit-logged
    - reset_period: Processed → pending, deleting draft payslips, audit-logged

    Each operation is one transaction: it commits on success and rolls back
    everything on any failure, re-raising the original exception. The status
    row is moved with a conditional UPDATE that only matches the expected
    source state, so two concurrent callers cannot both win.
    """

    def __init__(
        self,
        session: AsyncSession,
        roster: EmployeeRoster | None = None,
        audit: AuditRecorder | None = None,
        as_of: date | None = None,
        lines: PayslipLineSource | None = None,
    ):
        self.session = session
        self.roster = roster or SqlEmployeeRoster(session)
        self.lines = lines or SqlPayslipLineSource(session)
        self.audit = audit or AuditRecorder(session)
        self.as_of = as_of

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def run_period(
        self,
        period_id: UUID,
        center_id: UUID,
        currency_mode: CurrencyMode | str | None = None,
        *,
        actor: Actor,
    ) -> CenterPeriodStatus:
        """Run payroll for a center in a period.

        ``currency_mode`` defaults to the mode already stored on the status
        row, or DEFAULT when there is none.

        Raises:
            InvalidTransitionError: If the pair has already been run
            CostCenterInactiveError: If the center is not active
            NoEligibleEmployeesError: If the center has no active employees
            ExchangeRateNotFoundError: If a required conversion has no rate
            PayslipExistsError: If a roster employee already has a payslip this period
            ConcurrentTransitionError: If another run created the status row first
        """
        async with self._transaction(PeriodAction.RUN, period_id, center_id):
            authorize_center(actor, center_id, PeriodAction.RUN.value)
            period = await self._get_period(period_id)
            await self._get_active_center(center_id)

            status = await self._lock_status(period_id, center_id)
            PeriodStateMachine.validate_action(derive_state(status), PeriodAction.RUN)

            mode = CurrencyMode(
                currency_mode
                or (status.period_currency if status is not None else CurrencyMode.DEFAULT)
            )

            employees = await self.roster.active_employees(center_id)
            if not employees:
                raise NoEligibleEmployeesError(center_id)

            before = status.snapshot() if status is not None else None
            now = _utcnow()
            if status is None:
                status = CenterPeriodStatus(
                    period_id=period_id,
                    center_id=center_id,
                    period_currency=mode.value,
                    period_run_date=now,
                    is_closed_confirmed=False,
                )
                await self._insert_status(status)
            else:
                await self._transition(
                    status,
                    PeriodAction.RUN,
                    period_run_date=now,
                    period_currency=mode.value,
                )
            await self._ensure_unpaid(period_id, employees)

            calculator = PayCalculator(
                self.session, as_of=self.as_of, base_currency=configured_base_currency()
            )
            for employee in employees:
                result = await calculator.calculate(employee, mode)
                await self._create_payslip(period, employee, mode, result, actor)

            await self._record_transition(
                actor, status, PeriodAction.RUN, before, payslips_created=len(employees)
            )
            await self.session.flush()
            logger.info(
                "Created %d draft payslips for period %s center %s (%s)",
                len(employees),
                period_id,
                center_id,
                mode.value,
            )
        return status

    async def refresh_period(
        self,
        period_id: UUID,
        center_id: UUID,
        currency_mode: CurrencyMode | str | None = None,
        *,
        actor: Actor,
    ) -> CenterPeriodStatus:
        """Recompute draft payslips for a processed center.

        Finalized, distributed and cancelled payslips are left untouched.
        """
        async with self._transaction(PeriodAction.REFRESH, period_id, center_id):
            authorize_center(actor, center_id, PeriodAction.REFRESH.value)
            period = await self._get_period(period_id)
            await self._get_active_center(center_id)

            status = await self._lock_existing(period_id, center_id, PeriodAction.REFRESH)

            before = status.snapshot()
            mode = CurrencyMode(currency_mode or status.period_currency)

            rows = await self._draft_payslips_with_employees(period_id, center_id)
            calculator = PayCalculator(
                self.session, as_of=self.as_of, base_currency=configured_base_currency()
            )
            for payslip, employee in rows:
                result = await calculator.calculate(employee, mode)
                await self.session.execute(
                    delete(PayslipTransaction).where(
                        PayslipTransaction.payslip_id == payslip.payslip_id
                    )
                )
                payslip.currency_mode = mode.value
                await self._write_payslip(payslip, period, employee, mode, result)

            await self._transition(
                status,
                PeriodAction.REFRESH,
                period_run_date=_utcnow(),
                period_currency=mode.value,
            )
            await self._record_transition(
                actor, status, PeriodAction.REFRESH, before, payslips_recomputed=len(rows)
            )
            await self.session.flush()
            logger.info(
                "Refreshed %d draft payslips for period %s center %s",
                len(rows),
                period_id,
                center_id,
            )
        return status

    async def close_period(
        self,
        period_id: UUID,
        center_id: UUID,
        *,
        actor: Actor,
    ) -> CenterPeriodStatus:
        """Finalize draft payslips and mark the center closed."""
        async with self._transaction(PeriodAction.CLOSE, period_id, center_id):
            authorize_center(actor, center_id, PeriodAction.CLOSE.value)
            await self._get_period(period_id)

            status = await self._lock_existing(period_id, center_id, PeriodAction.CLOSE)

            before = status.snapshot()
            now = _utcnow()
            rows = await self._draft_payslips_with_employees(period_id, center_id)
            for payslip, _ in rows:
                payslip.status = PayslipStatus.FINALIZED.value
                payslip.finalized_at = now

            await self._transition(
                status,
                PeriodAction.CLOSE,
                pay_run_date=now,
                is_closed_confirmed=True,
            )
            await self._record_transition(
                actor, status, PeriodAction.CLOSE, before, payslips_finalized=len(rows)
            )
            await self.session.flush()
            logger.info(
                "Finalized %d payslips for period %s center %s", len(rows), period_id, center_id
            )
        return status

    async def reopen_period(
        self,
        period_id: UUID,
        center_id: UUID,
        *,
        actor: Actor,
    ) -> CenterPeriodStatus:
        """Reopen a closed center. Payslip statuses are not changed."""
        async with self._transaction(PeriodAction.REOPEN, period_id, center_id):
            authorize_center(actor, center_id, PeriodAction.REOPEN.value)
            await self._get_period(period_id)

            status = await self._lock_existing(period_id, center_id, PeriodAction.REOPEN)

            before = status.snapshot()
            await self._transition(
                status,
                PeriodAction.REOPEN,
                pay_run_date=None,
                is_closed_confirmed=False,
            )
            await self._record_transition(actor, status, PeriodAction.REOPEN, before)
            await self.session.flush()
            logger.warning(
                "Period %s reopened for center %s by user %s", period_id, center_id, actor.user_id
            )
        return status

    async def reset_period(
        self,
        period_id: UUID,
        center_id: UUID,
        *,
        actor: Actor,
    ) -> CenterPeriodStatus:
        """Roll a processed center back to pending, deleting its draft payslips.

        Refused when any payslip of the pair has left draft.
        """
        async with self._transaction(PeriodAction.RESET, period_id, center_id):
            authorize_center(actor, center_id, PeriodAction.RESET.value)
            await self._get_period(period_id)

            status = await self._lock_existing(period_id, center_id, PeriodAction.RESET)

            committed = await self.session.scalar(
                select(func.count())
                .select_from(Payslip)
                .join(Employee, Payslip.employee_id == Employee.employee_id)
                .where(
                    Payslip.period_id == period_id,
                    Employee.center_id == center_id,
                    Payslip.status != PayslipStatus.DRAFT.value,
                )
            )
            if committed:
                raise InvalidTransitionError(
                    derive_state(status).value,
                    PeriodAction.RESET.value,
                    "Period has payslips that are no longer drafts for this center",
                )

            before = status.snapshot()
            rows = await self._draft_payslips_with_employees(period_id, center_id)
            payslip_ids = [p.payslip_id for p, _ in rows]
            if payslip_ids:
                await self.session.execute(
                    delete(PayslipTransaction).where(
                        PayslipTransaction.payslip_id.in_(payslip_ids)
                    )
                )
                for payslip, _ in rows:
                    await self.session.delete(payslip)

            await self._transition(
                status,
                PeriodAction.RESET,
                period_run_date=None,
            )
            await self._record_transition(
                actor, status, PeriodAction.RESET, before, payslips_deleted=len(payslip_ids)
            )
            await self.session.flush()
            logger.warning(
                "Period %s reset for center %s by user %s; %d draft payslips deleted",
                period_id,
                center_id,
                actor.user_id,
                len(payslip_ids),
            )
        return status

    # ------------------------------------------------------------------
    # Transaction and state helpers
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _transaction(
        self,
        action: PeriodAction,
        period_id: UUID,
        center_id: UUID,
    ) -> AsyncIterator[None]:
        logger.info("Starting %s for period %s center %s", action.value, period_id, center_id)
        try:
            yield
            await self.session.commit()
        except PayrollEngineError as exc:
            await self.session.rollback()
            logger.error(
                "%s failed for period %s center %s: [%s] %s",
                action.value,
                period_id,
                center_id,
                exc.code,
                exc.message,
            )
            raise
        except Exception:
            await self.session.rollback()
            logger.exception(
                "%s failed for period %s center %s", action.value, period_id, center_id
            )
            raise
        logger.info("Completed %s for period %s center %s", action.value, period_id, center_id)

    async def _insert_status(self, status: CenterPeriodStatus) -> None:
        """Insert a first status row; losing the (period, center) race is a conflict."""
        self.session.add(status)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise ConcurrentTransitionError(
                status.period_id, status.center_id, PeriodAction.RUN.value
            ) from exc

    async def _ensure_unpaid(self, period_id: UUID, employees: list[Employee]) -> None:
        """Refuse a run when anyone on the roster already has a payslip this period."""
        code = await self.session.scalar(
            select(Employee.employee_code)
            .join(Payslip, Payslip.employee_id == Employee.employee_id)
            .where(
                Payslip.period_id == period_id,
                Employee.employee_id.in_([e.employee_id for e in employees]),
            )
            .order_by(Employee.employee_code)
            .limit(1)
        )
        if code is not None:
            raise PayslipExistsError(code, period_id)

    async def _lock_existing(
        self,
        period_id: UUID,
        center_id: UUID,
        action: PeriodAction,
    ) -> CenterPeriodStatus:
        """Lock the status row for an action that needs the pair to have been run."""
        status = await self._lock_status(period_id, center_id)
        PeriodStateMachine.validate_action(derive_state(status), action)
        if status is None:
            raise InvalidTransitionError(
                CenterPeriodState.PENDING.value, action.value, NOT_YET_RUN
            )
        return status

    async def _record_transition(
        self,
        actor: Actor,
        status: CenterPeriodStatus,
        action: PeriodAction,
        before: dict[str, Any] | None,
        **counts: int,
    ) -> None:
        await self.audit.record(
            actor,
            entity_type="center_period_status",
            entity_id=status.status_id,
            action=action.value,
            before=before,
            after={**status.snapshot(), **counts},
        )

    async def _lock_status(self, period_id: UUID, center_id: UUID) -> CenterPeriodStatus | None:
        result = await self.session.execute(
            select(CenterPeriodStatus)
            .where(
                CenterPeriodStatus.period_id == period_id,
                CenterPeriodStatus.center_id == center_id,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _transition(
        self,
        status: CenterPeriodStatus,
        action: PeriodAction,
        **values: Any,
    ) -> None:
        """Move the status row only if it is still in the action's source state."""
        required, _ = PeriodStateMachine.TRANSITIONS[action]
        result = await self.session.execute(
            update(CenterPeriodStatus)
            .where(
                CenterPeriodStatus.status_id == status.status_id,
                _state_predicate(required),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ConcurrentTransitionError(status.period_id, status.center_id, action.value)
        await self.session.refresh(status)

    async def _get_period(self, period_id: UUID) -> AccountingPeriod:
        period = await self.session.get(AccountingPeriod, period_id)
        if period is None:
            raise PeriodNotFoundError(period_id)
        return period

    async def _get_active_center(self, center_id: UUID) -> CostCenter:
        center = await self.session.get(CostCenter, center_id)
        if center is None:
            raise CostCenterNotFoundError(center_id)
        if not center.is_active:
            raise CostCenterInactiveError(center_id)
        return center

    async def _draft_payslips_with_employees(
        self,
        period_id: UUID,
        center_id: UUID,
    ) -> list[tuple[Payslip, Employee]]:
        result = await self.session.execute(
            select(Payslip, Employee)
            .join(Employee, Payslip.employee_id == Employee.employee_id)
            .where(
                Payslip.period_id == period_id,
                Employee.center_id == center_id,
                Payslip.status == PayslipStatus.DRAFT.value,
            )
            .order_by(Employee.employee_code)
        )
        return [(row[0], row[1]) for row in result.all()]

    # ------------------------------------------------------------------
    # Payslip building
    # ------------------------------------------------------------------

    async def _create_payslip(
        self,
        period: AccountingPeriod,
        employee: Employee,
        mode: CurrencyMode,
        result: EmployeePayResult,
        actor: Actor,
    ) -> Payslip:
        payslip = Payslip(
            payslip_id=uuid4(),
            employee_id=employee.employee_id,
            payroll_id=period.payroll_id,
            period_id=period.period_id,
            created_by=actor.user_id,
            payslip_number=(
                f"PS-{employee.employee_code}-{period.period_year}{period.month_number:02d}"
            ),
            period_month=period.month_number,
            period_year=period.period_year,
            payment_date=period.period_end,
            status=PayslipStatus.DRAFT.value,
            currency_mode=mode.value,
        )
        self.session.add(payslip)
        await self._write_payslip(payslip, period, employee, mode, result)
        return payslip

    async def _write_payslip(
        self,
        payslip: Payslip,
        period: AccountingPeriod,
        employee: Employee,
        mode: CurrencyMode,
        result: EmployeePayResult,
    ) -> None:
        """Add the payslip's lines and derive its totals and YTD figures from them."""
        extras = await self.lines.lines_for(period, employee, result.split)
        lines = self._build_lines(payslip.payslip_id, mode, result, extras)
        self.session.add_all(lines)

        totals = {
            kind: (
                sum((line.amount_usd for line in lines if line.transaction_type == kind), ZERO),
                sum((line.amount_zwl for line in lines if line.transaction_type == kind), ZERO),
            )
            for kind in (TransactionType.EARNING.value, TransactionType.DEDUCTION.value)
        }
        gross_usd, gross_zwl = totals[TransactionType.EARNING.value]
        deductions_usd, deductions_zwl = totals[TransactionType.DEDUCTION.value]
        payslip.gross_salary_usd = gross_usd
        payslip.gross_salary_zwl = gross_zwl
        payslip.total_deductions_usd = deductions_usd
        payslip.total_deductions_zwl = deductions_zwl
        payslip.net_salary_usd = gross_usd - deductions_usd
        payslip.net_salary_zwl = gross_zwl - deductions_zwl
        payslip.exchange_rate = result.split.exchange_rate

        prior = await self._prior_year_totals(
            payslip.employee_id, period.payroll_id, period.period_year, period.month_number
        )
        payslip.ytd_gross_usd = prior["gross_usd"] + gross_usd
        payslip.ytd_gross_zwl = prior["gross_zwl"] + gross_zwl
        payslip.ytd_paye_usd = prior["paye_usd"] + result.tax_usd.tax_amount
        payslip.ytd_paye_zwl = prior["paye_zwl"] + result.tax_zwl.tax_amount

    async def _prior_year_totals(
        self,
        employee_id: UUID,
        payroll_id: UUID,
        year: int,
        month: int,
    ) -> dict[str, Decimal]:
        """Gross and PAYE over the employee's earlier, non-cancelled payslips of the year."""
        earlier = (
            Payslip.employee_id == employee_id,
            Payslip.payroll_id == payroll_id,
            Payslip.period_year == year,
            Payslip.period_month < month,
            Payslip.status != PayslipStatus.CANCELLED.value,
        )
        gross = (
            await self.session.execute(
                select(
                    func.coalesce(func.sum(Payslip.gross_salary_usd), 0),
                    func.coalesce(func.sum(Payslip.gross_salary_zwl), 0),
                ).where(*earlier)
            )
        ).one()
        paye = (
            await self.session.execute(
                select(
                    func.coalesce(func.sum(PayslipTransaction.amount_usd), 0),
                    func.coalesce(func.sum(PayslipTransaction.amount_zwl), 0),
                )
                .join(Payslip, PayslipTransaction.payslip_id == Payslip.payslip_id)
                .where(*earlier, PayslipTransaction.description == PAYE_TAX)
            )
        ).one()
        return {
            "gross_usd": Decimal(str(gross[0])),
            "gross_zwl": Decimal(str(gross[1])),
            "paye_usd": Decimal(str(paye[0])),
            "paye_zwl": Decimal(str(paye[1])),
        }

    def _build_lines(
        self,
        payslip_id: UUID,
        mode: CurrencyMode,
        result: EmployeePayResult,
        extras: list[ExtraLine],
    ) -> list[PayslipTransaction]:
        """Basic Salary and PAYE first, then default and custom transaction lines."""
        split = result.split
        lines = [
            PayslipTransaction(
                payslip_id=payslip_id,
                description=BASIC_SALARY,
                transaction_type=TransactionType.EARNING.value,
                display_order=1,
                amount_usd=split.usd,
                amount_zwl=split.zwl,
                is_taxable=True,
                is_recurring=True,
                calculation_metadata={
                    "currency_mode": mode.value,
                    "usd_percentage": str(split.usd_percentage),
                    "zwl_percentage": str(split.zwl_percentage),
                    "exchange_rate": str(split.exchange_rate),
                },
            ),
            PayslipTransaction(
                payslip_id=payslip_id,
                description=PAYE_TAX,
                transaction_type=TransactionType.DEDUCTION.value,
                display_order=2,
                amount_usd=result.tax_usd.tax_amount or ZERO,
                amount_zwl=result.tax_zwl.tax_amount or ZERO,
                is_taxable=False,
                is_recurring=True,
                calculation_metadata={
                    "usd": result.tax_usd.to_dict(),
                    "zwl": result.tax_zwl.to_dict(),
                },
            ),
        ]
        for order, extra in enumerate(extras, start=3):
            lines.append(
                PayslipTransaction(
                    payslip_id=payslip_id,
                    description=extra.description,
                    code_number=extra.code_number,
                    transaction_type=extra.transaction_type.value,
                    display_order=order,
                    amount_usd=extra.amount_usd,
                    amount_zwl=extra.amount_zwl,
                    is_taxable=extra.is_taxable,
                    is_recurring=extra.is_recurring,
                )
            )
        return lines
