"""Payslip lifecycle: finalize, distribute, cancel, delete and line edits."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from period_engine.exceptions import PayslipNotFoundError, PayslipStateError
from period_engine.models import Employee, Payslip, PayslipTransaction
from period_engine.models.enums import PayslipStatus, TransactionType
from period_engine.services.authorization import Actor, authorize_center

logger = logging.getLogger(__name__)


class PayslipService:
    """Service for individual payslips.

    Status flow: draft → finalized → distributed; any status except
    distributed may be cancelled. Lines can only be edited on drafts.
    Every change is authorized against the center of the payslip's employee.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_payslip(self, payslip_id: UUID) -> Payslip:
        payslip = await self.session.get(Payslip, payslip_id)
        if payslip is None:
            raise PayslipNotFoundError(payslip_id)
        return payslip

    async def list_for_period(
        self,
        period_id: UUID,
        center_id: UUID | None = None,
        status: PayslipStatus | str | None = None,
    ) -> list[Payslip]:
        stmt = (
            select(Payslip)
            .join(Employee, Payslip.employee_id == Employee.employee_id)
            .where(Payslip.period_id == period_id)
            .order_by(Employee.employee_code)
        )
        if center_id is not None:
            stmt = stmt.where(Employee.center_id == center_id)
        if status is not None:
            stmt = stmt.where(Payslip.status == PayslipStatus(status).value)
        result = await self.session.execute(stmt)
        return list(result.scalars())

    async def get_transactions(self, payslip_id: UUID) -> list[PayslipTransaction]:
        result = await self.session.execute(
            select(PayslipTransaction)
            .where(PayslipTransaction.payslip_id == payslip_id)
            .order_by(PayslipTransaction.transaction_type, PayslipTransaction.display_order)
        )
        return list(result.scalars())

    async def add_transaction(
        self,
        payslip_id: UUID,
        description: str,
        transaction_type: TransactionType | str,
        amount_usd: Decimal = Decimal("0"),
        amount_zwl: Decimal = Decimal("0"),
        is_taxable: bool = False,
        is_recurring: bool = True,
        calculation_metadata: dict[str, Any] | None = None,
        *,
        actor: Actor,
    ) -> PayslipTransaction:
        """Append a line to a draft payslip and recompute its totals."""
        payslip = await self._get_editable(payslip_id, "add lines to", actor)
        kind = TransactionType(transaction_type)

        max_order = await self.session.scalar(
            select(func.max(PayslipTransaction.display_order)).where(
                PayslipTransaction.payslip_id == payslip_id,
                PayslipTransaction.transaction_type == kind.value,
            )
        )
        line = PayslipTransaction(
            payslip_id=payslip.payslip_id,
            description=description,
            transaction_type=kind.value,
            display_order=(max_order if max_order is not None else 0) + 1,
            amount_usd=amount_usd,
            amount_zwl=amount_zwl,
            is_taxable=is_taxable,
            is_recurring=is_recurring,
            calculation_metadata=calculation_metadata,
        )
        self.session.add(line)
        await self.session.flush()
        await self.recalculate_totals(payslip_id)
        return line

    async def remove_transaction(
        self, payslip_id: UUID, transaction_id: UUID, *, actor: Actor
    ) -> None:
        await self._get_editable(payslip_id, "remove lines from", actor)
        await self.session.execute(
            delete(PayslipTransaction).where(
                PayslipTransaction.payslip_id == payslip_id,
                PayslipTransaction.transaction_id == transaction_id,
            )
        )
        await self.recalculate_totals(payslip_id)

    async def recalculate_totals(self, payslip_id: UUID) -> Payslip:
        """Rebuild gross, deductions and net in both currencies from the lines."""
        payslip = await self.get_payslip(payslip_id)
        rows = (
            await self.session.execute(
                select(
                    PayslipTransaction.transaction_type,
                    func.coalesce(func.sum(PayslipTransaction.amount_usd), 0),
                    func.coalesce(func.sum(PayslipTransaction.amount_zwl), 0),
                )
                .where(PayslipTransaction.payslip_id == payslip_id)
                .group_by(PayslipTransaction.transaction_type)
            )
        ).all()
        sums = {row[0]: (Decimal(str(row[1])), Decimal(str(row[2]))) for row in rows}
        zero = (Decimal("0"), Decimal("0"))
        earn_usd, earn_zwl = sums.get(TransactionType.EARNING.value, zero)
        ded_usd, ded_zwl = sums.get(TransactionType.DEDUCTION.value, zero)

        payslip.gross_salary_usd = earn_usd
        payslip.gross_salary_zwl = earn_zwl
        payslip.total_deductions_usd = ded_usd
        payslip.total_deductions_zwl = ded_zwl
        payslip.net_salary_usd = earn_usd - ded_usd
        payslip.net_salary_zwl = earn_zwl - ded_zwl
        await self.session.flush()
        return payslip

    async def finalize(self, payslip_id: UUID, *, actor: Actor) -> Payslip:
        payslip = await self.get_payslip(payslip_id)
        await self._authorize(payslip, actor, "finalize")
        if payslip.status != PayslipStatus.DRAFT.value:
            raise PayslipStateError(
                payslip_id, payslip.status, "Only draft payslips can be finalized"
            )
        payslip.status = PayslipStatus.FINALIZED.value
        payslip.finalized_at = datetime.now(timezone.utc)
        await self.session.flush()
        logger.info("Payslip %s finalized", payslip.payslip_number)
        return payslip

    async def mark_distributed(self, payslip_id: UUID, *, actor: Actor) -> Payslip:
        payslip = await self.get_payslip(payslip_id)
        await self._authorize(payslip, actor, "distribute")
        if payslip.status != PayslipStatus.FINALIZED.value:
            raise PayslipStateError(
                payslip_id,
                payslip.status,
                "Only finalized payslips can be marked as distributed",
            )
        payslip.status = PayslipStatus.DISTRIBUTED.value
        payslip.distributed_at = datetime.now(timezone.utc)
        await self.session.flush()
        logger.info("Payslip %s distributed", payslip.payslip_number)
        return payslip

    async def cancel(self, payslip_id: UUID, *, actor: Actor) -> Payslip:
        payslip = await self.get_payslip(payslip_id)
        await self._authorize(payslip, actor, "cancel")
        if payslip.status == PayslipStatus.DISTRIBUTED.value:
            raise PayslipStateError(
                payslip_id, payslip.status, "Distributed payslips cannot be cancelled"
            )
        payslip.status = PayslipStatus.CANCELLED.value
        await self.session.flush()
        logger.info("Payslip %s cancelled", payslip.payslip_number)
        return payslip

    async def delete(self, payslip_id: UUID, *, actor: Actor) -> None:
        """Delete a payslip and its lines. Distributed payslips are kept."""
        payslip = await self.get_payslip(payslip_id)
        await self._authorize(payslip, actor, "delete")
        if payslip.status == PayslipStatus.DISTRIBUTED.value:
            raise PayslipStateError(
                payslip_id, payslip.status, "Distributed payslips cannot be deleted"
            )
        await self.session.execute(
            delete(PayslipTransaction).where(PayslipTransaction.payslip_id == payslip_id)
        )
        await self.session.delete(payslip)
        await self.session.flush()
        logger.info("Payslip %s deleted", payslip.payslip_number)

    async def _get_editable(self, payslip_id: UUID, verb: str, actor: Actor) -> Payslip:
        payslip = await self.get_payslip(payslip_id)
        await self._authorize(payslip, actor, "edit_lines")
        if not payslip.is_editable:
            raise PayslipStateError(
                payslip_id, payslip.status, f"Cannot {verb} a {payslip.status} payslip"
            )
        return payslip

    async def _authorize(self, payslip: Payslip, actor: Actor, action: str) -> None:
        employee = await self.session.get(Employee, payslip.employee_id)
        if employee is None:
            raise PayslipNotFoundError(payslip.payslip_id)
        authorize_center(actor, employee.center_id, f"payslip.{action}")
