"""Employee roster lookups."""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from period_engine.models import Employee
from period_engine.models.enums import EmploymentStatus


class EmployeeRoster(Protocol):
    async def active_employees(self, center_id: UUID) -> list[Employee]: ...


class SqlEmployeeRoster:
    """Reads the active employees of a center from the employee table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def active_employees(self, center_id: UUID) -> list[Employee]:
        result = await self.session.execute(
            select(Employee)
            .where(
                Employee.center_id == center_id,
                Employee.employment_status == EmploymentStatus.ACTIVE.value,
            )
            .order_by(Employee.employee_code)
        )
        return list(result.scalars())
