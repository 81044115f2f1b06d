"""Pytest fixtures for period engine tests."""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import AsyncGenerator
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from period_engine.calculators import rate_resolver
from period_engine.config import get_settings
from period_engine.models import (
    AccountingPeriod,
    Base,
    CostCenter,
    Employee,
    ExchangeRate,
    Payroll,
    TaxBand,
)
from period_engine.models.enums import EmploymentStatus
from period_engine.services.authorization import Actor

# In-memory SQLite shared across sessions of one test
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def engine():
    """Create a fresh database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


# ============================================================================
# Organization
# ============================================================================


@pytest_asyncio.fixture
async def payroll(session: AsyncSession) -> Payroll:
    payroll = Payroll(payroll_id=uuid4(), payroll_name="Main Payroll", is_active=True)
    session.add(payroll)
    await session.commit()
    return payroll


@pytest_asyncio.fixture
async def center(session: AsyncSession) -> CostCenter:
    center = CostCenter(
        center_id=uuid4(), center_code="HQ", center_name="Head Office", is_active=True
    )
    session.add(center)
    await session.commit()
    return center


@pytest_asyncio.fixture
async def other_center(session: AsyncSession) -> CostCenter:
    """An active center with no employees."""
    center = CostCenter(
        center_id=uuid4(), center_code="MTR", center_name="Mutare Branch", is_active=True
    )
    session.add(center)
    await session.commit()
    return center


@pytest_asyncio.fixture
async def period(session: AsyncSession, payroll: Payroll) -> AccountingPeriod:
    """January 2025."""
    period = AccountingPeriod(
        period_id=uuid4(),
        payroll_id=payroll.payroll_id,
        month_name="January",
        period_year=2025,
        period_start=date(2025, 1, 1),
        period_end=date(2025, 1, 31),
    )
    session.add(period)
    await session.commit()
    return period


@pytest_asyncio.fixture
async def employees(session: AsyncSession, center: CostCenter) -> list[Employee]:
    """Two active USD earners and one suspended employee."""
    rows = [
        Employee(
            employee_id=uuid4(),
            employee_code="E001",
            first_name="Tendai",
            last_name="Moyo",
            center_id=center.center_id,
            employment_status=EmploymentStatus.ACTIVE.value,
            basic_salary_usd=Decimal("5000.00"),
            basic_salary_zwl=Decimal("0"),
        ),
        Employee(
            employee_id=uuid4(),
            employee_code="E002",
            first_name="Rudo",
            last_name="Ncube",
            center_id=center.center_id,
            employment_status=EmploymentStatus.ACTIVE.value,
            basic_salary_usd=Decimal("2000.00"),
            basic_salary_zwl=Decimal("0"),
        ),
        Employee(
            employee_id=uuid4(),
            employee_code="E003",
            first_name="Farai",
            last_name="Dube",
            center_id=center.center_id,
            employment_status=EmploymentStatus.SUSPENDED.value,
            basic_salary_usd=Decimal("3000.00"),
            basic_salary_zwl=Decimal("0"),
        ),
    ]
    session.add_all(rows)
    await session.commit()
    return rows


# ============================================================================
# Tax and currency configuration
# ============================================================================


@pytest_asyncio.fixture
async def monthly_usd_bands(session: AsyncSession) -> list[TaxBand]:
    """20% up to 3000, 25% from 3000 to 10000."""
    bands = [
        TaxBand(
            currency="USD",
            period="monthly",
            min_salary=Decimal("0"),
            max_salary=Decimal("3000"),
            tax_rate=Decimal("0.20"),
            tax_amount=Decimal("0"),
        ),
        TaxBand(
            currency="USD",
            period="monthly",
            min_salary=Decimal("3000"),
            max_salary=Decimal("10000"),
            tax_rate=Decimal("0.25"),
            tax_amount=Decimal("0"),
        ),
    ]
    session.add_all(bands)
    await session.commit()
    return bands


@pytest_asyncio.fixture
async def monthly_zwl_bands(session: AsyncSession) -> list[TaxBand]:
    """Flat 10% on all ZWL income."""
    band = TaxBand(
        currency="ZWL",
        period="monthly",
        min_salary=Decimal("0"),
        max_salary=None,
        tax_rate=Decimal("0.10"),
        tax_amount=Decimal("0"),
    )
    session.add(band)
    await session.commit()
    return [band]


@pytest_asyncio.fixture
async def usd_zwl_rate(session: AsyncSession) -> ExchangeRate:
    """1 USD = 25 ZWL."""
    rate = ExchangeRate(
        from_currency="USD",
        to_currency="ZWL",
        rate=Decimal("25"),
        effective_date=date(2024, 1, 1),
        is_active=True,
    )
    session.add(rate)
    await session.commit()
    return rate


# ============================================================================
# Actors
# ============================================================================


@pytest.fixture
def admin() -> Actor:
    return Actor(user_id=uuid4(), role="admin")


@pytest.fixture
def clerk(center: CostCenter) -> Actor:
    """A non-admin user assigned to the ``center`` fixture."""
    return Actor(user_id=uuid4(), role="payroll_clerk", center_id=center.center_id)


@pytest.fixture
def set_base_currency(monkeypatch):
    """Override BASE_CURRENCY for the duration of a test."""

    def _set(code: str) -> None:
        settings = replace(get_settings(), base_currency=code)
        monkeypatch.setattr(rate_resolver, "get_settings", lambda: settings)

    return _set
