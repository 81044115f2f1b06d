"""Exchange rate and currency split maintenance."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from period_engine.calculators.rate_resolver import ExchangeRateResolver, configured_base_currency
from period_engine.exceptions import (
    CostCenterNotFoundError,
    CurrencySplitError,
    InvalidExchangeRateError,
)
from period_engine.models import CostCenter, CurrencySplit, ExchangeRate
from period_engine.models.currency import split_is_balanced
from period_engine.models.enums import Currency

logger = logging.getLogger(__name__)


class CurrencyService:
    """Records exchange rates and per-center currency splits."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def record_rate(
        self,
        from_currency: Currency | str,
        to_currency: Currency | str,
        rate: Decimal,
        effective_date: date | None = None,
    ) -> ExchangeRate:
        """Record a new active rate. Older rows stay for history."""
        try:
            source = Currency(from_currency)
            target = Currency(to_currency)
        except ValueError as exc:
            raise InvalidExchangeRateError(str(exc)) from exc
        if source == target:
            raise InvalidExchangeRateError(
                "Exchange rate currencies must differ", currency=source.value
            )
        rate = Decimal(rate)
        if rate <= 0:
            raise InvalidExchangeRateError("Exchange rate must be positive", rate=str(rate))

        row = ExchangeRate(
            from_currency=source.value,
            to_currency=target.value,
            rate=rate,
            effective_date=effective_date or date.today(),
            is_active=True,
        )
        self.session.add(row)
        await self.session.flush()
        logger.info(
            "Recorded %s->%s rate %s effective %s",
            source.value,
            target.value,
            rate,
            row.effective_date,
        )
        return row

    async def list_rates(
        self,
        from_currency: Currency | str | None = None,
        to_currency: Currency | str | None = None,
    ) -> list[ExchangeRate]:
        stmt = select(ExchangeRate).order_by(ExchangeRate.effective_date.desc())
        if from_currency is not None:
            stmt = stmt.where(ExchangeRate.from_currency == Currency(from_currency).value)
        if to_currency is not None:
            stmt = stmt.where(ExchangeRate.to_currency == Currency(to_currency).value)
        result = await self.session.execute(stmt)
        return list(result.scalars())

    async def deactivate_rate(self, rate_id: UUID) -> None:
        await self.session.execute(
            update(ExchangeRate)
            .where(ExchangeRate.rate_id == rate_id)
            .values(is_active=False)
            .execution_options(synchronize_session="evaluate")
        )

    async def convert(
        self,
        amount: Decimal,
        from_currency: Currency | str,
        to_currency: Currency | str,
        as_of: date | None = None,
    ) -> Decimal:
        resolver = ExchangeRateResolver(self.session, as_of=as_of)
        return await resolver.convert(
            Decimal(amount), Currency(from_currency).value, Currency(to_currency).value
        )

    async def current_rates(self, as_of: date | None = None) -> dict[str, Decimal | None]:
        """Rate from the base currency to every other supported currency.

        A currency with neither a direct nor an inverse rate maps to None.
        """
        base = configured_base_currency()
        resolver = ExchangeRateResolver(self.session, as_of=as_of)
        rates: dict[str, Decimal | None] = {}
        for currency in Currency:
            if currency == base:
                continue
            rates[currency.value] = await resolver.get_rate(base.value, currency.value)
        return rates

    async def save_split(
        self,
        center_id: UUID,
        zwl_percentage: Decimal,
        usd_percentage: Decimal,
        effective_date: date | None = None,
        notes: str | None = None,
    ) -> CurrencySplit:
        """Record a split for a center. Rejected unless it totals 100%."""
        zwl = Decimal(zwl_percentage)
        usd = Decimal(usd_percentage)
        if not (0 <= zwl <= 100 and 0 <= usd <= 100) or not split_is_balanced(zwl, usd):
            raise CurrencySplitError(zwl, usd)
        if await self.session.get(CostCenter, center_id) is None:
            raise CostCenterNotFoundError(center_id)

        split = CurrencySplit(
            center_id=center_id,
            zwl_percentage=zwl,
            usd_percentage=usd,
            effective_date=effective_date or date.today(),
            is_active=True,
            notes=notes,
        )
        self.session.add(split)
        await self.session.flush()
        logger.info("Recorded split ZWL %s%% / USD %s%% for center %s", zwl, usd, center_id)
        return split

    async def current_split(
        self,
        center_id: UUID,
        as_of: date | None = None,
    ) -> CurrencySplit | None:
        """Most recent active split effective on or before ``as_of``."""
        as_of = as_of or date.today()
        result = await self.session.execute(
            select(CurrencySplit)
            .where(
                CurrencySplit.center_id == center_id,
                CurrencySplit.is_active.is_(True),
                CurrencySplit.effective_date <= as_of,
            )
            .order_by(CurrencySplit.effective_date.desc(), CurrencySplit.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()
