"""Exchange rate resolution with inverse fallback."""

from __future__ import annotations

import logging
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from period_engine.calculators.types import CENT
from period_engine.config import get_settings
from period_engine.exceptions import BaseCurrencyNotConfiguredError, ExchangeRateNotFoundError
from period_engine.models import ExchangeRate
from period_engine.models.enums import Currency

logger = logging.getLogger(__name__)

ONE = Decimal("1")


class ExchangeRateResolver:
    """Resolves the rate between two currencies as of a date.

    Rate selection:
    1. Same currency is always 1
    2. Most recent active direct row (from -> to) effective on or before as_of
    3. Otherwise 1 / most recent active inverse row (to -> from)
    4. Otherwise no rate

    Lookups are cached per instance; create one resolver per unit of work.
    """

    def __init__(self, session: AsyncSession, as_of: date | None = None):
        self.session = session
        self.as_of = as_of or date.today()
        self._cache: dict[tuple[str, str], Decimal | None] = {}

    async def get_current_rate(self, from_currency: str, to_currency: str) -> Decimal | None:
        """Most recent active direct rate, without inverse fallback."""
        if from_currency == to_currency:
            return ONE

        stmt = (
            select(ExchangeRate.rate)
            .where(
                ExchangeRate.from_currency == from_currency,
                ExchangeRate.to_currency == to_currency,
                ExchangeRate.is_active.is_(True),
                ExchangeRate.effective_date <= self.as_of,
            )
            .order_by(ExchangeRate.effective_date.desc(), ExchangeRate.created_at.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_rate(self, from_currency: str, to_currency: str) -> Decimal | None:
        """Direct rate, else the reciprocal of the inverse rate, else None."""
        key = (from_currency, to_currency)
        if key in self._cache:
            return self._cache[key]

        rate = await self.get_current_rate(from_currency, to_currency)
        if rate is None:
            inverse = await self.get_current_rate(to_currency, from_currency)
            if inverse is not None:
                rate = ONE / inverse
                logger.debug(
                    "Using inverse rate for %s->%s (1/%s)", from_currency, to_currency, inverse
                )

        self._cache[key] = rate
        return rate

    async def require_rate(self, from_currency: str, to_currency: str) -> Decimal:
        rate = await self.get_rate(from_currency, to_currency)
        if rate is None:
            raise ExchangeRateNotFoundError(from_currency, to_currency)
        return rate

    async def convert(self, amount: Decimal, from_currency: str, to_currency: str) -> Decimal:
        """Convert an amount, rounded to cents.

        Raises:
            ExchangeRateNotFoundError: If neither a direct nor an inverse rate exists
        """
        if from_currency == to_currency:
            return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)
        rate = await self.require_rate(from_currency, to_currency)
        return (Decimal(amount) * rate).quantize(CENT, rounding=ROUND_HALF_UP)


def configured_base_currency() -> Currency:
    """The BASE_CURRENCY setting as a supported currency.

    Raises:
        BaseCurrencyNotConfiguredError: If the setting names no supported currency
    """
    code = (get_settings().base_currency or "").strip().upper()
    try:
        return Currency(code)
    except ValueError:
        raise BaseCurrencyNotConfiguredError(
            f"Base currency '{code}' is not a supported currency", base_currency=code
        ) from None
