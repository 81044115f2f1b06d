"""Exchange rate and currency split endpoints."""

from datetime import date
from decimal import Decimal
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from period_engine.api.dependencies import CurrentActor, DbSession
from period_engine.api.schemas import (
    ConversionResponse,
    CurrentRatesResponse,
    CurrencySplitCreate,
    CurrencySplitResponse,
    ErrorResponse,
    ExchangeRateCreate,
    ExchangeRateResponse,
)
from period_engine.calculators.rate_resolver import configured_base_currency
from period_engine.models.enums import Currency
from period_engine.services.authorization import authorize_admin
from period_engine.services.currency_service import CurrencyService

router = APIRouter(tags=["currency"])


@router.get("/exchange-rates", response_model=list[ExchangeRateResponse])
async def list_rates(
    db: DbSession,
    from_currency: Currency | None = None,
    to_currency: Currency | None = None,
) -> list[ExchangeRateResponse]:
    rates = await CurrencyService(db).list_rates(from_currency, to_currency)
    return [ExchangeRateResponse.model_validate(r) for r in rates]


@router.post(
    "/exchange-rates",
    response_model=ExchangeRateResponse,
    status_code=status.HTTP_201_CREATED,
    responses={403: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def record_rate(
    db: DbSession,
    actor: CurrentActor,
    payload: ExchangeRateCreate,
) -> ExchangeRateResponse:
    authorize_admin(actor, "exchange_rate.record")
    row = await CurrencyService(db).record_rate(
        payload.from_currency, payload.to_currency, payload.rate, payload.effective_date
    )
    await db.commit()
    return ExchangeRateResponse.model_validate(row)


@router.get(
    "/exchange-rates/convert",
    response_model=ConversionResponse,
    responses={422: {"model": ErrorResponse}},
)
async def convert(
    db: DbSession,
    amount: Annotated[Decimal, Query(ge=0)],
    from_currency: Currency,
    to_currency: Currency,
    as_of: date | None = None,
) -> ConversionResponse:
    converted = await CurrencyService(db).convert(amount, from_currency, to_currency, as_of)
    return ConversionResponse(
        amount=amount,
        from_currency=from_currency.value,
        to_currency=to_currency.value,
        converted=converted,
    )


@router.get(
    "/exchange-rates/current",
    response_model=CurrentRatesResponse,
    responses={422: {"model": ErrorResponse}},
)
async def current_rates(db: DbSession, as_of: date | None = None) -> CurrentRatesResponse:
    as_of = as_of or date.today()
    rates = await CurrencyService(db).current_rates(as_of)
    return CurrentRatesResponse(
        base_currency=configured_base_currency().value,
        as_of=as_of,
        rates=rates,
    )


@router.post(
    "/currency-splits",
    response_model=CurrencySplitResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)
async def save_split(
    db: DbSession,
    actor: CurrentActor,
    payload: CurrencySplitCreate,
) -> CurrencySplitResponse:
    authorize_admin(actor, "currency_split.save")
    split = await CurrencyService(db).save_split(
        payload.center_id,
        payload.zwl_percentage,
        payload.usd_percentage,
        payload.effective_date,
        payload.notes,
    )
    await db.commit()
    return CurrencySplitResponse.model_validate(split)


@router.get(
    "/currency-splits/{center_id}/current",
    response_model=CurrencySplitResponse,
    responses={404: {"model": ErrorResponse}},
)
async def current_split(db: DbSession, center_id: UUID) -> CurrencySplitResponse:
    split = await CurrencyService(db).current_split(center_id)
    if split is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No active currency split for this center",
        )
    return CurrencySplitResponse.model_validate(split)
