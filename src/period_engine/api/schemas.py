"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from period_engine.models.enums import Currency, CurrencyMode, PeriodTiming
from period_engine.services.state_machine import CenterPeriodState


class ErrorResponse(BaseModel):
    """Error body for every typed engine failure."""

    detail: str
    code: str
    details: dict[str, Any] = Field(default_factory=dict)


# ============================================================================
# Period schemas
# ============================================================================


class PeriodResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    period_id: UUID
    payroll_id: UUID
    month_name: str
    period_year: int
    period_start: date
    period_end: date
    display_name: str


class GeneratePeriodsRequest(BaseModel):
    payroll_id: UUID
    year: int = Field(ge=2020, le=2100)


class GeneratePeriodsResponse(BaseModel):
    created: int
    message: str


class CenterStatusResponse(BaseModel):
    """Status row of one (period, center) pair."""

    model_config = ConfigDict(from_attributes=True)

    status_id: UUID
    period_id: UUID
    center_id: UUID
    period_currency: str
    period_run_date: datetime | None = None
    pay_run_date: datetime | None = None
    is_closed_confirmed: bool
    state: CenterPeriodState


class CenterStatusView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    center_id: UUID
    center_code: str
    center_name: str
    state: CenterPeriodState
    period_currency: str
    period_run_date: datetime | None = None
    pay_run_date: datetime | None = None
    is_closed_confirmed: bool
    can_run: bool
    can_refresh: bool
    can_close: bool
    is_completed: bool


class PeriodSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    period_id: UUID
    display_name: str
    timing: PeriodTiming
    total_payslips: int
    total_gross_usd: Decimal
    total_gross_zwl: Decimal
    total_deductions_usd: Decimal
    total_deductions_zwl: Decimal
    total_net_usd: Decimal
    total_net_zwl: Decimal
    centers_completed: int
    centers_total: int
    completion_percentage: Decimal
    centers: list[CenterStatusView]


class RunRequest(BaseModel):
    """Body for run/refresh; omitted mode keeps the pair's stored mode."""

    currency: CurrencyMode | None = None


class CurrencyUpdateRequest(BaseModel):
    currency: CurrencyMode


# ============================================================================
# Payslip schemas
# ============================================================================


class PayslipResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    payslip_id: UUID
    employee_id: UUID
    period_id: UUID
    payslip_number: str
    status: str
    currency_mode: str
    payment_date: date
    gross_salary_usd: Decimal
    total_deductions_usd: Decimal
    net_salary_usd: Decimal
    gross_salary_zwl: Decimal
    total_deductions_zwl: Decimal
    net_salary_zwl: Decimal
    exchange_rate: Decimal
    ytd_gross_usd: Decimal
    ytd_gross_zwl: Decimal
    ytd_paye_usd: Decimal
    ytd_paye_zwl: Decimal
    finalized_at: datetime | None = None
    distributed_at: datetime | None = None


class PayslipLineResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    transaction_id: UUID
    description: str
    transaction_type: str
    display_order: int
    amount_usd: Decimal
    amount_zwl: Decimal
    is_taxable: bool
    calculation_metadata: dict[str, Any] | None = None


# ============================================================================
# Tax band schemas
# ============================================================================


class TaxBandCreate(BaseModel):
    min_salary: Decimal = Field(ge=0)
    max_salary: Decimal | None = None
    tax_rate: Decimal = Field(ge=0, le=1, description="Fraction, e.g. 0.25 for 25%")
    tax_amount: Decimal = Field(default=Decimal("0"), ge=0)


class TaxBandUpdate(BaseModel):
    min_salary: Decimal | None = Field(default=None, ge=0)
    max_salary: Decimal | None = None
    tax_rate: Decimal | None = Field(default=None, ge=0, le=1)
    tax_amount: Decimal | None = Field(default=None, ge=0)


class TaxBandResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    band_id: UUID
    currency: str
    period: str
    min_salary: Decimal
    max_salary: Decimal | None = None
    tax_rate: Decimal
    tax_amount: Decimal


class TaxBandTableResponse(BaseModel):
    table: str
    label: str
    bands: list[TaxBandResponse]


# ============================================================================
# Currency schemas
# ============================================================================


class ExchangeRateCreate(BaseModel):
    from_currency: Currency
    to_currency: Currency
    rate: Decimal = Field(gt=0)
    effective_date: date | None = None


class ExchangeRateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    rate_id: UUID
    from_currency: str
    to_currency: str
    rate: Decimal
    effective_date: date
    is_active: bool


class ConversionResponse(BaseModel):
    amount: Decimal
    from_currency: str
    to_currency: str
    converted: Decimal


class CurrentRatesResponse(BaseModel):
    """Rates from the configured base currency; None where no rate is on file."""

    base_currency: str
    as_of: date
    rates: dict[str, Decimal | None]


class CurrencySplitCreate(BaseModel):
    center_id: UUID
    zwl_percentage: Decimal = Field(ge=0, le=100)
    usd_percentage: Decimal = Field(ge=0, le=100)
    effective_date: date | None = None
    notes: str | None = None


class CurrencySplitResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    split_id: UUID
    center_id: UUID
    zwl_percentage: Decimal
    usd_percentage: Decimal
    effective_date: date
    is_active: bool
    notes: str | None = None
