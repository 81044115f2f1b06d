"""Accounting period and center processing endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from period_engine.api.dependencies import CurrentActor, DbSession
from period_engine.api.schemas import (
    CenterStatusResponse,
    CenterStatusView,
    CurrencyUpdateRequest,
    ErrorResponse,
    GeneratePeriodsRequest,
    GeneratePeriodsResponse,
    PayslipResponse,
    PeriodResponse,
    PeriodSummaryResponse,
    RunRequest,
)
from period_engine.models import CenterPeriodStatus
from period_engine.services.authorization import authorize_admin
from period_engine.services.payroll_processor import PayrollProcessor
from period_engine.services.payslip_service import PayslipService
from period_engine.services.period_service import PeriodService
from period_engine.services.state_machine import derive_state

router = APIRouter(prefix="/periods", tags=["periods"])

PeriodId = Annotated[UUID, Path()]
CenterId = Annotated[UUID, Path()]

_transition_errors = {
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
}


def _status_response(row: CenterPeriodStatus) -> CenterStatusResponse:
    return CenterStatusResponse(
        status_id=row.status_id,
        period_id=row.period_id,
        center_id=row.center_id,
        period_currency=row.period_currency,
        period_run_date=row.period_run_date,
        pay_run_date=row.pay_run_date,
        is_closed_confirmed=row.is_closed_confirmed,
        state=derive_state(row),
    )


# ============================================================================
# Period administration
# ============================================================================


@router.get("", response_model=list[PeriodResponse])
async def list_periods(
    db: DbSession,
    payroll_id: UUID | None = None,
    year: Annotated[int | None, Query(ge=2020, le=2100)] = None,
) -> list[PeriodResponse]:
    """List periods newest first."""
    periods = await PeriodService(db).list_periods(payroll_id=payroll_id, year=year)
    return [PeriodResponse.model_validate(p) for p in periods]


@router.post(
    "/generate",
    response_model=GeneratePeriodsResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)
async def generate_periods(
    db: DbSession,
    actor: CurrentActor,
    payload: GeneratePeriodsRequest,
) -> GeneratePeriodsResponse:
    """Create the missing monthly periods of a year for a payroll."""
    authorize_admin(actor, "period.generate")
    created = await PeriodService(db).generate_periods_for_year(payload.payroll_id, payload.year)
    await db.commit()
    return GeneratePeriodsResponse(
        created=created,
        message=f"Generated {created} periods for {payload.year}",
    )


@router.get(
    "/{period_id}",
    response_model=PeriodResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_period(db: DbSession, period_id: PeriodId) -> PeriodResponse:
    period = await PeriodService(db).get_period(period_id)
    return PeriodResponse.model_validate(period)


@router.get(
    "/{period_id}/summary",
    response_model=PeriodSummaryResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_period_summary(db: DbSession, period_id: PeriodId) -> PeriodSummaryResponse:
    """Dual-currency totals and center completion for a period."""
    summary = await PeriodService(db).period_summary(period_id)
    return PeriodSummaryResponse.model_validate(summary)


@router.get(
    "/{period_id}/centers",
    response_model=list[CenterStatusView],
    responses={404: {"model": ErrorResponse}},
)
async def list_center_statuses(db: DbSession, period_id: PeriodId) -> list[CenterStatusView]:
    views = await PeriodService(db).center_statuses(period_id)
    return [CenterStatusView.model_validate(v) for v in views]


@router.put(
    "/{period_id}/centers/{center_id}/currency",
    response_model=CenterStatusResponse,
    responses=_transition_errors,
)
async def update_currency(
    db: DbSession,
    actor: CurrentActor,
    period_id: PeriodId,
    center_id: CenterId,
    payload: CurrencyUpdateRequest,
) -> CenterStatusResponse:
    """Change the currency mode of a pending center."""
    row = await PeriodService(db).update_currency(
        period_id, center_id, payload.currency, actor=actor
    )
    await db.commit()
    return _status_response(row)


@router.get(
    "/{period_id}/payslips",
    response_model=list[PayslipResponse],
    responses={404: {"model": ErrorResponse}},
)
async def list_period_payslips(
    db: DbSession,
    period_id: PeriodId,
    center_id: UUID | None = None,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
) -> list[PayslipResponse]:
    await PeriodService(db).get_period(period_id)
    payslips = await PayslipService(db).list_for_period(
        period_id, center_id=center_id, status=status_filter
    )
    return [PayslipResponse.model_validate(p) for p in payslips]


# ============================================================================
# Center processing
# ============================================================================


@router.post(
    "/{period_id}/centers/{center_id}/run",
    response_model=CenterStatusResponse,
    responses=_transition_errors,
)
async def run_period(
    db: DbSession,
    actor: CurrentActor,
    period_id: PeriodId,
    center_id: CenterId,
    payload: RunRequest | None = None,
) -> CenterStatusResponse:
    """Run payroll for a center: create draft payslips and mark processed."""
    mode = payload.currency if payload else None
    row = await PayrollProcessor(db).run_period(period_id, center_id, mode, actor=actor)
    return _status_response(row)


@router.post(
    "/{period_id}/centers/{center_id}/refresh",
    response_model=CenterStatusResponse,
    responses=_transition_errors,
)
async def refresh_period(
    db: DbSession,
    actor: CurrentActor,
    period_id: PeriodId,
    center_id: CenterId,
    payload: RunRequest | None = None,
) -> CenterStatusResponse:
    """Recompute the center's draft payslips."""
    mode = payload.currency if payload else None
    row = await PayrollProcessor(db).refresh_period(period_id, center_id, mode, actor=actor)
    return _status_response(row)


@router.post(
    "/{period_id}/centers/{center_id}/close",
    response_model=CenterStatusResponse,
    responses=_transition_errors,
)
async def close_period(
    db: DbSession,
    actor: CurrentActor,
    period_id: PeriodId,
    center_id: CenterId,
) -> CenterStatusResponse:
    """Finalize draft payslips and close the center."""
    row = await PayrollProcessor(db).close_period(period_id, center_id, actor=actor)
    return _status_response(row)


@router.post(
    "/{period_id}/centers/{center_id}/reopen",
    response_model=CenterStatusResponse,
    responses=_transition_errors,
)
async def reopen_period(
    db: DbSession,
    actor: CurrentActor,
    period_id: PeriodId,
    center_id: CenterId,
) -> CenterStatusResponse:
    """Reopen a closed center (also reachable as "unconfirm")."""
    row = await PayrollProcessor(db).reopen_period(period_id, center_id, actor=actor)
    return _status_response(row)


@router.post(
    "/{period_id}/centers/{center_id}/unconfirm",
    response_model=CenterStatusResponse,
    responses=_transition_errors,
    include_in_schema=False,
)
async def unconfirm_period(
    db: DbSession,
    actor: CurrentActor,
    period_id: PeriodId,
    center_id: CenterId,
) -> CenterStatusResponse:
    return await reopen_period(db, actor, period_id, center_id)


@router.post(
    "/{period_id}/centers/{center_id}/reset",
    response_model=CenterStatusResponse,
    responses=_transition_errors,
)
async def reset_period(
    db: DbSession,
    actor: CurrentActor,
    period_id: PeriodId,
    center_id: CenterId,
) -> CenterStatusResponse:
    """Roll a processed center back to pending, deleting its draft payslips."""
    row = await PayrollProcessor(db).reset_period(period_id, center_id, actor=actor)
    return _status_response(row)
