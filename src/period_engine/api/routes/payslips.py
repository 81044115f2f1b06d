"""Payslip lifecycle endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, status

from period_engine.api.dependencies import CurrentActor, DbSession
from period_engine.api.schemas import ErrorResponse, PayslipLineResponse, PayslipResponse
from period_engine.services.payslip_service import PayslipService

router = APIRouter(prefix="/payslips", tags=["payslips"])

PayslipId = Annotated[UUID, Path()]

_errors = {
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


@router.get("/{payslip_id}", response_model=PayslipResponse, responses=_errors)
async def get_payslip(db: DbSession, payslip_id: PayslipId) -> PayslipResponse:
    payslip = await PayslipService(db).get_payslip(payslip_id)
    return PayslipResponse.model_validate(payslip)


@router.get(
    "/{payslip_id}/lines", response_model=list[PayslipLineResponse], responses=_errors
)
async def get_payslip_lines(db: DbSession, payslip_id: PayslipId) -> list[PayslipLineResponse]:
    service = PayslipService(db)
    await service.get_payslip(payslip_id)
    lines = await service.get_transactions(payslip_id)
    return [PayslipLineResponse.model_validate(line) for line in lines]


@router.post("/{payslip_id}/finalize", response_model=PayslipResponse, responses=_errors)
async def finalize_payslip(
    db: DbSession, actor: CurrentActor, payslip_id: PayslipId
) -> PayslipResponse:
    payslip = await PayslipService(db).finalize(payslip_id, actor=actor)
    await db.commit()
    return PayslipResponse.model_validate(payslip)


@router.post("/{payslip_id}/distribute", response_model=PayslipResponse, responses=_errors)
async def distribute_payslip(
    db: DbSession, actor: CurrentActor, payslip_id: PayslipId
) -> PayslipResponse:
    payslip = await PayslipService(db).mark_distributed(payslip_id, actor=actor)
    await db.commit()
    return PayslipResponse.model_validate(payslip)


@router.post("/{payslip_id}/cancel", response_model=PayslipResponse, responses=_errors)
async def cancel_payslip(
    db: DbSession, actor: CurrentActor, payslip_id: PayslipId
) -> PayslipResponse:
    payslip = await PayslipService(db).cancel(payslip_id, actor=actor)
    await db.commit()
    return PayslipResponse.model_validate(payslip)


@router.delete(
    "/{payslip_id}", status_code=status.HTTP_204_NO_CONTENT, responses=_errors
)
async def delete_payslip(db: DbSession, actor: CurrentActor, payslip_id: PayslipId) -> None:
    await PayslipService(db).delete(payslip_id, actor=actor)
    await db.commit()
