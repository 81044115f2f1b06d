"""Period engine services."""

from period_engine.services.audit import AuditRecorder
from period_engine.services.authorization import Actor, authorize_center
from period_engine.services.currency_service import CurrencyService
from period_engine.services.payroll_processor import PayrollProcessor
from period_engine.services.payslip_service import PayslipService
from period_engine.services.period_service import PeriodService
from period_engine.services.roster import EmployeeRoster, SqlEmployeeRoster
from period_engine.services.state_machine import (
    CenterPeriodState,
    PeriodAction,
    PeriodStateMachine,
    derive_state,
)
from period_engine.services.tax_band_service import TaxBandService

__all__ = [
    "Actor",
    "AuditRecorder",
    "CenterPeriodState",
    "CurrencyService",
    "EmployeeRoster",
    "PayrollProcessor",
    "PayslipService",
    "PeriodAction",
    "PeriodService",
    "PeriodStateMachine",
    "SqlEmployeeRoster",
    "TaxBandService",
    "authorize_center",
    "derive_state",
]
