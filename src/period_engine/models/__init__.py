"""ORM models."""

from period_engine.models.audit import AuditEvent
from period_engine.models.base import Base, TimestampMixin
from period_engine.models.currency import CurrencySplit, ExchangeRate
from period_engine.models.enums import (
    BandTable,
    Currency,
    CurrencyMode,
    EmploymentStatus,
    PayslipStatus,
    PeriodTiming,
    TaxPeriod,
    TransactionType,
)
from period_engine.models.organization import CostCenter, Employee, Payroll
from period_engine.models.payslip import Payslip, PayslipTransaction
from period_engine.models.period import MONTH_NAMES, AccountingPeriod, CenterPeriodStatus
from period_engine.models.tax import TaxBand, TaxCredit
from period_engine.models.transactions import (
    CustomTransaction,
    DefaultTransaction,
    TransactionCode,
)

__all__ = [
    "AccountingPeriod",
    "AuditEvent",
    "BandTable",
    "Base",
    "CenterPeriodStatus",
    "CostCenter",
    "Currency",
    "CurrencyMode",
    "CurrencySplit",
    "CustomTransaction",
    "DefaultTransaction",
    "Employee",
    "EmploymentStatus",
    "ExchangeRate",
    "MONTH_NAMES",
    "Payroll",
    "Payslip",
    "PayslipStatus",
    "PayslipTransaction",
    "PeriodTiming",
    "TaxBand",
    "TaxCredit",
    "TaxPeriod",
    "TimestampMixin",
    "TransactionCode",
]
