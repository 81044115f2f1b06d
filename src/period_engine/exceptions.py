"""Typed exception hierarchy for the period engine.

Every error carries a stable ``code`` (machine-readable, API-safe) and a
human-readable message. Callers catch by type, never by message text.

    PayrollEngineError
    |
    +-- PreconditionError          wrong state for the requested operation
    |   +-- InvalidTransitionError
    |   +-- ConcurrentTransitionError
    |   +-- CostCenterInactiveError
    |   +-- PayslipStateError
    |   +-- PayslipExistsError
    |   +-- InvalidEmploymentTransition
    |   +-- PermissionDeniedError
    |
    +-- ConfigurationError         data must be fixed by an operator
    |   +-- NoEligibleEmployeesError
    |   +-- ExchangeRateNotFoundError
    |   +-- BaseCurrencyNotConfiguredError
    |
    +-- ValidationError            rejected before anything is persisted
    |   +-- TaxBandOverlapError
    |   +-- InvalidTaxBandError
    |   +-- CurrencySplitError
    |   +-- InvalidExchangeRateError
    |   +-- InvalidPeriodError
    |
    +-- NotFoundError
        +-- PayrollNotFoundError
        +-- PeriodNotFoundError
        +-- CostCenterNotFoundError
        +-- PayslipNotFoundError
        +-- TaxBandNotFoundError
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any
from uuid import UUID


class PayrollEngineError(Exception):
    """Base exception for all period engine errors."""

    code: str = "PAYROLL_ENGINE_ERROR"

    def __init__(self, message: str, **details: Any):
        self.message = message
        self.details = details
        super().__init__(message)


# ---------------------------------------------------------------------------
# Precondition violations
# ---------------------------------------------------------------------------


class PreconditionError(PayrollEngineError):
    code = "PRECONDITION_FAILED"


class InvalidTransitionError(PreconditionError):
    """Raised when an action is not allowed from the current state."""

    code = "INVALID_TRANSITION"

    def __init__(self, from_state: str, action: str, reason: str | None = None):
        self.from_state = from_state
        self.action = action
        self.reason = reason
        msg = reason or f"Cannot {action} from '{from_state}' state"
        super().__init__(msg, from_state=from_state, action=action)


class ConcurrentTransitionError(PreconditionError):
    """Raised when the status row changed between check and update."""

    code = "CONCURRENT_TRANSITION"

    def __init__(self, period_id: UUID, center_id: UUID, action: str):
        self.period_id = period_id
        self.center_id = center_id
        self.action = action
        super().__init__(
            f"Status for period {period_id}, center {center_id} changed "
            f"during {action}; no changes were applied",
            period_id=str(period_id),
            center_id=str(center_id),
            action=action,
        )


class CostCenterInactiveError(PreconditionError):
    code = "COST_CENTER_INACTIVE"

    def __init__(self, center_id: UUID):
        self.center_id = center_id
        super().__init__("Cost center is not active", center_id=str(center_id))


class PayslipStateError(PreconditionError):
    """Raised when a payslip lifecycle operation is blocked by its status."""

    code = "PAYSLIP_STATE"

    def __init__(self, payslip_id: UUID, status: str, message: str):
        self.payslip_id = payslip_id
        self.status = status
        super().__init__(message, payslip_id=str(payslip_id), status=status)


class PayslipExistsError(PreconditionError):
    """Raised when an employee on the roster already has a payslip for the period."""

    code = "PAYSLIP_EXISTS"

    def __init__(self, employee_code: str, period_id: UUID):
        self.employee_code = employee_code
        self.period_id = period_id
        super().__init__(
            f"Employee {employee_code} already has a payslip for this period",
            employee_code=employee_code,
            period_id=str(period_id),
        )


class InvalidEmploymentTransition(PreconditionError):
    code = "INVALID_EMPLOYMENT_TRANSITION"

    def __init__(self, from_status: str, to_status: str):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Employee cannot move from '{from_status}' to '{to_status}'",
            from_status=from_status,
            to_status=to_status,
        )


class PermissionDeniedError(PreconditionError):
    code = "PERMISSION_DENIED"


# ---------------------------------------------------------------------------
# Configuration errors
# ---------------------------------------------------------------------------


class ConfigurationError(PayrollEngineError):
    code = "CONFIGURATION_ERROR"


class NoEligibleEmployeesError(ConfigurationError):
    code = "NO_ELIGIBLE_EMPLOYEES"

    def __init__(self, center_id: UUID):
        self.center_id = center_id
        super().__init__(
            "No active employees found for this center", center_id=str(center_id)
        )


class ExchangeRateNotFoundError(ConfigurationError):
    """Raised when a conversion is required but no rate (direct or inverse) exists."""

    code = "EXCHANGE_RATE_NOT_FOUND"

    def __init__(self, from_currency: str, to_currency: str):
        self.from_currency = from_currency
        self.to_currency = to_currency
        super().__init__(
            f"No exchange rate available from {from_currency} to {to_currency}",
            from_currency=from_currency,
            to_currency=to_currency,
        )


class BaseCurrencyNotConfiguredError(ConfigurationError):
    code = "BASE_CURRENCY_NOT_CONFIGURED"


# ---------------------------------------------------------------------------
# Validation errors
# ---------------------------------------------------------------------------


class ValidationError(PayrollEngineError):
    code = "VALIDATION_ERROR"


class TaxBandOverlapError(ValidationError):
    code = "TAX_BAND_OVERLAP"

    def __init__(self, table: str, conflicting_band_id: UUID | None = None):
        self.table = table
        self.conflicting_band_id = conflicting_band_id
        super().__init__(
            "Tax band ranges cannot overlap with existing bands",
            table=table,
            conflicting_band_id=str(conflicting_band_id) if conflicting_band_id else None,
        )


class InvalidTaxBandError(ValidationError):
    code = "INVALID_TAX_BAND"


class CurrencySplitError(ValidationError):
    code = "INVALID_CURRENCY_SPLIT"

    def __init__(self, zwl_percentage: Decimal, usd_percentage: Decimal):
        self.zwl_percentage = zwl_percentage
        self.usd_percentage = usd_percentage
        super().__init__(
            "Currency split percentages must total 100%",
            zwl_percentage=str(zwl_percentage),
            usd_percentage=str(usd_percentage),
        )


class InvalidExchangeRateError(ValidationError):
    code = "INVALID_EXCHANGE_RATE"


class InvalidPeriodError(ValidationError):
    code = "INVALID_PERIOD"


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


class NotFoundError(PayrollEngineError):
    code = "NOT_FOUND"


class PeriodNotFoundError(NotFoundError):
    code = "PERIOD_NOT_FOUND"

    def __init__(self, period_id: UUID):
        self.period_id = period_id
        super().__init__(f"Accounting period {period_id} not found")


class CostCenterNotFoundError(NotFoundError):
    code = "COST_CENTER_NOT_FOUND"

    def __init__(self, center_id: UUID):
        self.center_id = center_id
        super().__init__("Cost center not found", center_id=str(center_id))


class PayslipNotFoundError(NotFoundError):
    code = "PAYSLIP_NOT_FOUND"

    def __init__(self, payslip_id: UUID):
        self.payslip_id = payslip_id
        super().__init__(f"Payslip {payslip_id} not found")


class TaxBandNotFoundError(NotFoundError):
    code = "TAX_BAND_NOT_FOUND"

    def __init__(self, band_id: UUID):
        self.band_id = band_id
        super().__init__(f"Tax band {band_id} not found")


class PayrollNotFoundError(NotFoundError):
    code = "PAYROLL_NOT_FOUND"

    def __init__(self, payroll_id: UUID):
        self.payroll_id = payroll_id
        super().__init__(f"Payroll {payroll_id} not found")
