"""Salary apportionment and PAYE calculation."""

from period_engine.calculators.band_table import (
    compute_progressive_tax,
    find_overlapping_band,
    ranges_overlap,
    validate_band_shape,
)
from period_engine.calculators.engine import PayCalculator
from period_engine.calculators.rate_resolver import ExchangeRateResolver, configured_base_currency
from period_engine.calculators.salary_split import SalaryApportioner
from period_engine.calculators.tax_calculator import TaxCalculator
from period_engine.calculators.types import (
    AppliedCredit,
    BandPortion,
    BandSpec,
    EmployeePayResult,
    SalarySplit,
    TaxComputation,
)

__all__ = [
    "AppliedCredit",
    "BandPortion",
    "BandSpec",
    "EmployeePayResult",
    "ExchangeRateResolver",
    "PayCalculator",
    "SalaryApportioner",
    "SalarySplit",
    "TaxCalculator",
    "TaxComputation",
    "configured_base_currency",
    "compute_progressive_tax",
    "find_overlapping_band",
    "ranges_overlap",
    "validate_band_shape",
]
