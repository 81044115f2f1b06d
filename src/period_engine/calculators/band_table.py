"""Progressive band walking and band-table validation.

Pure functions; loading bands from the database is the caller's job.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Sequence

from period_engine.calculators.types import CENT, ZERO, BandPortion, BandSpec
from period_engine.exceptions import InvalidTaxBandError


def compute_progressive_tax(
    taxable_income: Decimal,
    bands: Iterable[BandSpec],
) -> tuple[Decimal, list[BandPortion]]:
    """Tax ``taxable_income`` against a band table.

    Bands are walked in ascending ``min_salary`` order. The slice of income in
    ``[max(band.min, floor), band.max)`` is taxed at the band rate and the
    band's fixed amount is added once. ``floor`` is the highest upper bound
    seen so far, so a slice is never taxed twice.

    Returns the total (rounded to cents) and the per-band breakdown.
    """
    if taxable_income <= 0:
        return ZERO.quantize(CENT), []

    total = ZERO
    breakdown: list[BandPortion] = []
    floor = ZERO

    for band in sorted(bands, key=lambda b: b.min_salary):
        lower = max(band.min_salary, floor)
        top = taxable_income if band.max_salary is None else min(taxable_income, band.max_salary)
        portion = top - lower

        if portion > 0:
            band_tax = portion * band.tax_rate + band.tax_amount
            total += band_tax
            breakdown.append(
                BandPortion(
                    band=band,
                    taxable_in_band=portion,
                    tax_in_band=band_tax.quantize(CENT, rounding=ROUND_HALF_UP),
                )
            )

        if band.max_salary is None:
            break
        floor = max(floor, band.max_salary)
        if floor >= taxable_income:
            break

    return total.quantize(CENT, rounding=ROUND_HALF_UP), breakdown


def ranges_overlap(
    a_min: Decimal,
    a_max: Decimal | None,
    b_min: Decimal,
    b_max: Decimal | None,
) -> bool:
    """Half-open overlap test; ``None`` upper bounds are unbounded.

    Adjacent bands that share a boundary (``[0, 3000]`` and ``[3000, 10000]``)
    do not overlap.
    """
    a_below_b_end = b_max is None or a_min < b_max
    b_below_a_end = a_max is None or b_min < a_max
    return a_below_b_end and b_below_a_end


def validate_band_shape(band: BandSpec) -> None:
    """Reject a band that is malformed on its own."""
    if band.min_salary < 0:
        raise InvalidTaxBandError("Minimum salary cannot be negative")
    if band.max_salary is not None and band.max_salary <= band.min_salary:
        raise InvalidTaxBandError("Maximum salary must be greater than minimum salary")
    if not (ZERO <= band.tax_rate <= Decimal("1")):
        raise InvalidTaxBandError("Tax rate must be a fraction between 0 and 1")
    if band.tax_amount < 0:
        raise InvalidTaxBandError("Fixed tax amount cannot be negative")


def find_overlapping_band(
    candidate: BandSpec,
    siblings: Sequence[BandSpec],
) -> BandSpec | None:
    """Return the first sibling whose range overlaps the candidate.

    A sibling with the same ``band_id`` as the candidate is skipped, so the
    same check serves inserts and updates.
    """
    for sibling in siblings:
        if candidate.band_id is not None and sibling.band_id == candidate.band_id:
            continue
        if ranges_overlap(
            candidate.min_salary, candidate.max_salary, sibling.min_salary, sibling.max_salary
        ):
            return sibling
    return None
