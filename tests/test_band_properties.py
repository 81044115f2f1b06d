"""Property-based tests for the band walk and overlap detection."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from hypothesis import given, settings
from hypothesis import strategies as st

from period_engine.calculators.band_table import compute_progressive_tax, ranges_overlap
from period_engine.calculators.types import CENT, BandSpec

# Contiguous from zero with an open top band, like the published monthly USD table
MONTHLY_USD = [
    BandSpec(Decimal("0"), Decimal("100"), Decimal("0")),
    BandSpec(Decimal("100"), Decimal("300"), Decimal("0.20")),
    BandSpec(Decimal("300"), Decimal("1000"), Decimal("0.25")),
    BandSpec(Decimal("1000"), Decimal("2000"), Decimal("0.30")),
    BandSpec(Decimal("2000"), Decimal("3000"), Decimal("0.35")),
    BandSpec(Decimal("3000"), None, Decimal("0.40")),
]
TOP_RATE = Decimal("0.40")

incomes = st.decimals(
    min_value=Decimal("0.01"),
    max_value=Decimal("1000000"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)
bounds = st.decimals(min_value=Decimal("0"), max_value=Decimal("100000"), places=2)


class TestBandWalkProperties:
    @given(income=incomes)
    @settings(max_examples=200)
    def test_every_cent_lands_in_exactly_one_band(self, income):
        _, breakdown = compute_progressive_tax(income, MONTHLY_USD)

        assert sum(p.taxable_in_band for p in breakdown) == income

    @given(income=incomes)
    @settings(max_examples=200)
    def test_tax_bounded_by_top_rate(self, income):
        tax, _ = compute_progressive_tax(income, MONTHLY_USD)

        assert Decimal("0") <= tax <= (income * TOP_RATE).quantize(CENT, rounding=ROUND_HALF_UP)

    @given(a=incomes, b=incomes)
    @settings(max_examples=200)
    def test_more_income_never_means_less_tax(self, a, b):
        low, high = sorted((a, b))

        low_tax, _ = compute_progressive_tax(low, MONTHLY_USD)
        high_tax, _ = compute_progressive_tax(high, MONTHLY_USD)

        assert low_tax <= high_tax

    @given(income=incomes)
    @settings(max_examples=100)
    def test_band_order_does_not_matter(self, income):
        forward, _ = compute_progressive_tax(income, MONTHLY_USD)
        backward, _ = compute_progressive_tax(income, list(reversed(MONTHLY_USD)))

        assert forward == backward


class TestOverlapProperties:
    @given(
        a_min=bounds,
        a_span=st.one_of(st.none(), bounds.filter(lambda d: d > 0)),
        b_min=bounds,
        b_span=st.one_of(st.none(), bounds.filter(lambda d: d > 0)),
    )
    @settings(max_examples=200)
    def test_overlap_is_symmetric(self, a_min, a_span, b_min, b_span):
        a_max = a_min + a_span if a_span is not None else None
        b_max = b_min + b_span if b_span is not None else None

        assert ranges_overlap(a_min, a_max, b_min, b_max) == ranges_overlap(
            b_min, b_max, a_min, a_max
        )

    @given(low=bounds, width=bounds.filter(lambda d: d > 0))
    @settings(max_examples=100)
    def test_adjacent_bands_never_overlap(self, low, width):
        edge = low + width

        assert not ranges_overlap(low, edge, edge, None)
