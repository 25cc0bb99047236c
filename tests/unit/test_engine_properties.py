from decimal import Decimal as D

import hypothesis.strategies as st
from hypothesis import given

from taxcalc.core.engine import compute_breakdown, compute_tax
from tests.fixtures.brackets import AU_2020_CONTIGUOUS, AU_2020_PUBLISHED

incomes = st.decimals(min_value=-100000, max_value=2_000_000, places=2, allow_nan=False, allow_infinity=False)


@given(st.integers(max_value=0))
def test_no_tax_at_or_below_first_lower_bound(amount: int):
    assert compute_tax(AU_2020_CONTIGUOUS, amount) == 0


@given(incomes, incomes)
def test_tax_is_monotonic(first: D, second: D):
    low, high = sorted((first, second))
    assert compute_tax(AU_2020_PUBLISHED, low) <= compute_tax(AU_2020_PUBLISHED, high)


@given(incomes)
def test_total_is_ceiling_of_breakdown_sum(income: D):
    result = compute_breakdown(AU_2020_PUBLISHED, income)
    raw = sum((entry.tax_amount for entry in result.breakdown), D("0"))
    assert result.raw_tax == raw
    assert result.total_tax == compute_tax(AU_2020_PUBLISHED, income)
    assert D("0") <= D(result.total_tax) - raw < D("1")


@given(incomes)
def test_breakdown_only_holds_positive_amounts(income: D):
    result = compute_breakdown(AU_2020_CONTIGUOUS, income)
    assert all(entry.taxable_amount > 0 for entry in result.breakdown)
    rates = [entry.rate for entry in result.breakdown]
    assert rates == sorted(rates)


@given(incomes)
def test_repeat_calls_are_identical(income: D):
    assert compute_tax(AU_2020_CONTIGUOUS, income) == compute_tax(AU_2020_CONTIGUOUS, income)
    assert compute_breakdown(AU_2020_CONTIGUOUS, income) == compute_breakdown(AU_2020_CONTIGUOUS, income)
