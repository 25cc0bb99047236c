"""Progressive bracket tax engine.

Brackets are walked in the order given. A bracket contributes only when the
income is strictly greater than its lower bound; the portion of income inside
the bracket is clamped inclusively at the upper bound. The summed tax is
rounded up to the next whole currency unit once, at the very end.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_CEILING, Decimal
from typing import Iterable, Sequence

from taxcalc.errors import BadBracketData

D = Decimal
ZERO = D("0")
ONE = D("1")

Amount = Decimal | int | float | str


def as_decimal(value: Amount) -> D:
    if isinstance(value, D):
        return value
    if isinstance(value, float):
        # repr keeps 0.325 as "0.325" instead of the binary expansion
        return D(repr(value))
    return D(value)


@dataclass(frozen=True)
class TaxBracket:
    lower: D
    upper: D | None
    rate: D
    description: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "lower", as_decimal(self.lower))
        if self.upper is not None:
            object.__setattr__(self, "upper", as_decimal(self.upper))
        object.__setattr__(self, "rate", as_decimal(self.rate))

    @classmethod
    def of(
        cls,
        lower: Amount,
        upper: Amount | None,
        rate: Amount,
        description: str = "",
    ) -> "TaxBracket":
        return cls(lower, upper, rate, description)

    @property
    def is_unbounded(self) -> bool:
        return self.upper is None

    def taxable_portion(self, income: D) -> D:
        """Income falling inside this bracket, or zero when income does not exceed the lower bound."""
        if income <= self.lower:
            return ZERO
        top = income if self.upper is None else min(self.upper, income)
        return top - self.lower


@dataclass(frozen=True)
class BracketContribution:
    description: str
    taxable_amount: D
    tax_amount: D
    rate: D


@dataclass(frozen=True)
class CalculationResult:
    total_tax: int
    breakdown: tuple[BracketContribution, ...]

    @property
    def raw_tax(self) -> D:
        return sum((entry.tax_amount for entry in self.breakdown), ZERO)


def ceil_currency(amount: D) -> int:
    return int(amount.to_integral_value(rounding=ROUND_CEILING))


def _contributions(brackets: Iterable[TaxBracket], income: Amount) -> list[BracketContribution]:
    ti = as_decimal(income)
    entries: list[BracketContribution] = []
    for bracket in brackets:
        span = bracket.taxable_portion(ti)
        if span > 0:
            entries.append(
                BracketContribution(
                    description=bracket.description,
                    taxable_amount=span,
                    tax_amount=span * bracket.rate,
                    rate=bracket.rate,
                )
            )
    return entries


def compute_tax(brackets: Iterable[TaxBracket], income: Amount) -> int:
    tax = ZERO
    for entry in _contributions(brackets, income):
        tax += entry.tax_amount
    return ceil_currency(tax)


def compute_breakdown(brackets: Iterable[TaxBracket], income: Amount) -> CalculationResult:
    entries = tuple(_contributions(brackets, income))
    raw = sum((entry.tax_amount for entry in entries), ZERO)
    return CalculationResult(total_tax=ceil_currency(raw), breakdown=entries)


def validate_brackets(brackets: Sequence[TaxBracket]) -> None:
    """Fail fast on a rate table the engine would silently mis-tax.

    Gaps between one bracket's upper bound and the next lower bound are
    allowed (whole-dollar tables such as 0-18200 followed by 18201-45000);
    overlaps, descending order, an unbounded bracket before the last and a
    bounded last bracket are not.
    """
    if not brackets:
        raise BadBracketData("At least one bracket is required")
    previous: TaxBracket | None = None
    last_index = len(brackets) - 1
    for index, bracket in enumerate(brackets):
        label = bracket.description or f"bracket {index + 1}"
        if bracket.lower < ZERO:
            raise BadBracketData(f"{label}: lower bound must not be negative")
        if not ZERO <= bracket.rate <= ONE:
            raise BadBracketData(f"{label}: rate {bracket.rate} outside 0..1")
        if bracket.upper is not None and bracket.upper < bracket.lower:
            raise BadBracketData(f"{label}: upper bound {bracket.upper} below lower bound {bracket.lower}")
        if bracket.upper is None and index != last_index:
            raise BadBracketData(f"{label}: only the last bracket may be unbounded")
        if previous is not None and previous.upper is not None:
            if bracket.lower < previous.upper:
                raise BadBracketData(
                    f"{label}: lower bound {bracket.lower} overlaps previous upper bound {previous.upper}"
                )
        previous = bracket
    if brackets[-1].upper is not None:
        raise BadBracketData("the last bracket must be unbounded")


__all__ = [
    "TaxBracket",
    "BracketContribution",
    "CalculationResult",
    "as_decimal",
    "ceil_currency",
    "compute_tax",
    "compute_breakdown",
    "validate_brackets",
]
