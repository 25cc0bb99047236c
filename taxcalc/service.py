from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from taxcalc.core.engine import (
    Amount,
    BracketContribution,
    CalculationResult,
    as_decimal,
    compute_breakdown,
    compute_tax,
)
from taxcalc.store.sqlite import BracketStore

D = Decimal


@dataclass(frozen=True)
class TaxSummary:
    income: D
    year: str
    tax: int
    after_tax_income: D
    effective_rate: D
    breakdown: tuple[BracketContribution, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "income": float(self.income),
            "year": self.year,
            "tax": self.tax,
            "after_tax_income": float(self.after_tax_income),
            "effective_rate": float(self.effective_rate),
            "breakdown": [
                {
                    "description": entry.description,
                    "taxable_amount": float(entry.taxable_amount),
                    "tax_amount": float(entry.tax_amount),
                    "rate": float(entry.rate),
                }
                for entry in self.breakdown
            ],
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "TaxSummary":
        return cls(
            income=as_decimal(payload["income"]),
            year=payload["year"],
            tax=int(payload["tax"]),
            after_tax_income=as_decimal(payload["after_tax_income"]),
            effective_rate=as_decimal(payload["effective_rate"]),
            breakdown=tuple(
                BracketContribution(
                    description=entry["description"],
                    taxable_amount=as_decimal(entry["taxable_amount"]),
                    tax_amount=as_decimal(entry["tax_amount"]),
                    rate=as_decimal(entry["rate"]),
                )
                for entry in payload.get("breakdown", [])
            ),
        )


class TaxCalculator:
    """Resolves a year's brackets from the store and hands them to the engine."""

    def __init__(self, store: BracketStore) -> None:
        self.store = store

    def calculate_tax(self, year: str, income: Amount) -> int:
        return compute_tax(self.store.get_brackets_for_year(year), income)

    def get_tax_breakdown(self, year: str, income: Amount) -> CalculationResult:
        return compute_breakdown(self.store.get_brackets_for_year(year), income)

    def summarize(self, year: str, income: Amount) -> TaxSummary:
        amount = as_decimal(income)
        result = self.get_tax_breakdown(year, amount)
        tax = D(result.total_tax)
        return TaxSummary(
            income=amount,
            year=year,
            tax=result.total_tax,
            after_tax_income=amount - tax,
            effective_rate=tax / amount if amount > 0 else D("0"),
            breakdown=result.breakdown,
        )

    def is_year_supported(self, year: str) -> bool:
        return self.store.is_year_supported(year)

    def get_supported_years(self) -> list[str]:
        return self.store.list_supported_years()


__all__ = ["TaxCalculator", "TaxSummary"]
