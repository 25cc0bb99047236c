from __future__ import annotations

import re

from taxcalc.errors import InvalidIncomeYear

_YEAR_PATTERN = re.compile(r"^(\d{4})-(\d{4})$")


def is_income_year(label: str) -> bool:
    match = _YEAR_PATTERN.match(label or "")
    if not match:
        return False
    start, end = (int(part) for part in match.groups())
    return end == start + 1


def validate_income_year(label: str) -> str:
    cleaned = (label or "").strip()
    if not is_income_year(cleaned):
        raise InvalidIncomeYear(f"Income year must look like YYYY-YYYY (e.g. 2020-2021), got {label!r}")
    return cleaned


__all__ = ["is_income_year", "validate_income_year"]
