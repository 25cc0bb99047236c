from __future__ import annotations

from typing import Iterable


class TaxCalcError(Exception):
    """Base class for every failure raised by the calculator."""


class UnsupportedYearError(TaxCalcError, LookupError):
    def __init__(self, year: str, supported_years: Iterable[str] = ()) -> None:
        self.year = year
        self.supported_years = list(supported_years)
        super().__init__(f"Tax rates not available for income year: {year}")

    def user_message(self) -> str:
        listed = ", ".join(self.supported_years) or "none"
        return f"Tax year {self.year} is not supported. Supported years: {listed}"


class BadBracketData(TaxCalcError, ValueError):
    pass


class InvalidIncomeYear(TaxCalcError, ValueError):
    pass


class BracketNotFoundError(TaxCalcError, LookupError):
    def __init__(self, bracket_id: int) -> None:
        self.bracket_id = bracket_id
        super().__init__(f"Tax bracket with id {bracket_id} not found")


ERROR_STATUS = {
    UnsupportedYearError: 404,
    BracketNotFoundError: 404,
    BadBracketData: 400,
    InvalidIncomeYear: 400,
}


def status_for(exc: TaxCalcError) -> int:
    for error_type, status in ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return status
    return 500
