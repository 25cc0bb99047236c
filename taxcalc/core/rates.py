from __future__ import annotations

import logging
from decimal import Decimal
from typing import Mapping, Protocol, Sequence

from taxcalc.core.engine import TaxBracket

D = Decimal
logger = logging.getLogger("taxcalc.rates")

# Australian resident rates, 2020-21 through 2023-24
_RESIDENT_2020 = (
    (D("0"),      D("18200"),  D("0"),     "Tax-free threshold"),
    (D("18201"),  D("45000"),  D("0.19"),  "19% tax rate"),
    (D("45001"),  D("120000"), D("0.325"), "32.5% tax rate"),
    (D("120001"), D("180000"), D("0.37"),  "37% tax rate"),
    (D("180001"), None,        D("0.45"),  "45% tax rate"),
)

# Stage 3 rates from 1 July 2024
_RESIDENT_2024 = (
    (D("0"),      D("18200"),  D("0"),    "Tax-free threshold"),
    (D("18201"),  D("45000"),  D("0.16"), "16% tax rate"),
    (D("45001"),  D("135000"), D("0.30"), "30% tax rate"),
    (D("135001"), D("190000"), D("0.37"), "37% tax rate"),
    (D("190001"), None,        D("0.45"), "45% tax rate"),
)


def _build(rows) -> tuple[TaxBracket, ...]:
    return tuple(TaxBracket(lower, upper, rate, description) for lower, upper, rate, description in rows)


DEFAULT_RATE_TABLES: Mapping[str, tuple[TaxBracket, ...]] = {
    "2020-2021": _build(_RESIDENT_2020),
    "2021-2022": _build(_RESIDENT_2020),
    "2022-2023": _build(_RESIDENT_2020),
    "2023-2024": _build(_RESIDENT_2020),
    "2024-2025": _build(_RESIDENT_2024),
}


class _WritableStore(Protocol):
    def is_year_supported(self, year: str) -> bool: ...

    def add_tax_year(self, year: str, brackets: Sequence[TaxBracket]) -> int: ...


def seed_default_years(
    store: _WritableStore,
    *,
    overwrite: bool = False,
    tables: Mapping[str, Sequence[TaxBracket]] | None = None,
) -> list[str]:
    """Load the bundled rate tables, returning the years that were written."""
    written: list[str] = []
    for year, brackets in (tables or DEFAULT_RATE_TABLES).items():
        if not overwrite and store.is_year_supported(year):
            logger.debug("Rate table for %s already present; skipping", year)
            continue
        store.add_tax_year(year, brackets)
        written.append(year)
    if written:
        logger.info("Seeded rate tables for %s", ", ".join(written))
    return written


__all__ = ["DEFAULT_RATE_TABLES", "seed_default_years"]
