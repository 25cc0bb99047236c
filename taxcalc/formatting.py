from __future__ import annotations

from decimal import Decimal


def format_currency(value: Decimal | float | int) -> str:
    return f"${value:,.2f}"


def format_rate(rate: Decimal | float) -> str:
    percent = (Decimal(str(rate)) * 100).quantize(Decimal("0.01"))
    return f"{percent:f}".rstrip("0").rstrip(".") + "%"
