from __future__ import annotations

from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from taxcalc.config import Settings, get_settings
from taxcalc.errors import UnsupportedYearError
from taxcalc.formatting import format_currency, format_rate
from taxcalc.service import TaxCalculator, TaxSummary

router = APIRouter(prefix="/ui", tags=["ui"])

UI_ROOT = Path(__file__).resolve().parent
TEMPLATES = Jinja2Templates(directory=str(UI_ROOT / "templates"))


TEMPLATES.env.filters["currency"] = format_currency
TEMPLATES.env.filters["rate"] = format_rate


def _resolve_settings(request: Request) -> Settings:
    settings = getattr(request.app.state, "settings", None)
    if isinstance(settings, Settings):
        return settings
    return get_settings()


def _resolve_calculator(request: Request) -> TaxCalculator:
    calculator = getattr(request.app.state, "calculator", None)
    if calculator is None:
        raise HTTPException(status_code=503, detail="Rate store not initialised")
    return calculator


def _form_text(val: Any) -> str:
    if val is None:
        return ""
    return str(val).strip()


def _parse_income(raw: str) -> tuple[Decimal | None, str | None]:
    cleaned = raw.replace(",", "").replace("$", "").strip()
    if not cleaned:
        return None, "Please enter your taxable income."
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        return None, "Please enter a valid income amount (numbers only)."
    if not value.is_finite():
        return None, "Please enter a valid income amount (numbers only)."
    if value < 0:
        return None, "Income must be a positive number."
    return value, None


def _render(
    request: Request,
    *,
    years: list[str],
    year: str,
    income: str = "",
    summary: TaxSummary | None = None,
    errors: dict[str, str] | None = None,
    status_code: int = 200,
) -> HTMLResponse:
    return TEMPLATES.TemplateResponse(
        request,
        "calculator.html",
        {
            "years": years,
            "selected_year": year,
            "income": income,
            "summary": summary,
            "errors": errors or {},
        },
        status_code=status_code,
    )


@router.get("/", response_class=HTMLResponse)
def calculator_home(request: Request) -> HTMLResponse:
    calculator = _resolve_calculator(request)
    settings = _resolve_settings(request)
    years = calculator.get_supported_years()
    year = settings.default_year if settings.default_year in years else (years[-1] if years else "")
    return _render(request, years=years, year=year)


@router.post("/calculate", response_class=HTMLResponse)
async def calculate(request: Request) -> HTMLResponse:
    calculator = _resolve_calculator(request)
    form = await request.form()
    year = _form_text(form.get("year"))
    raw_income = _form_text(form.get("income"))
    years = calculator.get_supported_years()

    errors: dict[str, str] = {}
    income, income_error = _parse_income(raw_income)
    if income_error:
        errors["income"] = income_error
    if not year:
        errors["year"] = "Please choose an income year."
    if errors:
        return _render(request, years=years, year=year, income=raw_income, errors=errors, status_code=400)

    try:
        summary = calculator.summarize(year, income)
    except UnsupportedYearError as exc:
        errors["year"] = exc.user_message()
        return _render(request, years=years, year=year, income=raw_income, errors=errors, status_code=400)
    return _render(request, years=years, year=year, income=raw_income, summary=summary)
