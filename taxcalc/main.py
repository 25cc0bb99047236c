import argparse
import logging
import os
import sys
from contextlib import contextmanager
from decimal import Decimal, InvalidOperation
from typing import Iterator, Literal, Protocol

from rich.console import Console
from rich.table import Table

from taxcalc.api.client import ApiError, TaxApiClient
from taxcalc.config import get_settings
from taxcalc.core.rates import seed_default_years
from taxcalc.core.years import is_income_year
from taxcalc.errors import TaxCalcError
from taxcalc.formatting import format_currency, format_rate
from taxcalc.service import TaxCalculator, TaxSummary
from taxcalc.store.sqlite import BracketStore, open_store

ColorPreference = Literal["auto", "always", "never"]


class CalculatorBackend(Protocol):
    def get_supported_years(self) -> list[str]: ...

    def is_year_supported(self, year: str) -> bool: ...

    def summarize(self, year: str, income: Decimal) -> TaxSummary: ...


def _resolve_color_preference(pref: ColorPreference) -> ColorPreference:
    if pref == "auto" and os.getenv("NO_COLOR"):
        return "never"
    return pref


def _get_console(pref: ColorPreference) -> Console | None:
    resolved = _resolve_color_preference(pref)
    if resolved == "never":
        return None
    return Console(force_terminal=resolved == "always")


def _console_print(console: Console | None, message: str) -> None:
    if console is not None:
        console.print(message, highlight=False)
    else:
        print(message)


def _ask(prompt: str) -> str:
    return input(prompt).strip()


def _prompt_income_year() -> str:
    while True:
        year = _ask("Please enter the income year (eg: 2020-2021): ")
        if is_income_year(year):
            return year
        print("Please enter a valid income year in format YYYY-YYYY")


def _parse_income(raw: str) -> Decimal | None:
    try:
        value = Decimal(raw.replace(",", ""))
    except InvalidOperation:
        return None
    if not value.is_finite() or value < 0:
        return None
    return value


def _prompt_income() -> Decimal:
    while True:
        value = _parse_income(_ask("Please enter your total taxable income for the full income year: "))
        if value is not None:
            return value
        print("Please enter a valid income amount (numbers only)")


def _print_breakdown(summary: TaxSummary, console: Console | None) -> None:
    if console is not None:
        table = Table(title=f"Tax breakdown for {summary.year}", expand=False)
        for column in ("Bracket", "Taxable", "Rate", "Tax"):
            table.add_column(column)
        for entry in summary.breakdown:
            table.add_row(
                entry.description,
                format_currency(entry.taxable_amount),
                format_rate(entry.rate),
                format_currency(entry.tax_amount),
            )
        table.add_section()
        table.add_row("Total tax", "", "", format_currency(summary.tax))
        table.add_row("After tax income", "", "", format_currency(summary.after_tax_income))
        console.print(table)
        return
    print("\n--- Tax Breakdown ---")
    print(f"Income: {format_currency(summary.income)}")
    print("")
    for entry in summary.breakdown:
        print(
            f"{entry.description}: {format_currency(entry.taxable_amount)} x "
            f"{format_rate(entry.rate)} = {format_currency(entry.tax_amount)}"
        )
    print("")
    print(f"Total Tax: {format_currency(summary.tax)}")
    print(f"After Tax Income: {format_currency(summary.after_tax_income)}")
    print("--- End Breakdown ---\n")


def _run_wizard(backend: CalculatorBackend, console: Console | None) -> int:
    _console_print(console, "Tax Calculator\n")
    year = _prompt_income_year()
    if not backend.is_year_supported(year):
        _console_print(console, f"Sorry, tax rates for {year} are not available.")
        _console_print(console, f"Supported years: {', '.join(backend.get_supported_years())}")
        return 1
    income = _prompt_income()
    summary = backend.summarize(year, income)
    _console_print(console, f"\nThe estimated tax on your taxable income is: {format_currency(summary.tax)}")
    answer = _ask("\nWould you like to see a detailed tax breakdown? (y/n): ")
    if answer.lower().startswith("y"):
        _print_breakdown(summary, console)
    return 0


def _print_years(years: list[str], console: Console | None) -> int:
    if not years:
        _console_print(console, "No tax years are loaded. Run 'taxcalc seed' to load the bundled tables.")
        return 1
    _console_print(console, "Supported years:")
    for year in years:
        _console_print(console, f"  - {year}")
    return 0


def _print_brackets(store: BracketStore, year: str, console: Console | None) -> int:
    records = store.list_rows(year)
    if not records:
        _console_print(console, f"Sorry, tax rates for {year} are not available.")
        return 1
    if console is not None:
        table = Table(title=f"Tax brackets for {year}", expand=False)
        for column in ("#", "From", "To", "Rate", "Description"):
            table.add_column(column)
        for record in records:
            upper = "and above" if record.max_income is None else format_currency(record.max_income)
            table.add_row(
                str(record.bracket_order),
                format_currency(record.min_income),
                upper,
                format_rate(record.tax_rate),
                record.description,
            )
        console.print(table)
        return 0
    for record in records:
        upper = "and above" if record.max_income is None else format_currency(record.max_income)
        print(
            f"{record.bracket_order}. {format_currency(record.min_income)} - {upper} "
            f"@ {format_rate(record.tax_rate)} ({record.description})"
        )
    return 0


def _seed_if_empty(store: BracketStore) -> None:
    if not store.list_supported_years():
        seed_default_years(store)


@contextmanager
def _local_calculator(db_path: str) -> Iterator[TaxCalculator]:
    with open_store(db_path) as store:
        _seed_if_empty(store)
        yield TaxCalculator(store)


@contextmanager
def _open_backend(db_path: str, api_url: str | None, timeout: float) -> Iterator[CalculatorBackend]:
    if api_url:
        with TaxApiClient(api_url, timeout=timeout) as client:
            yield client
        return
    with _local_calculator(db_path) as calculator:
        yield calculator


def _serve(db_path: str, host: str, port: int) -> int:
    import uvicorn

    # the app reads its store location from the environment
    os.environ["TAXCALC_DB_PATH"] = db_path
    get_settings.cache_clear()
    uvicorn.run("taxcalc.api.http:app", host=host, port=port)
    return 0


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        prog="taxcalc",
        description="Estimate progressive income tax from stored bracket tables.",
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="wizard",
        choices=["wizard", "years", "brackets", "seed", "serve"],
        help="Action to perform.",
    )
    parser.add_argument("subargs", nargs="*", help="Additional arguments for the chosen command.")
    parser.add_argument("--db", default=settings.db_path, help="Path to the SQLite rate store.")
    parser.add_argument("--api", default=settings.api_url, help="Use a running tax API instead of the local store.")
    parser.add_argument("--overwrite", action="store_true", help="With 'seed', replace years that already exist.")
    parser.add_argument("--host", default="127.0.0.1", help="With 'serve', interface to bind.")
    parser.add_argument("--port", type=int, default=8000, help="With 'serve', port to bind.")
    parser.add_argument(
        "--color",
        choices=["auto", "always", "never"],
        default="auto",
        help="Color output preference (default: auto).",
    )
    parser.add_argument(
        "--no-color",
        dest="color",
        action="store_const",
        const="never",
        help="Alias for --color never.",
    )
    parser.add_argument("--verbose", action="store_true", help="Log store and API activity to stderr.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)
    console = _get_console(args.color)
    timeout = get_settings().api_timeout
    try:
        if args.command == "serve":
            return _serve(args.db, args.host, args.port)
        if args.command == "wizard":
            with _open_backend(args.db, args.api, timeout) as backend:
                return _run_wizard(backend, console)
        if args.command == "years":
            with _open_backend(args.db, args.api, timeout) as backend:
                return _print_years(backend.get_supported_years(), console)
        with open_store(args.db) as store:
            if args.command == "seed":
                written = seed_default_years(store, overwrite=args.overwrite)
                if written:
                    _console_print(console, f"Loaded tax years: {', '.join(written)}")
                else:
                    _console_print(console, "All bundled tax years are already loaded.")
                return 0
            _seed_if_empty(store)
            if not args.subargs:
                _console_print(console, "Usage: taxcalc brackets YEAR")
                return 2
            return _print_brackets(store, args.subargs[0], console)
    except (TaxCalcError, ApiError) as exc:
        _console_print(console, f"An error occurred: {exc}")
        return 1
    except (EOFError, KeyboardInterrupt):
        _console_print(console, "\nAborted.")
        return 130


if __name__ == "__main__":
    sys.exit(main())
