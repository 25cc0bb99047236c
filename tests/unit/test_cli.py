import builtins

import httpx
import pytest

from taxcalc import main as cli
from taxcalc.api.client import TaxApiClient
from taxcalc.core.rates import DEFAULT_RATE_TABLES


def _feed(monkeypatch, *answers: str) -> None:
    remaining = iter(answers)

    def fake_input(prompt: str = "") -> str:
        try:
            return next(remaining)
        except StopIteration:
            raise EOFError from None

    monkeypatch.setattr(builtins, "input", fake_input)


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    monkeypatch.delenv("TAXCALC_API_URL", raising=False)
    cli.get_settings.cache_clear()
    yield str(tmp_path / "cli.db")
    cli.get_settings.cache_clear()


def test_wizard_reprompts_and_prints_breakdown(monkeypatch, capsys, db_path):
    _feed(monkeypatch, "2020", "2020-2021", "abc", "-5", "96,200", "y")
    code = cli.main(["wizard", "--db", db_path, "--color", "never"])
    out = capsys.readouterr().out
    assert code == 0
    assert "Please enter a valid income year in format YYYY-YYYY" in out
    assert out.count("Please enter a valid income amount (numbers only)") == 2
    assert "The estimated tax on your taxable income is: $21,732.00" in out
    assert "19% tax rate: $26,799.00 x 19% = $5,091.81" in out
    assert "32.5% tax rate: $51,199.00 x 32.5% = $16,639.68" in out
    assert "Total Tax: $21,732.00" in out
    assert "After Tax Income: $74,468.00" in out


def test_wizard_without_breakdown(monkeypatch, capsys, db_path):
    _feed(monkeypatch, "2020-2021", "25000", "n")
    assert cli.main(["--db", db_path, "--no-color"]) == 0
    out = capsys.readouterr().out
    assert "$1,292.00" in out
    assert "Tax Breakdown" not in out


def test_wizard_unsupported_year(monkeypatch, capsys, db_path):
    _feed(monkeypatch, "1999-2000")
    assert cli.main(["wizard", "--db", db_path, "--color", "never"]) == 1
    out = capsys.readouterr().out
    assert "Sorry, tax rates for 1999-2000 are not available." in out
    assert "Supported years: " + ", ".join(sorted(DEFAULT_RATE_TABLES)) in out


def test_wizard_aborts_on_eof(monkeypatch, capsys, db_path):
    _feed(monkeypatch)
    assert cli.main(["wizard", "--db", db_path, "--color", "never"]) == 130


def test_wizard_against_remote_api(monkeypatch, capsys, db_path):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/years":
            return httpx.Response(200, json=["2020-2021"])
        return httpx.Response(
            200,
            json={
                "income": 25000.0,
                "year": "2020-2021",
                "tax": 1292,
                "after_tax_income": 23708.0,
                "effective_rate": 0.05168,
                "breakdown": [],
            },
        )

    monkeypatch.setattr(
        cli,
        "TaxApiClient",
        lambda base_url, timeout: TaxApiClient(base_url, timeout, transport=httpx.MockTransport(handler)),
    )
    _feed(monkeypatch, "2020-2021", "25000", "n")
    assert cli.main(["--api", "http://tax.test", "--color", "never"]) == 0
    assert "$1,292.00" in capsys.readouterr().out


def test_years_command(capsys, db_path):
    assert cli.main(["years", "--db", db_path, "--color", "never"]) == 0
    out = capsys.readouterr().out
    for year in DEFAULT_RATE_TABLES:
        assert f"  - {year}" in out


def test_brackets_command(capsys, db_path):
    assert cli.main(["brackets", "2024-2025", "--db", db_path, "--color", "never"]) == 0
    out = capsys.readouterr().out
    assert "2. $18,201.00 - $45,000.00 @ 16% (16% tax rate)" in out
    assert "5. $190,001.00 - and above @ 45% (45% tax rate)" in out


def test_brackets_command_errors(capsys, db_path):
    assert cli.main(["brackets", "--db", db_path, "--color", "never"]) == 2
    assert cli.main(["brackets", "1999-2000", "--db", db_path, "--color", "never"]) == 1


def test_seed_command(capsys, db_path):
    assert cli.main(["seed", "--db", db_path, "--color", "never"]) == 0
    assert "Loaded tax years: " in capsys.readouterr().out
    assert cli.main(["seed", "--db", db_path, "--color", "never"]) == 0
    assert "already loaded" in capsys.readouterr().out
    assert cli.main(["seed", "--overwrite", "--db", db_path, "--color", "never"]) == 0
    assert "Loaded tax years: 2020-2021" in capsys.readouterr().out


def test_format_helpers():
    assert cli.format_currency(1234.5) == "$1,234.50"
    assert cli.format_rate(0) == "0%"
    assert cli.format_rate("0.325") == "32.5%"


def test_serve_points_the_app_at_the_chosen_database(monkeypatch, db_path):
    import uvicorn

    monkeypatch.setenv("TAXCALC_DB_PATH", "elsewhere.db")
    seen = {}

    def fake_run(target, host, port):
        seen.update(target=target, host=host, port=port, db_path=cli.get_settings().db_path)

    monkeypatch.setattr(uvicorn, "run", fake_run)
    assert cli.main(["serve", "--db", db_path, "--port", "8123"]) == 0
    assert seen == {"target": "taxcalc.api.http:app", "host": "127.0.0.1", "port": 8123, "db_path": db_path}
