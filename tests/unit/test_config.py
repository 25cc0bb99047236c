import pytest
from pydantic import ValidationError

from taxcalc.config import Settings, get_settings


def test_defaults(monkeypatch):
    for name in ("TAXCALC_DB_PATH", "TAXCALC_DEFAULT_YEAR", "TAXCALC_API_URL", "TAXCALC_SEED_ON_STARTUP"):
        monkeypatch.delenv(name, raising=False)
    settings = Settings()
    assert settings.db_path == "taxcalc.db"
    assert settings.default_year == "2024-2025"
    assert settings.seed_on_startup is True
    assert settings.api_url is None


def test_env_parsing(monkeypatch):
    monkeypatch.setenv("TAXCALC_SEED_ON_STARTUP", "no")
    monkeypatch.setenv("TAXCALC_DEFAULT_YEAR", "2020-2021")
    monkeypatch.setenv("TAXCALC_API_URL", "http://localhost:8000/ ")
    get_settings.cache_clear()
    settings = get_settings()
    assert settings.seed_on_startup is False
    assert settings.default_year == "2020-2021"
    assert settings.api_url == "http://localhost:8000"
    get_settings.cache_clear()


def test_rejects_bad_default_year(monkeypatch):
    monkeypatch.setenv("TAXCALC_DEFAULT_YEAR", "2020")
    with pytest.raises(ValidationError):
        Settings()


def test_rejects_non_positive_timeout(monkeypatch):
    monkeypatch.setenv("TAXCALC_API_TIMEOUT", "0")
    with pytest.raises(ValidationError):
        Settings()


def test_rejects_blank_db_path(monkeypatch):
    monkeypatch.setenv("TAXCALC_DB_PATH", "   ")
    with pytest.raises(ValidationError):
        Settings()


def test_env_values_are_normalised(monkeypatch):
    monkeypatch.setenv("TAXCALC_DB_PATH", " data/rates.db ")
    monkeypatch.setenv("TAXCALC_DEFAULT_YEAR", " 2021-2022 ")
    monkeypatch.setenv("TAXCALC_API_URL", "   ")
    settings = Settings()
    assert settings.db_path == "data/rates.db"
    assert settings.default_year == "2021-2022"
    assert settings.api_url is None
