import pathlib
import sys

import pytest
from fastapi.testclient import TestClient

p = str(pathlib.Path(__file__).resolve().parents[1])
sys.path.insert(0, p) if p not in sys.path else None

from taxcalc.config import get_settings
from taxcalc.store.sqlite import open_store


@pytest.fixture
def store(tmp_path):
    with open_store(tmp_path / "brackets.db") as opened:
        yield opened


@pytest.fixture
def app_env(tmp_path, monkeypatch):
    monkeypatch.setenv("TAXCALC_DB_PATH", str(tmp_path / "api.db"))
    monkeypatch.setenv("TAXCALC_SEED_ON_STARTUP", "true")
    monkeypatch.delenv("TAXCALC_LOG_DIR", raising=False)
    monkeypatch.delenv("TAXCALC_DEFAULT_YEAR", raising=False)
    get_settings.cache_clear()
    yield tmp_path
    get_settings.cache_clear()


@pytest.fixture
def api_client(app_env):
    from taxcalc.api.http import app

    with TestClient(app) as client:
        yield client
