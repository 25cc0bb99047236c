from __future__ import annotations

import os
from functools import lru_cache

from pydantic import BaseModel, Field
from pydantic import ConfigDict, field_validator

from taxcalc.core.years import is_income_year

ENV_BOOL_TRUE = {"1", "true", "yes", "on"}


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in ENV_BOOL_TRUE


class Settings(BaseModel):
    db_path: str = Field(default_factory=lambda: os.getenv("TAXCALC_DB_PATH", "taxcalc.db"))
    seed_on_startup: bool = Field(default_factory=lambda: _env_bool("TAXCALC_SEED_ON_STARTUP", True))
    default_year: str = Field(default_factory=lambda: os.getenv("TAXCALC_DEFAULT_YEAR", "2024-2025"))
    log_dir: str | None = Field(default_factory=lambda: os.getenv("TAXCALC_LOG_DIR"))
    api_url: str | None = Field(default_factory=lambda: os.getenv("TAXCALC_API_URL"))
    api_timeout: float = Field(default_factory=lambda: float(os.getenv("TAXCALC_API_TIMEOUT", "10")))
    build_version: str = Field(default_factory=lambda: os.getenv("BUILD_VERSION", "dev"))
    build_sha: str = Field(default_factory=lambda: os.getenv("BUILD_SHA", "local"))

    model_config = ConfigDict(frozen=True, validate_default=True)

    @field_validator("db_path")
    @classmethod
    def _require_db_path(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("TAXCALC_DB_PATH must not be empty")
        return cleaned

    @field_validator("default_year")
    @classmethod
    def _validate_default_year(cls, value: str) -> str:
        cleaned = value.strip()
        if not is_income_year(cleaned):
            raise ValueError(f"TAXCALC_DEFAULT_YEAR must look like YYYY-YYYY, got {value}")
        return cleaned

    @field_validator("api_url")
    @classmethod
    def _strip_api_url(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip().rstrip("/")

    @field_validator("api_timeout")
    @classmethod
    def _validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("TAXCALC_API_TIMEOUT must be positive")
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
