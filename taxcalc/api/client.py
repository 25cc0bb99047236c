from __future__ import annotations

import logging
import time
from decimal import Decimal
from typing import Any

import httpx

from taxcalc.service import TaxSummary

logger = logging.getLogger("taxcalc.client")


class ApiError(RuntimeError):
    """Raised when the tax API answers with a non-success status."""

    def __init__(self, status_code: int, detail: Any) -> None:
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"API request failed ({status_code}): {detail}")


class TaxApiClient:
    """Talks to a running tax API so the console client can work without a local database."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        *,
        max_retries: int = 3,
        backoff: float = 0.25,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.max_retries = max(1, max_retries)
        self.backoff = backoff
        self._client = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "TaxApiClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        attempt = 0
        last_error: httpx.TransportError | None = None
        while attempt < self.max_retries:
            try:
                response = self._client.request(method, path, **kwargs)
            except httpx.TransportError as exc:
                last_error = exc
                attempt += 1
                logger.warning("%s %s failed (attempt %s/%s): %s", method, path, attempt, self.max_retries, exc)
                if attempt < self.max_retries:
                    time.sleep(self.backoff * (2 ** (attempt - 1)))
                continue
            if response.is_error:
                try:
                    body = response.json()
                except ValueError:
                    body = response.text
                detail = body.get("detail", body) if isinstance(body, dict) else body
                raise ApiError(response.status_code, detail)
            return response.json()
        raise RuntimeError(f"Failed to reach {self.base_url} after {self.max_retries} attempts: {last_error}")

    def health(self) -> dict[str, Any]:
        return self._request("GET", "/health")

    def get_supported_years(self) -> list[str]:
        return list(self._request("GET", "/years"))

    def is_year_supported(self, year: str) -> bool:
        return year in self.get_supported_years()

    def summarize(self, year: str, income: Decimal | float | int) -> TaxSummary:
        payload = self._request("POST", "/tax/calculate", json={"income": float(income), "year": year})
        return TaxSummary.from_dict(payload)


__all__ = ["ApiError", "TaxApiClient"]
