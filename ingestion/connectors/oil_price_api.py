"""OilPriceAPI connector (provider-injected for tests/offline)."""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from ingestion.settings import Settings, get_settings

from .base import BaseConnector, PermanentError, get_json, to_float

ProviderFn = Callable[[], Dict[str, Any]]

# Upstream field -> benchmark name
FIELD_MAP = {
    "brent_crude_price": "Brent",
    "wti_crude_price": "WTI",
    "natural_gas_price": "Natural Gas",
}


class OilPriceAPIConnector(BaseConnector[Dict[str, float]]):
    """Primary price source for Brent, WTI and natural gas.

    - with a provider: offline mode, the provider returns the JSON payload
    - without one: real HTTP call to ``/prices/latest``
    """

    source = "oilpriceapi"

    def __init__(self, settings: Optional[Settings] = None, provider: Optional[ProviderFn] = None, **kwargs: Any):
        self._settings = settings or get_settings()
        self._provider = provider
        kwargs.setdefault("max_attempts", self._settings.http_max_attempts)
        kwargs.setdefault("backoff_seconds", self._settings.http_backoff_seconds)
        super().__init__(**kwargs)

    def _fetch_raw(self) -> Dict[str, Any]:
        if self._provider is not None:
            return self._provider()

        cfg = self._settings
        if not cfg.oilpriceapi_key:
            raise PermanentError("OILPRICEAPI_KEY is not configured")
        return get_json(
            f"{cfg.oilpriceapi_endpoint.rstrip('/')}/prices/latest",
            label="OilPriceAPI",
            headers={
                "Authorization": f"Token {cfg.oilpriceapi_key.get_secret_value()}",
                "Content-Type": "application/json",
            },
            timeout=float(cfg.http_timeout_seconds),
        )

    def _normalize(self, raw: Dict[str, Any]) -> Dict[str, float]:
        data = raw.get("data")
        if not isinstance(data, dict):
            raise PermanentError("OilPriceAPI payload has no data object")
        prices: Dict[str, float] = {}
        for field, name in FIELD_MAP.items():
            value = to_float(data.get(field))
            if value is not None:
                prices[name] = value
        return prices
