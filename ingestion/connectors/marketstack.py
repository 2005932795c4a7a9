"""MarketStack connector for secondary commodities."""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from ingestion.settings import Settings, get_settings

from .base import BaseConnector, PermanentError, get_json, to_float

ProviderFn = Callable[[], Dict[str, Any]]

# Futures symbol -> benchmark name
SYMBOLS = {
    "NG": "Natural Gas",
    "HO": "Diesel",  # heating oil as the diesel proxy
    "RB": "Gasoline",  # RBOB
}


class MarketStackConnector(BaseConnector[Dict[str, float]]):
    """End-of-day quotes for natural gas and refined products."""

    source = "marketstack"

    def __init__(self, settings: Optional[Settings] = None, provider: Optional[ProviderFn] = None, **kwargs: Any):
        self._settings = settings or get_settings()
        self._provider = provider
        kwargs.setdefault("max_attempts", self._settings.http_max_attempts)
        kwargs.setdefault("backoff_seconds", self._settings.http_backoff_seconds)
        super().__init__(**kwargs)

    @property
    def configured(self) -> bool:
        return self._provider is not None or self._settings.marketstack_api_key is not None

    def _fetch_raw(self) -> Dict[str, Any]:
        if self._provider is not None:
            return self._provider()

        cfg = self._settings
        if not cfg.marketstack_api_key:
            raise PermanentError("MARKETSTACK_API_KEY is not configured")
        return get_json(
            f"{cfg.marketstack_endpoint.rstrip('/')}/eod/latest",
            label="MarketStack",
            params={
                "access_key": cfg.marketstack_api_key.get_secret_value(),
                "symbols": ",".join(SYMBOLS),
            },
            timeout=float(cfg.http_timeout_seconds),
        )

    def _normalize(self, raw: Dict[str, Any]) -> Dict[str, float]:
        quotes = raw.get("data")
        if not isinstance(quotes, list):
            raise PermanentError("MarketStack payload has no data list")
        prices: Dict[str, float] = {}
        for quote in quotes:
            name = SYMBOLS.get(str(quote.get("symbol") or "").upper())
            if name is None or name in prices:
                continue
            value = to_float(quote.get("price", quote.get("close")))
            if value is not None:
                prices[name] = value
        return prices
