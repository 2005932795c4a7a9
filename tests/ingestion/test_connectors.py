from __future__ import annotations

import hashlib

import pytest

from ingestion.connectors.base import PermanentError, TransientError
from ingestion.connectors.marketstack import MarketStackConnector
from ingestion.connectors.newsdata import NewsDataConnector
from ingestion.connectors.oil_price_api import OilPriceAPIConnector


def _oil_payload():
    return {
        "status": "success",
        "data": {
            "brent_crude_price": "82.45",
            "wti_crude_price": 78.1,
            "natural_gas_price": None,
        },
    }


def _news_payload():
    return {
        "status": "success",
        "results": [
            {
                "article_id": "a1",
                "title": "OPEC+ weighs deeper output cuts",
                "description": "Brent crude steadied ahead of the meeting.",
                "link": "https://example.com/opec",
                "source_id": "reuters",
                "pubDate": "2025-03-01 08:30:00",
                "keywords": None,
                "category": ["business"],
            },
            {  # duplicate id
                "article_id": "a1",
                "title": "OPEC+ weighs deeper output cuts",
                "link": "https://example.com/opec",
            },
            {"article_id": "a2", "title": ""},  # no title
        ],
    }


def test_oil_price_connector_normalizes(settings):
    connector = OilPriceAPIConnector(settings, provider=_oil_payload)

    prices = connector.fetch()

    assert prices == {"Brent": 82.45, "WTI": 78.1}


def test_oil_price_connector_rejects_missing_data(settings):
    connector = OilPriceAPIConnector(settings, provider=lambda: {"status": "error"})

    with pytest.raises(PermanentError):
        connector.fetch()


def test_oil_price_connector_requires_key(settings):
    connector = OilPriceAPIConnector(settings.model_copy(update={"oilpriceapi_key": None}))

    with pytest.raises(PermanentError, match="OILPRICEAPI_KEY"):
        connector.fetch()


def test_marketstack_connector_maps_symbols(settings):
    payload = {
        "data": [
            {"symbol": "NG", "close": 2.71},
            {"symbol": "HO", "price": "2.55"},
            {"symbol": "RB", "close": None},
            {"symbol": "XYZ", "close": 1.0},
        ]
    }
    connector = MarketStackConnector(settings, provider=lambda: payload)

    assert connector.configured is True
    assert connector.fetch() == {"Natural Gas": 2.71, "Diesel": 2.55}


def test_marketstack_unconfigured_without_key(settings):
    assert MarketStackConnector(settings).configured is False


def test_newsdata_connector_normalizes_and_dedupes(settings):
    connector = NewsDataConnector(settings, provider=_news_payload)

    items = connector.fetch()

    assert len(items) == 1
    item = items[0]
    assert item.external_id == "a1"
    assert item.source_name == "reuters"
    assert item.published_at is not None and item.published_at.tzinfo is not None
    assert item.published_at.hour == 8
    assert item.keywords == []
    assert item.categories == ["business"]


def test_newsdata_long_ids_and_link_fallbacks_are_hashed(settings):
    long_link = "https://example.com/markets/" + "a" * 300
    long_id = "b" * 200
    payload = {
        "status": "success",
        "results": [
            {"title": "Refinery restarts after outage", "link": long_link},
            {"article_id": long_id, "title": "LNG cargoes diverted"},
        ],
    }
    connector = NewsDataConnector(settings, provider=lambda: payload)

    items = connector.fetch()

    assert [item.external_id for item in items] == [
        hashlib.sha256(long_link.encode("utf-8")).hexdigest(),
        hashlib.sha256(long_id.encode("utf-8")).hexdigest(),
    ]
    assert all(len(item.external_id) <= 128 for item in items)


def test_newsdata_non_success_is_permanent(settings):
    connector = NewsDataConnector(settings, provider=lambda: {"status": "error", "results": {"message": "bad key"}})

    with pytest.raises(PermanentError):
        connector.fetch()


def test_connector_retries_transient_with_exponential_backoff(settings):
    calls = {"n": 0}
    sleeps: list[float] = []

    def _flaky_provider():
        calls["n"] += 1
        if calls["n"] < 3:
            raise TransientError("temp outage")
        return _oil_payload()

    connector = OilPriceAPIConnector(
        settings,
        provider=_flaky_provider,
        max_attempts=3,
        backoff_seconds=0.5,
        sleep=sleeps.append,
    )
    prices = connector.fetch()

    assert calls["n"] == 3
    assert sleeps == [0.5, 1.0]
    assert prices["Brent"] == 82.45


def test_connector_gives_up_after_max_attempts(settings):
    calls = {"n": 0}

    def _down():
        calls["n"] += 1
        raise TransientError("still down")

    connector = OilPriceAPIConnector(settings, provider=_down, max_attempts=2, sleep=lambda _s: None)

    with pytest.raises(TransientError):
        connector.fetch()
    assert calls["n"] == 2


def test_connector_does_not_retry_permanent_errors(settings):
    calls = {"n": 0}

    def _forbidden():
        calls["n"] += 1
        raise PermanentError("403")

    connector = OilPriceAPIConnector(settings, provider=_forbidden, max_attempts=5, sleep=lambda _s: None)

    with pytest.raises(PermanentError):
        connector.fetch()
    assert calls["n"] == 1
