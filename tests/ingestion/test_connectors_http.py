from __future__ import annotations

import re

import httpx
import pytest

pytest.importorskip("pytest_httpx")

from ingestion.connectors.base import PermanentError, TransientError
from ingestion.connectors.newsdata import NewsDataConnector
from ingestion.connectors.oil_price_api import OilPriceAPIConnector

OIL_URL = "https://api.oilpriceapi.com/v1/prices/latest"
NEWS_URL = re.compile(r"https://newsdata\.io/api/1/news\?.*")


def test_oil_price_request_sends_token_header(httpx_mock, settings):
    httpx_mock.add_response(
        method="GET",
        url=OIL_URL,
        match_headers={"Authorization": "Token oil-key"},
        json={"status": "success", "data": {"brent_crude_price": 81.2, "wti_crude_price": 77.0}},
    )

    prices = OilPriceAPIConnector(settings).fetch()

    assert prices == {"Brent": 81.2, "WTI": 77.0}


def test_oil_price_rate_limit_is_retried(httpx_mock, settings):
    httpx_mock.add_response(method="GET", url=OIL_URL, status_code=429, json={"error": "slow down"})
    httpx_mock.add_response(method="GET", url=OIL_URL, json={"data": {"brent_crude_price": 80.0}})

    prices = OilPriceAPIConnector(settings, sleep=lambda _s: None).fetch()

    assert prices == {"Brent": 80.0}
    assert len(httpx_mock.get_requests()) == 2


def test_oil_price_server_errors_exhaust_attempts(httpx_mock, settings):
    httpx_mock.add_response(method="GET", url=OIL_URL, status_code=503)
    httpx_mock.add_response(method="GET", url=OIL_URL, status_code=502)

    with pytest.raises(TransientError):
        OilPriceAPIConnector(settings, sleep=lambda _s: None).fetch()


def test_oil_price_unauthorized_is_permanent(httpx_mock, settings):
    httpx_mock.add_response(method="GET", url=OIL_URL, status_code=401, json={"error": "bad token"})

    with pytest.raises(PermanentError):
        OilPriceAPIConnector(settings, sleep=lambda _s: None).fetch()
    assert len(httpx_mock.get_requests()) == 1


def test_oil_price_timeout_is_transient(httpx_mock, settings):
    httpx_mock.add_exception(httpx.ReadTimeout("timed out"), url=OIL_URL)
    httpx_mock.add_exception(httpx.ReadTimeout("timed out"), url=OIL_URL)

    with pytest.raises(TransientError, match="timeout"):
        OilPriceAPIConnector(settings, sleep=lambda _s: None).fetch()


def test_newsdata_request_parameters(httpx_mock, settings):
    httpx_mock.add_response(
        method="GET",
        url=NEWS_URL,
        json={
            "status": "success",
            "results": [
                {
                    "article_id": "n1",
                    "title": "Refinery margins climb",
                    "link": "https://example.com/n1",
                    "pubDate": "2025-03-02 10:00:00",
                }
            ],
        },
    )

    items = NewsDataConnector(settings).fetch()

    assert [item.external_id for item in items] == ["n1"]
    request = httpx_mock.get_request()
    assert request.url.params["apikey"] == "news-key"
    assert request.url.params["language"] == "en"
    assert request.url.params["size"] == "50"
    assert " OR " in request.url.params["q"]
