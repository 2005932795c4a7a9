"""Quick upstream connector smoke test.

Usage:
  python scripts/smoke_connectors.py prices
  python scripts/smoke_connectors.py news -n 5 --attempts 2

Reads configuration from .env via pydantic settings. Requires OILPRICEAPI_KEY
(and optionally MARKETSTACK_API_KEY) for prices, NEWSDATA_API_KEY for news.
Nothing is written to the database.
"""

from __future__ import annotations

import argparse
from typing import List

from ingestion.connectors.base import PermanentError, TransientError
from ingestion.connectors.marketstack import MarketStackConnector
from ingestion.connectors.newsdata import NewsDataConnector
from ingestion.connectors.oil_price_api import OilPriceAPIConnector
from ingestion.services.scoring import classify_sentiment, score_relevance
from ingestion.settings import get_settings


def _prices(attempts: int) -> None:
    cfg = get_settings()
    prices = OilPriceAPIConnector(cfg, max_attempts=attempts).fetch()
    secondary = MarketStackConnector(cfg, max_attempts=attempts)
    if secondary.configured:
        for name, value in secondary.fetch().items():
            prices.setdefault(name, value)
    for name, value in sorted(prices.items()):
        print(f"{name:<12} {value:>10.2f}")


def _news(attempts: int, top: int) -> None:
    items = NewsDataConnector(get_settings(), max_attempts=attempts).fetch()
    print(f"Fetched {len(items)} articles.")
    for idx, item in enumerate(items[:top], start=1):
        relevance = score_relevance(item)
        print(
            f"{idx}. [{relevance.score:.2f} {classify_sentiment(item).value}] {item.title[:120]}\n   {item.link}"
        )


def main(argv: List[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Upstream connector smoke test")
    parser.add_argument("target", choices=["prices", "news"], help="Which upstream to call")
    parser.add_argument("-n", "--top", type=int, default=5, help="Print top N articles (default: 5)")
    parser.add_argument("--attempts", type=int, default=2, help="Max attempts per call (default: 2)")
    args = parser.parse_args(argv)

    try:
        if args.target == "prices":
            _prices(args.attempts)
        else:
            _news(args.attempts, args.top)
    except PermanentError as exc:
        print(f"Permanent error: {exc}")
        return 2
    except TransientError as exc:
        print(f"Transient error: {exc}")
        return 3
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
