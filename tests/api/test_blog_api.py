from __future__ import annotations

import uuid

from ingestion.db.models import MarketTrend, NewsArticle, PriceRecord, PriceTrend, ReviewStatus, Sentiment
from ingestion.utils.clock import local_date, utcnow
from publish.generator import PostGenerator


def _seed_price(scope, settings, price: float = 82.0) -> PriceRecord:
    now = utcnow()
    record = PriceRecord(
        benchmark="Brent",
        price=price,
        captured_at=now,
        price_date=local_date(now, settings.site_timezone),
        trend=PriceTrend.UP,
        change=2.0,
        change_percent=2.5,
        market_trend=MarketTrend.BULLISH,
        trend_factors=["Overall bullish market sentiment"],
        quotes={"WTI": {"price": 78.0, "change": 1.0, "change_percent": 1.3}},
        source="oilpriceapi",
    )
    with scope() as session:
        session.add(record)
    return record


def _seed_article(scope, external_id: str = "n-1", status=ReviewStatus.PENDING) -> NewsArticle:
    article = NewsArticle(
        external_id=external_id,
        title="Brent crude oil prices rally as OPEC extends output cuts",
        summary="Producers signalled steady output into next quarter.",
        relevance_score=0.6,
        relevance_keywords=["brent", "opec"],
        sentiment=Sentiment.MIXED,
        category="oil-prices",
        status=status,
        auto_post=True,
    )
    with scope() as session:
        session.add(article)
    return article


def test_blog_listing_and_detail(client, db_settings, scope):
    _seed_price(scope, db_settings)
    PostGenerator(db_settings, scope=scope).run()

    listing = client.get("/api/blog")
    assert listing.status_code == 200
    (summary,) = listing.json()
    assert summary["category"] == "oil-prices"
    assert summary["source_type"] == "oil_price"
    assert "body" not in summary

    detail = client.get(f"/api/blog/{summary['slug']}")
    assert detail.status_code == 200
    assert detail.json()["body"].startswith("## Market Overview")
    assert detail.json()["view_count"] == 1
    assert client.get(f"/api/blog/{summary['slug']}").json()["view_count"] == 2

    assert client.get("/api/blog", params={"category": "geopolitics"}).json() == []
    assert client.get("/api/blog/not-a-post").status_code == 404


def test_latest_price_and_history(client, db_settings, scope):
    assert client.get("/api/oil-prices/latest").json() == {"data": None}

    record = _seed_price(scope, db_settings)

    latest = client.get("/api/oil-prices/latest").json()["data"]
    assert latest["id"] == str(record.id)
    assert latest["price"] == 82.0
    assert latest["trend"] == "up"
    assert latest["quotes"]["WTI"]["price"] == 78.0

    history = client.get("/api/oil-prices/history", params={"days": 7})
    assert history.status_code == 200
    assert [row["id"] for row in history.json()] == [str(record.id)]
    assert client.get("/api/oil-prices/history", params={"days": 0}).status_code == 400


def test_admin_news_review(admin_client, scope):
    article = _seed_article(scope)

    pending = admin_client.get("/api/admin/news")
    assert pending.status_code == 200
    assert [a["id"] for a in pending.json()] == [str(article.id)]

    reviewed = admin_client.patch(
        f"/api/admin/news/{article.id}", json={"status": "approved", "review_notes": "Publish tomorrow"}
    )
    assert reviewed.status_code == 200
    assert reviewed.json()["status"] == "approved"
    assert reviewed.json()["review_notes"] == "Publish tomorrow"

    stats = admin_client.get("/api/admin/news/stats").json()
    assert stats["approved"] == 1
    assert stats["total"] == 1

    assert admin_client.get("/api/admin/news").json() == []
    assert admin_client.patch(f"/api/admin/news/{uuid.uuid4()}", json={"status": "rejected"}).status_code == 404
    assert admin_client.patch(f"/api/admin/news/{article.id}", json={"status": "posted"}).status_code == 400


def test_admin_news_requires_session(client):
    assert client.get("/api/admin/news").status_code == 401
    assert client.get("/api/admin/jobs").status_code == 401
