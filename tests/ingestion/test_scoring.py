from __future__ import annotations

import pytest

from ingestion.db.models import Sentiment
from ingestion.models.domain import NewsItemDTO
from ingestion.services.scoring import classify_sentiment, map_category, score_relevance

OIL_ARTICLE = NewsItemDTO(
    external_id="oil-1",
    title="Brent crude oil prices rally as OPEC extends output cuts",
    description="WTI also gained while refinery runs picked up across Asia.",
)

UNRELATED_ARTICLE = NewsItemDTO(
    external_id="bread-1",
    title="Local bakery wins award for sourdough bread",
    description="The family-run shop has baked loaves in the old town for forty years.",
)


def test_oil_article_scores_above_retention_threshold():
    relevance = score_relevance(OIL_ARTICLE)

    assert relevance.score >= 0.30
    assert {"brent", "crude oil", "opec", "wti", "refinery", "oil price"}.issubset(relevance.keywords)


def test_unrelated_article_scores_below_retention_threshold():
    relevance = score_relevance(UNRELATED_ARTICLE)

    assert relevance.score < 0.30
    assert relevance.keywords == []


def test_score_is_capped_at_one():
    text = " ".join(
        ["crude oil", "brent", "wti", "opec", "oil price", "petroleum", "natural gas", "lng", "lpg", "refinery", "diesel"]
    )
    relevance = score_relevance(NewsItemDTO(external_id="x", title=text))

    assert relevance.score == 1.0


def test_terms_match_on_word_boundaries():
    # "bp" must not match inside "bpm", "eni" not inside "scenic"
    item = NewsItemDTO(external_id="x", title="Scenic route at 120 bpm")

    assert score_relevance(item).score == 0.0


def test_upstream_keywords_count_towards_relevance():
    item = NewsItemDTO(external_id="x", title="Weekly roundup", keywords=["LNG", "pipeline"])

    relevance = score_relevance(item)

    assert relevance.score == pytest.approx(0.15)
    assert relevance.keywords == ["lng", "pipeline"]


@pytest.mark.parametrize(
    ("title", "expected"),
    [
        ("Oil prices surge to record high as demand growth stays strong", Sentiment.POSITIVE),
        ("Crude prices plunge as crisis deepens and demand stays weak", Sentiment.NEGATIVE),
        ("Brent gains while WTI falls", Sentiment.MIXED),
        ("OPEC to meet on Thursday", Sentiment.NEUTRAL),
    ],
)
def test_classify_sentiment(title, expected):
    assert classify_sentiment(NewsItemDTO(external_id="x", title=title)) == expected


@pytest.mark.parametrize(
    ("keywords", "expected"),
    [
        (["brent", "opec"], "oil-prices"),
        (["oil futures"], "market-analysis"),
        (["sanctions"], "geopolitics"),
        (["emissions"], "sustainability"),
        (["chevron"], "company-insights"),
        (["refinery"], "industry-news"),
    ],
)
def test_map_category(keywords, expected):
    assert map_category(keywords) == expected
