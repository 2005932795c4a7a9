"""Keyword relevance, lexical sentiment and category mapping for news."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence, Tuple

from ingestion.db.models import Sentiment
from ingestion.models.domain import NewsItemDTO

# keyword tier -> (points per match, terms)
RELEVANCE_KEYWORDS: Dict[str, Tuple[int, Tuple[str, ...]]] = {
    "high": (
        10,
        (
            "crude oil", "brent", "wti", "opec", "oil price",
            "petroleum", "natural gas", "lng", "lpg", "refinery",
            "oil production", "oil supply", "oil demand", "energy sector",
            "oil drilling", "offshore drilling", "oil reserves",
            "bonny light", "dubai crude", "murban", "fuel prices",
            "gasoline", "diesel", "jet fuel", "petrochemical",
            "oil trading", "energy market", "oil futures", "commodity",
        ),
    ),
    "medium": (
        5,
        (
            "energy", "saudi arabia", "russia oil", "middle east oil",
            "nigeria oil", "uae oil", "iraq oil", "iran oil",
            "oil company", "exxon", "chevron", "shell", "bp",
            "totalenergies", "eni", "equinor", "conocophillips",
            "pipeline", "oil tanker", "shipping", "trade",
            "sanctions", "carbon", "emissions", "climate energy",
        ),
    ),
    "low": (
        2,
        (
            "investment", "stock market", "economy", "inflation",
            "dollar", "currency", "trade war", "geopolitical",
            "regulation", "government", "policy", "minister",
        ),
    ),
}
MAX_POINTS = 100

POSITIVE_WORDS = (
    "surge", "rise", "gain", "rally", "increase", "growth",
    "bullish", "optimistic", "boost", "record high", "recovery",
    "strong", "positive", "upward", "climb", "soar",
)
NEGATIVE_WORDS = (
    "drop", "fall", "decline", "plunge", "crash", "slump",
    "bearish", "pessimistic", "cut", "record low", "crisis",
    "weak", "negative", "downward", "sink", "tumble",
)

# First match wins; fallback is industry-news.
CATEGORY_RULES: Sequence[Tuple[str, Tuple[str, ...]]] = (
    ("oil-prices", ("oil price", "brent", "wti", "crude oil", "fuel prices")),
    ("market-analysis", ("market", "trading", "futures", "commodity")),
    ("geopolitics", ("opec", "sanctions", "russia", "middle east", "iran", "saudi")),
    ("sustainability", ("carbon", "emissions", "climate", "green", "renewable")),
    ("company-insights", ("exxon", "chevron", "shell", "bp", "total", "eni")),
)
DEFAULT_CATEGORY = "industry-news"


@dataclass(frozen=True)
class Relevance:
    score: float  # 0..1
    keywords: List[str]


def _term_pattern(term: str, *, prefix: bool) -> re.Pattern[str]:
    tail = "" if prefix else r"(?:s|es)?(?![a-z0-9])"
    return re.compile(r"(?<![a-z0-9])" + re.escape(term.lower()) + tail)


_RELEVANCE_PATTERNS = {
    tier: (points, [(term, _term_pattern(term, prefix=False)) for term in terms])
    for tier, (points, terms) in RELEVANCE_KEYWORDS.items()
}
_POSITIVE_PATTERNS = [_term_pattern(w, prefix=True) for w in POSITIVE_WORDS]
_NEGATIVE_PATTERNS = [_term_pattern(w, prefix=True) for w in NEGATIVE_WORDS]


def _joined(parts: Iterable[str | None]) -> str:
    return " ".join(p for p in parts if p).lower()


def score_relevance(item: NewsItemDTO) -> Relevance:
    """Tiered keyword score over title, description, content and upstream keywords."""
    text = _joined([item.title, item.description, item.content, *item.keywords])
    points = 0
    found: List[str] = []
    for _tier, (weight, patterns) in _RELEVANCE_PATTERNS.items():
        for term, pattern in patterns:
            if pattern.search(text):
                points += weight
                if term not in found:
                    found.append(term)
    return Relevance(score=min(points, MAX_POINTS) / MAX_POINTS, keywords=found)


def classify_sentiment(item: NewsItemDTO) -> Sentiment:
    """Lexical polarity over title and description."""
    text = _joined([item.title, item.description])
    positive = sum(1 for p in _POSITIVE_PATTERNS if p.search(text))
    negative = sum(1 for p in _NEGATIVE_PATTERNS if p.search(text))
    if positive > negative + 1:
        return Sentiment.POSITIVE
    if negative > positive + 1:
        return Sentiment.NEGATIVE
    if positive > 0 and negative > 0:
        return Sentiment.MIXED
    return Sentiment.NEUTRAL


def map_category(keywords: Sequence[str]) -> str:
    lowered = [k.lower() for k in keywords]
    for slug, hints in CATEGORY_RULES:
        if any(hint in kw for kw in lowered for hint in hints):
            return slug
    return DEFAULT_CATEGORY
