"""Narrative building blocks for generated blog posts.

Body copy is rendered from the Jinja2 templates in ``publish/templates``:
``price_<trend>.md.j2`` for price records and ``news_<sentiment>.md.j2`` for
news articles. Titles, excerpts and tags are built here.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from ingestion.db.models import MarketTrend, NewsArticle, PriceRecord

TEMPLATES_DIR = Path(__file__).parent / "templates"

# Display order of the benchmark table after the primary benchmark
BENCHMARK_ORDER = ("Brent", "WTI", "Dubai", "Murban", "Bonny Light", "Natural Gas", "Diesel", "Gasoline")
UNITS = {"Natural Gas": "/MMBtu", "Diesel": "/gal", "Gasoline": "/gal"}
DEFAULT_UNIT = "/bbl"

MIN_NEWS_TITLE_LENGTH = 30
META_DESCRIPTION_LENGTH = 155


@dataclass(frozen=True)
class BenchmarkRow:
    name: str
    price: float
    unit: str
    change_text: str


class NarrativeRenderer:
    """Loads and renders the post body templates."""

    def __init__(self, templates_dir: Optional[Path] = None) -> None:
        self.templates_dir = templates_dir or TEMPLATES_DIR
        self.env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )

    def render(self, template_name: str, context: Dict[str, Any]) -> str:
        return self.env.get_template(template_name).render(**context).strip() + "\n"

    def render_price(self, record: PriceRecord, *, site_name: str) -> str:
        date_text = format_title_date(record.price_date)
        context = {
            "benchmark": record.benchmark,
            "price": record.price,
            "change_percent": record.change_percent,
            "date_text": date_text,
            "rows": benchmark_rows(record),
            "analysis": price_analysis(record),
            "outlook": market_outlook(record.market_trend),
            "factors": list(record.trend_factors or []),
            "site_name": site_name,
        }
        return self.render(f"price_{record.trend.value}.md.j2", context)

    def render_news(self, article: NewsArticle, *, site_name: str) -> str:
        context = {
            "narrative": article.summary or "",
            "content": article.content,
            "source_name": article.source_name,
            "source_url": article.source_url,
            "site_name": site_name,
        }
        return self.render(f"news_{article.sentiment.value}.md.j2", context)


def format_title_date(value: date) -> str:
    return f"{value.strftime('%B')} {value.day}, {value.year}"


def format_change(change: Optional[float], change_percent: Optional[float]) -> str:
    if change is None or change_percent is None:
        return "N/A"
    sign = "+" if change >= 0 else "-"
    return f"{sign}${abs(change):.2f} ({sign}{abs(change_percent):.2f}%)"


def benchmark_rows(record: PriceRecord) -> List[BenchmarkRow]:
    rows = [
        BenchmarkRow(
            name=record.benchmark,
            price=record.price,
            unit=UNITS.get(record.benchmark, DEFAULT_UNIT),
            change_text=format_change(record.change, record.change_percent),
        )
    ]
    quotes = dict(record.quotes or {})
    ordered = [n for n in BENCHMARK_ORDER if n in quotes] + sorted(n for n in quotes if n not in BENCHMARK_ORDER)
    for name in ordered:
        quote = quotes[name]
        if quote.get("price") is None:
            continue
        rows.append(
            BenchmarkRow(
                name=name,
                price=float(quote["price"]),
                unit=UNITS.get(name, DEFAULT_UNIT),
                change_text=format_change(quote.get("change"), quote.get("change_percent")),
            )
        )
    return rows


def price_title(record: PriceRecord) -> str:
    date_text = format_title_date(record.price_date)
    pct = record.change_percent or 0.0
    if abs(pct) > 3:
        direction = "Surge" if pct > 0 else "Drop"
        return f"Oil Prices {direction} as {record.benchmark} Moves {abs(pct):.1f}% - {date_text}"
    if abs(pct) > 1:
        direction = "Rise" if pct > 0 else "Decline"
        return f"Oil Markets {direction}: Daily Price Update - {date_text}"
    return f"Oil Market Recap: Prices Hold Steady - {date_text}"


def price_excerpt(record: PriceRecord) -> str:
    return (
        f"{format_title_date(record.price_date)} - {record.benchmark} crude trading at "
        f"${record.price:.2f}/bbl ({format_change(record.change, record.change_percent)}). "
        "Get the full market analysis and key benchmark prices in our daily oil market update."
    )


_ANALYSIS = {
    MarketTrend.BULLISH: (
        "Today's trading session reflected **bullish sentiment** across oil markets, with key benchmarks "
        "posting gains. The upward movement suggests continued optimism about demand fundamentals and "
        "supply dynamics."
    ),
    MarketTrend.BEARISH: (
        "Markets displayed **bearish characteristics** in today's session, with prices retreating from "
        "recent levels. Traders appear to be reassessing near-term demand projections amid broader "
        "economic considerations."
    ),
    MarketTrend.VOLATILE: (
        "**Volatility** characterized today's trading, as markets reacted to competing signals. The mixed "
        "session suggests uncertainty about near-term direction as traders await clarity on key market "
        "drivers."
    ),
    MarketTrend.NEUTRAL: (
        "Markets traded in a **neutral range** today, with prices showing limited movement. The balanced "
        "session indicates a wait-and-see approach as traders assess the evolving supply-demand landscape."
    ),
}

_OUTLOOK = {
    MarketTrend.BULLISH: (
        "**OPEC+ compliance levels** and any signals regarding production policy",
        "**Demand indicators** from key consuming regions",
        "**Inventory data** releases for confirmation of current trends",
    ),
    MarketTrend.BEARISH: (
        "**Economic data releases** that may impact demand expectations",
        "**Production growth** from non-OPEC suppliers",
        "**Technical support levels** that could provide price floors",
    ),
}
_DEFAULT_OUTLOOK = (
    "**Supply-demand balance** indicators for directional clarity",
    "**Geopolitical developments** affecting key producing regions",
    "**Currency movements** that may impact dollar-denominated oil",
)


def price_analysis(record: PriceRecord) -> str:
    analysis = _ANALYSIS[record.market_trend]
    pct = record.change_percent or 0.0
    if abs(pct) > 2:
        move = "significant gains" if pct > 0 else "notable decline"
        analysis += f" The {move} in {record.benchmark} crude warrants attention from market participants."
    return analysis


def market_outlook(trend: MarketTrend) -> str:
    items = _OUTLOOK.get(trend, _DEFAULT_OUTLOOK)
    lines = "\n".join(f"- {item}" for item in items)
    return f"Looking ahead, market participants should monitor:\n\n{lines}"


def price_tags(record: PriceRecord) -> List[str]:
    tags = ["oil prices", "market update", f"{record.benchmark.lower()} crude"]
    quotes = record.quotes or {}
    if "WTI" in quotes:
        tags.append("wti")
    if record.market_trend == MarketTrend.BULLISH:
        tags.extend(["bullish", "price rally"])
    elif record.market_trend == MarketTrend.BEARISH:
        tags.extend(["bearish", "price decline"])
    if "Bonny Light" in quotes:
        tags.extend(["bonny light", "nigerian crude"])
    if "Dubai" in quotes:
        tags.extend(["dubai crude", "middle east"])
    return _unique(tags)


def enhance_news_title(title: str) -> str:
    cleaned = re.sub(r"\s+", " ", title).strip()
    if len(cleaned) < MIN_NEWS_TITLE_LENGTH:
        cleaned = f"Energy Markets: {cleaned}"
    return cleaned


def news_tags(article: NewsArticle) -> List[str]:
    tags = ["industry news", *list(article.relevance_keywords or [])[:5], article.sentiment.value]
    if article.source_name:
        tags.append(re.sub(r"\s+", "-", article.source_name.strip().lower()))
    return _unique(tags)


def meta_description(excerpt: str) -> str:
    if len(excerpt) <= META_DESCRIPTION_LENGTH:
        return excerpt
    return excerpt[:META_DESCRIPTION_LENGTH].rstrip() + "..."


def _unique(items: List[str]) -> List[str]:
    return list(dict.fromkeys(items))
