"""Price change and trend classification."""

from __future__ import annotations

from typing import List, Mapping, Optional, Tuple

from ingestion.db.models import MarketTrend, PriceTrend


def compute_trend(current: float, previous: Optional[float]) -> PriceTrend:
    """Direction of ``current`` against ``previous``; no predecessor is flat."""
    if previous is None or current == previous:
        return PriceTrend.FLAT
    return PriceTrend.UP if current > previous else PriceTrend.DOWN


def price_change(current: Optional[float], previous: Optional[float]) -> Tuple[Optional[float], Optional[float]]:
    if current is None or previous is None or previous == 0:
        return None, None
    change = round(current - previous, 2)
    return change, round(change / previous * 100, 2)


def analyze_market_trend(
    change_percents: Mapping[str, Optional[float]],
    *,
    primary: str = "Brent",
) -> Tuple[MarketTrend, List[str]]:
    """Aggregate benchmark moves into a market trend plus the factors behind it.

    The primary benchmark carries two signal points on a move above 2% and one
    above 0.5%; the other crude benchmark carries one point above 2%; natural
    gas only contributes a factor line on a move above 3%.
    """
    factors: List[str] = []
    bullish = 0
    bearish = 0

    pct = change_percents.get(primary)
    if pct is not None:
        if pct > 2:
            bullish += 2
            factors.append(f"{primary} crude up {pct}%")
        elif pct > 0.5:
            bullish += 1
            factors.append(f"{primary} crude showing upward momentum")
        elif pct < -2:
            bearish += 2
            factors.append(f"{primary} crude down {abs(pct)}%")
        elif pct < -0.5:
            bearish += 1
            factors.append(f"{primary} crude showing downward pressure")

    other = "WTI" if primary != "WTI" else "Brent"
    pct = change_percents.get(other)
    if pct is not None:
        if pct > 2:
            bullish += 1
            factors.append(f"{other} crude up {pct}%")
        elif pct < -2:
            bearish += 1
            factors.append(f"{other} crude down {abs(pct)}%")

    pct = change_percents.get("Natural Gas")
    if pct is not None and abs(pct) > 3:
        direction = "surging" if pct > 0 else "falling"
        factors.append(f"Natural gas {direction} by {abs(pct)}%")

    if abs(bullish - bearish) <= 1 and bullish + bearish >= 2:
        trend = MarketTrend.VOLATILE
        factors.insert(0, "Markets showing mixed signals")
    elif bullish > bearish:
        trend = MarketTrend.BULLISH
        factors.insert(0, "Overall bullish market sentiment")
    elif bearish > bullish:
        trend = MarketTrend.BEARISH
        factors.insert(0, "Overall bearish market sentiment")
    else:
        trend = MarketTrend.NEUTRAL
        factors.insert(0, "Markets trading in neutral territory")
    return trend, factors
