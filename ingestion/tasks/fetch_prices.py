"""Oil price fetch job."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Optional

from celery import shared_task
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ingestion.connectors.base import ConnectorError
from ingestion.connectors.marketstack import MarketStackConnector
from ingestion.connectors.oil_price_api import OilPriceAPIConnector
from ingestion.db.models import PriceRecord
from ingestion.db.session import session_scope
from ingestion.models.domain import BenchmarkQuote, JobOutcome
from ingestion.repositories.jobs import JobExecutionRecorder
from ingestion.repositories.prices import latest_price, save_price
from ingestion.services.trend import analyze_market_trend, compute_trend, price_change
from ingestion.settings import Settings, get_settings
from ingestion.utils.clock import hours_between, local_date, utcnow
from ingestion.utils.logging import get_logger

JOB_NAME = "fetch-oil-prices"

logger = get_logger(__name__)


@dataclass(frozen=True)
class PriceFetchResult:
    success: bool
    record: Optional[PriceRecord]
    error: Optional[str]
    source: str
    duration_ms: int


def derive_benchmarks(prices: Dict[str, float], bonny_light_premium: float) -> Dict[str, float]:
    """Benchmarks priced off Brent: Dubai at a discount, Murban over Dubai, Bonny Light at a premium."""
    brent = prices.get("Brent")
    if brent is None:
        return {}
    dubai = round(brent - 1.5, 2)
    return {
        "Dubai": dubai,
        "Murban": round(dubai + 0.5, 2),
        "Bonny Light": round(brent + bonny_light_premium, 2),
    }


class PriceFetcher:
    """Fetches benchmark prices and stores one PriceRecord per successful call."""

    def __init__(
        self,
        session: Session,
        settings: Settings | None = None,
        *,
        primary: OilPriceAPIConnector | None = None,
        secondary: MarketStackConnector | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._session = session
        self._settings = settings or get_settings()
        self._primary = primary or OilPriceAPIConnector(self._settings)
        self._secondary = secondary or MarketStackConnector(self._settings)
        self._clock = clock

    def should_fetch(self) -> bool:
        latest = latest_price(self._session)
        if latest is None:
            return True
        elapsed = hours_between(latest.captured_at, self._clock())
        return elapsed >= self._settings.price_fetch_interval_hours

    def fetch_prices(self) -> PriceFetchResult:
        t0 = time.perf_counter()
        benchmark = self._settings.primary_benchmark

        def _failure(message: str) -> PriceFetchResult:
            return PriceFetchResult(
                success=False,
                record=None,
                error=message,
                source="none",
                duration_ms=int((time.perf_counter() - t0) * 1000),
            )

        try:
            prices = dict(self._primary.fetch())
        except ConnectorError as exc:
            logger.warning("price_fetch.primary_failed", extra={"source": self._primary.source, "error": str(exc)})
            return _failure(str(exc))
        if benchmark not in prices:
            logger.warning("price_fetch.missing_benchmark", extra={"benchmark": benchmark})
            return _failure(f"{self._primary.source} payload has no {benchmark} price")

        secondary_source = None
        if self._secondary.configured:
            try:
                for name, value in self._secondary.fetch().items():
                    prices.setdefault(name, value)
                secondary_source = self._secondary.source
            except ConnectorError as exc:
                logger.warning(
                    "price_fetch.secondary_failed",
                    extra={"source": self._secondary.source, "error": str(exc)},
                )
        for name, value in derive_benchmarks(prices, self._settings.bonny_light_premium).items():
            prices.setdefault(name, value)

        previous = latest_price(self._session)
        quotes = self._build_quotes(prices, previous)
        primary_quote = quotes.pop(benchmark)
        market_trend, factors = analyze_market_trend(
            {benchmark: primary_quote.change_percent, **{n: q.change_percent for n, q in quotes.items()}},
            primary=benchmark,
        )
        captured_at = self._clock()
        record = PriceRecord(
            benchmark=benchmark,
            price=primary_quote.price,
            currency="USD",
            captured_at=captured_at,
            price_date=local_date(captured_at, self._settings.site_timezone),
            trend=compute_trend(primary_quote.price, previous.price if previous else None),
            change=primary_quote.change,
            change_percent=primary_quote.change_percent,
            market_trend=market_trend,
            trend_factors=factors,
            quotes={name: quote.model_dump(exclude={"name"}) for name, quote in quotes.items()},
            source=self._primary.source,
            secondary_source=secondary_source,
            narrative_pending=True,
        )
        try:
            save_price(self._session, record)
        except SQLAlchemyError as exc:
            self._session.rollback()
            logger.exception("price_fetch.save_failed")
            return _failure(f"Failed to save price record: {exc.__class__.__name__}")

        return PriceFetchResult(
            success=True,
            record=record,
            error=None,
            source=self._primary.source,
            duration_ms=int((time.perf_counter() - t0) * 1000),
        )

    @staticmethod
    def _build_quotes(prices: Dict[str, float], previous: Optional[PriceRecord]) -> Dict[str, BenchmarkQuote]:
        quotes: Dict[str, BenchmarkQuote] = {}
        for name, value in prices.items():
            prev_value: Optional[float] = None
            if previous is not None:
                if name == previous.benchmark:
                    prev_value = previous.price
                else:
                    prev_value = (previous.quotes or {}).get(name, {}).get("price")
            change, change_percent = price_change(value, prev_value)
            quotes[name] = BenchmarkQuote(name=name, price=value, change=change, change_percent=change_percent)
        return quotes


def run_price_fetch_job(
    *,
    settings: Settings | None = None,
    triggered_by: str = "cron",
    primary: OilPriceAPIConnector | None = None,
    secondary: MarketStackConnector | None = None,
    clock: Callable[[], datetime] = utcnow,
) -> JobOutcome:
    """Gate on the fetch interval, fetch, persist, and log the invocation."""
    config = settings or get_settings()
    trace_id = str(uuid.uuid4())
    extra = {"trace_id": trace_id, "job_name": JOB_NAME}
    logger.info("price_fetch.start", extra=extra)
    with JobExecutionRecorder(
        lambda: session_scope(config), job_name=JOB_NAME, triggered_by=triggered_by, trace_id=trace_id
    ) as recorder, session_scope(config) as session:
        fetcher = PriceFetcher(session, config, primary=primary, secondary=secondary, clock=clock)
        if not fetcher.should_fetch():
            logger.info("price_fetch.skipped", extra=extra)
            recorder.skipped({"reason": "interval"})
            return JobOutcome(
                success=True,
                message="Skipped - not enough time since last fetch",
                skipped=True,
                duration_ms=recorder.elapsed_ms,
            )

        result = fetcher.fetch_prices()
        if not result.success or result.record is None:
            logger.warning("price_fetch.failed", extra={**extra, "error": result.error})
            recorder.failed(result.error or "Unknown error")
            return JobOutcome(
                success=False,
                error=result.error or "Failed to fetch oil prices",
                duration_ms=recorder.elapsed_ms,
            )

        record = result.record
        recorder.records_fetched = 1 + len(record.quotes)
        recorder.records_created = 1
        recorder.summary = {
            "benchmark": record.benchmark,
            "price": record.price,
            "trend": record.trend.value,
            "market_trend": record.market_trend.value,
        }
        logger.info("price_fetch.saved", extra={**extra, **recorder.summary})
        return JobOutcome(
            success=True,
            message="Oil prices fetched successfully",
            data={
                "id": str(record.id),
                "benchmark": record.benchmark,
                "price": record.price,
                "currency": record.currency,
                "trend": record.trend.value,
                "market_trend": record.market_trend.value,
                "captured_at": record.captured_at.isoformat(),
            },
            duration_ms=recorder.elapsed_ms,
        )


@shared_task(name="ingestion.tasks.fetch_prices.fetch_oil_prices")
def fetch_oil_prices() -> dict:  # pragma: no cover - thin Celery wrapper
    return run_price_fetch_job(triggered_by="beat").to_response()
