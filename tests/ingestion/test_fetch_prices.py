from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from ingestion.connectors.base import PermanentError
from ingestion.connectors.marketstack import MarketStackConnector
from ingestion.connectors.oil_price_api import OilPriceAPIConnector
from ingestion.db.models import JobExecutionLog, JobStatus, PriceRecord, PriceTrend
from ingestion.tasks.fetch_prices import JOB_NAME, PriceFetcher, derive_benchmarks, run_price_fetch_job

T0 = datetime(2026, 3, 2, 6, 0, tzinfo=timezone.utc)


class Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, hours: float) -> None:
        self.now += timedelta(hours=hours)


def _oil(brent: float, wti: float = 76.0):
    def provider():
        return {"status": "success", "data": {"brent_crude_price": brent, "wti_crude_price": wti}}

    return provider


def _primary(settings, brent: float, wti: float = 76.0) -> OilPriceAPIConnector:
    return OilPriceAPIConnector(settings, provider=_oil(brent, wti))


def _count(session, model) -> int:
    return session.execute(select(func.count()).select_from(model)).scalar_one()


def test_derive_benchmarks_from_brent():
    assert derive_benchmarks({"Brent": 80.0}, 1.5) == {"Dubai": 78.5, "Murban": 79.0, "Bonny Light": 81.5}
    assert derive_benchmarks({"WTI": 76.0}, 1.5) == {}


def test_first_fetch_stores_flat_record_with_quotes(db_settings, scope):
    with scope() as session:
        fetcher = PriceFetcher(session, db_settings, primary=_primary(db_settings, 80.0), clock=Clock(T0))
        assert fetcher.should_fetch() is True

        result = fetcher.fetch_prices()

    assert result.success is True
    assert result.source == "oilpriceapi"
    record = result.record
    assert record.benchmark == "Brent"
    assert record.price == 80.0
    assert record.trend == PriceTrend.FLAT
    assert record.change is None
    assert record.narrative_pending is True
    assert set(record.quotes) == {"WTI", "Dubai", "Murban", "Bonny Light"}
    assert record.quotes["Dubai"]["price"] == 78.5
    assert record.secondary_source is None
    # 06:00 UTC is 10:00 in Dubai
    assert record.price_date.isoformat() == "2026-03-02"


def test_second_fetch_within_interval_is_skipped(db_settings, scope):
    clock = Clock(T0)

    first = run_price_fetch_job(settings=db_settings, primary=_primary(db_settings, 80.0), clock=clock)
    clock.advance(2)
    second = run_price_fetch_job(settings=db_settings, primary=_primary(db_settings, 81.0), clock=clock)

    assert first.success is True
    assert first.data["trend"] == "flat"
    assert second.success is True
    assert second.skipped is True
    assert second.message == "Skipped - not enough time since last fetch"
    with scope() as session:
        assert _count(session, PriceRecord) == 1
        statuses = session.execute(
            select(JobExecutionLog.status).where(JobExecutionLog.job_name == JOB_NAME)
        ).scalars().all()
    assert sorted(s.value for s in statuses) == ["skipped", "success"]


@pytest.mark.parametrize(
    ("second_price", "expected"),
    [(82.0, PriceTrend.UP), (78.0, PriceTrend.DOWN), (80.0, PriceTrend.FLAT)],
)
def test_trend_against_previous_record(db_settings, scope, second_price, expected):
    clock = Clock(T0)
    run_price_fetch_job(settings=db_settings, primary=_primary(db_settings, 80.0), clock=clock)
    clock.advance(13)

    outcome = run_price_fetch_job(settings=db_settings, primary=_primary(db_settings, second_price), clock=clock)

    assert outcome.success is True
    assert outcome.data["trend"] == expected.value
    with scope() as session:
        latest = session.execute(select(PriceRecord).order_by(PriceRecord.captured_at.desc())).scalars().first()
    assert latest.trend == expected
    if expected == PriceTrend.UP:
        assert latest.change == 2.0
        assert latest.change_percent == 2.5


def test_secondary_failure_is_tolerated(db_settings, scope):
    def broken():
        raise PermanentError("MarketStack error: 403")

    secondary = MarketStackConnector(db_settings, provider=broken)
    with scope() as session:
        result = PriceFetcher(
            session, db_settings, primary=_primary(db_settings, 80.0), secondary=secondary, clock=Clock(T0)
        ).fetch_prices()

    assert result.success is True
    assert result.record.secondary_source is None
    assert "Natural Gas" not in result.record.quotes


def test_secondary_quotes_merge_without_overriding_primary(db_settings, scope):
    secondary = MarketStackConnector(
        db_settings,
        provider=lambda: {"data": [{"symbol": "NG", "close": 2.7}, {"symbol": "HO", "close": 2.5}]},
    )
    with scope() as session:
        result = PriceFetcher(
            session, db_settings, primary=_primary(db_settings, 80.0), secondary=secondary, clock=Clock(T0)
        ).fetch_prices()

    assert result.record.secondary_source == "marketstack"
    assert result.record.quotes["Natural Gas"]["price"] == 2.7
    assert result.record.quotes["Diesel"]["price"] == 2.5
    assert result.record.quotes["WTI"]["price"] == 76.0


def test_primary_failure_returns_error_and_logs_job(db_settings, scope):
    def broken():
        raise PermanentError("OilPriceAPI error: 401")

    outcome = run_price_fetch_job(
        settings=db_settings,
        primary=OilPriceAPIConnector(db_settings, provider=broken),
        clock=Clock(T0),
    )

    assert outcome.success is False
    assert outcome.error == "OilPriceAPI error: 401"
    with scope() as session:
        assert _count(session, PriceRecord) == 0
        log = session.execute(select(JobExecutionLog)).scalars().one()
    assert log.status == JobStatus.ERROR
    assert log.error_message == "OilPriceAPI error: 401"


def test_missing_primary_benchmark_fails(db_settings, scope):
    primary = OilPriceAPIConnector(db_settings, provider=lambda: {"data": {"wti_crude_price": 76.0}})
    with scope() as session:
        result = PriceFetcher(session, db_settings, primary=primary, clock=Clock(T0)).fetch_prices()

    assert result.success is False
    assert "Brent" in result.error
    assert result.record is None
