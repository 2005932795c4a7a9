from __future__ import annotations

from datetime import date, datetime, timezone
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from ingestion.db.models import BlogPost, PostSource, PriceRecord, PriceTrend

ROOT = Path(__file__).resolve().parents[2]


@pytest.fixture()
def sqlite_url(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'site.db'}"


def _upgrade_database(db_url: str) -> None:
    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "ingestion/db/migrations"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    cfg.attributes["configure_logger"] = False
    command.upgrade(cfg, "head")


def test_migrations_create_expected_tables(sqlite_url: str) -> None:
    _upgrade_database(sqlite_url)
    inspector = inspect(create_engine(sqlite_url, future=True))

    tables = set(inspector.get_table_names())
    assert {
        "price_records",
        "news_articles",
        "blog_posts",
        "job_execution_logs",
        "inquiries",
        "admin_profiles",
        "admin_sessions",
        "audit_logs",
    }.issubset(tables)

    price_columns = {c["name"] for c in inspector.get_columns("price_records")}
    assert {"benchmark", "price", "trend", "narrative_pending", "quotes"}.issubset(price_columns)

    post_columns = {c["name"] for c in inspector.get_columns("blog_posts")}
    assert {"slug", "source_type", "price_record_id", "news_article_id", "view_count"}.issubset(post_columns)

    audit_columns = {c["name"] for c in inspector.get_columns("audit_logs")}
    assert {"action", "resource_type", "metadata"}.issubset(audit_columns)


def test_models_roundtrip_and_slug_uniqueness(sqlite_url: str) -> None:
    _upgrade_database(sqlite_url)
    SessionLocal = sessionmaker(bind=create_engine(sqlite_url, future=True), expire_on_commit=False, future=True)

    with SessionLocal() as session:  # type: Session
        record = PriceRecord(
            benchmark="Brent",
            price=80.0,
            captured_at=datetime.now(timezone.utc),
            price_date=date(2026, 10, 18),
            trend=PriceTrend.FLAT,
            source="oilpriceapi",
        )
        session.add(record)
        session.flush()
        session.add(
            BlogPost(
                title="Oil Market Recap",
                slug="oil-market-recap",
                body="Body",
                category="oil-prices",
                source_type=PostSource.OIL_PRICE,
                price_record_id=record.id,
            )
        )
        session.commit()

        assert record.narrative_pending is True
        assert record.quotes == {}
        assert record.created_at is not None

        session.add(
            BlogPost(
                title="Oil Market Recap",
                slug="oil-market-recap",
                body="Other body",
                category="oil-prices",
                source_type=PostSource.MANUAL,
            )
        )
        with pytest.raises(IntegrityError):
            session.commit()
