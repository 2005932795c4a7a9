"""SQLAlchemy models for prices, news, blog posts and job logs."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from enum import Enum

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum as SAEnum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import Uuid


class Base(DeclarativeBase):
    """Base class for ORM models."""


class TimestampMixin:
    """Adds created_at/updated_at columns."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum(enum_cls: type[Enum], name: str, length: int = 16) -> SAEnum:
    return SAEnum(
        enum_cls,
        name=name,
        native_enum=False,
        length=length,
        values_callable=lambda members: [m.value for m in members],
    )


class PriceTrend(str, Enum):
    UP = "up"
    DOWN = "down"
    FLAT = "flat"


class MarketTrend(str, Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    VOLATILE = "volatile"
    NEUTRAL = "neutral"


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"
    MIXED = "mixed"


class ReviewStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    POSTED = "posted"


class PostSource(str, Enum):
    OIL_PRICE = "oil_price"
    NEWS_ARTICLE = "news_article"
    MANUAL = "manual"


class JobStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    SKIPPED = "skipped"


class PriceRecord(TimestampMixin, Base):
    """One captured snapshot of the primary benchmark plus secondary quotes."""

    __tablename__ = "price_records"
    __table_args__ = (
        Index("ix_price_records_captured", "captured_at"),
        Index("ix_price_records_pending", "narrative_pending"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    benchmark: Mapped[str] = mapped_column(String(32), nullable=False)
    price: Mapped[float] = mapped_column(Float, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    captured_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    price_date: Mapped[date] = mapped_column(Date, nullable=False)
    trend: Mapped[PriceTrend] = mapped_column(_enum(PriceTrend, "price_trend", 8), nullable=False)
    change: Mapped[float | None] = mapped_column(Float)
    change_percent: Mapped[float | None] = mapped_column(Float)
    market_trend: Mapped[MarketTrend] = mapped_column(
        _enum(MarketTrend, "market_trend"),
        nullable=False,
        default=MarketTrend.NEUTRAL,
    )
    trend_factors: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    quotes: Mapped[dict[str, dict]] = mapped_column(JSON, nullable=False, default=dict)
    source: Mapped[str] = mapped_column(String(32), nullable=False)
    secondary_source: Mapped[str | None] = mapped_column(String(32))
    narrative_pending: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    posted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    blog_post_id: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True))


class NewsArticle(TimestampMixin, Base):
    """Industry article kept after relevance scoring."""

    __tablename__ = "news_articles"
    __table_args__ = (
        UniqueConstraint("external_id", name="uq_news_articles_external_id"),
        Index("ix_news_articles_status", "status"),
        Index("ix_news_articles_fetched", "fetched_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    external_id: Mapped[str] = mapped_column(String(128), nullable=False)
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    summary: Mapped[str | None] = mapped_column(Text)
    content: Mapped[str | None] = mapped_column(Text)
    source_name: Mapped[str | None] = mapped_column(String(128))
    source_url: Mapped[str | None] = mapped_column(String(2048))
    image_url: Mapped[str | None] = mapped_column(String(2048))
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    fetched_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    language: Mapped[str | None] = mapped_column(String(16))
    keywords: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    relevance_score: Mapped[float] = mapped_column(Float, nullable=False)
    relevance_keywords: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    sentiment: Mapped[Sentiment] = mapped_column(_enum(Sentiment, "news_sentiment", 8), nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False, default="industry-news")
    status: Mapped[ReviewStatus] = mapped_column(
        _enum(ReviewStatus, "review_status"),
        nullable=False,
        default=ReviewStatus.PENDING,
    )
    auto_post: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    auto_posted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    blog_post_id: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True))
    review_notes: Mapped[str | None] = mapped_column(Text)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    reviewed_by: Mapped[str | None] = mapped_column(String(255))


class BlogPost(TimestampMixin, Base):
    """Published blog entry, generated or written by hand."""

    __tablename__ = "blog_posts"
    __table_args__ = (
        UniqueConstraint("slug", name="uq_blog_posts_slug"),
        UniqueConstraint("price_record_id", name="uq_blog_posts_price_record"),
        UniqueConstraint("news_article_id", name="uq_blog_posts_news_article"),
        CheckConstraint(
            "price_record_id IS NULL OR news_article_id IS NULL",
            name="ck_blog_posts_single_source",
        ),
        Index("ix_blog_posts_published", "published", "published_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    slug: Mapped[str] = mapped_column(String(128), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    excerpt: Mapped[str | None] = mapped_column(Text)
    meta_title: Mapped[str | None] = mapped_column(String(512))
    meta_description: Mapped[str | None] = mapped_column(String(512))
    category: Mapped[str] = mapped_column(String(32), nullable=False)
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    key_factors: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    featured_image: Mapped[str | None] = mapped_column(String(2048))
    author_name: Mapped[str | None] = mapped_column(String(128))
    author_role: Mapped[str | None] = mapped_column(String(128))
    source_type: Mapped[PostSource] = mapped_column(_enum(PostSource, "post_source"), nullable=False)
    price_record_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("price_records.id", ondelete="SET NULL")
    )
    news_article_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("news_articles.id", ondelete="SET NULL")
    )
    published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class JobExecutionLog(Base):
    """Append-only audit row, one per job invocation."""

    __tablename__ = "job_execution_logs"
    __table_args__ = (
        Index("ix_job_execution_logs_job_started", "job_name", "started_at"),
        Index("ix_job_execution_logs_trace", "trace_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    job_name: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[JobStatus] = mapped_column(_enum(JobStatus, "job_status"), nullable=False)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    duration_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    records_fetched: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    records_created: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    records_failed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    summary: Mapped[dict | None] = mapped_column(JSON)
    error_message: Mapped[str | None] = mapped_column(String(1024))
    triggered_by: Mapped[str] = mapped_column(String(16), nullable=False, default="cron")
    trace_id: Mapped[str | None] = mapped_column(String(64))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
