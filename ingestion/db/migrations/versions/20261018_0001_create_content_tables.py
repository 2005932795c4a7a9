"""Create price_records, news_articles, blog_posts and job_execution_logs tables"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op


revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "price_records",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("benchmark", sa.String(length=32), nullable=False),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("captured_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("price_date", sa.Date(), nullable=False),
        sa.Column("trend", sa.String(length=8), nullable=False),
        sa.Column("change", sa.Float(), nullable=True),
        sa.Column("change_percent", sa.Float(), nullable=True),
        sa.Column("market_trend", sa.String(length=16), nullable=False),
        sa.Column("trend_factors", sa.JSON(), nullable=False),
        sa.Column("quotes", sa.JSON(), nullable=False),
        sa.Column("source", sa.String(length=32), nullable=False),
        sa.Column("secondary_source", sa.String(length=32), nullable=True),
        sa.Column("narrative_pending", sa.Boolean(), nullable=False),
        sa.Column("posted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("blog_post_id", sa.Uuid(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_price_records_captured", "price_records", ["captured_at"], unique=False)
    op.create_index("ix_price_records_pending", "price_records", ["narrative_pending"], unique=False)

    op.create_table(
        "news_articles",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("external_id", sa.String(length=128), nullable=False),
        sa.Column("title", sa.String(length=512), nullable=False),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("source_name", sa.String(length=128), nullable=True),
        sa.Column("source_url", sa.String(length=2048), nullable=True),
        sa.Column("image_url", sa.String(length=2048), nullable=True),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("fetched_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("language", sa.String(length=16), nullable=True),
        sa.Column("keywords", sa.JSON(), nullable=False),
        sa.Column("relevance_score", sa.Float(), nullable=False),
        sa.Column("relevance_keywords", sa.JSON(), nullable=False),
        sa.Column("sentiment", sa.String(length=8), nullable=False),
        sa.Column("category", sa.String(length=32), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("auto_post", sa.Boolean(), nullable=False),
        sa.Column("auto_posted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("blog_post_id", sa.Uuid(), nullable=True),
        sa.Column("review_notes", sa.Text(), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reviewed_by", sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("external_id", name="uq_news_articles_external_id"),
    )
    op.create_index("ix_news_articles_status", "news_articles", ["status"], unique=False)
    op.create_index("ix_news_articles_fetched", "news_articles", ["fetched_at"], unique=False)

    op.create_table(
        "blog_posts",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("title", sa.String(length=512), nullable=False),
        sa.Column("slug", sa.String(length=128), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("excerpt", sa.Text(), nullable=True),
        sa.Column("meta_title", sa.String(length=512), nullable=True),
        sa.Column("meta_description", sa.String(length=512), nullable=True),
        sa.Column("category", sa.String(length=32), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("key_factors", sa.JSON(), nullable=False),
        sa.Column("featured_image", sa.String(length=2048), nullable=True),
        sa.Column("author_name", sa.String(length=128), nullable=True),
        sa.Column("author_role", sa.String(length=128), nullable=True),
        sa.Column("source_type", sa.String(length=16), nullable=False),
        sa.Column(
            "price_record_id",
            sa.Uuid(),
            sa.ForeignKey("price_records.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "news_article_id",
            sa.Uuid(),
            sa.ForeignKey("news_articles.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("published", sa.Boolean(), nullable=False),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("view_count", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.UniqueConstraint("slug", name="uq_blog_posts_slug"),
        sa.UniqueConstraint("price_record_id", name="uq_blog_posts_price_record"),
        sa.UniqueConstraint("news_article_id", name="uq_blog_posts_news_article"),
        sa.CheckConstraint(
            "price_record_id IS NULL OR news_article_id IS NULL",
            name="ck_blog_posts_single_source",
        ),
    )
    op.create_index("ix_blog_posts_published", "blog_posts", ["published", "published_at"], unique=False)

    op.create_table(
        "job_execution_logs",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("job_name", sa.String(length=64), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("duration_ms", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("records_fetched", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("records_created", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("records_failed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("summary", sa.JSON(), nullable=True),
        sa.Column("error_message", sa.String(length=1024), nullable=True),
        sa.Column("triggered_by", sa.String(length=16), nullable=False),
        sa.Column("trace_id", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    )
    op.create_index(
        "ix_job_execution_logs_job_started",
        "job_execution_logs",
        ["job_name", "started_at"],
        unique=False,
    )
    op.create_index("ix_job_execution_logs_trace", "job_execution_logs", ["trace_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_job_execution_logs_trace", table_name="job_execution_logs")
    op.drop_index("ix_job_execution_logs_job_started", table_name="job_execution_logs")
    op.drop_table("job_execution_logs")
    op.drop_index("ix_blog_posts_published", table_name="blog_posts")
    op.drop_table("blog_posts")
    op.drop_index("ix_news_articles_fetched", table_name="news_articles")
    op.drop_index("ix_news_articles_status", table_name="news_articles")
    op.drop_table("news_articles")
    op.drop_index("ix_price_records_pending", table_name="price_records")
    op.drop_index("ix_price_records_captured", table_name="price_records")
    op.drop_table("price_records")
