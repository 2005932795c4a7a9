"""Blog post generation from price records and approved news articles."""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Callable, List, Optional

from celery import shared_task
from jinja2 import TemplateError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from ingestion.db.models import BlogPost, NewsArticle, PostSource, PriceRecord
from ingestion.db.session import session_scope
from ingestion.models.domain import JobOutcome
from ingestion.repositories.jobs import JobExecutionRecorder, SessionScope
from ingestion.repositories.news import claim_article, link_article_post
from ingestion.repositories.prices import claim_price, link_price_post, list_unposted_prices
from ingestion.settings import Settings, get_settings
from ingestion.tasks.fetch_news import NewsFetcher
from ingestion.utils.clock import utcnow
from ingestion.utils.logging import get_logger
from publish.narratives import (
    NarrativeRenderer,
    enhance_news_title,
    meta_description,
    news_tags,
    price_excerpt,
    price_tags,
    price_title,
)
from publish.slugs import unique_slug

JOB_NAME = "generate-blog-posts"
OIL_PRICES_CATEGORY = "oil-prices"

logger = get_logger(__name__)


@dataclass
class GenerationResult:
    success: bool
    post: Optional[BlogPost] = None
    error: Optional[str] = None
    skipped: bool = False


@dataclass
class GenerationSummary:
    price_posts_generated: int = 0
    news_posts_generated: int = 0
    price_errors: int = 0
    news_errors: int = 0
    skipped: int = 0

    @property
    def total_posts(self) -> int:
        return self.price_posts_generated + self.news_posts_generated

    @property
    def total_errors(self) -> int:
        return self.price_errors + self.news_errors

    def as_dict(self) -> dict:
        return {**asdict(self), "total_posts": self.total_posts}


class PostGenerator:
    """Turns pending sources into published posts, one transaction per source.

    The source row is claimed with a conditional update inside the same
    transaction that inserts the post, so a failed generation leaves the
    source pending and a second generation of the same source is a no-op.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        scope: SessionScope | None = None,
        renderer: NarrativeRenderer | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._settings = settings or get_settings()
        self._scope = scope or (lambda: session_scope(self._settings))
        self._renderer = renderer or NarrativeRenderer()
        self._clock = clock

    def get_unposted_prices(self, limit: int = 5) -> List[PriceRecord]:
        with self._scope() as session:
            return list_unposted_prices(session, limit=limit)

    def get_articles_for_auto_posting(self) -> List[NewsArticle]:
        with self._scope() as session:
            return NewsFetcher(session, self._settings).get_articles_for_auto_posting()

    def generate_from_oil_price(self, record: PriceRecord) -> GenerationResult:
        try:
            with self._scope() as session:
                if not claim_price(session, record.id):
                    return GenerationResult(success=False, skipped=True)
                title = price_title(record)
                excerpt = price_excerpt(record)
                post = BlogPost(
                    title=title,
                    slug=unique_slug(session, title),
                    body=self._renderer.render_price(record, site_name=self._settings.site_name),
                    excerpt=excerpt,
                    meta_title=f"{title} | {self._settings.site_name}",
                    meta_description=meta_description(excerpt),
                    category=OIL_PRICES_CATEGORY,
                    tags=price_tags(record),
                    key_factors=list(record.trend_factors or []),
                    author_name=self._settings.default_author_name,
                    author_role=self._settings.default_author_role,
                    source_type=PostSource.OIL_PRICE,
                    price_record_id=record.id,
                    published=True,
                    published_at=self._clock(),
                )
                session.add(post)
                session.flush()
                link_price_post(session, record.id, post.id)
        except (TemplateError, SQLAlchemyError) as exc:
            logger.exception("post_generator.price_failed", extra={"price_record_id": str(record.id)})
            return GenerationResult(success=False, error=f"{exc.__class__.__name__}: {exc}")
        logger.info("post_generator.price_post", extra={"slug": post.slug, "price_record_id": str(record.id)})
        return GenerationResult(success=True, post=post)

    def generate_from_news(self, article: NewsArticle) -> GenerationResult:
        try:
            with self._scope() as session:
                if not claim_article(session, article.id):
                    return GenerationResult(success=False, skipped=True)
                title = enhance_news_title(article.title)
                excerpt = article.summary or (article.content or "")[:200]
                post = BlogPost(
                    title=title,
                    slug=unique_slug(session, title),
                    body=self._renderer.render_news(article, site_name=self._settings.site_name),
                    excerpt=excerpt,
                    meta_title=f"{title} | {self._settings.site_name} Insights",
                    meta_description=meta_description(excerpt),
                    category=article.category,
                    tags=news_tags(article),
                    featured_image=article.image_url,
                    author_name=self._settings.default_author_name,
                    author_role=self._settings.default_author_role,
                    source_type=PostSource.NEWS_ARTICLE,
                    news_article_id=article.id,
                    published=True,
                    published_at=self._clock(),
                )
                session.add(post)
                session.flush()
                link_article_post(session, article.id, post.id)
        except (TemplateError, SQLAlchemyError) as exc:
            logger.exception("post_generator.news_failed", extra={"news_article_id": str(article.id)})
            return GenerationResult(success=False, error=f"{exc.__class__.__name__}: {exc}")
        logger.info("post_generator.news_post", extra={"slug": post.slug, "news_article_id": str(article.id)})
        return GenerationResult(success=True, post=post)

    def run(self) -> GenerationSummary:
        summary = GenerationSummary()
        for record in self.get_unposted_prices():
            result = self.generate_from_oil_price(record)
            if result.skipped:
                summary.skipped += 1
            elif result.success:
                summary.price_posts_generated += 1
            else:
                summary.price_errors += 1
        for article in self.get_articles_for_auto_posting():
            result = self.generate_from_news(article)
            if result.skipped:
                summary.skipped += 1
            elif result.success:
                summary.news_posts_generated += 1
            else:
                summary.news_errors += 1
        return summary

    def list_published_posts(
        self, *, category: str | None = None, limit: int = 10, offset: int = 0
    ) -> List[BlogPost]:
        stmt = (
            select(BlogPost)
            .where(BlogPost.published.is_(True))
            .order_by(BlogPost.published_at.desc())
            .limit(limit)
            .offset(offset)
        )
        if category:
            stmt = stmt.where(BlogPost.category == category)
        with self._scope() as session:
            return list(session.execute(stmt).scalars().all())

    def get_post_by_slug(self, slug: str) -> Optional[BlogPost]:
        with self._scope() as session:
            post = session.execute(
                select(BlogPost).where(BlogPost.slug == slug, BlogPost.published.is_(True))
            ).scalar_one_or_none()
            if post is None:
                return None
            post.view_count = (post.view_count or 0) + 1
            session.flush()
            return post


def run_generate_posts_job(*, settings: Settings | None = None, triggered_by: str = "cron") -> JobOutcome:
    """Generate every pending post and log the invocation."""
    config = settings or get_settings()
    trace_id = str(uuid.uuid4())
    extra = {"trace_id": trace_id, "job_name": JOB_NAME}
    logger.info("post_generator.start", extra=extra)
    with JobExecutionRecorder(
        lambda: session_scope(config), job_name=JOB_NAME, triggered_by=triggered_by, trace_id=trace_id
    ) as recorder:
        summary = PostGenerator(config).run()
        recorder.records_fetched = summary.total_posts + summary.total_errors + summary.skipped
        recorder.records_created = summary.total_posts
        recorder.records_failed = summary.total_errors
        recorder.summary = summary.as_dict()
        if summary.total_errors:
            recorder.failed(f"{summary.total_errors} posts failed to generate")
        logger.info("post_generator.complete", extra={**extra, **recorder.summary})
        return JobOutcome(
            success=True,
            message=f"Generated {summary.total_posts} blog posts",
            data=summary.as_dict(),
            duration_ms=recorder.elapsed_ms,
        )


@shared_task(name="publish.generator.generate_blog_posts")
def generate_blog_posts() -> dict:  # pragma: no cover - thin Celery wrapper
    return run_generate_posts_job(triggered_by="beat").to_response()
