"""Industry news fetch job and review helpers."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional

from celery import shared_task
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ingestion.connectors.base import ConnectorError
from ingestion.connectors.newsdata import NewsDataConnector
from ingestion.db.models import JobExecutionLog, JobStatus, NewsArticle, ReviewStatus
from ingestion.db.session import session_scope
from ingestion.models.domain import JobOutcome, NewsItemDTO
from ingestion.repositories import news as news_repo
from ingestion.repositories.jobs import JobExecutionRecorder
from ingestion.services.scoring import classify_sentiment, map_category, score_relevance
from ingestion.settings import Settings, get_settings
from ingestion.utils.clock import ensure_utc, hours_between, utcnow
from ingestion.utils.logging import get_logger

JOB_NAME = "fetch-news"

logger = get_logger(__name__)


@dataclass
class NewsFetchResult:
    success: bool
    articles: List[NewsArticle] = field(default_factory=list)
    total_fetched: int = 0
    total_relevant: int = 0
    total_duplicates: int = 0
    error: Optional[str] = None
    duration_ms: int = 0


class NewsFetcher:
    """Fetches, scores and stores industry articles for editorial review."""

    def __init__(
        self,
        session: Session,
        settings: Settings | None = None,
        *,
        connector: NewsDataConnector | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._session = session
        self._settings = settings or get_settings()
        self._connector = connector or NewsDataConnector(self._settings)
        self._clock = clock

    def _last_fetch_at(self) -> Optional[datetime]:
        # a fetch that kept nothing still counts, so consult the job log too
        candidates = [news_repo.latest_fetched_at(self._session)]
        candidates.append(
            self._session.execute(
                select(func.max(JobExecutionLog.completed_at)).where(
                    JobExecutionLog.job_name == JOB_NAME,
                    JobExecutionLog.status == JobStatus.SUCCESS,
                )
            ).scalar()
        )
        present = [ensure_utc(c) for c in candidates if c is not None]
        return max(present) if present else None

    def should_fetch(self) -> bool:
        last = self._last_fetch_at()
        if last is None:
            return True
        return hours_between(last, self._clock()) >= self._settings.news_fetch_interval_hours

    def fetch_news(self) -> NewsFetchResult:
        t0 = time.perf_counter()
        try:
            items = self._connector.fetch()
        except ConnectorError as exc:
            logger.warning("news_fetch.upstream_failed", extra={"source": self._connector.source, "error": str(exc)})
            return NewsFetchResult(success=False, error=str(exc), duration_ms=int((time.perf_counter() - t0) * 1000))

        existing = news_repo.get_existing_external_ids(self._session, (i.external_id for i in items))
        fetched_at = self._clock()
        articles: List[NewsArticle] = []
        for item in items:
            if item.external_id in existing:
                continue
            article = self._score(item, fetched_at)
            if article is not None:
                articles.append(article)

        try:
            news_repo.save_articles(self._session, articles)
        except SQLAlchemyError as exc:
            self._session.rollback()
            logger.exception("news_fetch.save_failed")
            return NewsFetchResult(
                success=False,
                total_fetched=len(items),
                error=f"Failed to save articles: {exc.__class__.__name__}",
                duration_ms=int((time.perf_counter() - t0) * 1000),
            )

        return NewsFetchResult(
            success=True,
            articles=articles,
            total_fetched=len(items),
            total_relevant=len(articles),
            total_duplicates=len(existing),
            duration_ms=int((time.perf_counter() - t0) * 1000),
        )

    def _score(self, item: NewsItemDTO, fetched_at: datetime) -> Optional[NewsArticle]:
        relevance = score_relevance(item)
        if relevance.score < self._settings.news_relevance_threshold:
            logger.debug(
                "news_fetch.discarded",
                extra={"external_id": item.external_id, "relevance": relevance.score},
            )
            return None
        return NewsArticle(
            external_id=item.external_id,
            title=item.title,
            summary=item.description,
            content=item.content,
            source_name=item.source_name,
            source_url=item.link,
            image_url=item.image_url,
            published_at=item.published_at,
            fetched_at=fetched_at,
            language=item.language,
            keywords=item.keywords,
            relevance_score=round(relevance.score, 2),
            relevance_keywords=relevance.keywords,
            sentiment=classify_sentiment(item),
            category=map_category([*relevance.keywords, *item.keywords]),
            status=ReviewStatus.PENDING,
            auto_post=relevance.score >= self._settings.news_auto_post_threshold,
        )

    def get_articles_for_auto_posting(self) -> List[NewsArticle]:
        return news_repo.articles_for_auto_posting(self._session)

    def get_pending_news(self, limit: int = 20) -> List[NewsArticle]:
        return news_repo.pending_articles(self._session, limit=limit)

    def update_article_status(
        self,
        article_id: uuid.UUID,
        status: ReviewStatus,
        *,
        review_notes: str | None = None,
        reviewed_by: str | None = None,
    ) -> Optional[NewsArticle]:
        article = news_repo.update_article_status(
            self._session, article_id, status, review_notes=review_notes, reviewed_by=reviewed_by
        )
        if article is not None:
            logger.info("news.status_updated", extra={"article_id": str(article_id), "status": status.value})
        return article

    def get_statistics(self) -> Dict[str, float]:
        return news_repo.news_statistics(self._session)


def run_news_fetch_job(
    *,
    settings: Settings | None = None,
    triggered_by: str = "cron",
    connector: NewsDataConnector | None = None,
    clock: Callable[[], datetime] = utcnow,
) -> JobOutcome:
    """Gate on the fetch interval, fetch and score articles, and log the invocation."""
    config = settings or get_settings()
    trace_id = str(uuid.uuid4())
    extra = {"trace_id": trace_id, "job_name": JOB_NAME}
    logger.info("news_fetch.start", extra=extra)
    with JobExecutionRecorder(
        lambda: session_scope(config), job_name=JOB_NAME, triggered_by=triggered_by, trace_id=trace_id
    ) as recorder, session_scope(config) as session:
        fetcher = NewsFetcher(session, config, connector=connector, clock=clock)
        if not fetcher.should_fetch():
            logger.info("news_fetch.skipped", extra=extra)
            recorder.skipped({"reason": "interval"})
            return JobOutcome(
                success=True,
                message="Skipped - not enough time since last fetch",
                skipped=True,
                duration_ms=recorder.elapsed_ms,
            )

        result = fetcher.fetch_news()
        recorder.records_fetched = result.total_fetched
        if not result.success:
            logger.warning("news_fetch.failed", extra={**extra, "error": result.error})
            recorder.failed(result.error or "Unknown error")
            return JobOutcome(
                success=False,
                error=result.error or "Failed to fetch news",
                duration_ms=recorder.elapsed_ms,
            )

        auto_post = sum(1 for a in result.articles if a.auto_post)
        recorder.records_created = result.total_relevant
        recorder.summary = {
            "total_fetched": result.total_fetched,
            "total_relevant": result.total_relevant,
            "duplicates": result.total_duplicates,
            "auto_post_candidates": auto_post,
        }
        logger.info("news_fetch.saved", extra={**extra, **recorder.summary})
        return JobOutcome(
            success=True,
            message=f"Fetched {result.total_fetched} articles, {result.total_relevant} relevant",
            data={
                **recorder.summary,
                "articles": [
                    {
                        "id": str(a.id),
                        "title": a.title,
                        "relevance_score": a.relevance_score,
                        "sentiment": a.sentiment.value,
                        "auto_post": a.auto_post,
                    }
                    for a in result.articles
                ],
            },
            duration_ms=recorder.elapsed_ms,
        )


@shared_task(name="ingestion.tasks.fetch_news.fetch_industry_news")
def fetch_industry_news() -> dict:  # pragma: no cover - thin Celery wrapper
    return run_news_fetch_job(triggered_by="beat").to_response()
