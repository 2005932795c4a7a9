"""Repository functions for news articles."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from ingestion.db.models import NewsArticle, ReviewStatus
from ingestion.utils.clock import utcnow


def latest_fetched_at(session: Session) -> Optional[datetime]:
    return session.execute(select(func.max(NewsArticle.fetched_at))).scalar()


def get_existing_external_ids(session: Session, ids: Iterable[str]) -> set[str]:
    wanted = list(ids)
    if not wanted:
        return set()
    stmt = select(NewsArticle.external_id).where(NewsArticle.external_id.in_(wanted))
    return {row[0] for row in session.execute(stmt)}


def save_articles(session: Session, articles: Iterable[NewsArticle]) -> List[NewsArticle]:
    saved = list(articles)
    session.add_all(saved)
    session.flush()
    return saved


def articles_for_auto_posting(session: Session) -> List[NewsArticle]:
    stmt = (
        select(NewsArticle)
        .where(
            NewsArticle.status == ReviewStatus.APPROVED,
            NewsArticle.auto_post.is_(True),
            NewsArticle.blog_post_id.is_(None),
        )
        .order_by(NewsArticle.relevance_score.desc(), NewsArticle.fetched_at.desc())
    )
    return list(session.execute(stmt).scalars().all())


def pending_articles(session: Session, limit: int = 20) -> List[NewsArticle]:
    stmt = (
        select(NewsArticle)
        .where(NewsArticle.status == ReviewStatus.PENDING)
        .order_by(NewsArticle.relevance_score.desc(), NewsArticle.fetched_at.desc())
        .limit(limit)
    )
    return list(session.execute(stmt).scalars().all())


def update_article_status(
    session: Session,
    article_id: uuid.UUID,
    status: ReviewStatus,
    *,
    review_notes: str | None = None,
    reviewed_by: str | None = None,
) -> Optional[NewsArticle]:
    article = session.get(NewsArticle, article_id)
    if article is None:
        return None
    article.status = status
    article.reviewed_at = utcnow()
    if review_notes:
        article.review_notes = review_notes
    if reviewed_by:
        article.reviewed_by = reviewed_by
    if status == ReviewStatus.POSTED:
        article.auto_posted_at = utcnow()
    session.flush()
    return article


def claim_article(session: Session, article_id: uuid.UUID) -> bool:
    """Move an approved, unlinked article to ``posted``; True when this call won."""
    stmt = (
        update(NewsArticle)
        .where(
            NewsArticle.id == article_id,
            NewsArticle.status == ReviewStatus.APPROVED,
            NewsArticle.blog_post_id.is_(None),
        )
        .values(status=ReviewStatus.POSTED, auto_posted_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    return session.execute(stmt).rowcount == 1


def link_article_post(session: Session, article_id: uuid.UUID, post_id: uuid.UUID) -> None:
    session.execute(
        update(NewsArticle)
        .where(NewsArticle.id == article_id)
        .values(blog_post_id=post_id)
        .execution_options(synchronize_session=False)
    )


def news_statistics(session: Session) -> Dict[str, float]:
    rows = session.execute(
        select(NewsArticle.status, func.count(), func.avg(NewsArticle.relevance_score)).group_by(NewsArticle.status)
    ).all()
    stats: Dict[str, float] = {status.value: 0 for status in ReviewStatus}
    total = 0
    weighted = 0.0
    for status, count, avg in rows:
        key = status.value if isinstance(status, ReviewStatus) else str(status)
        stats[key] = count
        total += count
        weighted += (avg or 0.0) * count
    stats["total"] = total
    stats["avg_relevance"] = round(weighted / total, 2) if total else 0.0
    return stats
