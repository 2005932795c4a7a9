from __future__ import annotations

from datetime import timedelta
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import NoResultFound
from sqlalchemy.orm import Session

from ingestion.db.models import BlogPost, JobExecutionLog, NewsArticle, PriceRecord
from ingestion.repositories.prices import latest_price, price_history
from ingestion.utils.clock import local_date, utcnow

from . import db_models
from .models import (
    AdminProfile,
    BlogPostDetail,
    BlogPostSummary,
    Inquiry,
    InquiryCreate,
    InquiryUpdate,
    JobLog,
    NewsArticleOut,
    PriceSnapshot,
    ProfileUpdate,
)


def create_inquiry(
    session: Session,
    payload: InquiryCreate,
    *,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> Inquiry:
    inquiry = db_models.Inquiry(
        full_name=payload.full_name,
        email=payload.email,
        phone=payload.phone,
        company_name=payload.company_name,
        category=payload.category,
        product_type=payload.product_type,
        estimated_volume=payload.estimated_volume,
        volume_unit=payload.volume_unit,
        message=payload.message,
        status="pending",
        source="contact_form",
        ip_address=ip_address,
        user_agent=(user_agent or "")[:512] or None,
    )
    session.add(inquiry)
    session.flush()
    return to_inquiry(inquiry)


def list_inquiries(session: Session, *, status: str | None = None) -> list[Inquiry]:
    stmt = select(db_models.Inquiry).order_by(db_models.Inquiry.created_at.desc())
    if status:
        stmt = stmt.where(db_models.Inquiry.status == status)
    return [to_inquiry(row) for row in session.scalars(stmt).all()]


def get_inquiry(session: Session, inquiry_id: str) -> Inquiry:
    row = session.get(db_models.Inquiry, inquiry_id)
    if row is None:
        raise NoResultFound
    return to_inquiry(row)


def update_inquiry(session: Session, inquiry_id: str, payload: InquiryUpdate) -> Inquiry:
    row = session.get(db_models.Inquiry, inquiry_id)
    if row is None:
        raise NoResultFound
    if payload.status is not None:
        row.status = payload.status
    if payload.notes is not None:
        row.notes = payload.notes.strip() or None
    row.updated_at = utcnow()
    session.flush()
    return to_inquiry(row)


def find_admin_by_email(session: Session, email: str) -> db_models.AdminProfile | None:
    return session.execute(
        select(db_models.AdminProfile).where(db_models.AdminProfile.email == email.strip().lower())
    ).scalar_one_or_none()


def create_admin(
    session: Session,
    *,
    email: str,
    full_name: str,
    password_hash: str,
    role: str = "admin",
) -> db_models.AdminProfile:
    profile = db_models.AdminProfile(
        email=email.strip().lower(),
        full_name=full_name.strip(),
        password_hash=password_hash,
        role=role,
        is_active=True,
    )
    session.add(profile)
    session.flush()
    return profile


def update_profile(session: Session, profile: db_models.AdminProfile, payload: ProfileUpdate) -> dict[str, Any]:
    """Apply the provided fields and return what was written."""
    changes: dict[str, Any] = {"full_name": (payload.full_name or "").strip()}
    for field in ("phone", "job_title", "department"):
        if field in payload.model_fields_set:
            changes[field] = (getattr(payload, field) or "").strip() or None
    if "avatar_url" in payload.model_fields_set:
        changes["avatar_url"] = payload.avatar_url or None
    for field, value in changes.items():
        setattr(profile, field, value)
    profile.updated_at = utcnow()
    session.flush()
    return changes


def record_audit(
    session: Session,
    *,
    action: str,
    resource_type: str,
    resource_id: str | None,
    resource_name: str | None,
    new_data: dict[str, Any] | None,
    user_id: str | None,
    user_email: str | None,
    metadata: dict[str, Any] | None = None,
) -> None:
    session.add(
        db_models.AuditLog(
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            resource_name=resource_name,
            new_data=new_data,
            extra=metadata,
            user_id=user_id,
            user_email=user_email,
        )
    )
    session.flush()


def list_audit_logs(session: Session, *, resource_type: str | None = None, limit: int = 50) -> list[db_models.AuditLog]:
    stmt = select(db_models.AuditLog).order_by(db_models.AuditLog.created_at.desc()).limit(limit)
    if resource_type:
        stmt = stmt.where(db_models.AuditLog.resource_type == resource_type)
    return list(session.scalars(stmt).all())


def latest_snapshot(session: Session) -> PriceSnapshot | None:
    row = latest_price(session)
    return to_price_snapshot(row) if row else None


def snapshot_history(session: Session, *, days: int, tz_name: str) -> list[PriceSnapshot]:
    since = local_date(utcnow() - timedelta(days=days), tz_name)
    rows = price_history(session, since)
    return [to_price_snapshot(row) for row in rows]


def to_inquiry(row: db_models.Inquiry) -> Inquiry:
    return Inquiry(
        inquiry_id=row.inquiry_id,
        full_name=row.full_name,
        email=row.email,
        phone=row.phone,
        company_name=row.company_name,
        category=row.category,
        product_type=row.product_type,
        estimated_volume=row.estimated_volume,
        volume_unit=row.volume_unit,
        message=row.message,
        status=row.status,
        source=row.source,
        notes=row.notes,
        created_at=row.created_at or utcnow(),
    )


def to_admin_profile(row: db_models.AdminProfile) -> AdminProfile:
    return AdminProfile(
        profile_id=row.profile_id,
        email=row.email,
        full_name=row.full_name,
        phone=row.phone,
        job_title=row.job_title,
        department=row.department,
        avatar_url=row.avatar_url,
        role=row.role,
        is_active=row.is_active,
        last_login_at=row.last_login_at,
    )


def to_blog_summary(row: BlogPost) -> BlogPostSummary:
    return BlogPostSummary(
        id=row.id,
        title=row.title,
        slug=row.slug,
        excerpt=row.excerpt,
        category=row.category,
        tags=list(row.tags or []),
        featured_image=row.featured_image,
        author_name=row.author_name,
        source_type=row.source_type.value,
        published_at=row.published_at,
    )


def to_blog_detail(row: BlogPost) -> BlogPostDetail:
    return BlogPostDetail(
        **to_blog_summary(row).model_dump(),
        body=row.body,
        meta_title=row.meta_title,
        meta_description=row.meta_description,
        author_role=row.author_role,
        key_factors=list(row.key_factors or []),
        view_count=row.view_count or 0,
    )


def to_news_article(row: NewsArticle) -> NewsArticleOut:
    return NewsArticleOut(
        id=row.id,
        external_id=row.external_id,
        title=row.title,
        summary=row.summary,
        source_name=row.source_name,
        source_url=row.source_url,
        published_at=row.published_at,
        fetched_at=row.fetched_at,
        relevance_score=row.relevance_score,
        relevance_keywords=list(row.relevance_keywords or []),
        sentiment=row.sentiment.value,
        category=row.category,
        status=row.status.value,
        auto_post=row.auto_post,
        review_notes=row.review_notes,
        blog_post_id=row.blog_post_id,
    )


def to_job_log(row: JobExecutionLog) -> JobLog:
    return JobLog(
        id=row.id,
        job_name=row.job_name,
        status=row.status.value,
        started_at=row.started_at,
        completed_at=row.completed_at,
        duration_ms=row.duration_ms,
        records_fetched=row.records_fetched,
        records_created=row.records_created,
        records_failed=row.records_failed,
        summary=row.summary,
        error_message=row.error_message,
        triggered_by=row.triggered_by,
        trace_id=row.trace_id,
    )


def to_price_snapshot(row: PriceRecord) -> PriceSnapshot:
    return PriceSnapshot(
        id=row.id,
        benchmark=row.benchmark,
        price=row.price,
        currency=row.currency,
        captured_at=row.captured_at,
        price_date=row.price_date,
        trend=row.trend.value,
        change=row.change,
        change_percent=row.change_percent,
        market_trend=row.market_trend.value,
        trend_factors=list(row.trend_factors or []),
        quotes=dict(row.quotes or {}),
    )
