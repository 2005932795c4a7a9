from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.exc import NoResultFound, SQLAlchemyError

from ingestion.db.models import ReviewStatus
from ingestion.repositories.jobs import list_job_logs
from ingestion.tasks.fetch_news import NewsFetcher
from ingestion.utils.logging import get_logger
from publish.generator import PostGenerator

from .auth import AdminDep, UnauthorizedError, create_admin_session, revoke_admin_session, verify_password
from .database import SessionDep, SettingsDep
from .models import (
    AdminProfile,
    BlogPostDetail,
    BlogPostSummary,
    Inquiry,
    InquiryCreate,
    InquiryUpdate,
    JobLog,
    LoginRequest,
    NewsArticleOut,
    NewsReviewUpdate,
    PriceSnapshot,
    ProfileUpdate,
)
from .repositories import (
    create_inquiry,
    find_admin_by_email,
    get_inquiry,
    latest_snapshot,
    list_inquiries,
    record_audit,
    snapshot_history,
    to_admin_profile,
    to_blog_detail,
    to_blog_summary,
    to_job_log,
    to_news_article,
    update_inquiry,
    update_profile,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api")


# --- contact -----------------------------------------------------------------


@router.post("/contact", status_code=201)
def submit_inquiry_route(payload: InquiryCreate, request: Request, session: SessionDep) -> JSONResponse:
    try:
        inquiry = create_inquiry(
            session,
            payload,
            ip_address=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
        )
    except SQLAlchemyError:
        logger.exception("contact.persist_failed")
        session.rollback()
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to submit inquiry", "message": "Please try again later."},
        )
    logger.info("contact.submitted", extra={"inquiry_id": inquiry.inquiry_id, "category": inquiry.category})
    return JSONResponse(
        status_code=201,
        content={"success": True, "message": "Inquiry submitted successfully", "inquiryId": inquiry.inquiry_id},
    )


@router.get("/contact")
def list_inquiries_route(
    admin: AdminDep,
    session: SessionDep,
    status: str | None = Query(default=None),
) -> dict:
    inquiries = list_inquiries(session, status=status)
    return {
        "success": True,
        "data": [inquiry.model_dump(mode="json") for inquiry in inquiries],
        "count": len(inquiries),
    }


@router.get("/contact/{inquiry_id}", response_model=Inquiry)
def get_inquiry_route(inquiry_id: str, admin: AdminDep, session: SessionDep) -> Inquiry:
    try:
        return get_inquiry(session, inquiry_id)
    except NoResultFound as exc:
        raise HTTPException(status_code=404, detail="Inquiry not found.") from exc


@router.patch("/contact/{inquiry_id}", response_model=Inquiry)
def update_inquiry_route(
    inquiry_id: str,
    payload: InquiryUpdate,
    admin: AdminDep,
    session: SessionDep,
) -> Inquiry:
    try:
        return update_inquiry(session, inquiry_id, payload)
    except NoResultFound as exc:
        raise HTTPException(status_code=404, detail="Inquiry not found.") from exc


# --- auth & profile ----------------------------------------------------------


@router.post("/auth/login")
def login_route(payload: LoginRequest, response: Response, session: SessionDep, settings: SettingsDep) -> dict:
    profile = find_admin_by_email(session, payload.email)
    if profile is None or not profile.is_active or not verify_password(payload.password, profile.password_hash):
        logger.warning("auth.login_failed", extra={"email": payload.email})
        raise UnauthorizedError()
    token = create_admin_session(session, profile, settings)
    response.set_cookie(
        settings.session_cookie_name,
        token,
        max_age=settings.session_ttl_hours * 3600,
        httponly=True,
        secure=settings.app_env == "production",
        samesite="lax",
    )
    return {"profile": to_admin_profile(profile).model_dump(mode="json")}


@router.post("/auth/logout", status_code=204, response_model=None)
def logout_route(request: Request, response: Response, session: SessionDep, settings: SettingsDep) -> None:
    token = request.cookies.get(settings.session_cookie_name)
    if token:
        revoke_admin_session(session, token)
    response.delete_cookie(settings.session_cookie_name)


@router.get("/profile")
def get_profile_route(admin: AdminDep) -> dict[str, AdminProfile]:
    return {"profile": to_admin_profile(admin)}


@router.patch("/profile")
def update_profile_route(payload: ProfileUpdate, admin: AdminDep, session: SessionDep):
    if not payload.full_name or not payload.full_name.strip():
        return JSONResponse(status_code=400, content={"error": "Full name is required"})
    changes = update_profile(session, admin, payload)
    session.commit()
    try:
        record_audit(
            session,
            action="update",
            resource_type="admin_profile",
            resource_id=admin.profile_id,
            resource_name=admin.full_name,
            new_data=changes,
            user_id=admin.profile_id,
            user_email=admin.email,
            metadata={"source": "profile_settings"},
        )
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.warning("profile.audit_failed", extra={"profile_id": admin.profile_id}, exc_info=True)
    return {"profile": to_admin_profile(admin)}


# --- blog --------------------------------------------------------------------


@router.get("/blog", response_model=list[BlogPostSummary])
def list_blog_posts_route(
    settings: SettingsDep,
    category: str | None = Query(default=None),
    limit: int = Query(10, ge=1, le=50),
    offset: int = Query(0, ge=0),
) -> list[BlogPostSummary]:
    posts = PostGenerator(settings).list_published_posts(category=category, limit=limit, offset=offset)
    return [to_blog_summary(post) for post in posts]


@router.get("/blog/{slug}", response_model=BlogPostDetail)
def get_blog_post_route(slug: str, settings: SettingsDep) -> BlogPostDetail:
    post = PostGenerator(settings).get_post_by_slug(slug)
    if post is None:
        raise HTTPException(status_code=404, detail="Post not found.")
    return to_blog_detail(post)


# --- prices ------------------------------------------------------------------


@router.get("/oil-prices/latest")
def latest_price_route(session: SessionDep) -> dict[str, PriceSnapshot | None]:
    return {"data": latest_snapshot(session)}


@router.get("/oil-prices/history", response_model=list[PriceSnapshot])
def price_history_route(
    session: SessionDep,
    settings: SettingsDep,
    days: int = Query(30, ge=1, le=365),
) -> list[PriceSnapshot]:
    return snapshot_history(session, days=days, tz_name=settings.site_timezone)


# --- admin -------------------------------------------------------------------


@router.get("/admin/news", response_model=list[NewsArticleOut])
def pending_news_route(
    admin: AdminDep,
    session: SessionDep,
    settings: SettingsDep,
    limit: int = Query(20, ge=1, le=100),
) -> list[NewsArticleOut]:
    return [to_news_article(a) for a in NewsFetcher(session, settings).get_pending_news(limit=limit)]


@router.get("/admin/news/stats")
def news_stats_route(admin: AdminDep, session: SessionDep, settings: SettingsDep) -> dict:
    return NewsFetcher(session, settings).get_statistics()


@router.patch("/admin/news/{article_id}", response_model=NewsArticleOut)
def review_news_route(
    article_id: uuid.UUID,
    payload: NewsReviewUpdate,
    admin: AdminDep,
    session: SessionDep,
    settings: SettingsDep,
) -> NewsArticleOut:
    article = NewsFetcher(session, settings).update_article_status(
        article_id,
        ReviewStatus(payload.status),
        review_notes=payload.review_notes,
        reviewed_by=admin.email,
    )
    if article is None:
        raise HTTPException(status_code=404, detail="Article not found.")
    return to_news_article(article)


@router.get("/admin/jobs", response_model=list[JobLog])
def job_logs_route(
    admin: AdminDep,
    session: SessionDep,
    job_name: Annotated[str | None, Query()] = None,
    limit: int = Query(50, ge=1, le=200),
) -> list[JobLog]:
    return [to_job_log(row) for row in list_job_logs(session, job_name=job_name, limit=limit)]
