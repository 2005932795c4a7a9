"""Cron bearer checks, admin sessions and password hashing."""

from __future__ import annotations

import hashlib
import hmac
import secrets
from datetime import timedelta
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ingestion.settings import Settings
from ingestion.utils.clock import ensure_utc, utcnow
from ingestion.utils.logging import get_logger

from . import db_models
from .database import SessionDep, SettingsDep

logger = get_logger(__name__)

PBKDF2_ITERATIONS = 240_000


class UnauthorizedError(Exception):
    """Missing or invalid credentials; rendered as a 401 JSON body."""


def hash_password(password: str, *, salt: str | None = None, iterations: int = PBKDF2_ITERATIONS) -> str:
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), iterations)
    return f"pbkdf2_sha256${iterations}${salt}${digest.hex()}"


def verify_password(password: str, encoded: str) -> bool:
    try:
        algorithm, iterations, salt, expected = encoded.split("$", 3)
    except ValueError:
        return False
    if algorithm != "pbkdf2_sha256":
        return False
    candidate = hash_password(password, salt=salt, iterations=int(iterations))
    return hmac.compare_digest(candidate.rsplit("$", 1)[1], expected)


def _token_hash(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def verify_cron_request(request: Request, settings: SettingsDep) -> None:
    """Require ``Authorization: Bearer <CRON_SECRET>`` outside development."""
    if settings.is_development:
        return
    secret = settings.cron_secret.get_secret_value() if settings.cron_secret else ""
    header = request.headers.get("authorization", "")
    if not secret or not hmac.compare_digest(header.encode("utf-8"), f"Bearer {secret}".encode("utf-8")):
        logger.warning("cron.unauthorized", extra={"path": request.url.path})
        raise UnauthorizedError()


def create_admin_session(session: Session, profile: db_models.AdminProfile, settings: Settings) -> str:
    token = secrets.token_urlsafe(32)
    session.add(
        db_models.AdminSession(
            token_hash=_token_hash(token),
            profile_id=profile.profile_id,
            expires_at=utcnow() + timedelta(hours=settings.session_ttl_hours),
        )
    )
    profile.last_login_at = utcnow()
    session.flush()
    return token


def revoke_admin_session(session: Session, token: str) -> None:
    session.execute(delete(db_models.AdminSession).where(db_models.AdminSession.token_hash == _token_hash(token)))


def current_admin(request: Request, session: SessionDep, settings: SettingsDep) -> db_models.AdminProfile:
    token = request.cookies.get(settings.session_cookie_name)
    if not token:
        raise UnauthorizedError()
    row = session.execute(
        select(db_models.AdminSession).where(db_models.AdminSession.token_hash == _token_hash(token))
    ).scalar_one_or_none()
    if row is None or ensure_utc(row.expires_at) <= utcnow():
        raise UnauthorizedError()
    profile = row.profile
    if not profile.is_active:
        raise UnauthorizedError()
    return profile


AdminDep = Annotated[db_models.AdminProfile, Depends(current_admin)]
CronAuth = Depends(verify_cron_request)
