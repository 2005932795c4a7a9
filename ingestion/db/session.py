"""Session helpers for the shared database."""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from ingestion.settings import Settings, get_settings

_ENGINE: Engine | None = None
_SESSIONMAKER: sessionmaker[Session] | None = None
_CURRENT_URL: str | None = None


def _connect_args(url: str) -> dict:
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return {}
    if parsed.database and parsed.database != ":memory:":
        Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)
    # FastAPI runs sync dependencies in a threadpool
    return {"check_same_thread": False}


def get_engine(settings: Settings | None = None) -> Engine:
    """Return a memoized SQLAlchemy engine."""
    global _ENGINE, _SESSIONMAKER, _CURRENT_URL

    config = settings or get_settings()
    if _ENGINE is None or _CURRENT_URL != config.database_url:
        _ENGINE = create_engine(
            config.database_url,
            future=True,
            pool_pre_ping=True,
            connect_args=_connect_args(config.database_url),
        )
        _SESSIONMAKER = sessionmaker(
            bind=_ENGINE,
            expire_on_commit=False,
            autoflush=False,
            future=True,
        )
        _CURRENT_URL = config.database_url
    return _ENGINE


def get_sessionmaker(settings: Settings | None = None) -> sessionmaker[Session]:
    """Return a memoized sessionmaker."""
    get_engine(settings)
    assert _SESSIONMAKER is not None  # for mypy
    return _SESSIONMAKER


@contextmanager
def session_scope(settings: Settings | None = None) -> Iterator[Session]:
    """Provide a transactional scope for DB operations."""
    session = get_sessionmaker(settings)()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
