from __future__ import annotations

from typing import Annotated, Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from ingestion.db.models import Base
from ingestion.db.session import get_engine, session_scope
from ingestion.settings import Settings, get_settings

from . import db_models  # noqa: F401  registers the api tables on Base

SettingsDep = Annotated[Settings, Depends(get_settings)]


def init_db(settings: Settings | None = None) -> None:
    """Create any missing tables; Alembic owns schema changes."""
    Base.metadata.create_all(bind=get_engine(settings))


def session_dependency(settings: SettingsDep) -> Generator[Session, None, None]:
    with session_scope(settings) as session:
        yield session


SessionDep = Annotated[Session, Depends(session_dependency)]
