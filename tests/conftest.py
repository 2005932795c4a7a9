from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable, ContextManager

import pytest

ROOT = Path(__file__).resolve().parents[1]

if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sqlalchemy.orm import Session  # noqa: E402

from ingestion.settings import Settings, reset_settings_cache  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    reset_settings_cache()
    yield
    reset_settings_cache()


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'site.db'}",
        app_env="test",
        cron_secret="cron-secret",
        oilpriceapi_key="oil-key",
        newsdata_api_key="news-key",
        http_max_attempts=2,
        http_backoff_seconds=0,
    )


@pytest.fixture()
def db_settings(settings: Settings) -> Settings:
    from api.database import init_db

    init_db(settings)
    return settings


@pytest.fixture()
def scope(db_settings: Settings) -> Callable[[], ContextManager[Session]]:
    from ingestion.db.session import session_scope

    return lambda: session_scope(db_settings)
