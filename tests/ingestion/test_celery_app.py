import pytest

celery = pytest.importorskip("celery")  # noqa: F841

from ingestion.celery_app import TASK_NAMES, create_celery_app
from ingestion.settings import JobSchedule, Settings


def _make_settings() -> Settings:
    return Settings(
        redis_url="redis://localhost:6379/0",
        database_url="sqlite:///./var/storage/test.db",
        job_schedules=[
            JobSchedule(job="fetch_prices", interval_hours=13, enabled=True),
            JobSchedule(job="fetch_news", interval_hours=13, enabled=False),
            JobSchedule(job="generate_posts", interval_hours=1, enabled=True),
        ],
        log_level="DEBUG",
    )


def test_create_celery_app_builds_enabled_schedule():
    app = create_celery_app(_make_settings())

    schedule = app.conf.beat_schedule
    assert set(schedule) == {"jobs.fetch_prices", "jobs.generate_posts"}
    assert schedule["jobs.fetch_prices"]["task"] == TASK_NAMES["fetch_prices"]
    assert schedule["jobs.fetch_prices"]["schedule"].run_every.total_seconds() == 13 * 3600
    assert schedule["jobs.generate_posts"]["options"] == {"queue": "jobs.default"}
    assert app.conf.worker_concurrency == 1
    assert app.conf.task_default_queue == "jobs.default"


def test_task_names_cover_every_job():
    assert set(TASK_NAMES) == {"fetch_prices", "fetch_news", "generate_posts"}
