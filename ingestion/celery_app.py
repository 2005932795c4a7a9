"""Celery application bootstrap."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Dict

from celery import Celery, signals
from celery.schedules import schedule as celery_schedule

from .settings import Settings, get_settings
from .utils.logging import configure_logging

_CELERY_APP: Celery | None = None

TASK_NAMES = {
    "fetch_prices": "ingestion.tasks.fetch_prices.fetch_oil_prices",
    "fetch_news": "ingestion.tasks.fetch_news.fetch_industry_news",
    "generate_posts": "publish.generator.generate_blog_posts",
}

TASK_MODULES = [
    "ingestion.tasks.fetch_prices",
    "ingestion.tasks.fetch_news",
    "publish.generator",
]


def create_celery_app(settings: Settings | None = None) -> Celery:
    """Build the Celery instance from settings."""
    config = settings or get_settings()
    configure_logging(config.log_level, json_enabled=config.log_json)

    app = Celery("site_jobs", broker=config.redis_url, backend=config.redis_url, include=TASK_MODULES)
    app.conf.update(
        task_default_queue="jobs.default",
        task_default_exchange="jobs",
        task_default_routing_key="jobs.default",
        task_soft_time_limit=config.celery_task_soft_time_limit,
        worker_concurrency=1,
        beat_schedule=_build_beat_schedule(config),
        timezone="UTC",
        enable_utc=True,
        worker_send_task_events=True,
        task_send_sent_event=True,
    )
    _install_signal_handlers(app)
    return app


def get_celery_app() -> Celery:
    """Return the process-wide Celery instance used by the worker entrypoint."""
    global _CELERY_APP
    if _CELERY_APP is None:
        _CELERY_APP = create_celery_app()
    return _CELERY_APP


def _build_beat_schedule(settings: Settings) -> Dict[str, Dict[str, Any]]:
    schedule: Dict[str, Dict[str, Any]] = {}
    for item in settings.job_schedules:
        if not item.enabled:
            continue
        schedule[f"jobs.{item.job}"] = {
            "task": TASK_NAMES[item.job],
            "schedule": celery_schedule(timedelta(hours=item.interval_hours)),
            "options": {"queue": "jobs.default"},
        }
    return schedule


def _install_signal_handlers(app: Celery) -> None:
    logger = logging.getLogger("ingestion.worker")

    @signals.worker_shutdown.connect  # type: ignore[attr-defined]
    def _on_worker_shutdown(sender=None, **kwargs):  # noqa: ANN001
        logger.info("worker.shutdown", extra={"sender": str(sender)})
