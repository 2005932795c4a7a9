"""Append-only job execution log."""

from __future__ import annotations

import time
from datetime import datetime
from typing import Any, Callable, ContextManager, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ingestion.db.models import JobExecutionLog, JobStatus
from ingestion.utils.clock import utcnow
from ingestion.utils.logging import get_logger

logger = get_logger(__name__)

SessionScope = Callable[[], ContextManager[Session]]


class JobExecutionRecorder:
    """Context manager that writes one JobExecutionLog row when the job ends.

    The row goes through its own session so it survives a rolled-back job
    transaction. An exception escaping the block is recorded as ``error``
    and re-raised.
    """

    def __init__(
        self,
        session_scope: SessionScope,
        *,
        job_name: str,
        triggered_by: str = "cron",
        trace_id: str | None = None,
    ) -> None:
        self._session_scope = session_scope
        self.job_name = job_name
        self.triggered_by = triggered_by
        self.trace_id = trace_id
        self.status = JobStatus.SUCCESS
        self.records_fetched = 0
        self.records_created = 0
        self.records_failed = 0
        self.summary: Dict[str, Any] | None = None
        self.error_message: str | None = None
        self._started_at: datetime | None = None
        self._t0 = 0.0

    @property
    def elapsed_ms(self) -> int:
        return int((time.perf_counter() - self._t0) * 1000)

    def skipped(self, summary: Dict[str, Any] | None = None) -> None:
        self.status = JobStatus.SKIPPED
        self.summary = summary

    def failed(self, error: str) -> None:
        self.status = JobStatus.ERROR
        self.error_message = error

    def __enter__(self) -> "JobExecutionRecorder":
        self._started_at = utcnow()
        self._t0 = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        if exc is not None:
            self.status = JobStatus.ERROR
            self.error_message = str(exc) or exc_type.__name__
        row = JobExecutionLog(
            job_name=self.job_name,
            status=self.status,
            started_at=self._started_at or utcnow(),
            completed_at=utcnow(),
            duration_ms=self.elapsed_ms,
            records_fetched=self.records_fetched,
            records_created=self.records_created,
            records_failed=self.records_failed,
            summary=self.summary,
            error_message=(self.error_message or None) and self.error_message[:1024],
            triggered_by=self.triggered_by,
            trace_id=self.trace_id,
        )
        try:
            with self._session_scope() as session:
                session.add(row)
        except Exception:
            # never mask the job's own outcome
            logger.exception("job_log.write_failed", extra={"job_name": self.job_name, "trace_id": self.trace_id})


def list_job_logs(session: Session, *, job_name: Optional[str] = None, limit: int = 50) -> List[JobExecutionLog]:
    stmt = select(JobExecutionLog).order_by(JobExecutionLog.started_at.desc()).limit(limit)
    if job_name:
        stmt = stmt.where(JobExecutionLog.job_name == job_name)
    return list(session.execute(stmt).scalars().all())
