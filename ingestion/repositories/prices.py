"""Repository functions for price records."""

from __future__ import annotations

import uuid
from datetime import date
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ingestion.db.models import PriceRecord
from ingestion.utils.clock import utcnow


def latest_price(session: Session) -> Optional[PriceRecord]:
    stmt = select(PriceRecord).order_by(PriceRecord.captured_at.desc()).limit(1)
    return session.execute(stmt).scalars().first()


def save_price(session: Session, record: PriceRecord) -> PriceRecord:
    session.add(record)
    session.flush()
    return record


def list_unposted_prices(session: Session, limit: int = 5) -> List[PriceRecord]:
    stmt = (
        select(PriceRecord)
        .where(PriceRecord.narrative_pending.is_(True))
        .order_by(PriceRecord.captured_at.desc())
        .limit(limit)
    )
    return list(session.execute(stmt).scalars().all())


def claim_price(session: Session, record_id: uuid.UUID) -> bool:
    """Flip ``narrative_pending`` only if it is still set; True when this call won."""
    stmt = (
        update(PriceRecord)
        .where(PriceRecord.id == record_id, PriceRecord.narrative_pending.is_(True))
        .values(narrative_pending=False, posted_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    return session.execute(stmt).rowcount == 1


def link_price_post(session: Session, record_id: uuid.UUID, post_id: uuid.UUID) -> None:
    session.execute(
        update(PriceRecord)
        .where(PriceRecord.id == record_id)
        .values(blog_post_id=post_id)
        .execution_options(synchronize_session=False)
    )


def price_history(session: Session, since: date) -> List[PriceRecord]:
    stmt = (
        select(PriceRecord)
        .where(PriceRecord.price_date >= since)
        .order_by(PriceRecord.captured_at.asc())
    )
    return list(session.execute(stmt).scalars().all())
