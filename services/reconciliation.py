from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from models import PendingWrite
from services.submission import build_document_rows, build_education_rows

logger = logging.getLogger(__name__)


@dataclass
class ReconciliationReport:
    resolved: int = 0
    failed: int = 0
    skipped: int = 0


async def replay_pending_writes(session: AsyncSession, limit: int = 100) -> ReconciliationReport:
    """Retry queued education/document inserts; each write succeeds or fails on its own savepoint."""
    report = ReconciliationReport()
    result = await session.execute(
        select(PendingWrite)
        .where(PendingWrite.resolved_at.is_(None))
        .order_by(PendingWrite.created_at)
        .limit(limit)
    )
    for pending in result.scalars().all():
        if pending.application_id is None:
            # Submission never produced an application; nothing to attach to
            report.skipped += 1
            continue
        if pending.kind == "education":
            rows = build_education_rows(pending.applicant_id, pending.application_id, pending.payload)
        elif pending.kind == "documents":
            rows = build_document_rows(pending.application_id, pending.payload)
        else:
            logger.warning("Unknown pending write kind %r (%s)", pending.kind, pending.id)
            report.skipped += 1
            continue
        pending.attempts = (pending.attempts or 0) + 1
        try:
            async with session.begin_nested():
                session.add_all(rows)
        except SQLAlchemyError as e:
            pending.last_error = str(e)
            report.failed += 1
            logger.warning("Replay of %s write %s failed (attempt %d): %s", pending.kind, pending.id, pending.attempts, e)
            continue
        pending.resolved_at = datetime.now(timezone.utc)
        report.resolved += 1
        logger.info("Replayed %s write %s for application %s", pending.kind, pending.id, pending.application_id)
    await session.flush()
    return report
