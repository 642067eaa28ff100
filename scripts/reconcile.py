"""
Replay education/document inserts that failed during submission.
Run: python -m scripts.reconcile   (from project root; safe to schedule, e.g. from cron)
"""
import asyncio
import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import settings
from database import AsyncSessionLocal, init_db
import models  # noqa: F401
from services.reconciliation import replay_pending_writes


async def main():
    await init_db()
    async with AsyncSessionLocal() as session:
        report = await replay_pending_writes(session)
        await session.commit()
    print(f"Resolved {report.resolved}, failed {report.failed}, skipped {report.skipped}")


if __name__ == "__main__":
    logging.basicConfig(level=settings.log_level.upper())
    asyncio.run(main())
