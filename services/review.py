"""
Administrator actions on submitted applications.

Every status change is a compare-and-set on the status read by the caller, so two racing
admin actions cannot both land; the loser gets StaleStatusError.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from models import Applicant, Application, License, User
from services.auth import ensure_admin
from services.errors import NotFoundError, StaleStatusError
from services.licensing import issue_license
from services.lifecycle import ApplicationStatus, transition

logger = logging.getLogger(__name__)


async def get_application(session: AsyncSession, application_id: str) -> Application:
    result = await session.execute(select(Application).where(Application.id == application_id))
    application = result.scalar_one_or_none()
    if application is None:
        raise NotFoundError("Application not found")
    return application


async def _compare_and_set(
    session: AsyncSession,
    application: Application,
    target: ApplicationStatus,
    reason: Optional[str] = None,
    **values: Any,
) -> None:
    expected = application.status
    new_status = transition(expected, target, reason)
    result = await session.execute(
        update(Application)
        .where(Application.id == application.id, Application.status == expected)
        .values(status=new_status.value, updated_at=datetime.now(timezone.utc), **values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise StaleStatusError(application.id, expected)
    await session.refresh(application)


async def start_review(session: AsyncSession, application_id: str, admin: User) -> Application:
    ensure_admin(admin)
    application = await get_application(session, application_id)
    await _compare_and_set(
        session,
        application,
        ApplicationStatus.UNDER_REVIEW,
        reviewed_by=admin.id,
        review_started_at=datetime.now(timezone.utc),
    )
    logger.info("Application %s under review by %s", application.application_number, admin.email)
    return application


async def approve_application(session: AsyncSession, application_id: str, admin: User) -> tuple[Application, License]:
    ensure_admin(admin)
    application = await get_application(session, application_id)
    await _compare_and_set(
        session,
        application,
        ApplicationStatus.APPROVED,
        reviewed_by=admin.id,
        decided_at=datetime.now(timezone.utc),
    )
    applicant = await session.get(Applicant, application.applicant_id)
    issued = await issue_license(session, application, applicant)
    logger.info("Application %s approved by %s", application.application_number, admin.email)
    return application, issued


async def return_application(session: AsyncSession, application_id: str, admin: User, reason: str) -> Application:
    ensure_admin(admin)
    application = await get_application(session, application_id)
    await _compare_and_set(
        session,
        application,
        ApplicationStatus.RETURNED,
        reason=reason,
        return_reason=(reason or "").strip(),
        reviewed_by=admin.id,
        decided_at=datetime.now(timezone.utc),
    )
    logger.info("Application %s returned by %s: %s", application.application_number, admin.email, application.return_reason)
    return application
