"""
Persist a validated draft snapshot as a submitted application.

Steps, in order:
  1. resolve or create the applicant for the account (primary)
  2. insert education rows (secondary)
  3. create the application row with a fresh number, status submitted (primary)
  4. insert one document row per attachment (secondary)

A primary failure rolls the whole transaction back and raises SubmissionError. A secondary
failure is confined to its savepoint, logged, and queued as a PendingWrite for
``services.reconciliation.replay_pending_writes``; the submission still succeeds.
"""
from __future__ import annotations

import logging
import secrets
import time
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from models import Applicant, Application, DocumentAttachment, EducationRecord, PendingWrite, User
from services.draft import ApplicationDraft, DraftSnapshot
from services.errors import ActiveApplicationError, SubmissionError
from services.lifecycle import ACTIVE_STATUSES, ApplicationStatus, transition
from services.validators import BIN_LENGTH, digits, requires_business_id

logger = logging.getLogger(__name__)


def generate_application_number() -> str:
    """APP-<epoch millis>-<4 hex>: sorts by time, random tail separates same-millisecond submissions."""
    return f"APP-{int(time.time() * 1000)}-{secrets.token_hex(2).upper()}"


def education_payload(draft: ApplicationDraft) -> list[dict[str, Any]]:
    return [
        {"position": i, **entry.model_dump()}
        for i, entry in enumerate(draft.education.entries)
    ]


def documents_payload(draft: ApplicationDraft) -> list[dict[str, Any]]:
    return [
        {"document_type": document_type, **ref.model_dump()}
        for document_type, ref in draft.documents.attachments()
    ]


def build_education_rows(applicant_id: str, application_id: str | None, entries: list[dict[str, Any]]) -> list[EducationRecord]:
    return [
        EducationRecord(
            id=f"edu-{uuid.uuid4().hex[:12]}",
            applicant_id=applicant_id,
            application_id=application_id,
            position=e["position"],
            degree_name=e["degree_name"],
            achievement_year=e["achievement_year"],
            educational_institute=e["educational_institute"],
            grade=e["grade"],
            special_achievement=e.get("special_achievement"),
        )
        for e in entries
    ]


def build_document_rows(application_id: str, documents: list[dict[str, Any]]) -> list[DocumentAttachment]:
    return [
        DocumentAttachment(
            id=f"doc-{uuid.uuid4().hex[:12]}",
            application_id=application_id,
            document_type=d["document_type"],
            file_url=d["url"],
            file_name=d.get("file_name"),
            size_bytes=d.get("size_bytes"),
            mime_type=d.get("mime_type"),
        )
        for d in documents
    ]


async def find_applicant(session: AsyncSession, user_id: str) -> Applicant | None:
    result = await session.execute(select(Applicant).where(Applicant.user_id == user_id))
    return result.scalar_one_or_none()


def account_lock(user_id: str):
    """Row lock on the account; concurrent submissions for one user queue behind it (no-op on SQLite)."""
    return select(User.id).where(User.id == user_id).with_for_update()


async def ensure_no_active_application(session: AsyncSession, user_id: str) -> None:
    result = await session.execute(
        select(Application.application_number)
        .join(Applicant, Applicant.id == Application.applicant_id)
        .where(
            Applicant.user_id == user_id,
            Application.status.in_([s.value for s in ACTIVE_STATUSES]),
        )
        .limit(1)
    )
    number = result.scalar_one_or_none()
    if number is not None:
        raise ActiveApplicationError(f"Application {number} is already in progress or approved")


def _business_id(draft: ApplicationDraft) -> str | None:
    """General applicants may type anything into the optional BIN field; only a well-formed one is kept."""
    value = (draft.general_info.bin or "").strip() or None
    if value is None or requires_business_id(draft):
        return value
    return None if digits(BIN_LENGTH, message="")(value, draft) else value


async def resolve_applicant(session: AsyncSession, user: User, draft: ApplicationDraft) -> Applicant:
    """Lookup-then-create, keeping one applicant per account; an existing profile takes the new details."""
    g = draft.general_info
    fields = {
        "applicant_type": g.applicant_type.strip(),
        "full_name": g.full_name.strip(),
        "nid": g.nid.strip(),
        "tin": g.tin.strip(),
        "bin": _business_id(draft),
        "date_of_birth": g.date_of_birth,
        "nationality": g.nationality.strip(),
        "address": g.address.strip(),
        "cell_number": g.cell_number.strip(),
        "email": g.email.strip(),
        "designation": draft.declaration.designation.strip(),
    }
    applicant = await find_applicant(session, user.id)
    if applicant is None:
        applicant = Applicant(id=f"apl-{uuid.uuid4().hex[:12]}", user_id=user.id, **fields)
        session.add(applicant)
    else:
        for key, value in fields.items():
            setattr(applicant, key, value)
    await session.flush()
    return applicant


async def _write_secondary(
    session: AsyncSession,
    kind: str,
    rows: list[Any],
    applicant_id: str,
    application_id: str | None,
    payload: list[dict[str, Any]],
) -> tuple[list[Any], PendingWrite | None]:
    """Insert rows inside a savepoint. On failure queue the payload and return no rows."""
    if not rows:
        return [], None
    try:
        async with session.begin_nested():
            session.add_all(rows)
    except SQLAlchemyError as e:
        logger.exception("Failed to save %s rows for applicant %s; queued for reconciliation", kind, applicant_id)
        pending = PendingWrite(
            id=f"pw-{uuid.uuid4().hex[:12]}",
            kind=kind,
            applicant_id=applicant_id,
            application_id=application_id,
            payload=payload,
            last_error=str(e),
            attempts=1,
        )
        session.add(pending)
        await session.flush()
        return [], pending
    return rows, None


async def submit_application(session: AsyncSession, snapshot: DraftSnapshot, user: User) -> Application:
    draft = snapshot.draft
    user_id = user.id
    await session.execute(account_lock(user_id))
    await ensure_no_active_application(session, user_id)

    # 1. Applicant
    try:
        applicant = await resolve_applicant(session, user, draft)
    except SQLAlchemyError as e:
        logger.exception("Applicant save failed for user %s", user.id)
        await session.rollback()
        raise SubmissionError("Failed to save applicant info") from e

    # 2. Education
    education = education_payload(draft)
    education_rows, education_pending = await _write_secondary(
        session,
        "education",
        build_education_rows(applicant.id, None, education),
        applicant.id,
        None,
        education,
    )

    # 3. Application
    now = datetime.now(timezone.utc)
    p = draft.pay_order
    try:
        application = Application(
            id=f"app-{uuid.uuid4().hex[:12]}",
            application_number=generate_application_number(),
            applicant_id=applicant.id,
            status=transition(ApplicationStatus.DRAFT, ApplicationStatus.SUBMITTED).value,
            pay_order_amount=p.amount,
            pay_order_number=p.pay_order_number.strip(),
            pay_order_date=p.issue_date,
            pay_order_bank=p.bank_name.strip(),
            pay_order_branch=p.branch_name.strip(),
            pay_order_issued_to=p.issued_to,
            designation=draft.declaration.designation.strip(),
            declaration_agreed=draft.declaration.agreed,
            submitted_at=now,
            created_at=now,
            updated_at=now,
        )
        session.add(application)
        await session.flush()
        for row in education_rows:
            row.application_id = application.id
        if education_pending is not None:
            education_pending.application_id = application.id
        await session.flush()
    except SQLAlchemyError as e:
        logger.exception("Application save failed for applicant %s", applicant.id)
        await session.rollback()
        if isinstance(e, IntegrityError):
            # A concurrent submission won the one-active-application index
            await ensure_no_active_application(session, user_id)
        raise SubmissionError("Failed to create application") from e

    # 4. Documents
    documents = documents_payload(draft)
    await _write_secondary(
        session,
        "documents",
        build_document_rows(application.id, documents),
        applicant.id,
        application.id,
        documents,
    )

    logger.info(
        "Application %s submitted by %s (%d education, %d documents)",
        application.application_number,
        user.email,
        len(education),
        len(documents),
    )
    return application
