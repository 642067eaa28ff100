from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import field_errors, get_current_user, http_error
from api.serializers import (
    applicant_to_response,
    application_detail,
    application_to_response,
    license_to_response,
)
from database import get_db
from models import Applicant, Application, ApplicationDraftRecord, License, User
from schemas.application import ApplicationPayload
from schemas.review import ProfileUpdate
from services.draft import draft_from_payload
from services.errors import PortalError
from services.submission import find_applicant, submit_application
from services.validators import MOBILE_RULES, at_most, collect_errors, required

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/applicant", tags=["applicant"])

MSG_APPLICATION_NOT_FOUND = "Application not found"
MSG_PROFILE_NOT_FOUND = "Profile not found; it is created with your first application"


async def _own_application(db: AsyncSession, user: User, application_id: str) -> Application:
    result = await db.execute(
        select(Application)
        .join(Applicant, Applicant.id == Application.applicant_id)
        .where(Application.id == application_id, Applicant.user_id == user.id)
    )
    app = result.scalar_one_or_none()
    if not app:
        raise HTTPException(status_code=404, detail=MSG_APPLICATION_NOT_FOUND)
    return app


@router.post("/application")
async def submit(body: ApplicationPayload, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    build = draft_from_payload(body)
    errors = build.errors()
    if errors:
        raise HTTPException(status_code=400, detail={"message": "Validation failed", "errors": field_errors(errors)})
    try:
        app = await submit_application(db, build.draft.snapshot(), user)
    except PortalError as e:
        raise http_error(e) from e
    await db.execute(delete(ApplicationDraftRecord).where(ApplicationDraftRecord.user_id == user.id))
    return {
        "success": True,
        "message": "Application submitted successfully",
        "applicationId": app.id,
        "applicationNumber": app.application_number,
    }


@router.post("/application/validate")
async def validate(body: ApplicationPayload, user: User = Depends(get_current_user)):
    """Preview step: report every field error without persisting anything."""
    errors = draft_from_payload(body).errors()
    return {"success": True, "valid": not errors, "errors": field_errors(errors)}


@router.get("/applications")
async def list_own_applications(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(Application)
        .join(Applicant, Applicant.id == Application.applicant_id)
        .where(Applicant.user_id == user.id)
        .order_by(Application.created_at.desc())
    )
    return [application_to_response(a) for a in result.scalars().all()]


@router.get("/applications/{application_id}")
async def get_own_application(application_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    app = await _own_application(db, user, application_id)
    return await application_detail(db, app)


@router.get("/draft")
async def get_draft(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    record = await db.get(ApplicationDraftRecord, user.id)
    payload = ApplicationPayload.model_validate(record.payload if record else {})
    errors = draft_from_payload(payload).errors()
    return {
        "draft": payload.model_dump(mode="json", by_alias=True),
        "errors": field_errors(errors),
        "updatedAt": record.updated_at.isoformat() if record and record.updated_at else None,
    }


@router.put("/draft")
async def save_draft(body: ApplicationPayload, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    payload = body.model_dump(mode="json", by_alias=True)
    record = await db.get(ApplicationDraftRecord, user.id)
    now = datetime.now(timezone.utc)
    if record is None:
        record = ApplicationDraftRecord(user_id=user.id, payload=payload, updated_at=now)
        db.add(record)
    else:
        record.payload = payload
        record.updated_at = now
    await db.flush()
    errors = draft_from_payload(body).errors()
    return {"draft": payload, "errors": field_errors(errors), "updatedAt": now.isoformat()}


@router.get("/profile")
async def get_profile(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    applicant = await find_applicant(db, user.id)
    if not applicant:
        raise HTTPException(status_code=404, detail=MSG_PROFILE_NOT_FOUND)
    return applicant_to_response(applicant)


@router.put("/profile")
async def update_profile(body: ProfileUpdate, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    applicant = await find_applicant(db, user.id)
    if not applicant:
        raise HTTPException(status_code=404, detail=MSG_PROFILE_NOT_FOUND)
    checks = []
    if body.full_name is not None:
        checks.append(("fullName", body.full_name, (required("Full Name is required"), at_most(256))))
    if body.address is not None:
        checks.append(("address", body.address, (required("Address is required"),)))
    if body.mobile is not None:
        checks.append(("mobile", body.mobile, MOBILE_RULES))
    errors = collect_errors(checks)
    if errors:
        raise HTTPException(status_code=400, detail={"message": "Validation failed", "errors": field_errors(errors)})
    if body.full_name is not None:
        applicant.full_name = body.full_name.strip()
    if body.address is not None:
        applicant.address = body.address.strip()
    if body.mobile is not None:
        applicant.cell_number = body.mobile.strip()
    await db.flush()
    logger.info("Profile updated for applicant %s", applicant.id)
    return applicant_to_response(applicant)


@router.get("/license")
async def get_own_license(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(License)
        .join(Application, Application.id == License.application_id)
        .join(Applicant, Applicant.id == Application.applicant_id)
        .where(Applicant.user_id == user.id)
        .order_by(License.issue_date.desc())
        .limit(1)
    )
    lic = result.scalar_one_or_none()
    if not lic:
        raise HTTPException(status_code=404, detail="No license has been issued")
    return license_to_response(lic)
