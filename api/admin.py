from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import http_error, require_admin
from api.serializers import application_detail, application_to_response, license_to_response
from database import get_db
from models import Applicant, Application, User
from schemas.review import ReturnRequest
from services.errors import PortalError
from services.lifecycle import ApplicationStatus
from services.review import approve_application, get_application, return_application, start_review

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/stats")
async def stats(admin: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Application.status, func.count(Application.id)).group_by(Application.status))
    counts = {s.value: 0 for s in ApplicationStatus}
    for status, count in result.all():
        counts[status] = count
    return {"total": sum(counts.values()), "byStatus": counts}


@router.get("/applications")
async def list_applications(
    status: Optional[ApplicationStatus] = Query(None),
    year: Optional[int] = Query(None, ge=1900),
    search: Optional[str] = Query(None, description="Matches application number, applicant name or email"),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    query = (
        select(Application, Applicant)
        .join(Applicant, Applicant.id == Application.applicant_id)
        .order_by(Application.submitted_at.desc())
    )
    if status is not None:
        query = query.where(Application.status == status.value)
    if year is not None:
        query = query.where(func.extract("year", Application.submitted_at) == year)
    if search:
        pattern = f"%{search.strip().lower()}%"
        query = query.where(or_(
            func.lower(Application.application_number).like(pattern),
            func.lower(Applicant.full_name).like(pattern),
            func.lower(Applicant.email).like(pattern),
        ))
    result = await db.execute(query)
    return [
        {
            **application_to_response(app),
            "applicantName": applicant.full_name,
            "applicantEmail": applicant.email,
        }
        for app, applicant in result.all()
    ]


@router.get("/applications/{application_id}")
async def get_application_detail(application_id: str, admin: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    try:
        app = await get_application(db, application_id)
    except PortalError as e:
        raise http_error(e) from e
    return await application_detail(db, app)


@router.post("/applications/{application_id}/review")
async def review(application_id: str, admin: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    try:
        app = await start_review(db, application_id, admin)
    except PortalError as e:
        raise http_error(e) from e
    return {"success": True, "message": "Application is under review", "application": application_to_response(app)}


@router.post("/applications/{application_id}/approve")
async def approve(application_id: str, admin: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    try:
        app, issued = await approve_application(db, application_id, admin)
    except PortalError as e:
        raise http_error(e) from e
    return {
        "success": True,
        "message": "Application approved",
        "application": application_to_response(app),
        "license": license_to_response(issued),
    }


@router.post("/applications/{application_id}/return")
async def return_(application_id: str, body: ReturnRequest, admin: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    if not body.reason or not body.reason.strip():
        raise HTTPException(status_code=400, detail="A reason is required to return an application")
    try:
        app = await return_application(db, application_id, admin, body.reason)
    except PortalError as e:
        raise http_error(e) from e
    return {"success": True, "message": "Application returned to applicant", "application": application_to_response(app)}
