"""Row -> camelCase dict helpers shared by the applicant, admin and license routers."""
from __future__ import annotations

from typing import Any, Optional

from pydantic.alias_generators import to_camel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import Applicant, Application, DocumentAttachment, EducationRecord, License
from services.licensing import is_valid_on, verification_url


def _camel(row: dict[str, Any]) -> dict[str, Any]:
    return {to_camel(k): v for k, v in row.items()}


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def applicant_to_response(a: Applicant) -> dict[str, Any]:
    return {
        "id": a.id,
        "applicantType": a.applicant_type,
        "fullName": a.full_name,
        "nid": a.nid,
        "tin": a.tin,
        "bin": a.bin,
        "address": a.address,
        "dateOfBirth": _iso(a.date_of_birth),
        "nationality": a.nationality,
        "cellNumber": a.cell_number,
        "email": a.email,
        "designation": a.designation,
    }


def application_to_response(app: Application) -> dict[str, Any]:
    return {
        "id": app.id,
        "applicationNumber": app.application_number,
        "status": app.status,
        "payOrder": {
            "amount": app.pay_order_amount,
            "payOrderNumber": app.pay_order_number,
            "date": _iso(app.pay_order_date),
            "bankName": app.pay_order_bank,
            "branchName": app.pay_order_branch,
            "issuedTo": app.pay_order_issued_to,
        },
        "declaration": {"designation": app.designation, "agreed": app.declaration_agreed},
        "review": {
            "returnReason": app.return_reason,
            "reviewedBy": app.reviewed_by,
            "reviewStartedAt": _iso(app.review_started_at),
            "decidedAt": _iso(app.decided_at),
        },
        "submittedAt": _iso(app.submitted_at),
        "createdAt": _iso(app.created_at),
        "updatedAt": _iso(app.updated_at),
    }


def education_to_response(e: EducationRecord) -> dict[str, Any]:
    return _camel({
        "degree_name": e.degree_name,
        "achievement_year": e.achievement_year,
        "educational_institute": e.educational_institute,
        "grade": e.grade,
        "special_achievement": e.special_achievement,
    })


def document_to_response(d: DocumentAttachment) -> dict[str, Any]:
    return _camel({
        "id": d.id,
        "document_type": d.document_type,
        "file_url": d.file_url,
        "file_name": d.file_name,
        "size_bytes": d.size_bytes,
        "mime_type": d.mime_type,
    })


def license_to_response(lic: License) -> dict[str, Any]:
    return {
        "licenseNumber": lic.license_number,
        "applicationId": lic.application_id,
        "holderName": lic.holder_name,
        "nid": lic.nid,
        "bin": lic.bin,
        "address": lic.address,
        "issueDate": _iso(lic.issue_date),
        "expiryDate": _iso(lic.expiry_date),
        "verificationUrl": verification_url(lic.license_number),
        "valid": is_valid_on(lic),
    }


async def application_detail(db: AsyncSession, app: Application) -> dict[str, Any]:
    applicant = await db.get(Applicant, app.applicant_id)
    education = await db.execute(
        select(EducationRecord)
        .where(EducationRecord.application_id == app.id)
        .order_by(EducationRecord.position)
    )
    documents = await db.execute(
        select(DocumentAttachment)
        .where(DocumentAttachment.application_id == app.id)
        .order_by(DocumentAttachment.document_type)
    )
    lic = await db.execute(select(License).where(License.application_id == app.id))
    lic = lic.scalar_one_or_none()
    return {
        **application_to_response(app),
        "generalInfo": applicant_to_response(applicant) if applicant else None,
        "education": [education_to_response(e) for e in education.scalars().all()],
        "documents": [document_to_response(d) for d in documents.scalars().all()],
        "license": license_to_response(lic) if lic else None,
    }
