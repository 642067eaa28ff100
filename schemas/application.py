from __future__ import annotations

from datetime import date
from typing import Optional, Union

from pydantic import AliasChoices, BaseModel, Field

from services.documents import DocumentRef, DocumentSlot


class GeneralInfoSchema(BaseModel):
    applicant_type: Optional[str] = Field("General", alias="applicantType")
    full_name: Optional[str] = Field(None, alias="fullName")
    nid: Optional[str] = None
    tin: Optional[str] = None
    bin: Optional[str] = None
    address: Optional[str] = None
    date_of_birth: Optional[date] = Field(None, alias="dateOfBirth")
    nationality: Optional[str] = None
    cell_number: Optional[str] = Field(None, alias="cellNumber")
    email: Optional[str] = None

    model_config = {"populate_by_name": True}


class EducationSchema(BaseModel):
    degree_name: Optional[str] = Field(None, alias="degreeName")
    achievement_year: Optional[int] = Field(None, alias="achievementYear")
    educational_institute: Optional[str] = Field(None, alias="educationalInstitute")
    grade: Optional[str] = None
    special_achievement: Optional[str] = Field(None, alias="specialAchievement")

    model_config = {"populate_by_name": True}


class DocumentRefSchema(BaseModel):
    url: str
    file_name: Optional[str] = Field(None, alias="fileName")
    size: Optional[int] = None
    mime_type: Optional[str] = Field(None, alias="mimeType")

    model_config = {"populate_by_name": True}


DocumentInput = Union[str, DocumentRefSchema]


def _to_ref(value: DocumentInput) -> DocumentRef:
    if isinstance(value, str):
        return DocumentRef(url=value)
    return DocumentRef(url=value.url, file_name=value.file_name, size_bytes=value.size, mime_type=value.mime_type)


class DocumentsSchema(BaseModel):
    """Document references (object-store URLs or descriptors), one field per slot."""

    secondary_certificate: Optional[DocumentInput] = Field(None, alias="secondaryCertificate")
    highest_certificate: Optional[DocumentInput] = Field(None, alias="highestCertificate")
    nid_copy: Optional[DocumentInput] = Field(None, alias="nidCopy")
    pay_order: Optional[DocumentInput] = Field(None, alias="payOrder")
    passport_photos: Optional[Union[list[DocumentInput], DocumentInput]] = Field(None, alias="passportPhotos")

    model_config = {"populate_by_name": True}

    def refs_by_slot(self) -> dict[DocumentSlot, list[DocumentRef]]:
        photos = self.passport_photos
        if photos is not None and not isinstance(photos, list):
            photos = [photos]
        single = {
            DocumentSlot.SECONDARY_CERTIFICATE: self.secondary_certificate,
            DocumentSlot.HIGHEST_CERTIFICATE: self.highest_certificate,
            DocumentSlot.NID_COPY: self.nid_copy,
            DocumentSlot.PAY_ORDER: self.pay_order,
        }
        out = {slot: [_to_ref(v)] if v else [] for slot, v in single.items()}
        out[DocumentSlot.PASSPORT_PHOTO] = [_to_ref(v) for v in (photos or []) if v]
        return out


class PayOrderSchema(BaseModel):
    amount: Optional[int] = None
    pay_order_number: Optional[str] = Field(None, alias="payOrderNumber")
    issue_date: Optional[date] = Field(None, alias="date")
    bank_name: Optional[str] = Field(None, alias="bankName")
    branch_name: Optional[str] = Field(None, alias="branchName")
    issued_to: Optional[bool] = Field(None, alias="issuedTo")

    model_config = {"populate_by_name": True}


class DeclarationSchema(BaseModel):
    designation: Optional[str] = None
    agreed: Optional[bool] = None


class ApplicationPayload(BaseModel):
    """Body of the submission (and saved draft) endpoints."""

    general_info: GeneralInfoSchema = Field(default_factory=GeneralInfoSchema, alias="generalInfo")
    education: list[EducationSchema] = Field(default_factory=list)
    documents: DocumentsSchema = Field(default_factory=DocumentsSchema)
    pay_order: PayOrderSchema = Field(
        default_factory=PayOrderSchema,
        validation_alias=AliasChoices("payOrder", "payOrderDetails", "pay_order"),
        serialization_alias="payOrder",
    )
    declaration: DeclarationSchema = Field(default_factory=DeclarationSchema)

    model_config = {"populate_by_name": True}

