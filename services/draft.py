"""
The in-progress application.

``ApplicationDraft`` is an immutable value; every edit goes through ``reduce_draft`` and yields a
new draft. Submitting is three phases: ``snapshot()`` freezes a draft that validates cleanly,
the snapshot is previewed by the client, and ``services.submission.submit_application`` commits it.
"""
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Any, Optional, Union

from pydantic import BaseModel, Field

from config import settings
from services.documents import DocumentRef, DocumentSlot, DocumentSlotSet
from services.education import EducationEntry, EducationEntryList
from services.errors import DocumentRejectedError, DraftInvalidError
from services.validators import (
    BIN_RULES,
    EMAIL_RULES,
    GENERAL_APPLICANT_TYPE,
    MOBILE_RULES,
    NID_RULES,
    TIN_RULES,
    FieldError,
    a_date,
    at_least,
    at_most,
    collect_errors,
    in_the_past,
    must_be_true,
    required,
)

if TYPE_CHECKING:
    from schemas.application import ApplicationPayload


class GeneralInfo(BaseModel):
    applicant_type: str = GENERAL_APPLICANT_TYPE
    full_name: str = ""
    nid: str = ""
    tin: str = ""
    bin: Optional[str] = None
    address: str = ""
    date_of_birth: Optional[date] = None
    nationality: str = ""
    cell_number: str = ""
    email: str = ""

    model_config = {"frozen": True, "extra": "forbid"}


class PayOrderDetails(BaseModel):
    amount: Optional[int] = Field(default_factory=lambda: settings.min_pay_order_amount)
    pay_order_number: str = ""
    issue_date: Optional[date] = None
    bank_name: str = ""
    branch_name: str = ""
    issued_to: bool = False

    model_config = {"frozen": True, "extra": "forbid"}


class Declaration(BaseModel):
    designation: str = ""
    agreed: bool = False

    model_config = {"frozen": True, "extra": "forbid"}


def _first_entry() -> EducationEntryList:
    return EducationEntryList().add()


class ApplicationDraft(BaseModel):
    general_info: GeneralInfo = Field(default_factory=GeneralInfo)
    education: EducationEntryList = Field(default_factory=_first_entry)
    documents: DocumentSlotSet = Field(default_factory=DocumentSlotSet)
    pay_order: PayOrderDetails = Field(default_factory=PayOrderDetails)
    declaration: Declaration = Field(default_factory=Declaration)

    model_config = {"frozen": True}

    def validation_errors(self) -> list[FieldError]:
        """Every field error in the draft, in form order. Never raises."""
        g = self.general_info
        p = self.pay_order
        d = self.declaration
        errors = collect_errors([
            ("general_info.applicant_type", g.applicant_type, (required("Applicant type is required"), at_most(64))),
            ("general_info.full_name", g.full_name, (required("Full Name is required"), at_most(256))),
            ("general_info.nid", g.nid, NID_RULES),
            ("general_info.tin", g.tin, TIN_RULES),
            ("general_info.bin", g.bin, BIN_RULES),
            ("general_info.address", g.address, (required("Address is required"),)),
            ("general_info.date_of_birth", g.date_of_birth, (a_date("Date of birth is required"), in_the_past())),
            ("general_info.nationality", g.nationality, (required("Nationality is required"), at_most(128))),
            ("general_info.cell_number", g.cell_number, MOBILE_RULES),
            ("general_info.email", g.email, EMAIL_RULES),
        ], self)
        errors.extend(self.education.validate_all())
        errors.extend(self.documents.validate_all())
        errors.extend(collect_errors([
            ("pay_order.amount", p.amount, (
                at_least(settings.min_pay_order_amount, f"Pay order amount must be at least {settings.min_pay_order_amount}"),
            )),
            ("pay_order.pay_order_number", p.pay_order_number, (required("Pay Order Number is required"), at_most(64))),
            ("pay_order.issue_date", p.issue_date, (a_date("Pay order date is required"),)),
            ("pay_order.bank_name", p.bank_name, (required("Bank Name is required"), at_most(256))),
            ("pay_order.branch_name", p.branch_name, (required("Branch Name is required"), at_most(256))),
            ("pay_order.issued_to", p.issued_to, (must_be_true("Must be issued to Director General"),)),
            ("declaration.designation", d.designation, (required("Designation is required"), at_most(256))),
            ("declaration.agreed", d.agreed, (must_be_true("You must agree to the declaration"),)),
        ], self))
        return errors

    def snapshot(self) -> "DraftSnapshot":
        errors = self.validation_errors()
        if errors:
            raise DraftInvalidError(errors)
        return DraftSnapshot(draft=self, taken_at=datetime.now(timezone.utc))


class DraftSnapshot(BaseModel):
    """A draft that passed validation, ready for the submission pipeline."""

    draft: ApplicationDraft
    taken_at: datetime

    model_config = {"frozen": True}


# --- Reducer actions ---


class SetGeneralInfo(BaseModel):
    values: dict[str, Any]


class AddEducation(BaseModel):
    entry: Optional[EducationEntry] = None


class UpdateEducation(BaseModel):
    index: int
    values: dict[str, Any]


class RemoveEducation(BaseModel):
    index: int


class SetDocument(BaseModel):
    slot: DocumentSlot
    refs: tuple[DocumentRef, ...]


class ClearDocument(BaseModel):
    slot: DocumentSlot


class SetPayOrder(BaseModel):
    values: dict[str, Any]


class SetDeclaration(BaseModel):
    values: dict[str, Any]


DraftAction = Union[
    SetGeneralInfo,
    AddEducation,
    UpdateEducation,
    RemoveEducation,
    SetDocument,
    ClearDocument,
    SetPayOrder,
    SetDeclaration,
]


def _merge(model: BaseModel, values: dict[str, Any]) -> BaseModel:
    return type(model).model_validate({**model.model_dump(), **values})


def reduce_draft(draft: ApplicationDraft, action: DraftAction) -> ApplicationDraft:
    """Apply one edit. Rejected edits raise and the caller keeps its previous draft."""
    if isinstance(action, SetGeneralInfo):
        return draft.model_copy(update={"general_info": _merge(draft.general_info, action.values)})
    if isinstance(action, AddEducation):
        return draft.model_copy(update={"education": draft.education.add(action.entry)})
    if isinstance(action, UpdateEducation):
        return draft.model_copy(update={"education": draft.education.update(action.index, **action.values)})
    if isinstance(action, RemoveEducation):
        return draft.model_copy(update={"education": draft.education.remove(action.index)})
    if isinstance(action, SetDocument):
        return draft.model_copy(update={"documents": draft.documents.set_slot(action.slot, *action.refs)})
    if isinstance(action, ClearDocument):
        return draft.model_copy(update={"documents": draft.documents.clear_slot(action.slot)})
    if isinstance(action, SetPayOrder):
        return draft.model_copy(update={"pay_order": _merge(draft.pay_order, action.values)})
    if isinstance(action, SetDeclaration):
        return draft.model_copy(update={"declaration": _merge(draft.declaration, action.values)})
    raise TypeError(f"Unknown draft action: {type(action).__name__}")


class DraftBuild(BaseModel):
    draft: ApplicationDraft
    rejections: list[FieldError] = Field(default_factory=list)

    def errors(self) -> list[FieldError]:
        """Draft errors, with a rejected upload replacing its slot's 'Required' error."""
        rejected = {e.field for e in self.rejections}
        return self.rejections + [e for e in self.draft.validation_errors() if e.field not in rejected]


def draft_from_payload(payload: "ApplicationPayload") -> DraftBuild:
    """Replay a submitted JSON body through the reducer, collecting upload rejections."""
    draft = ApplicationDraft()
    rejections: list[FieldError] = []

    general = payload.general_info.model_dump(exclude_none=True)
    draft = reduce_draft(draft, SetGeneralInfo(values=general))

    entries = tuple(
        EducationEntry(
            degree_name=e.degree_name or "",
            achievement_year=e.achievement_year,
            educational_institute=e.educational_institute or "",
            grade=e.grade or "",
            special_achievement=e.special_achievement,
        )
        for e in payload.education
    )
    draft = draft.model_copy(update={"education": EducationEntryList(entries=entries)})

    for slot, refs in payload.documents.refs_by_slot().items():
        if not refs:
            continue
        try:
            draft = reduce_draft(draft, SetDocument(slot=slot, refs=tuple(refs)))
        except DocumentRejectedError as e:
            rejections.append(e.error)

    draft = reduce_draft(draft, SetPayOrder(values=payload.pay_order.model_dump(exclude_none=True)))
    draft = reduce_draft(draft, SetDeclaration(values=payload.declaration.model_dump(exclude_none=True)))
    return DraftBuild(draft=draft, rejections=rejections)
