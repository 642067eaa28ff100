from __future__ import annotations

import mimetypes
from enum import Enum
from typing import Optional
from urllib.parse import urlparse

from pydantic import BaseModel, Field

from config import settings
from services.errors import DocumentRejectedError
from services.validators import FieldError

ACCEPTED_MIME_TYPES = frozenset({"application/pdf", "image/jpeg", "image/png"})


class DocumentSlot(str, Enum):
    SECONDARY_CERTIFICATE = "secondary_certificate"
    HIGHEST_CERTIFICATE = "highest_certificate"
    NID_COPY = "nid_copy"
    PAY_ORDER = "pay_order"
    PASSPORT_PHOTO = "passport_photo"


REQUIRED_SLOTS = tuple(DocumentSlot)
# Slots that bundle several files into one logical attachment
MULTI_FILE_SLOTS = frozenset({DocumentSlot.PASSPORT_PHOTO})


class DocumentRef(BaseModel):
    """Pointer to bytes already held by the object store."""

    url: str
    file_name: Optional[str] = None
    size_bytes: Optional[int] = None
    mime_type: Optional[str] = None

    model_config = {"frozen": True}

    def resolved_mime_type(self) -> Optional[str]:
        if self.mime_type:
            return self.mime_type.strip().lower()
        for candidate in (self.file_name, urlparse(self.url).path):
            if candidate:
                guessed, _ = mimetypes.guess_type(candidate)
                if guessed:
                    return guessed
        return None


def _rejection(ref: DocumentRef, max_bytes: int) -> Optional[str]:
    """Reason to refuse ``ref``, or None. A reference without a declared size is trusted on size."""
    if not ref.url or not ref.url.strip():
        return "File reference is required"
    if ref.size_bytes is not None and ref.size_bytes < 0:
        return "File size is invalid"
    if ref.size_bytes is not None and ref.size_bytes > max_bytes:
        return f"File exceeds the {max_bytes / (1024 * 1024):g} MB limit"
    if ref.resolved_mime_type() not in ACCEPTED_MIME_TYPES:
        return "Only PDF, JPEG or PNG files are accepted"
    return None


class DocumentSlotSet(BaseModel):
    """The five required upload slots. Operations return a new set; rejected files leave it as it was."""

    slots: dict[DocumentSlot, tuple[DocumentRef, ...]] = Field(default_factory=dict)

    model_config = {"frozen": True}

    def get(self, slot: DocumentSlot) -> tuple[DocumentRef, ...]:
        return self.slots.get(DocumentSlot(slot), ())

    def set_slot(self, slot: DocumentSlot, *refs: DocumentRef, max_bytes: Optional[int] = None) -> "DocumentSlotSet":
        slot = DocumentSlot(slot)
        limit = max_bytes if max_bytes is not None else settings.max_document_bytes
        field = f"documents.{slot.value}"
        if not refs:
            raise DocumentRejectedError(FieldError(field=field, message="File reference is required"))
        if len(refs) > 1 and slot not in MULTI_FILE_SLOTS:
            raise DocumentRejectedError(FieldError(field=field, message="Only one file is allowed"))
        accepted = []
        for ref in refs:
            message = _rejection(ref, limit)
            if message:
                raise DocumentRejectedError(FieldError(field=field, message=message))
            accepted.append(ref.model_copy(update={"mime_type": ref.resolved_mime_type()}))
        return DocumentSlotSet(slots={**self.slots, slot: tuple(accepted)})

    def clear_slot(self, slot: DocumentSlot) -> "DocumentSlotSet":
        slot = DocumentSlot(slot)
        return DocumentSlotSet(slots={k: v for k, v in self.slots.items() if k != slot})

    def validate_all(self) -> list[FieldError]:
        return [
            FieldError(field=f"documents.{slot.value}", message="Required")
            for slot in REQUIRED_SLOTS
            if not self.slots.get(slot)
        ]

    def attachments(self) -> list[tuple[str, DocumentRef]]:
        """Flatten to (document_type, ref) rows; bundled photos become passport_photo_1..n."""
        rows: list[tuple[str, DocumentRef]] = []
        for slot in REQUIRED_SLOTS:
            refs = self.slots.get(slot, ())
            if slot in MULTI_FILE_SLOTS:
                rows.extend((f"{slot.value}_{i}", ref) for i, ref in enumerate(refs, start=1))
            else:
                rows.extend((slot.value, ref) for ref in refs)
        return rows
