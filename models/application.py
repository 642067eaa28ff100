from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Index, Integer, JSON, String, Text, func, text
from sqlalchemy.orm import relationship

from database import Base
from services.lifecycle import ACTIVE_STATUSES

# At most one submitted, under-review or approved application per applicant
_ACTIVE_ONLY = text(
    "status IN (" + ", ".join(sorted(f"'{s.value}'" for s in ACTIVE_STATUSES)) + ")"
)


class Application(Base):
    __tablename__ = "applications"
    __table_args__ = (
        Index(
            "uq_applications_one_active",
            "applicant_id",
            unique=True,
            postgresql_where=_ACTIVE_ONLY,
            sqlite_where=_ACTIVE_ONLY,
        ),
    )

    id = Column(String(64), primary_key=True, index=True)
    application_number = Column(String(64), unique=True, nullable=False, index=True)
    applicant_id = Column(String(64), ForeignKey("applicants.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(32), nullable=False, default="draft", index=True)
    # Pay order (embedded)
    pay_order_amount = Column(Integer, nullable=False)
    pay_order_number = Column(String(64), nullable=False)
    pay_order_date = Column(Date, nullable=True)
    pay_order_bank = Column(String(256), nullable=False)
    pay_order_branch = Column(String(256), nullable=False)
    pay_order_issued_to = Column(Boolean, nullable=False, default=False)
    # Declaration
    designation = Column(String(256), nullable=True)
    declaration_agreed = Column(Boolean, nullable=False, default=False)
    # Review
    return_reason = Column(Text, nullable=True)
    reviewed_by = Column(String(64), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    review_started_at = Column(DateTime(timezone=True), nullable=True)
    decided_at = Column(DateTime(timezone=True), nullable=True)
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    applicant = relationship("Applicant", back_populates="applications")
    documents = relationship("DocumentAttachment", back_populates="application", cascade="all, delete-orphan")
    license = relationship("License", back_populates="application", uselist=False)


class DocumentAttachment(Base):
    __tablename__ = "documents"

    id = Column(String(64), primary_key=True, index=True)
    application_id = Column(String(64), ForeignKey("applications.id", ondelete="CASCADE"), nullable=False, index=True)
    # secondary_certificate, highest_certificate, nid_copy, pay_order, passport_photo_<n>
    document_type = Column(String(64), nullable=False)
    file_url = Column(Text, nullable=False)
    file_name = Column(String(256), nullable=True)
    size_bytes = Column(Integer, nullable=True)
    mime_type = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    application = relationship("Application", back_populates="documents")


class PendingWrite(Base):
    """Secondary rows (education, documents) that failed during submission and await replay."""

    __tablename__ = "pending_writes"

    id = Column(String(64), primary_key=True, index=True)
    kind = Column(String(32), nullable=False)
    application_id = Column(String(64), ForeignKey("applications.id", ondelete="CASCADE"), nullable=True, index=True)
    applicant_id = Column(String(64), ForeignKey("applicants.id", ondelete="CASCADE"), nullable=False)
    payload = Column(JSON, nullable=False)
    last_error = Column(Text, nullable=True)
    attempts = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    resolved_at = Column(DateTime(timezone=True), nullable=True)


class ApplicationDraftRecord(Base):
    __tablename__ = "application_drafts"

    user_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    payload = Column(JSON, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
