from models.applicant import Applicant, EducationRecord
from models.application import Application, ApplicationDraftRecord, DocumentAttachment, PendingWrite
from models.license import License
from models.user import AuthToken, PasswordResetRequest, User

__all__ = [
    "Applicant",
    "Application",
    "ApplicationDraftRecord",
    "AuthToken",
    "DocumentAttachment",
    "EducationRecord",
    "License",
    "PasswordResetRequest",
    "PendingWrite",
    "User",
]
