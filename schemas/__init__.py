from schemas.application import (
    ApplicationPayload,
    DeclarationSchema,
    DocumentRefSchema,
    DocumentsSchema,
    EducationSchema,
    GeneralInfoSchema,
    PayOrderSchema,
)
from schemas.auth import AuthResponse, AuthUser, LoginRequest, PasswordResetRequestBody, SignupRequest
from schemas.review import ProfileUpdate, ReturnRequest

__all__ = [
    "ApplicationPayload",
    "AuthResponse",
    "AuthUser",
    "DeclarationSchema",
    "DocumentRefSchema",
    "DocumentsSchema",
    "EducationSchema",
    "GeneralInfoSchema",
    "LoginRequest",
    "PasswordResetRequestBody",
    "PayOrderSchema",
    "ProfileUpdate",
    "ReturnRequest",
    "SignupRequest",
]
