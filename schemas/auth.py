from typing import Optional

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class SignupRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    confirm_password: Optional[str] = Field(None, alias="confirmPassword")

    model_config = {"populate_by_name": True}


class PasswordResetRequestBody(BaseModel):
    email: Optional[str] = None


class AuthUser(BaseModel):
    id: str
    email: str
    role: str


class AuthResponse(BaseModel):
    success: bool = True
    token: str
    user: AuthUser
