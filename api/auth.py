from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import bearer_token, get_current_user, http_error
from database import get_db
from models import User
from schemas.auth import AuthResponse, LoginRequest, PasswordResetRequestBody, SignupRequest
from services.auth import authenticate, issue_token, register, request_password_reset, revoke_token, role_of
from services.errors import PortalError

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _user_to_response(user: User) -> dict:
    return {"id": user.id, "email": user.email, "role": role_of(user).value}


@router.post("/login", response_model=AuthResponse)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    if not body.email or not body.password:
        raise HTTPException(status_code=400, detail="Missing email or password")
    try:
        user = await authenticate(db, body.email, body.password)
    except PortalError as e:
        raise http_error(e) from e
    token = await issue_token(db, user)
    return {"success": True, "token": token, "user": _user_to_response(user)}


@router.post("/signup", response_model=AuthResponse)
async def signup(body: SignupRequest, db: AsyncSession = Depends(get_db)):
    try:
        user = await register(db, body.email or "", body.password or "", body.confirm_password or "")
    except PortalError as e:
        raise http_error(e) from e
    token = await issue_token(db, user)
    return {"success": True, "token": token, "user": _user_to_response(user)}


@router.post("/logout")
async def logout(
    authorization: Optional[str] = Header(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await revoke_token(db, bearer_token(authorization))
    return {"success": True, "message": "Logged out"}


@router.post("/password-reset")
async def password_reset(body: PasswordResetRequestBody, db: AsyncSession = Depends(get_db)):
    if not body.email:
        raise HTTPException(status_code=400, detail="Email is required")
    await request_password_reset(db, body.email)
    return {"success": True, "message": "If an account exists for this email, a reset link has been sent"}


@router.get("/me")
async def me(user: User = Depends(get_current_user)):
    return {"success": True, "user": _user_to_response(user)}
