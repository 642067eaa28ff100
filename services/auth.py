"""
Accounts, bearer tokens and roles.

Passwords are stored as bcrypt hashes. Bearer tokens are random strings handed to the client
once; only their SHA-256 digest is stored.
"""
from __future__ import annotations

import hashlib
import logging
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

import bcrypt
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from models import AuthToken, PasswordResetRequest, User
from services.errors import AuthenticationError, AuthorizationError, SignupError
from services.validators import email_address

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8
# bcrypt only looks at the first 72 bytes
BCRYPT_MAX_BYTES = 72


class Role(str, Enum):
    APPLICANT = "applicant"
    ADMIN = "admin"


def role_of(user: User) -> Role:
    """Accounts without a (known) role are applicants."""
    try:
        return Role(user.role) if user.role else Role.APPLICANT
    except ValueError:
        return Role.APPLICANT


def ensure_admin(user: User) -> None:
    if role_of(user) is not Role.ADMIN:
        raise AuthorizationError("Administrator access required")


def normalize_email(email: str) -> str:
    return email.strip().lower()


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8")[:BCRYPT_MAX_BYTES], bcrypt.gensalt()).decode("ascii")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8")[:BCRYPT_MAX_BYTES], password_hash.encode("ascii"))
    except ValueError:
        return False


def _token_digest(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


async def find_user_by_email(session: AsyncSession, email: str) -> Optional[User]:
    result = await session.execute(select(User).where(User.email == normalize_email(email)))
    return result.scalar_one_or_none()


async def issue_token(session: AsyncSession, user: User) -> str:
    token = secrets.token_urlsafe(32)
    now = datetime.now(timezone.utc)
    session.add(AuthToken(
        token_hash=_token_digest(token),
        user_id=user.id,
        created_at=now,
        expires_at=now + timedelta(hours=settings.token_ttl_hours),
    ))
    await session.flush()
    return token


async def revoke_token(session: AsyncSession, token: str) -> None:
    await session.execute(delete(AuthToken).where(AuthToken.token_hash == _token_digest(token)))


async def resolve_token(session: AsyncSession, token: str) -> User:
    result = await session.execute(
        select(AuthToken, User)
        .join(User, User.id == AuthToken.user_id)
        .where(AuthToken.token_hash == _token_digest(token))
    )
    row = result.first()
    if row is None:
        raise AuthenticationError("Invalid token")
    auth_token, user = row
    expires_at = auth_token.expires_at
    if expires_at.tzinfo is None:
        # SQLite hands back naive datetimes
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    if expires_at <= datetime.now(timezone.utc):
        raise AuthenticationError("Token expired")
    return user


async def authenticate(session: AsyncSession, email: str, password: str) -> User:
    user = await find_user_by_email(session, email)
    if user is None or not verify_password(password, user.password_hash):
        logger.warning("Failed login for %s", normalize_email(email))
        raise AuthenticationError("Invalid login credentials")
    return user


async def register(session: AsyncSession, email: str, password: str, confirm_password: str) -> User:
    if not email or not password or not confirm_password:
        raise SignupError("Missing required fields")
    if password != confirm_password:
        raise SignupError("Passwords do not match")
    if email_address()(email, None):
        raise SignupError("Invalid email address")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise SignupError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if await find_user_by_email(session, email) is not None:
        raise SignupError("User already registered")

    user = User(
        id=str(uuid.uuid4()),
        email=normalize_email(email),
        password_hash=hash_password(password),
        role=Role.APPLICANT.value,
    )
    session.add(user)
    await session.flush()
    logger.info("Registered applicant account %s", user.email)
    return user


async def request_password_reset(session: AsyncSession, email: str) -> None:
    """Record the request. The reset email itself is sent by the identity provider's mailer."""
    user = await find_user_by_email(session, email)
    session.add(PasswordResetRequest(
        id=f"pwr-{uuid.uuid4().hex[:12]}",
        email=normalize_email(email),
        user_id=user.id if user else None,
    ))
    await session.flush()
    logger.info("Password reset requested for %s (known account: %s)", normalize_email(email), user is not None)
