from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from models import User
from services.auth import ensure_admin, resolve_token
from services.errors import (
    ActiveApplicationError,
    AuthenticationError,
    AuthorizationError,
    DocumentRejectedError,
    DraftInvalidError,
    EducationListError,
    LifecycleError,
    MissingReasonError,
    NotFoundError,
    PortalError,
    SignupError,
    SubmissionError,
)


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_current_user(
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
) -> User:
    if not authorization:
        raise HTTPException(status_code=401, detail="Unauthorized")
    token = bearer_token(authorization)
    if token is None:
        raise HTTPException(status_code=401, detail="Invalid token")
    try:
        return await resolve_token(db, token)
    except AuthenticationError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e


async def require_admin(user: User = Depends(get_current_user)) -> User:
    try:
        ensure_admin(user)
    except AuthorizationError as e:
        raise HTTPException(status_code=403, detail=str(e)) from e
    return user


def field_errors(errors) -> list[dict[str, str]]:
    return [{"field": e.field, "message": e.message} for e in errors]


def http_error(e: PortalError) -> HTTPException:
    """Map a domain error onto the HTTP status the API reports for it."""
    if isinstance(e, DraftInvalidError):
        return HTTPException(status_code=400, detail={"message": "Validation failed", "errors": field_errors(e.errors)})
    if isinstance(e, DocumentRejectedError):
        return HTTPException(status_code=400, detail={"message": str(e), "errors": field_errors([e.error])})
    if isinstance(e, (MissingReasonError, EducationListError, SignupError)):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, AuthenticationError):
        return HTTPException(status_code=401, detail=str(e))
    if isinstance(e, AuthorizationError):
        return HTTPException(status_code=403, detail=str(e))
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, (LifecycleError, ActiveApplicationError)):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, SubmissionError):
        return HTTPException(status_code=500, detail=str(e))
    return HTTPException(status_code=500, detail="Internal server error")
