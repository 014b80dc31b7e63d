"""
MeMantra Backend — Request Dependencies
=========================================

What:  FastAPI dependencies that establish who is calling.
How:   `get_current_user` reads `Authorization: Bearer <jwt>`, validates it
       and loads the user; `require_admin` additionally checks the caller's
       email against ADMIN_EMAILS.

Both raise application exceptions (401/403) instead of HTTPException so the
global handlers produce the standard error envelope.
"""

from typing import Annotated, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import get_db_session
from app.exceptions import ForbiddenError, UnauthenticatedError
from app.models.user import User
from app.services.auth_service import auth_service

# auto_error=False: a missing header must become our 401 envelope, not
# FastAPI's default response
bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> User:
    if credentials is None or not credentials.credentials:
        raise UnauthenticatedError()

    payload = auth_service.decode_token(credentials.credentials)
    user = await auth_service.get_user(db, int(payload["sub"]))
    if user is None:
        raise UnauthenticatedError(context={"reason": "unknown_user"})
    return user


async def require_admin(
    current_user: User = Depends(get_current_user),
) -> User:
    if current_user.email.lower() not in settings.admin_emails_set:
        raise ForbiddenError(message="Admin access required")
    return current_user


CurrentUser = Annotated[User, Depends(get_current_user)]
AdminUser = Annotated[User, Depends(require_admin)]
