"""
Identity & Role Dependencies.

Resolves the caller from `Authorization: Bearer <session token>` and gates
routes by role. Routes declare what they need through the aliases below:

    async def handler(db: DbSession, user: CurrentUser): ...
    async def admin_handler(db: DbSession, admin: AdminUser): ...
"""

from typing import Annotated, Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from cemetery.database import get_db_session, utcnow
from cemetery.exceptions import AuthenticationError, AuthorizationError
from cemetery.models.user import User
from cemetery.services.auth_service import auth_service

DbSession = Annotated[AsyncSession, Depends(get_db_session)]


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_optional_user(
    db: DbSession,
    authorization: Annotated[Optional[str], Header()] = None,
) -> Optional[User]:
    token = _bearer_token(authorization)
    if token is None:
        return None
    return await auth_service.resolve_user(db, token)


async def require_user(
    user: Annotated[Optional[User], Depends(get_optional_user)],
) -> User:
    if user is None:
        raise AuthenticationError()
    if user.is_banned(utcnow().date()):
        raise AuthorizationError(
            message="Your account has been banned",
            context={"user_id": user.id, "reason": user.ban_reason},
        )
    return user


async def require_admin(user: Annotated[User, Depends(require_user)]) -> User:
    if not user.is_admin:
        raise AuthorizationError(
            message="Administrator access is required",
            context={"user_id": user.id, "role": user.role},
        )
    return user


CurrentUser = Annotated[User, Depends(require_user)]
AdminUser = Annotated[User, Depends(require_admin)]
