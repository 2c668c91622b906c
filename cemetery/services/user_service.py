"""
Cemetery Records Service: User Administration
==============================================

What:  Admin-side user management: listing, role changes, bans.
"""

import logging
from datetime import date
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cemetery.exceptions import NotFoundError, ValidationError
from cemetery.models.user import ROLES, User
from cemetery.schemas.user import UserResponse

logger = logging.getLogger(__name__)


class UserService:
    async def _get(self, db: AsyncSession, user_id: str) -> User:
        user = await db.get(User, user_id)
        if user is None:
            raise NotFoundError(resource="user", resource_id=user_id)
        return user

    async def list_users(self, db: AsyncSession) -> List[UserResponse]:
        result = await db.execute(select(User).order_by(User.created_at.desc()))
        return [UserResponse.model_validate(u) for u in result.scalars().all()]

    async def set_role(self, db: AsyncSession, user_id: str, role: str) -> UserResponse:
        if role not in ROLES:
            raise ValidationError(message=f"Unknown role '{role}'", field="role")
        user = await self._get(db, user_id)
        previous = user.role
        user.role = role
        await db.flush()
        logger.info("User %s role %s -> %s", user.id, previous, role)
        return UserResponse.model_validate(user)

    async def ban_user(
        self,
        db: AsyncSession,
        user_id: str,
        reason: Optional[str] = None,
        expires: Optional[date] = None,
    ) -> UserResponse:
        user = await self._get(db, user_id)
        user.banned = True
        user.ban_reason = reason
        user.ban_expires = expires
        await db.flush()
        logger.info("User %s banned until %s", user.id, expires or "further notice")
        return UserResponse.model_validate(user)

    async def unban_user(self, db: AsyncSession, user_id: str) -> UserResponse:
        user = await self._get(db, user_id)
        user.banned = False
        user.ban_reason = None
        user.ban_expires = None
        await db.flush()
        logger.info("User %s unbanned", user.id)
        return UserResponse.model_validate(user)

    async def create_user(
        self,
        db: AsyncSession,
        name: str,
        email: str,
        role: str = "user",
        email_verified: bool = True,
    ) -> User:
        """Used by the development seeder; account sign-up lives elsewhere."""
        existing = await db.scalar(select(User).where(User.email == email))
        if existing is not None:
            return existing
        user = User(name=name, email=email, role=role, email_verified=email_verified)
        db.add(user)
        await db.flush()
        logger.info("User %s created (%s, role=%s)", user.id, email, role)
        return user


user_service = UserService()
