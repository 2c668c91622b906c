"""
Cemetery Records Service: Session Resolution
=============================================

What:  Maps an opaque bearer token to the user who owns it.
How:   Looks up the `session` row by token and rejects it once `expires_at`
       has passed. Issuing sessions (sign-in) happens elsewhere; the seeder
       uses `issue_session` to mint tokens for local development.
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cemetery.config import settings
from cemetery.database import utcnow
from cemetery.models.user import Session, User

logger = logging.getLogger(__name__)


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; every stored timestamp is UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class AuthService:
    async def resolve_user(
        self, db: AsyncSession, token: str, now: Optional[datetime] = None
    ) -> Optional[User]:
        """Returns the session's user, or None for unknown or expired tokens."""
        if not token:
            return None
        now = now or utcnow()

        result = await db.execute(
            select(Session, User)
            .join(User, User.id == Session.user_id)
            .where(Session.token == token)
        )
        row = result.first()
        if row is None:
            return None

        session, user = row
        if as_utc(session.expires_at) <= now:
            logger.debug("Session %s expired at %s", session.id, session.expires_at)
            return None
        return user

    async def issue_session(
        self,
        db: AsyncSession,
        user: User,
        ttl_days: Optional[int] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Session:
        ttl = ttl_days if ttl_days is not None else settings.session_ttl_days
        session = Session(
            token=secrets.token_urlsafe(32),
            user_id=user.id,
            expires_at=utcnow() + timedelta(days=ttl),
            ip_address=ip_address,
            user_agent=user_agent,
        )
        db.add(session)
        await db.flush()
        logger.info("Issued session for user %s (expires %s)", user.id, session.expires_at)
        return session


auth_service = AuthService()
