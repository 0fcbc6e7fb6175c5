"""
The session store is the source of truth for whether a login is still valid.

Each operation is a single statement with no explicit transaction.  Expiry
is enforced here, at lookup time: a row whose ``expires_at`` has passed is
treated as absent even if it is still flagged active.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from calorie_tracker.models.session import AuthSession
from calorie_tracker.models.user import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedSession:
    session_id: str
    user_id: int
    username: str
    daily_calorie_goal: int
    expires_at: datetime


async def create_session(
    db: AsyncSession, session_id: str, user_id: int, expires_at: datetime
) -> AuthSession:
    session = AuthSession(id=session_id, user_id=user_id, expires_at=expires_at, is_active=True)
    db.add(session)
    await db.commit()
    logger.debug("Session created for user %d (expires %s)", user_id, expires_at.isoformat())
    return session


async def get_session(
    db: AsyncSession, session_id: str, now: datetime | None = None
) -> ResolvedSession | None:
    """Return the session joined with its owner, or ``None`` if not usable."""
    now = now or datetime.now(timezone.utc)
    result = await db.execute(
        select(
            AuthSession.id,
            AuthSession.user_id,
            AuthSession.expires_at,
            User.username,
            User.daily_calorie_goal,
        )
        .join(User, AuthSession.user_id == User.id)
        .where(
            AuthSession.id == session_id,
            AuthSession.is_active.is_(True),
            AuthSession.expires_at > now,
            User.is_active.is_(True),
        )
    )
    row = result.one_or_none()
    if row is None:
        return None
    return ResolvedSession(
        session_id=row.id,
        user_id=row.user_id,
        username=row.username,
        daily_calorie_goal=row.daily_calorie_goal,
        expires_at=row.expires_at,
    )


async def invalidate_session(db: AsyncSession, session_id: str) -> None:
    """Clear the active flag. Unknown or already-inactive ids are a no-op."""
    await db.execute(
        update(AuthSession).where(AuthSession.id == session_id).values(is_active=False)
    )
    await db.commit()
