"""
User lookups and the credential verifier.

Every lookup here ignores inactive (soft-deleted) users.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from calorie_tracker.core.security import burn_password_check, get_password_hash, verify_password
from calorie_tracker.models.user import ROLE_USER, User

logger = logging.getLogger(__name__)


async def get_active_user_by_username(db: AsyncSession, username: str) -> User | None:
    result = await db.execute(
        select(User).where(User.username == username, User.is_active.is_(True))
    )
    return result.scalar_one_or_none()


async def get_active_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id, User.is_active.is_(True)))
    return result.scalar_one_or_none()


async def username_taken(db: AsyncSession, username: str) -> bool:
    """True if any user, active or not, already holds ``username``."""
    result = await db.execute(select(User.id).where(User.username == username).limit(1))
    return result.first() is not None


async def create_user(
    db: AsyncSession,
    username: str,
    password: str,
    email: str | None = None,
    daily_calorie_goal: int = 2000,
    role: str = ROLE_USER,
) -> User:
    user = User(
        username=username,
        password_hash=get_password_hash(password),
        email=email,
        daily_calorie_goal=daily_calorie_goal,
        role=role,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def authenticate_user(db: AsyncSession, username: str, password: str) -> User | None:
    """Return the active user if ``password`` matches, else ``None``.

    Unknown usernames still pay for one bcrypt comparison so the two
    failure cases cannot be told apart by timing.
    """
    user = await get_active_user_by_username(db, username)
    if user is None:
        burn_password_check(password)
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user
