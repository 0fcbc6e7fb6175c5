"""
FastAPI dependencies: database session, authorization gates and the
external food provider.

Gate pipeline: bearer header -> token verification -> session lookup.
``get_current_user`` rejects on any failure, ``get_optional_user`` falls
back to anonymous, ``require_admin`` layers a fresh role check on top.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from functools import lru_cache

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from calorie_tracker.core.config import settings
from calorie_tracker.core.exceptions import (AuthenticationRequired, AuthorizationDenied,
                                             InvalidToken, SessionExpiredOrRevoked)
from calorie_tracker.core.security import decode_access_token
from calorie_tracker.db.session import async_session_factory
from calorie_tracker.models.user import ROLE_ADMIN, User
from calorie_tracker.schemas.auth import CurrentUser
from calorie_tracker.services.external_foods import FoodProvider
from calorie_tracker.services.open_food_facts import OpenFoodFactsClient
from calorie_tracker.services.session_store import get_session
from calorie_tracker.services.users import get_active_user_by_id

logger = logging.getLogger(__name__)

# auto_error=False: a missing header must reach the gate so the optional
# mode can continue anonymously.
bearer_scheme = HTTPBearer(auto_error=False)


# ── Database session ────────────────────────────────────────────────
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


# ── Authorization gate ──────────────────────────────────────────────
async def _resolve_identity(
    credentials: HTTPAuthorizationCredentials | None, db: AsyncSession
) -> CurrentUser:
    if credentials is None or not credentials.credentials:
        raise AuthenticationRequired()

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise InvalidToken()

    session = await get_session(db, payload["sid"])
    if session is None or session.user_id != int(payload["sub"]):
        raise SessionExpiredOrRevoked()

    return CurrentUser(
        user_id=session.user_id,
        username=session.username,
        daily_calorie_goal=session.daily_calorie_goal,
        session_id=session.session_id,
    )


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    """Mandatory gate: resolve the caller or reject with 401."""
    try:
        identity = await _resolve_identity(credentials, db)
    except AuthenticationRequired as exc:
        logger.debug("Request rejected by auth gate: %s", type(exc).__name__)
        raise
    request.state.identity = identity
    return identity


async def get_optional_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> CurrentUser | None:
    """Optional gate: resolve the caller if possible, otherwise continue anonymously."""
    identity: CurrentUser | None = None
    if credentials is not None:
        try:
            identity = await _resolve_identity(credentials, db)
        except HTTPException:
            identity = None
        except SQLAlchemyError:
            logger.warning("Session lookup failed; continuing anonymously", exc_info=True)
            await db.rollback()
        except Exception:
            logger.warning("Optional auth failed; continuing anonymously", exc_info=True)
    request.state.identity = identity
    return identity


# ── Role gate ───────────────────────────────────────────────────────
async def require_admin(
    request: Request,
    identity: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Re-read the caller from the store and require the admin role."""
    if identity is None:
        raise AuthenticationRequired()
    user = await get_active_user_by_id(db, identity.user_id)
    if user is None:
        raise AuthenticationRequired()
    if user.role != ROLE_ADMIN:
        logger.info("Admin access denied for user %s", identity.username)
        raise AuthorizationDenied()
    request.state.admin = user
    return user


# ── External food provider ──────────────────────────────────────────
@lru_cache(maxsize=1)
def _open_food_facts() -> OpenFoodFactsClient:
    return OpenFoodFactsClient.from_settings(settings)


def get_food_provider() -> FoodProvider:
    return _open_food_facts()
