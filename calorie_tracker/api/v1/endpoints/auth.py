"""
Auth endpoints — login, logout, token verification and registration.
"""

import logging

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from calorie_tracker.api.v1.deps import get_current_user, get_db, get_optional_user
from calorie_tracker.core.config import settings
from calorie_tracker.core.exceptions import DuplicateUser, InvalidCredentials
from calorie_tracker.core.rate_limit import limiter
from calorie_tracker.core.security import (create_access_token, generate_session_id,
                                           session_expiry)
from calorie_tracker.schemas.auth import CurrentUser, LoginRequest, LoginResponse, VerifyResponse
from calorie_tracker.schemas.common import CreatedResponse, MessageResponse
from calorie_tracker.schemas.user import UserCreate, UserSummary
from calorie_tracker.services.session_store import create_session, invalidate_session
from calorie_tracker.services.users import authenticate_user, create_user, username_taken

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=LoginResponse)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login(
    request: Request,
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> LoginResponse:
    """Verify credentials, open a 24 h session and return a bearer token for it."""
    username = body.username.strip()
    user = await authenticate_user(db, username, body.password)
    if user is None:
        logger.info("Failed login attempt for username %r", username)
        raise InvalidCredentials()

    session_id = generate_session_id()
    expires_at = session_expiry()
    await create_session(db, session_id, user.id, expires_at)
    token = create_access_token(session_id, user.id, user.username)

    logger.info("User %s logged in", user.username)
    return LoginResponse(
        token=token,
        expires_at=expires_at,
        user=UserSummary(
            id=user.id,
            username=user.username,
            daily_calorie_goal=user.daily_calorie_goal,
        ),
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(
    identity: CurrentUser | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """Invalidate the caller's session. Always succeeds, even when anonymous."""
    if identity is not None:
        await invalidate_session(db, identity.session_id)
        logger.info("User %s logged out", identity.username)
    return MessageResponse(message="Logged out successfully")


@router.get("/verify", response_model=VerifyResponse)
async def verify(identity: CurrentUser = Depends(get_current_user)) -> VerifyResponse:
    return VerifyResponse(user=identity.summary())


@router.post("/register", response_model=CreatedResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def register(
    request: Request,
    body: UserCreate,
    db: AsyncSession = Depends(get_db),
) -> CreatedResponse:
    if await username_taken(db, body.username):
        raise DuplicateUser()
    user = await create_user(
        db,
        username=body.username,
        password=body.password,
        email=body.email,
        daily_calorie_goal=body.daily_calorie_goal,
    )
    logger.info("Registered user %s", user.username)
    return CreatedResponse(message="User created successfully", id=user.id)
