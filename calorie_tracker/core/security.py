"""
Password hashing (bcrypt), session identifiers and JWT bearer tokens.

A token only *references* a login session: it carries the session id and
is always re-checked against the session store before it is trusted.
"""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from calorie_tracker.core.config import settings

BCRYPT_ROUNDS = 12
SESSION_ID_BYTES = 32

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=BCRYPT_ROUNDS,
)

_ALGORITHM = settings.ALGORITHM
_SECRET = settings.SECRET_KEY.get_secret_value()


# ── Passwords ───────────────────────────────────────────────────────
def verify_password(plain: str, hashed: str) -> bool:
    try:
        return pwd_context.verify(plain, hashed)
    except (ValueError, TypeError):
        return False


def get_password_hash(plain: str) -> str:
    return pwd_context.hash(plain)


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return pwd_context.hash(secrets.token_hex(16))


def burn_password_check(plain: str) -> None:
    """Spend the same bcrypt work as a real check (unknown usernames)."""
    pwd_context.verify(plain, _dummy_hash())


# ── Sessions ────────────────────────────────────────────────────────
def generate_session_id() -> str:
    """64 hex chars from the OS CSPRNG."""
    return secrets.token_hex(SESSION_ID_BYTES)


def session_expiry(now: datetime | None = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return now + timedelta(hours=settings.SESSION_LIFETIME_HOURS)


# ── JWT tokens ──────────────────────────────────────────────────────
def create_access_token(
    session_id: str,
    user_id: int,
    username: str,
    expires_delta: timedelta | None = None,
) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(hours=settings.SESSION_LIFETIME_HOURS))
    return jwt.encode(
        {
            "sid": session_id,
            "sub": str(user_id),
            "username": username,
            "iat": now,
            "exp": expire,
            "type": "access",
        },
        _SECRET,
        algorithm=_ALGORITHM,
    )


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Return payload dict if *access* token is valid, else ``None``.

    Fails closed: bad signature, malformed token, past ``exp``, wrong
    ``type`` or missing ``sid`` / ``sub`` claims all yield ``None``.
    """
    try:
        payload = jwt.decode(token, _SECRET, algorithms=[_ALGORITHM])
    except JWTError:
        return None
    if payload.get("type") != "access":
        return None
    if not isinstance(payload.get("sid"), str) or not payload.get("sub"):
        return None
    try:
        int(payload["sub"])
    except (TypeError, ValueError):
        return None
    return payload
