"""Tests for the token codec, credential verifier and session store."""

import re
from datetime import datetime, timedelta, timezone

import pytest
from conftest import make_user
from jose import jwt
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from calorie_tracker.core.config import Settings, settings
from calorie_tracker.core.security import (create_access_token, decode_access_token,
                                           generate_session_id, get_password_hash,
                                           pwd_context, session_expiry, verify_password)
from calorie_tracker.models.session import AuthSession
from calorie_tracker.services.session_store import (create_session, get_session,
                                                    invalidate_session)
from calorie_tracker.services.users import authenticate_user


# ── Token codec ─────────────────────────────────────────────────────
def test_token_round_trip_claims():
    sid = generate_session_id()
    token = create_access_token(sid, 42, "alice")
    payload = decode_access_token(token)
    assert payload is not None
    assert payload["sid"] == sid
    assert payload["sub"] == "42"
    assert payload["username"] == "alice"
    assert payload["type"] == "access"
    assert payload["exp"] - payload["iat"] == 24 * 3600


def test_tampered_token_fails_closed():
    token = create_access_token(generate_session_id(), 1, "alice")
    forged = jwt.encode(jwt.get_unverified_claims(token), "another-secret", algorithm="HS256")
    header, body, _ = token.split(".")
    tampered = ".".join([header, body, forged.split(".")[2]])
    assert decode_access_token(tampered) is None
    assert decode_access_token(forged) is None


def test_expired_token_fails_closed():
    token = create_access_token(generate_session_id(), 1, "alice", expires_delta=timedelta(seconds=-1))
    assert decode_access_token(token) is None


@pytest.mark.parametrize(
    "claims",
    [
        {"sub": "1", "type": "access"},
        {"sid": "abc", "type": "access"},
        {"sid": "abc", "sub": "1", "type": "refresh"},
        {"sid": "abc", "sub": "not-a-number", "type": "access"},
    ],
)
def test_incomplete_claims_fail_closed(claims):
    now = datetime.now(timezone.utc)
    token = jwt.encode(
        {**claims, "iat": now, "exp": now + timedelta(hours=1)},
        settings.SECRET_KEY.get_secret_value(),
        algorithm=settings.ALGORITHM,
    )
    assert decode_access_token(token) is None


@pytest.mark.parametrize("token", ["", "garbage", "a.b.c"])
def test_malformed_token_fails_closed(token):
    assert decode_access_token(token) is None


def test_session_id_is_64_hex_chars():
    ids = {generate_session_id() for _ in range(50)}
    assert len(ids) == 50
    assert all(re.fullmatch(r"[0-9a-f]{64}", sid) for sid in ids)


def test_session_expiry_is_24_hours():
    now = datetime(2026, 1, 1, tzinfo=timezone.utc)
    assert session_expiry(now) == now + timedelta(hours=24)


def test_missing_secret_is_fatal(monkeypatch):
    monkeypatch.delenv("SECRET_KEY", raising=False)
    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_blank_secret_is_fatal(monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "   ")
    with pytest.raises(ValidationError):
        Settings(_env_file=None)


# ── Credential verifier ─────────────────────────────────────────────
def test_password_hash_is_bcrypt_cost_12():
    hashed = get_password_hash("secret123")
    assert hashed.startswith("$2b$12$")
    assert verify_password("secret123", hashed)
    assert not verify_password("wrong", hashed)
    assert pwd_context.identify(hashed) == "bcrypt"


def test_verify_password_with_corrupt_hash_is_false():
    assert verify_password("secret123", "not-a-hash") is False


@pytest.mark.asyncio
async def test_authenticate_user(db_session: AsyncSession):
    user = await make_user(db_session, "bob", password="hunter22")
    assert (await authenticate_user(db_session, "bob", "hunter22")).id == user.id
    assert await authenticate_user(db_session, "bob", "wrong") is None
    assert await authenticate_user(db_session, "nobody", "hunter22") is None


@pytest.mark.asyncio
async def test_authenticate_inactive_user_fails(db_session: AsyncSession):
    user = await make_user(db_session, "gone", password="hunter22")
    user.is_active = False
    await db_session.commit()
    assert await authenticate_user(db_session, "gone", "hunter22") is None


# ── Session store ───────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_session_expiry_boundary(db_session: AsyncSession):
    user = await make_user(db_session, "carol")
    expires_at = datetime(2030, 6, 1, 12, 0, 0, tzinfo=timezone.utc)
    sid = generate_session_id()
    await create_session(db_session, sid, user.id, expires_at)

    assert await get_session(db_session, sid, now=expires_at - timedelta(seconds=1)) is not None
    assert await get_session(db_session, sid, now=expires_at) is None
    assert await get_session(db_session, sid, now=expires_at + timedelta(seconds=1)) is None


@pytest.mark.asyncio
async def test_get_session_joins_user(db_session: AsyncSession):
    user = await make_user(db_session, "dave", daily_calorie_goal=1800)
    sid = generate_session_id()
    await create_session(db_session, sid, user.id, datetime.now(timezone.utc) + timedelta(hours=1))

    resolved = await get_session(db_session, sid)
    assert resolved is not None
    assert resolved.session_id == sid
    assert resolved.user_id == user.id
    assert resolved.username == "dave"
    assert resolved.daily_calorie_goal == 1800


@pytest.mark.asyncio
async def test_invalidate_session_is_idempotent(db_session: AsyncSession):
    user = await make_user(db_session, "erin")
    sid = generate_session_id()
    await create_session(db_session, sid, user.id, datetime.now(timezone.utc) + timedelta(hours=1))

    await invalidate_session(db_session, sid)
    await invalidate_session(db_session, sid)
    await invalidate_session(db_session, generate_session_id())

    assert await get_session(db_session, sid) is None
    rows = (await db_session.execute(select(AuthSession).where(AuthSession.id == sid))).scalars().all()
    assert len(rows) == 1


@pytest.mark.asyncio
async def test_session_of_inactive_user_is_unusable(db_session: AsyncSession):
    user = await make_user(db_session, "frank")
    sid = generate_session_id()
    await create_session(db_session, sid, user.id, datetime.now(timezone.utc) + timedelta(hours=1))
    user.is_active = False
    await db_session.commit()
    assert await get_session(db_session, sid) is None
