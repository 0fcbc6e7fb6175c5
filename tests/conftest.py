"""
Shared test fixtures for the Calorie Tracker API test suite.

Each test gets its own in-memory aiosqlite database (StaticPool, so every
session shares the one connection) and an app whose ``get_db`` and food
provider dependencies are overridden.
"""

import os
from collections.abc import AsyncGenerator

import pytest

# Override environment BEFORE importing application modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key-not-for-production"
os.environ["RATE_LIMIT_ENABLED"] = "false"
# CORS fix (JSON format)
os.environ["CORS_ORIGINS"] = '["*"]'

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from calorie_tracker.api.v1.deps import get_db, get_food_provider
from calorie_tracker.db.base import Base
from calorie_tracker.main import app
from calorie_tracker.models.user import ROLE_ADMIN, ROLE_USER, User
from calorie_tracker.schemas.external_food import ExternalFood
from calorie_tracker.services.users import create_user

DEFAULT_PASSWORD = "secret123"


class FakeFoodProvider:
    """In-memory stand-in for the Open Food Facts client."""

    def __init__(self) -> None:
        self.products: dict[str, ExternalFood] = {}
        self.search_calls: list[tuple[str, int]] = []
        self.healthy = True

    def add(self, external_id: str, name: str, kcal: float = 100, **extra) -> ExternalFood:
        food = ExternalFood(external_id=external_id, name=name, calories_per_100g=kcal, **extra)
        self.products[external_id] = food
        return food

    async def search_regional(self, query: str, limit: int = 20) -> list[ExternalFood]:
        self.search_calls.append((query, limit))
        q = query.lower()
        return [p for p in self.products.values() if q in p.name.lower()][:limit]

    async def get_product(self, barcode: str) -> ExternalFood | None:
        return self.products.get(barcode)

    async def health_check(self) -> bool:
        return self.healthy


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct queries in tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_provider() -> FakeFoodProvider:
    return FakeFoodProvider()


@pytest.fixture
async def async_client(session_factory, fake_provider) -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app."""

    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_food_provider] = lambda: fake_provider
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


# ── Users & tokens ──────────────────────────────────────────────────
async def make_user(
    db: AsyncSession,
    username: str = "alice",
    password: str = DEFAULT_PASSWORD,
    role: str = ROLE_USER,
    daily_calorie_goal: int = 2000,
) -> User:
    return await create_user(
        db, username=username, password=password, role=role, daily_calorie_goal=daily_calorie_goal
    )


async def login(client: AsyncClient, username: str, password: str = DEFAULT_PASSWORD) -> dict[str, str]:
    resp = await client.post("/api/auth/login", json={"username": username, "password": password})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['token']}"}


@pytest.fixture
async def user(db_session: AsyncSession) -> User:
    return await make_user(db_session, "alice")


@pytest.fixture
async def admin(db_session: AsyncSession) -> User:
    return await make_user(db_session, "root", role=ROLE_ADMIN)


@pytest.fixture
async def auth_headers(async_client: AsyncClient, user: User) -> dict[str, str]:
    return await login(async_client, user.username)


@pytest.fixture
async def admin_headers(async_client: AsyncClient, admin: User) -> dict[str, str]:
    return await login(async_client, admin.username)
