import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError

from calorie_tracker.api.v1.deps import get_db
from calorie_tracker.main import app


class _BrokenSession:
    async def execute(self, *args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))


@pytest.mark.asyncio
async def test_health_ok(async_client: AsyncClient):
    resp = await async_client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "OK"
    assert body["database"] == "connected"
    assert body["version"] == "1.0.0"


@pytest.mark.asyncio
async def test_health_reports_database_outage(async_client: AsyncClient):
    async def _broken_db():
        yield _BrokenSession()

    app.dependency_overrides[get_db] = _broken_db
    resp = await async_client.get("/health")
    assert resp.status_code == 503
    assert resp.json()["database"] == "disconnected"
    assert resp.json()["status"] == "ERROR"
