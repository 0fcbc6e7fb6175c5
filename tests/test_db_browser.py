"""Tests for the admin database browser."""

import pytest
from conftest import make_user
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from calorie_tracker.services import db_browser


@pytest.mark.asyncio
async def test_browser_is_admin_only(async_client: AsyncClient, auth_headers):
    assert (await async_client.get("/api/admin/database/tables")).status_code == 401
    assert (await async_client.get("/api/admin/database/tables", headers=auth_headers)).status_code == 403


@pytest.mark.asyncio
async def test_list_tables_with_row_counts(async_client: AsyncClient, admin_headers):
    resp = await async_client.get("/api/admin/database/tables", headers=admin_headers)
    assert resp.status_code == 200
    tables = {t["table_name"]: t["row_count"] for t in resp.json()["tables"]}
    assert {"users", "sessions", "foods", "food_logs", "weight_logs", "cached_external_foods"} <= set(tables)
    assert tables["users"] == 1
    assert tables["sessions"] == 1


@pytest.mark.asyncio
async def test_table_structure(async_client: AsyncClient, admin_headers):
    resp = await async_client.get("/api/admin/database/tables/users/structure", headers=admin_headers)
    assert resp.status_code == 200
    columns = {c["column_name"]: c for c in resp.json()["columns"]}
    assert columns["id"]["primary_key"] is True
    assert columns["username"]["primary_key"] is False
    assert columns["username"]["is_nullable"] is False
    assert "password_hash" in columns


@pytest.mark.asyncio
async def test_table_data_redacts_password_hashes(async_client: AsyncClient, admin_headers):
    resp = await async_client.get("/api/admin/database/tables/users/data", headers=admin_headers)
    assert resp.status_code == 200
    rows = resp.json()["data"]
    assert rows[0]["username"] == "root"
    assert all(r["password_hash"] == db_browser.REDACTED for r in rows)


@pytest.mark.asyncio
async def test_table_data_search_and_pagination(
    async_client: AsyncClient, db_session: AsyncSession, admin_headers
):
    for name in ("anna", "annika", "bert"):
        await make_user(db_session, name)

    found = await async_client.get(
        "/api/admin/database/tables/users/data", params={"search": "ANN"}, headers=admin_headers
    )
    assert {r["username"] for r in found.json()["data"]} == {"anna", "annika"}
    assert found.json()["pagination"]["total"] == 2

    page = await async_client.get(
        "/api/admin/database/tables/users/data", params={"page": 2, "limit": 3}, headers=admin_headers
    )
    body = page.json()
    assert body["pagination"] == {"page": 2, "limit": 3, "total": 4, "total_pages": 2}
    assert len(body["data"]) == 1


@pytest.mark.asyncio
async def test_table_data_search_wildcards_are_literal(
    async_client: AsyncClient, db_session: AsyncSession, admin_headers
):
    for name in ("anxna", "an_na", "bert"):
        await make_user(db_session, name)

    underscore = await async_client.get(
        "/api/admin/database/tables/users/data", params={"search": "n_n"}, headers=admin_headers
    )
    assert {r["username"] for r in underscore.json()["data"]} == {"an_na"}

    percent = await async_client.get(
        "/api/admin/database/tables/users/data", params={"search": "%"}, headers=admin_headers
    )
    assert percent.json()["pagination"]["total"] == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("path", ["structure", "data"])
async def test_unknown_table_is_404(async_client: AsyncClient, admin_headers, path):
    resp = await async_client.get(f"/api/admin/database/tables/nope/{path}", headers=admin_headers)
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "error": "Table 'nope' not found"}


@pytest.mark.asyncio
async def test_table_data_limit_is_bounded(async_client: AsyncClient, admin_headers):
    resp = await async_client.get(
        "/api/admin/database/tables/users/data", params={"limit": 501}, headers=admin_headers
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_database_stats(async_client: AsyncClient, admin_headers):
    resp = await async_client.get("/api/admin/database/stats", headers=admin_headers)
    assert resp.status_code == 200
    stats = resp.json()["stats"]
    assert stats["dialect"] == "sqlite"
    assert stats["table_count"] >= 6
    assert stats["total_rows"] >= 2
