"""Tests for the admin review queue of user-contributed foods and catalog categories."""

import pytest
from conftest import login, make_user
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from calorie_tracker.models.food import FOOD_REJECTED, FOOD_VERIFIED, Food
from calorie_tracker.models.user import User

QUEUE = "/api/admin/user-foods"


async def _contribute(client: AsyncClient, name: str, headers=None, **extra) -> int:
    resp = await client.post(
        "/api/foods",
        json={"name": name, "calories_per_unit": 120, "default_unit": "serving", **extra},
        headers=headers,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["food_id"]


async def _log(client: AsyncClient, food_id: int, headers) -> None:
    resp = await client.post(
        "/api/logs",
        json={"food_id": food_id, "quantity": 1, "unit": "serving", "calories": 120},
        headers=headers,
    )
    assert resp.status_code == 201, resp.text


@pytest.fixture
async def queue(async_client: AsyncClient, db_session: AsyncSession, user: User, auth_headers):
    """Three pending contributions, one verified food, and some usage by two users."""
    db_session.add(Food(name="Apple", calories_per_unit=52, default_unit="100g"))
    await db_session.commit()

    ids = {
        "Kiwi Smoothie": await _contribute(async_client, "Kiwi Smoothie", auth_headers),
        "Oat Bar": await _contribute(async_client, "Oat Bar", auth_headers),
        "Mystery Stew": await _contribute(async_client, "Mystery Stew"),
    }
    await make_user(db_session, "bob")
    bob_headers = await login(async_client, "bob")
    await _log(async_client, ids["Oat Bar"], auth_headers)
    await _log(async_client, ids["Oat Bar"], auth_headers)
    await _log(async_client, ids["Oat Bar"], bob_headers)
    return ids


# ── Listing ─────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_queue_lists_pending_with_usage(async_client: AsyncClient, admin_headers, queue):
    resp = await async_client.get(QUEUE, headers=admin_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["pagination"] == {"page": 1, "limit": 50, "total": 3, "total_pages": 1}

    names = [f["name"] for f in body["foods"]]
    assert names[0] == "Oat Bar"
    assert sorted(names) == ["Kiwi Smoothie", "Mystery Stew", "Oat Bar"]

    by_name = {f["name"]: f for f in body["foods"]}
    oat = by_name["Oat Bar"]
    assert oat["times_logged"] == 3
    assert oat["unique_users"] == 2
    assert oat["creator_username"] == "alice"
    assert oat["review_status"] == "pending"
    assert oat["last_used_at"] is not None
    assert by_name["Mystery Stew"]["creator_username"] is None
    assert by_name["Kiwi Smoothie"]["times_logged"] == 0
    assert by_name["Kiwi Smoothie"]["last_used_at"] is None


@pytest.mark.asyncio
async def test_queue_filters_sorts_and_pages(async_client: AsyncClient, admin_headers, queue):
    used = (await async_client.get(QUEUE, params={"min_usage": 1}, headers=admin_headers)).json()
    assert [f["name"] for f in used["foods"]] == ["Oat Bar"]
    assert used["pagination"]["total"] == 1

    alpha = (
        await async_client.get(QUEUE, params={"sort_by": "alphabetical"}, headers=admin_headers)
    ).json()
    assert [f["name"] for f in alpha["foods"]] == ["Kiwi Smoothie", "Mystery Stew", "Oat Bar"]

    paged = (
        await async_client.get(
            QUEUE, params={"sort_by": "alphabetical", "limit": 2, "page": 2}, headers=admin_headers
        )
    ).json()
    assert [f["name"] for f in paged["foods"]] == ["Oat Bar"]
    assert paged["pagination"]["total_pages"] == 2

    bad_sort = await async_client.get(QUEUE, params={"sort_by": "calories"}, headers=admin_headers)
    assert bad_sort.status_code == 400


@pytest.mark.asyncio
async def test_queue_stats(async_client: AsyncClient, admin_headers, queue):
    resp = await async_client.get(f"{QUEUE}/stats", headers=admin_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["stats"] == {
        "total_user_foods": 3,
        "total_contributors": 1,
        "total_logs_of_user_foods": 3,
        "avg_usage_per_food": 1.0,
    }
    assert len(body["top_contributors"]) == 1
    top = body["top_contributors"][0]
    assert (top["username"], top["foods_contributed"], top["total_usage"]) == ("alice", 2, 3)


@pytest.mark.asyncio
async def test_queue_stats_empty(async_client: AsyncClient, admin_headers):
    body = (await async_client.get(f"{QUEUE}/stats", headers=admin_headers)).json()
    assert body["stats"]["total_user_foods"] == 0
    assert body["stats"]["avg_usage_per_food"] == 0.0
    assert body["top_contributors"] == []


@pytest.mark.asyncio
async def test_queue_is_admin_only(async_client: AsyncClient, auth_headers):
    assert (await async_client.get(QUEUE, headers=auth_headers)).status_code == 403
    assert (await async_client.get(QUEUE)).status_code == 401


# ── Review actions ──────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_promote_moves_food_to_verified(
    async_client: AsyncClient, db_session: AsyncSession, admin: User, admin_headers, queue
):
    food_id = queue["Oat Bar"]
    resp = await async_client.post(
        f"{QUEUE}/{food_id}/promote", json={"notes": "label checked"}, headers=admin_headers
    )
    assert resp.status_code == 200

    food = await db_session.get(Food, food_id)
    await db_session.refresh(food)
    assert food.review_status == FOOD_VERIFIED
    assert food.reviewed_by == admin.id
    assert food.reviewed_at is not None
    assert food.review_notes == "label checked"

    listing = (await async_client.get(QUEUE, headers=admin_headers)).json()
    assert "Oat Bar" not in [f["name"] for f in listing["foods"]]

    again = await async_client.post(f"{QUEUE}/{food_id}/promote", json={}, headers=admin_headers)
    assert again.status_code == 404
    assert again.json()["error"] == "Food not found or not eligible for promotion"


@pytest.mark.asyncio
async def test_reject_hides_food_from_public_browse(
    async_client: AsyncClient, db_session: AsyncSession, admin_headers, queue
):
    food_id = queue["Kiwi Smoothie"]
    resp = await async_client.post(f"{QUEUE}/{food_id}/reject", json={}, headers=admin_headers)
    assert resp.status_code == 200

    food = await db_session.get(Food, food_id)
    await db_session.refresh(food)
    assert food.review_status == FOOD_REJECTED
    assert food.review_notes == "Rejected by admin"

    names = [f["name"] for f in (await async_client.get("/api/foods")).json()["foods"]]
    assert "Kiwi Smoothie" not in names
    assert "Oat Bar" in names
    search = (await async_client.get("/api/foods/search", params={"q": "kiwi"})).json()
    assert search["foods"] == []
    assert (await async_client.get(f"/api/foods/{food_id}")).status_code == 200

    again = await async_client.post(
        f"{QUEUE}/{food_id}/reject", json={"reason": "duplicate"}, headers=admin_headers
    )
    assert again.status_code == 404
    assert again.json()["error"] == "Food not found or not eligible for review"


@pytest.mark.asyncio
async def test_review_ignores_verified_catalog(async_client: AsyncClient, admin_headers, queue):
    apple = (await async_client.get("/api/foods/search", params={"q": "Apple"})).json()["foods"][0]
    assert apple["review_status"] == "verified"
    for action in ("promote", "reject"):
        resp = await async_client.post(f"{QUEUE}/{apple['id']}/{action}", json={}, headers=admin_headers)
        assert resp.status_code == 404
    assert (await async_client.delete(f"{QUEUE}/{apple['id']}", headers=admin_headers)).status_code == 404


@pytest.mark.asyncio
async def test_delete_only_unused_contributions(async_client: AsyncClient, admin_headers, queue):
    used = await async_client.delete(f"{QUEUE}/{queue['Oat Bar']}", headers=admin_headers)
    assert used.status_code == 400
    assert used.json() == {
        "success": False,
        "error": "Cannot delete food that is being used in logs. Consider rejecting it instead.",
    }

    unused = await async_client.delete(f"{QUEUE}/{queue['Mystery Stew']}", headers=admin_headers)
    assert unused.status_code == 200
    assert (await async_client.get(f"/api/foods/{queue['Mystery Stew']}")).status_code == 404

    gone = await async_client.delete(f"{QUEUE}/{queue['Mystery Stew']}", headers=admin_headers)
    assert gone.status_code == 404
    assert gone.json()["error"] == "Food not found"


# ── Categories ──────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_categories_count_live_foods(
    async_client: AsyncClient, db_session: AsyncSession, admin_headers, auth_headers
):
    db_session.add_all(
        [
            Food(name="Apple", calories_per_unit=52, default_unit="100g", category="fruit"),
            Food(name="Pear", calories_per_unit=57, default_unit="100g", category="fruit"),
            Food(name="Rye Bread", calories_per_unit=259, default_unit="100g", category="bakery"),
            Food(name="Water", calories_per_unit=0, default_unit="ml"),
            Food(
                name="Plastic Fruit",
                calories_per_unit=0,
                default_unit="piece",
                category="fruit",
                review_status=FOOD_REJECTED,
            ),
        ]
    )
    await db_session.commit()
    await _contribute(async_client, "Dragon Fruit", auth_headers, category="fruit")

    resp = await async_client.get("/api/admin/foods/categories", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["categories"] == [
        {"category": "bakery", "food_count": 1},
        {"category": "fruit", "food_count": 3},
    ]

    assert (
        await async_client.get("/api/admin/foods/categories", headers=auth_headers)
    ).status_code == 403
