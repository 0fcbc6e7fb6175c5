"""Tests for the Open Food Facts client and product normalisation."""

import httpx
import pytest

from calorie_tracker.schemas.external_food import ExternalFood
from calorie_tracker.services.open_food_facts import (HEALTH_CHECK_BARCODE, OpenFoodFactsClient,
                                                      clean_brand, clean_product_name,
                                                      extract_allergens, normalize_product,
                                                      nutrition_score, parse_nutriment)


def _product(code: str, name: str = "Product", kcal=100, **extra) -> dict:
    return {
        "code": code,
        "product_name": name,
        "nutriments": {"energy-kcal_100g": kcal, **extra.pop("nutriments", {})},
        **extra,
    }


def _client(handler) -> OpenFoodFactsClient:
    return OpenFoodFactsClient(
        base_url="https://off.test",
        user_agent="CalorieTrackerTests/1.0",
        timeout=5.0,
        transport=httpx.MockTransport(handler),
    )


# ── Normalisation ───────────────────────────────────────────────────
def test_clean_product_name_collapses_whitespace():
    assert clean_product_name("  Dark \n\t chocolate  ") == "Dark chocolate"
    assert clean_product_name(None) == ""
    assert len(clean_product_name("x" * 400)) == 255
    assert clean_product_name(12345) == ""
    assert clean_product_name(["Bread"]) == ""


def test_clean_brand_keeps_first_brand():
    assert clean_brand("Migros, M-Budget") == "Migros"
    assert clean_brand("") is None
    assert clean_brand(None) is None
    assert clean_brand(["Migros"]) is None


@pytest.mark.parametrize(
    "value,expected",
    [
        (12.345, 12.35), ("3.1", 3.1), (0, 0.0), (None, None), ("", None), ("n/a", None),
        (float("nan"), None), ("inf", None), ("-Infinity", None), (float("inf"), None),
    ],
)
def test_parse_nutriment(value, expected):
    assert parse_nutriment(value) == expected


def test_extract_allergens_strips_language_prefix():
    assert extract_allergens("en:milk, en:nuts,fr:soja") == ["milk", "nuts", "soja"]
    assert extract_allergens("") == []


def test_normalize_product():
    food = normalize_product(
        _product(
            "7610000000001",
            name="Swiss  Cheese",
            kcal=402.6,
            nutriments={"proteins_100g": 25, "fat_100g": "33.1"},
            brands="Emmi, Other",
            countries="Switzerland",
            allergens="en:milk",
        )
    )
    assert food is not None
    assert food.external_id == "7610000000001"
    assert food.name == "Swiss Cheese"
    assert food.calories_per_100g == 403
    assert food.protein_per_100g == 25.0
    assert food.fat_per_100g == 33.1
    assert food.carbs_per_100g is None
    assert food.brand == "Emmi"
    assert food.allergens == ["milk"]
    assert food.source == "Open Food Facts"


@pytest.mark.parametrize(
    "product",
    [
        _product("1", kcal=0),
        _product("2", kcal=-5),
        _product("3", kcal=None),
        _product("4", name="   "),
        {"product_name": "No code", "nutriments": {"energy-kcal_100g": 100}},
        _product("5", kcal="inf"),
        _product("6", name=42),
        {"code": "7", "product_name": "Broken", "nutriments": "broken"},
        "not a product",
    ],
)
def test_normalize_product_drops_unusable(product):
    assert normalize_product(product) is None


def test_nutrition_score():
    lean = ExternalFood(external_id="1", name="Chicken", calories_per_100g=165, protein_per_100g=31, fat_per_100g=3.6)
    assert nutrition_score(lean) == 60

    fatty = ExternalFood(external_id="2", name="Butter", calories_per_100g=717, fat_per_100g=81)
    assert nutrition_score(fatty) == 15

    medium_fat = ExternalFood(external_id="3", name="Cheese", calories_per_100g=250, fat_per_100g=25)
    assert nutrition_score(medium_fat) == 35

    assert nutrition_score(ExternalFood(external_id="4", name="Water", calories_per_100g=1)) == 50


# ── Client ──────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_search_sends_query_and_filters_products():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"products": [_product("10", "Muesli"), _product("11", "Ghost", kcal=0)]})

    foods = await _client(handler).search("muesli", limit=7, countries="switzerland")

    assert [f.external_id for f in foods] == ["10"]
    request = seen[0]
    assert request.url.path == "/cgi/search.pl"
    assert request.url.params["search_terms"] == "muesli"
    assert request.url.params["page_size"] == "7"
    assert request.url.params["tag_0"] == "switzerland"
    assert request.headers["User-Agent"] == "CalorieTrackerTests/1.0"


@pytest.mark.asyncio
async def test_worldwide_search_has_no_country_filter():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"products": []})

    assert await _client(handler).search("tea") == []
    assert "tag_0" not in seen[0].url.params


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500),
        httpx.Response(200, content=b"<html>not json</html>"),
    ],
)
async def test_search_failures_return_empty(response):
    assert await _client(lambda request: response).search("bread") == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [["unexpected", "list"], {"products": "nope"}, {"products": None}, "just a string"],
)
async def test_search_unexpected_payload_returns_empty(payload):
    assert await _client(lambda request: httpx.Response(200, json=payload)).search("bread") == []


@pytest.mark.asyncio
async def test_search_skips_malformed_products():
    products = [
        "garbage",
        None,
        _product("20", "Rye bread"),
        _product("21", kcal="Infinity"),
        {"code": ["22"], "product_name": "Odd id", "nutriments": {"energy-kcal_100g": 90}},
    ]
    foods = await _client(lambda request: httpx.Response(200, json={"products": products})).search("bread")
    assert [f.external_id for f in foods] == ["20"]


@pytest.mark.asyncio
async def test_search_network_error_returns_empty():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("boom", request=request)

    assert await _client(handler).search("bread") == []


@pytest.mark.asyncio
async def test_regional_search_prefers_switzerland_and_dedups():
    by_region = {
        "switzerland": [_product("ch1", "Swiss Rösti"), _product("ch2", "Swiss Rösti XL")],
        "germany,france,italy,austria": [_product("ch2", "Swiss Rösti XL"), _product("de1", "Kartoffelpuffer")],
        "": [_product("w1", "Hash browns"), _product("w2", "Hash browns 2")],
    }
    regions: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        region = request.url.params.get("tag_0", "")
        regions.append(region)
        limit = int(request.url.params["page_size"])
        return httpx.Response(200, json={"products": by_region[region][:limit]})

    foods = await _client(handler).search_regional("rosti", limit=4)

    assert [f.external_id for f in foods] == ["ch1", "ch2", "de1", "w1"]
    assert regions == ["switzerland", "germany,france,italy,austria", ""]


@pytest.mark.asyncio
async def test_regional_search_stops_when_full():
    regions: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        regions.append(request.url.params.get("tag_0", ""))
        return httpx.Response(200, json={"products": [_product(f"p{i}") for i in range(4)]})

    foods = await _client(handler).search_regional("any", limit=4)
    assert len(foods) == 4
    assert regions == ["switzerland"]


@pytest.mark.asyncio
async def test_get_product():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/v0/product/123.json":
            return httpx.Response(200, json={"status": 1, "product": {"product_name": "Jam",
                                                                      "nutriments": {"energy-kcal_100g": 250}}})
        return httpx.Response(200, json={"status": 0, "status_verbose": "product not found"})

    client = _client(handler)
    jam = await client.get_product("123")
    assert jam is not None
    assert jam.external_id == "123"
    assert jam.calories_per_100g == 250
    assert await client.get_product("999") is None


@pytest.mark.asyncio
async def test_get_product_error_returns_none():
    assert await _client(lambda request: httpx.Response(503)).get_product("123") is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [[{"status": 1}], {"status": 1, "product": ["Jam"]}, {"status": 1, "product": "Jam"}, 7],
)
async def test_get_product_unexpected_payload_returns_none(payload):
    assert await _client(lambda request: httpx.Response(200, json=payload)).get_product("123") is None


@pytest.mark.asyncio
async def test_health_check():
    def healthy(request: httpx.Request) -> httpx.Response:
        assert request.url.path == f"/api/v0/product/{HEALTH_CHECK_BARCODE}.json"
        return httpx.Response(200, json={"status": 1})

    def unreachable(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    assert await _client(healthy).health_check() is True
    assert await _client(lambda request: httpx.Response(502)).health_check() is False
    assert await _client(unreachable).health_check() is False
