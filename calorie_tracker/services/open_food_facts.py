"""Async client for the Open Food Facts product database.

Products are normalised into ``ExternalFood``; anything without a positive
kcal/100 g value is dropped.  Network and decoding failures are logged and
reported as "no results" so a flaky provider never fails a request.
"""

from __future__ import annotations

import logging
import math
import re
from typing import TYPE_CHECKING, Any

import httpx

from calorie_tracker.schemas.external_food import ExternalFood

if TYPE_CHECKING:
    from calorie_tracker.core.config import Settings

logger = logging.getLogger(__name__)

SOURCE_NAME = "Open Food Facts"
SEARCH_FIELDS = "code,product_name,nutriments,brands,countries,image_url,allergens"
# Searched in order until enough products are found; "" means worldwide.
REGION_PRIORITY = ("switzerland", "germany,france,italy,austria", "")
# Nutella; any stable barcode works for a reachability check.
HEALTH_CHECK_BARCODE = "3017620422003"
MAX_TEXT_LEN = 255

_WHITESPACE = re.compile(r"\s+")


# ── Normalisation ───────────────────────────────────────────────────
def clean_product_name(name: Any) -> str:
    if not name or not isinstance(name, str):
        return ""
    return _WHITESPACE.sub(" ", name.strip())[:MAX_TEXT_LEN]


def clean_brand(brands: Any) -> str | None:
    if not brands or not isinstance(brands, str):
        return None
    first = brands.split(",")[0].strip()
    return first[:MAX_TEXT_LEN] or None


def parse_nutriment(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(parsed):
        return None
    return round(parsed, 2)


def extract_allergens(allergens: Any) -> list[str]:
    """``"en:milk, en:nuts"`` -> ``["milk", "nuts"]``."""
    if not allergens or not isinstance(allergens, str):
        return []
    tags = (a.strip() for a in allergens.split(","))
    return [t.split(":", 1)[-1] for t in tags if t]


def _text(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def normalize_product(product: Any) -> ExternalFood | None:
    if not isinstance(product, dict):
        return None
    nutriments = product.get("nutriments")
    if not isinstance(nutriments, dict):
        nutriments = {}
    name = clean_product_name(product.get("product_name"))
    kcal = parse_nutriment(nutriments.get("energy-kcal_100g"))
    external_id = product.get("code") or product.get("_id")
    if not isinstance(external_id, (str, int)) or isinstance(external_id, bool):
        external_id = None
    if not name or not external_id or kcal is None or round(kcal) <= 0:
        return None
    return ExternalFood(
        external_id=str(external_id),
        name=name,
        calories_per_100g=round(kcal),
        protein_per_100g=parse_nutriment(nutriments.get("proteins_100g")),
        carbs_per_100g=parse_nutriment(nutriments.get("carbohydrates_100g")),
        fat_per_100g=parse_nutriment(nutriments.get("fat_100g")),
        fiber_per_100g=parse_nutriment(nutriments.get("fiber_100g")),
        brand=clean_brand(product.get("brands")),
        countries=_text(product.get("countries")),
        image_url=_text(product.get("image_url")),
        source=SOURCE_NAME,
        allergens=extract_allergens(product.get("allergens")),
    )


def nutrition_score(food: ExternalFood) -> int:
    """Rough 0-100 score, higher is better. Starts at 50."""
    score = 50
    protein = food.protein_per_100g or 0
    fiber = food.fiber_per_100g or 0
    fat = food.fat_per_100g or 0
    kcal = food.calories_per_100g

    if protein > 10:
        score += 10
    elif protein > 5:
        score += 5

    if fiber > 5:
        score += 10
    elif fiber > 2:
        score += 5

    if fat > 35:
        score -= 20
    elif fat > 20:
        score -= 10

    if kcal > 400:
        score -= 15
    elif kcal > 300:
        score -= 10
    elif kcal > 200:
        score -= 5

    return max(0, min(100, score))


# ── Client ──────────────────────────────────────────────────────────
class OpenFoodFactsClient:
    def __init__(
        self,
        base_url: str,
        user_agent: str,
        timeout: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.user_agent = user_agent
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> OpenFoodFactsClient:
        return cls(
            base_url=settings.OPEN_FOOD_FACTS_URL,
            user_agent=settings.OPEN_FOOD_FACTS_USER_AGENT,
            timeout=settings.OPEN_FOOD_FACTS_TIMEOUT,
        )

    def _client(self, timeout: float | None = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers={"User-Agent": self.user_agent},
            timeout=timeout or self.timeout,
            transport=self._transport,
        )

    async def search(self, query: str, limit: int = 20, countries: str = "") -> list[ExternalFood]:
        params: dict[str, Any] = {
            "search_terms": query,
            "page_size": limit,
            "json": 1,
            "fields": SEARCH_FIELDS,
        }
        if countries:
            params.update(
                {"tagtype_0": "countries", "tag_contains_0": "contains", "tag_0": countries}
            )
        try:
            async with self._client() as client:
                resp = await client.get("/cgi/search.pl", params=params)
                resp.raise_for_status()
                data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Open Food Facts search failed for %r: %s", query, e)
            return []
        products = data.get("products") if isinstance(data, dict) else None
        if not isinstance(products, list):
            logger.warning("Open Food Facts search for %r returned an unexpected payload", query)
            return []
        foods = (normalize_product(p) for p in products)
        return [f for f in foods if f is not None]

    async def search_regional(self, query: str, limit: int = 20) -> list[ExternalFood]:
        """Search Swiss products first, then neighbours, then worldwide."""
        results: list[ExternalFood] = []
        seen: set[str] = set()
        for i, countries in enumerate(REGION_PRIORITY):
            if len(results) >= limit:
                break
            wanted = math.ceil(limit / 2) if i == 0 else limit - len(results)
            for food in await self.search(query, wanted, countries):
                if food.external_id not in seen:
                    seen.add(food.external_id)
                    results.append(food)
        return results[:limit]

    async def get_product(self, barcode: str) -> ExternalFood | None:
        try:
            async with self._client() as client:
                resp = await client.get(f"/api/v0/product/{barcode}.json")
                resp.raise_for_status()
                data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Open Food Facts product lookup failed for %s: %s", barcode, e)
            return None
        if not isinstance(data, dict) or data.get("status") != 1:
            return None
        if not isinstance(data.get("product"), dict) or not data["product"]:
            return None
        product = dict(data["product"])
        product.setdefault("code", barcode)
        return normalize_product(product)

    async def health_check(self) -> bool:
        try:
            async with self._client(timeout=3.0) as client:
                resp = await client.get(f"/api/v0/product/{HEALTH_CHECK_BARCODE}.json")
        except httpx.HTTPError as e:
            logger.warning("Open Food Facts health check failed: %s", e)
            return False
        return resp.status_code == 200
