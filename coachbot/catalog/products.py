"""Catalog data access and the keyword-based platform recommendation helpers.

The JSON files under ``data/`` are read once per process. Lookups return the
shared frozen :class:`Product` records.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable, Optional

from coachbot.catalog.models import (
    NUTRITION_PLATFORM,
    SUPPLEMENTS_PLATFORM,
    Platform,
    PlatformRoute,
    Product,
    StackComponent,
)

log = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent / "data"

STACK_KEYWORDS = ("stack", "bundle", "combo", "combination")

PLATFORM_DIFFERENCES: dict[str, tuple[str, ...]] = {
    NUTRITION_PLATFORM: (
        "Offers personal coaching and consultations",
        "Custom meal and training plans available",
        "Professional services and guidance",
        "Educational content and courses",
    ),
    SUPPLEMENTS_PLATFORM: (
        "Supplement stacks/bundles exclusive to this platform",
        "E-commerce focused for supplement shopping",
        "No coaching or consultation services",
        "Individual supplements available",
    ),
}

__all__ = [
    "CatalogError",
    "CatalogData",
    "GoalProducts",
    "StackDetails",
    "ProductRecommendations",
    "SmartRecommendations",
    "RoutingAdvice",
    "load_catalog",
    "get_quick_reference",
    "get_all_products",
    "get_product_by_id",
    "get_products_by_platform",
    "get_individual_products",
    "get_product_stacks",
    "get_books_and_programs",
    "get_products_by_category",
    "get_stack_with_components",
    "search_products",
    "get_products_by_goal",
    "get_products_by_quick_category",
    "get_popular_stacks",
    "determine_platform_recommendation",
    "get_platform_info",
    "get_platform_comparison",
    "get_recommended_products",
    "get_smart_recommendations",
    "get_routing_advice",
    "get_catalog_info",
]


class CatalogError(RuntimeError):
    """Raised when the bundled catalog data cannot be read."""


@dataclass(slots=True, frozen=True)
class CatalogData:
    index: dict[str, Any]
    supplements: tuple[Product, ...]
    stacks: tuple[Product, ...]
    books: tuple[Product, ...]
    programs: tuple[Product, ...]
    quick_ref: dict[str, Any]
    by_id: dict[str, Product] = field(default_factory=dict)

    @property
    def all_products(self) -> tuple[Product, ...]:
        return self.supplements + self.stacks + self.books + self.programs


@dataclass(slots=True)
class GoalProducts:
    products: list[Product]
    stacks: list[Product]
    description: str


@dataclass(slots=True)
class StackDetails:
    stack: Product
    components: list[tuple[StackComponent, Optional[Product]]]


@dataclass(slots=True)
class ProductRecommendations:
    platform_recommendation: PlatformRoute
    products: list[Product]
    alternative_platform: Platform


@dataclass(slots=True)
class SmartRecommendations:
    detected_goals: list[str]
    recommended_products: list[Product]
    recommended_stacks: list[Product]
    platform: Platform


@dataclass(slots=True)
class RoutingAdvice:
    route: PlatformRoute
    platform_info: dict[str, Any]
    action_advice: str


def _read_json(name: str, data_dir: Path) -> dict[str, Any]:
    path = data_dir / name
    try:
        with path.open("r", encoding="utf-8") as fp:
            data = json.load(fp)
    except FileNotFoundError as exc:
        raise CatalogError(f"Missing catalog data file {path}") from exc
    except ValueError as exc:
        raise CatalogError(f"Invalid JSON in catalog data file {path}") from exc
    if not isinstance(data, dict):
        raise CatalogError(f"Catalog data file {path} must contain an object")
    return data


def _parse_products(items: Iterable[Any], source: str) -> tuple[Product, ...]:
    try:
        return tuple(Product.from_mapping(item) for item in items)
    except (KeyError, TypeError, ValueError) as exc:
        raise CatalogError(f"Malformed product entry in {source}: {exc}") from exc


def load_catalog(data_dir: Path = DATA_DIR) -> CatalogData:
    index = _read_json("catalog_index.json", data_dir)
    supplements = _parse_products(_read_json("supplements.json", data_dir).get("products", ()), "supplements.json")
    stacks = _parse_products(_read_json("stacks.json", data_dir).get("products", ()), "stacks.json")
    books_programs = _read_json("books_programs.json", data_dir)
    books = _parse_products(books_programs.get("books", ()), "books_programs.json")
    programs = _parse_products(books_programs.get("programs", ()), "books_programs.json")
    quick_ref = _read_json("quick_ref.json", data_dir)

    catalog = CatalogData(
        index=index,
        supplements=supplements,
        stacks=stacks,
        books=books,
        programs=programs,
        quick_ref=quick_ref,
    )
    for product in catalog.all_products:
        catalog.by_id.setdefault(product.id, product)
    log.debug("Loaded %s catalog products from %s", len(catalog.by_id), data_dir)
    return catalog


@lru_cache(maxsize=1)
def _catalog() -> CatalogData:
    return load_catalog()


def get_quick_reference() -> dict[str, Any]:
    return _catalog().quick_ref


def get_all_products() -> list[Product]:
    return list(_catalog().all_products)


def get_product_by_id(product_id: str) -> Optional[Product]:
    return _catalog().by_id.get(product_id)


def get_products_by_platform(platform: str) -> list[Product]:
    return [product for product in _catalog().all_products if platform in product.available_on]


def get_individual_products() -> list[Product]:
    return list(_catalog().supplements)


def get_product_stacks() -> list[Product]:
    return list(_catalog().stacks)


def get_books_and_programs() -> dict[str, list[Product]]:
    catalog = _catalog()
    return {"books": list(catalog.books), "programs": list(catalog.programs)}


def get_products_by_category(category: str) -> list[Product]:
    return [product for product in _catalog().all_products if product.category == category]


def get_stack_with_components(stack_id: str) -> Optional[StackDetails]:
    stack = next((item for item in _catalog().stacks if item.id == stack_id), None)
    if stack is None:
        return None
    return StackDetails(
        stack=stack,
        components=[
            (component, get_product_by_id(component.product_id))
            for component in stack.components
        ],
    )


def search_products(
    term: str,
    *,
    include_stacks: bool = True,
    include_individual: bool = True,
    include_books: bool = True,
    include_programs: bool = True,
    platform: str | None = None,
) -> list[Product]:
    """Case-insensitive substring search across names, descriptions, tags and benefits."""

    catalog = _catalog()
    candidates: list[Product] = []
    if include_individual:
        candidates.extend(catalog.supplements)
    if include_stacks:
        candidates.extend(catalog.stacks)
    if include_books:
        candidates.extend(catalog.books)
    if include_programs:
        candidates.extend(catalog.programs)
    if platform:
        candidates = [product for product in candidates if platform in product.available_on]

    needle = term.lower()
    return [product for product in candidates if needle in product.searchable_text()]


def _resolve_ids(ids: Iterable[str]) -> list[Product]:
    products = []
    for product_id in ids:
        product = get_product_by_id(product_id)
        if product is not None:
            products.append(product)
    return products


def get_products_by_goal(goal: str) -> GoalProducts:
    goal_data = _catalog().quick_ref.get("byGoal", {}).get(goal)
    if not goal_data:
        return GoalProducts(products=[], stacks=[], description="Goal not found")
    return GoalProducts(
        products=_resolve_ids(goal_data.get("products", ())),
        stacks=_resolve_ids(goal_data.get("stacks", ())),
        description=str(goal_data.get("description", "")),
    )


def get_products_by_quick_category(category: str) -> list[Product]:
    category_data = _catalog().quick_ref.get("byCategory", {}).get(category)
    if not category_data:
        return []
    ids = [
        *category_data.get("products", ()),
        *category_data.get("books", ()),
        *category_data.get("programs", ()),
    ]
    return _resolve_ids(ids)


def get_popular_stacks() -> list[dict[str, Any]]:
    items = _catalog().quick_ref.get("popularStacks", {}).get("items", ())
    return [{**item, "product": get_product_by_id(item.get("id", ""))} for item in items]


def _routing_keywords(platform: str) -> list[str]:
    routing = _catalog().index.get("routingLogic", {}).get(platform, {})
    return list(routing.get("keywords", ()))


def _count_matches(query_lower: str, keywords: Iterable[str]) -> int:
    return sum(1 for keyword in keywords if keyword in query_lower)


def determine_platform_recommendation(query: str) -> PlatformRoute:
    """Pick a storefront for ``query``: coaching first, then stacks, then shopping."""

    query_lower = query.lower()
    coaching = _count_matches(query_lower, _routing_keywords(NUTRITION_PLATFORM))
    shopping = _count_matches(query_lower, _routing_keywords(SUPPLEMENTS_PLATFORM))
    stack = _count_matches(query_lower, STACK_KEYWORDS)

    if coaching > 0:
        return PlatformRoute(
            platform=NUTRITION_PLATFORM,
            confidence=min(coaching * 0.3, 1.0),
            reasoning="User query indicates need for coaching or personalized services",
        )
    if stack > 0:
        return PlatformRoute(
            platform=SUPPLEMENTS_PLATFORM,
            confidence=min(stack * 0.4, 1.0),
            reasoning="User query indicates interest in supplement stacks/bundles",
        )
    if shopping > 0:
        return PlatformRoute(
            platform=SUPPLEMENTS_PLATFORM,
            confidence=min(shopping * 0.25, 0.7),
            reasoning="User query indicates product shopping intent",
        )
    return PlatformRoute(
        platform=NUTRITION_PLATFORM,
        confidence=0.1,
        reasoning="No clear platform indicators - defaulting to full-service platform",
    )


def get_platform_info(platform: str) -> dict[str, Any]:
    return dict(_catalog().index.get("platforms", {}).get(platform, {}))


def get_platform_comparison() -> dict[str, dict[str, Any]]:
    return {
        "nutrition": {
            **get_platform_info(NUTRITION_PLATFORM),
            "key_differences": list(PLATFORM_DIFFERENCES[NUTRITION_PLATFORM]),
        },
        "supplements": {
            **get_platform_info(SUPPLEMENTS_PLATFORM),
            "key_differences": list(PLATFORM_DIFFERENCES[SUPPLEMENTS_PLATFORM]),
        },
    }


def _other_platform(platform: str) -> Platform:
    return SUPPLEMENTS_PLATFORM if platform == NUTRITION_PLATFORM else NUTRITION_PLATFORM


def get_recommended_products(
    query: str,
    *,
    max_results: int = 5,
    preferred_platform: Platform | None = None,
) -> ProductRecommendations:
    if preferred_platform:
        route = PlatformRoute(platform=preferred_platform, confidence=1.0, reasoning="User specified")
    else:
        route = determine_platform_recommendation(query)
    products = search_products(query, platform=route.platform)[:max_results]
    return ProductRecommendations(
        platform_recommendation=route,
        products=products,
        alternative_platform=_other_platform(route.platform),
    )


_BROAD_GOAL_KEYWORDS = (
    (("energy", "focus"), "energy"),
    (("recovery", "sleep"), "recovery"),
    (("muscle", "strength"), "muscle-building"),
    (("fat", "weight"), "fat-loss"),
)


def _dedupe(products: Iterable[Product]) -> list[Product]:
    seen: set[str] = set()
    unique = []
    for product in products:
        if product.id not in seen:
            seen.add(product.id)
            unique.append(product)
    return unique


def get_smart_recommendations(query: str) -> SmartRecommendations:
    query_lower = query.lower()
    goals = list(_catalog().quick_ref.get("byGoal", {}))
    detected = [
        goal for goal in goals if goal in query_lower or goal.replace("-", " ", 1) in query_lower
    ]
    if not detected:
        for keywords, goal in _BROAD_GOAL_KEYWORDS:
            if any(keyword in query_lower for keyword in keywords):
                detected.append(goal)

    products: list[Product] = []
    stacks: list[Product] = []
    for goal in detected:
        goal_products = get_products_by_goal(goal)
        products.extend(goal_products.products)
        stacks.extend(goal_products.stacks)

    return SmartRecommendations(
        detected_goals=detected,
        recommended_products=_dedupe(products)[:5],
        recommended_stacks=_dedupe(stacks)[:3],
        platform=determine_platform_recommendation(query).platform,
    )


def get_routing_advice(query: str) -> RoutingAdvice:
    route = determine_platform_recommendation(query)
    if route.platform == NUTRITION_PLATFORM:
        advice = "Direct user to Troponin Nutrition for services, coaching, or comprehensive product selection"
    else:
        advice = "Direct user to Troponin Supplements for supplement shopping, especially stacks/bundles"
    return RoutingAdvice(
        route=route,
        platform_info=get_platform_info(route.platform),
        action_advice=advice,
    )


def get_catalog_info() -> dict[str, Any]:
    index = _catalog().index
    counts = dict(index.get("productSummary", {}))
    return {
        "index": dict(index.get("metadata", {})),
        "product_counts": counts,
        "data_files": dict(index.get("dataFiles", {})),
        "platforms": list(index.get("platforms", {})),
        "total_products": sum(int(value) for value in counts.values()),
    }
