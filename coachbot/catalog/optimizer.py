from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Literal, Mapping, Optional, Sequence

from coachbot.cache import CacheStats, TTLCache
from coachbot.catalog import products as catalog
from coachbot.catalog.models import (
    NUTRITION_PLATFORM,
    SUPPLEMENTS_PLATFORM,
    Intent,
    PlatformRoute,
    PriceTier,
    Product,
    ProductSummary,
    QuickIntent,
)

log = logging.getLogger(__name__)

CATALOG_CACHE_TTL = 5 * 60.0

Verbosity = Literal["minimal", "standard", "detailed"]
VERBOSITY_LEVELS: tuple[str, ...] = ("minimal", "standard", "detailed")

__all__ = [
    "CATALOG_CACHE_TTL",
    "VERBOSITY_LEVELS",
    "IntentPattern",
    "INTENT_PATTERNS",
    "CatalogOptimizer",
    "get_catalog_optimizer",
]


@dataclass(slots=True, frozen=True)
class IntentPattern:
    keywords: tuple[str, ...]
    intent: Intent
    weight: float


INTENT_PATTERNS: tuple[IntentPattern, ...] = (
    IntentPattern(("supplement", "buy", "purchase", "shop"), "product_search", 0.9),
    IntentPattern(("stack", "bundle", "combo"), "product_search", 0.95),
    IntentPattern(("troponin-supplements", "store"), "platform_routing", 0.9),
    IntentPattern(("coaching", "consultation", "custom"), "platform_routing", 0.85),
    IntentPattern(("muscle", "fat loss", "energy", "recovery"), "goal_based", 0.8),
    IntentPattern(("category", "types", "what do you have"), "category_browse", 0.7),
)

SUGGESTED_ACTIONS: dict[str, str] = {
    "product_search": "search_products",
    "platform_routing": "route_platform",
    "goal_based": "recommend_by_goal",
    "category_browse": "list_categories",
}

DEFAULT_INTENT = QuickIntent(
    intent="goal_based",
    confidence=0.3,
    suggested_action="search_general",
    keywords=(),
)

NUTRITION_TRIGGERS = ("coaching", "consultation", "custom", "personal", "program", "book")
SUPPLEMENT_TRIGGERS = ("supplement", "stack", "bundle", "buy", "shop")


def infer_price_tier(product: Product) -> PriceTier:
    if product.type == "stack":
        return "high"
    if product.category == "programs":
        return "mid"
    return "low"


def _format_minimal(product: Product) -> str:
    return f"- {product.name} ({product.type}) - {product.description[:100]}..."


def _format_standard(product: Product) -> str:
    benefits = ", ".join(product.key_benefits[:3])
    return (
        f"**{product.name}**\n{product.description}\n"
        f"Key Benefits: {benefits}\n"
        f"Available on: {', '.join(product.available_on)}"
    )


def _format_detailed(product: Product) -> str:
    ingredients = (
        ", ".join(f"{item.name}: {item.amount}" for item in product.key_ingredients[:5])
        or "Not specified"
    )
    benefits = ", ".join(product.key_benefits) or "Not specified"
    usage = (
        f"{product.usage.dosage} {product.usage.timing}" if product.usage else "See product label"
    )
    lines = [
        f"**{product.name}**",
        f"Type: {product.type}",
        f"Category: {product.category}",
        f"Description: {product.description}",
        f"Key Benefits: {benefits}",
        f"Key Ingredients: {ingredients}",
        f"Usage: {usage}",
        f"Available on: {', '.join(product.available_on)}",
    ]
    if product.website_url:
        lines.append(f"URL: {product.website_url}")
    return "\n".join(lines)


class CatalogOptimizer:
    """Cached, token-frugal catalog views for agent routing and prompts."""

    def __init__(
        self,
        *,
        cache: TTLCache[Any] | None = None,
        product_lookup: Callable[[str], Optional[Product]] = catalog.get_product_by_id,
        product_source: Callable[[], Iterable[Product]] = catalog.get_all_products,
        goal_source: Callable[[], Mapping[str, Any]] | None = None,
    ) -> None:
        self._cache: TTLCache[Any] = cache or TTLCache("catalog", CATALOG_CACHE_TTL)
        self._lookup = product_lookup
        self._product_source = product_source
        self._goal_source = goal_source or _quick_ref_goals
        self._summaries: list[ProductSummary] | None = None
        self._goal_map: dict[str, list[str]] | None = None

    def detect_intent(self, query: str) -> QuickIntent:
        query_lower = query.lower()
        cache_key = f"intent:{query_lower}"
        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        best = DEFAULT_INTENT
        best_score = 0.0
        for pattern in INTENT_PATTERNS:
            matched = tuple(keyword for keyword in pattern.keywords if keyword in query_lower)
            score = len(matched) / len(pattern.keywords) * pattern.weight
            if score > best_score:
                best_score = score
                best = QuickIntent(
                    intent=pattern.intent,
                    confidence=min(score, 1.0),
                    suggested_action=SUGGESTED_ACTIONS.get(pattern.intent, "search_general"),
                    keywords=matched,
                )

        self._cache.set(cache_key, best)
        return best

    def get_product_summaries(
        self,
        *,
        goal: str | None = None,
        category: str | None = None,
        platform: str | None = None,
        limit: int = 10,
    ) -> list[ProductSummary]:
        results: Sequence[ProductSummary] = self._ensure_summaries()
        if platform:
            results = [item for item in results if platform in item.platform]
        if category:
            results = [item for item in results if item.category == category]
        if goal:
            goal_ids = set(self.get_products_by_goal(goal))
            results = [item for item in results if item.id in goal_ids]
        return list(results[: limit or 10])

    def get_products_by_goal(self, goal: str) -> list[str]:
        cache_key = f"goal:{goal}"
        cached = self._cache.get(cache_key)
        if cached is not None:
            return list(cached)

        products = list(self._ensure_goal_map().get(goal, []))
        self._cache.set(cache_key, products)
        return list(products)

    def route_platform(self, query: str) -> PlatformRoute:
        query_lower = query.lower()
        cache_key = f"route:{query_lower}"
        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        nutrition = sum(1 for trigger in NUTRITION_TRIGGERS if trigger in query_lower)
        supplements = sum(1 for trigger in SUPPLEMENT_TRIGGERS if trigger in query_lower)

        if nutrition > supplements:
            route = PlatformRoute(
                platform=NUTRITION_PLATFORM,
                confidence=min(nutrition * 0.3, 1.0),
                reasoning="Service-oriented query detected",
            )
        elif supplements > 0:
            route = PlatformRoute(
                platform=SUPPLEMENTS_PLATFORM,
                confidence=min(supplements * 0.4, 1.0),
                reasoning="Product shopping intent detected",
            )
        else:
            route = PlatformRoute(
                platform=NUTRITION_PLATFORM,
                confidence=0.1,
                reasoning="Default to full-service platform",
            )

        self._cache.set(cache_key, route)
        return route

    def format_for_ai(self, product_ids: Sequence[str], verbosity: Verbosity = "standard") -> str:
        """Render products as prompt text; unknown ids are skipped."""

        if verbosity not in VERBOSITY_LEVELS:
            raise ValueError(f"Unknown verbosity {verbosity!r}; expected one of {VERBOSITY_LEVELS}")

        cache_key = f"format:{','.join(product_ids)}:{verbosity}"
        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        found = [product for product in map(self._lookup, product_ids) if product is not None]
        if verbosity == "minimal":
            formatted = "\n".join(_format_minimal(product) for product in found)
        elif verbosity == "standard":
            formatted = "\n\n---\n\n".join(_format_standard(product) for product in found)
        else:
            formatted = "\n\n---\n\n".join(_format_detailed(product) for product in found)

        self._cache.set(cache_key, formatted)
        return formatted

    def batch_process(self, operations: Iterable[Mapping[str, Any]]) -> list[Any]:
        results: list[Any] = []
        for operation in operations:
            kind = operation.get("type")
            query = str(operation.get("query", ""))
            if kind == "intent":
                results.append(self.detect_intent(query))
            elif kind == "route":
                results.append(self.route_platform(query))
            elif kind == "goal":
                results.append(self.get_products_by_goal(query))
            elif kind == "summaries":
                params = dict(operation.get("params") or {})
                results.append(self.get_product_summaries(**params))
            else:
                log.debug("Ignoring unknown catalog batch operation %r", kind)
                results.append(None)
        return results

    def get_cache_stats(self) -> CacheStats:
        return self._cache.stats()

    def clear_cache(self) -> None:
        self._cache.clear()

    def _ensure_summaries(self) -> list[ProductSummary]:
        if self._summaries is None:
            self._summaries = [
                ProductSummary(
                    id=product.id,
                    name=product.name,
                    category=product.category,
                    type=product.type,
                    platform=product.available_on,
                    tags=product.tags,
                    price_tier=infer_price_tier(product),
                )
                for product in self._product_source()
            ]
        return self._summaries

    def _ensure_goal_map(self) -> dict[str, list[str]]:
        if self._goal_map is None:
            self._goal_map = {
                goal: [
                    *data.get("products", ()),
                    *data.get("stacks", ()),
                    *data.get("books", ()),
                    *data.get("programs", ()),
                ]
                for goal, data in self._goal_source().items()
            }
        return self._goal_map


def _quick_ref_goals() -> Mapping[str, Any]:
    return catalog.get_quick_reference().get("byGoal", {})


_default_optimizer: CatalogOptimizer | None = None
_default_lock = threading.Lock()


def get_catalog_optimizer() -> CatalogOptimizer:
    global _default_optimizer
    if _default_optimizer is None:
        with _default_lock:
            if _default_optimizer is None:
                _default_optimizer = CatalogOptimizer()
    return _default_optimizer
