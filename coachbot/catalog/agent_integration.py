"""Agent-facing workflows composed from :class:`CatalogOptimizer` calls.

Every helper records its wall time in milliseconds so callers can feed a
:class:`PerformanceTracker`.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Optional, Sequence

from coachbot.catalog.models import SUPPLEMENTS_PLATFORM, Intent, Platform, PlatformRoute, ProductSummary, QuickIntent
from coachbot.catalog.optimizer import CatalogOptimizer, get_catalog_optimizer

log = logging.getLogger(__name__)

__all__ = [
    "GOAL_KEYWORDS",
    "DEFAULT_GOAL",
    "RouteDecision",
    "ProductDiscovery",
    "ProgressiveDetails",
    "BatchOutcome",
    "ProductAgentContext",
    "FAQAgentContext",
    "ProductAgentResult",
    "FAQAgentResult",
    "PerformanceStats",
    "PerformanceTracker",
    "extract_goal_from_query",
    "quick_route",
    "discover_products",
    "progressive_detail_loading",
    "batch_optimization",
    "optimize_for_product_agent",
    "optimize_for_faq_agent",
    "product_agent_workflow",
    "faq_agent_workflow",
]

GOAL_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("muscle-building", ("muscle", "mass", "size", "bulk", "gain")),
    ("fat-loss", ("fat", "weight", "cut", "lean", "shred")),
    ("energy", ("energy", "focus", "alert", "awake")),
    ("recovery", ("recovery", "sleep", "rest", "sore")),
    ("strength", ("strength", "strong", "power", "lift")),
)
DEFAULT_GOAL = "education"

LOW_CONFIDENCE_MESSAGE = "Low confidence - route to general FAQ agent"
NO_PRODUCTS_MESSAGE = "No products found - provide general guidance"
NO_PRODUCT_CONTEXT = "No specific products found - provide general guidance."
MENTION_PRODUCTS_THRESHOLD = 0.7


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000.0


@dataclass(slots=True)
class RouteDecision:
    intent: Intent
    confidence: float
    platform: Platform
    suggested_action: str
    timing: float


@dataclass(slots=True)
class ProductDiscovery:
    intent: Intent
    products: list[ProductSummary]
    timing: float

    @property
    def count(self) -> int:
        return len(self.products)


@dataclass(slots=True)
class ProgressiveDetails:
    minimal: str
    detailed: Optional[str]
    minimal_timing: float
    total_timing: float


@dataclass(slots=True)
class BatchOutcome:
    intent: QuickIntent
    route: PlatformRoute
    summaries: list[ProductSummary]
    timing: float


@dataclass(slots=True)
class ProductAgentContext:
    confidence: float
    context: str
    action_advice: str

    @property
    def token_count(self) -> int:
        # Character count; used as a cheap size signal.
        return len(self.context)


@dataclass(slots=True)
class FAQAgentContext:
    platform: Platform
    confidence: float
    should_mention_products: bool
    platform_context: str


@dataclass(slots=True)
class ProductAgentResult:
    context: str
    detailed_context: Optional[str]
    confidence: float
    total_time: float


@dataclass(slots=True)
class FAQAgentResult:
    should_handle_query: bool
    platform_context: str
    additional_context: Optional[str]


def extract_goal_from_query(query: str) -> str:
    query_lower = query.lower()
    for goal, keywords in GOAL_KEYWORDS:
        if any(keyword in query_lower for keyword in keywords):
            return goal
    return DEFAULT_GOAL


def _optimizer(optimizer: CatalogOptimizer | None) -> CatalogOptimizer:
    return optimizer or get_catalog_optimizer()


def quick_route(query: str, *, optimizer: CatalogOptimizer | None = None) -> RouteDecision:
    opt = _optimizer(optimizer)
    start = time.perf_counter()
    intent = opt.detect_intent(query)
    route = opt.route_platform(query)
    timing = _elapsed_ms(start)
    log.debug("Quick route for %r completed in %.2fms", query[:50], timing)
    return RouteDecision(
        intent=intent.intent,
        confidence=max(intent.confidence, route.confidence),
        platform=route.platform,
        suggested_action=intent.suggested_action,
        timing=timing,
    )


def discover_products(
    query: str,
    *,
    max_results: int | None = None,
    goal_hint: str | None = None,
    optimizer: CatalogOptimizer | None = None,
) -> ProductDiscovery:
    opt = _optimizer(optimizer)
    start = time.perf_counter()
    intent = opt.detect_intent(query)
    if intent.intent == "goal_based":
        goal = goal_hint or extract_goal_from_query(query)
        summaries = opt.get_product_summaries(goal=goal, limit=max_results or 5)
    elif intent.intent == "product_search":
        summaries = opt.get_product_summaries(limit=max_results or 5)
    else:
        summaries = opt.get_product_summaries(limit=3)
    timing = _elapsed_ms(start)
    log.debug("Product discovery for %r found %s products in %.2fms", query[:50], len(summaries), timing)
    return ProductDiscovery(intent=intent.intent, products=summaries, timing=timing)


def progressive_detail_loading(
    product_ids: Sequence[str],
    needs_detail: bool = False,
    *,
    optimizer: CatalogOptimizer | None = None,
) -> ProgressiveDetails:
    opt = _optimizer(optimizer)
    start = time.perf_counter()
    minimal = opt.format_for_ai(product_ids, "minimal")
    minimal_timing = _elapsed_ms(start)
    detailed = opt.format_for_ai(product_ids, "detailed") if needs_detail else None
    total_timing = _elapsed_ms(start)
    log.debug(
        "Progressive loading: minimal %.2fms, detailed %.2fms",
        minimal_timing,
        total_timing - minimal_timing,
    )
    return ProgressiveDetails(
        minimal=minimal,
        detailed=detailed,
        minimal_timing=minimal_timing,
        total_timing=total_timing,
    )


def batch_optimization(query: str, *, optimizer: CatalogOptimizer | None = None) -> BatchOutcome:
    opt = _optimizer(optimizer)
    start = time.perf_counter()
    intent, route, summaries = opt.batch_process(
        [
            {"type": "intent", "query": query},
            {"type": "route", "query": query},
            {"type": "summaries", "query": query, "params": {"limit": 3}},
        ]
    )
    return BatchOutcome(intent=intent, route=route, summaries=summaries, timing=_elapsed_ms(start))


def optimize_for_product_agent(
    query: str,
    *,
    optimizer: CatalogOptimizer | None = None,
) -> ProductAgentContext:
    opt = _optimizer(optimizer)
    intent = opt.detect_intent(query)
    summaries = opt.get_product_summaries(limit=5)
    if summaries:
        context = opt.format_for_ai([item.id for item in summaries], "standard")
    else:
        context = NO_PRODUCT_CONTEXT
    return ProductAgentContext(
        confidence=intent.confidence,
        context=context,
        action_advice=intent.suggested_action,
    )


def optimize_for_faq_agent(query: str, *, optimizer: CatalogOptimizer | None = None) -> FAQAgentContext:
    route = _optimizer(optimizer).route_platform(query)
    if route.platform == SUPPLEMENTS_PLATFORM:
        platform_context = "User interested in products/supplements"
    else:
        platform_context = "User interested in services/education"
    return FAQAgentContext(
        platform=route.platform,
        confidence=route.confidence,
        should_mention_products=route.confidence > MENTION_PRODUCTS_THRESHOLD,
        platform_context=platform_context,
    )


def product_agent_workflow(
    query: str,
    *,
    optimizer: CatalogOptimizer | None = None,
) -> ProductAgentResult | str:
    """Route, discover and format products; returns a message string when it bails out."""

    routing = quick_route(query, optimizer=optimizer)
    if routing.confidence < 0.3:
        return LOW_CONFIDENCE_MESSAGE

    discovery = discover_products(query, optimizer=optimizer)
    if not discovery.products:
        return NO_PRODUCTS_MESSAGE

    product_ids = [item.id for item in discovery.products[:3]]
    details = progressive_detail_loading(
        product_ids,
        routing.intent == "product_search",
        optimizer=optimizer,
    )
    total = routing.timing + discovery.timing + details.total_timing
    log.debug("Product agent workflow for %r took %.2fms", query[:50], total)
    return ProductAgentResult(
        context=details.minimal,
        detailed_context=details.detailed,
        confidence=routing.confidence,
        total_time=total,
    )


def faq_agent_workflow(query: str, *, optimizer: CatalogOptimizer | None = None) -> FAQAgentResult:
    optimization = optimize_for_faq_agent(query, optimizer=optimizer)
    return FAQAgentResult(
        should_handle_query=optimization.confidence < MENTION_PRODUCTS_THRESHOLD,
        platform_context=optimization.platform_context,
        additional_context=(
            "Note: User may also be interested in products"
            if optimization.should_mention_products
            else None
        ),
    )


@dataclass(slots=True)
class PerformanceStats:
    average_query_time: float
    p95_query_time: float
    cache_hit_rate: float
    cache_size: int
    total_queries: int


@dataclass(slots=True)
class PerformanceTracker:
    """Rolling window of catalog query timings (milliseconds)."""

    optimizer: CatalogOptimizer | None = None
    window: int = 100
    slow_threshold_ms: float = 100.0
    min_hit_rate: float = 0.5
    _times: Deque[float] = field(default_factory=deque, init=False, repr=False)

    def record_query(self, timing: float) -> None:
        self._times.append(float(timing))
        while len(self._times) > self.window:
            self._times.popleft()

    def get_performance_stats(self) -> PerformanceStats:
        times = sorted(self._times)
        cache_stats = _optimizer(self.optimizer).get_cache_stats()
        average = sum(times) / len(times) if times else 0.0
        p95 = times[int(len(times) * 0.95)] if times else 0.0
        return PerformanceStats(
            average_query_time=average,
            p95_query_time=p95,
            cache_hit_rate=cache_stats.hit_rate,
            cache_size=cache_stats.size,
            total_queries=len(times),
        )

    def should_optimize(self) -> bool:
        stats = self.get_performance_stats()
        return stats.average_query_time > self.slow_threshold_ms or stats.cache_hit_rate < self.min_hit_rate

    def reset(self) -> None:
        self._times.clear()

