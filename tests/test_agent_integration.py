from __future__ import annotations

import pytest

from coachbot.cache import TTLCache
from coachbot.catalog import agent_integration as agents
from coachbot.catalog.models import NUTRITION_PLATFORM, SUPPLEMENTS_PLATFORM
from coachbot.catalog.optimizer import CatalogOptimizer


@pytest.fixture
def optimizer() -> CatalogOptimizer:
    return CatalogOptimizer(cache=TTLCache("agent-test", 300))


@pytest.fixture
def empty_optimizer() -> CatalogOptimizer:
    return CatalogOptimizer(
        cache=TTLCache("agent-empty", 300),
        product_lookup=lambda _product_id: None,
        product_source=lambda: [],
        goal_source=lambda: {},
    )


@pytest.mark.parametrize(
    ("query", "goal"),
    [
        ("how do I gain mass", "muscle-building"),
        ("I want to get lean", "fat-loss"),
        ("I need more focus", "energy"),
        ("better sleep please", "recovery"),
        ("how to get strong", "strength"),
        ("tell me about nutrition", "education"),
    ],
)
def test_extract_goal_from_query(query, goal):
    assert agents.extract_goal_from_query(query) == goal


def test_quick_route_takes_best_confidence(optimizer):
    decision = agents.quick_route("buy a stack", optimizer=optimizer)

    assert decision.intent == "product_search"
    assert decision.platform == SUPPLEMENTS_PLATFORM
    assert decision.confidence == pytest.approx(0.8)
    assert decision.suggested_action == "search_products"
    assert decision.timing >= 0


def test_discover_products_by_intent(optimizer):
    goal_based = agents.discover_products("energy boost", optimizer=optimizer)
    assert goal_based.intent == "goal_based"
    assert [item.id for item in goal_based.products] == ["pre-workout", "thermo-burn"]

    hinted = agents.discover_products("energy boost", goal_hint="strength", optimizer=optimizer)
    assert [item.id for item in hinted.products] == ["creatine-monohydrate", "strength-program"]

    shopping = agents.discover_products("buy supplements", max_results=4, optimizer=optimizer)
    assert shopping.intent == "product_search"
    assert shopping.count == 4

    browsing = agents.discover_products("what types exist", optimizer=optimizer)
    assert browsing.intent == "category_browse"
    assert browsing.count == 3


def test_progressive_detail_loading(optimizer):
    light = agents.progressive_detail_loading(["whey-isolate"], optimizer=optimizer)
    assert light.minimal.startswith("- Whey Protein Isolate")
    assert light.detailed is None

    full = agents.progressive_detail_loading(["whey-isolate"], True, optimizer=optimizer)
    assert full.detailed is not None
    assert full.total_timing >= full.minimal_timing


def test_batch_optimization(optimizer):
    outcome = agents.batch_optimization("buy a stack", optimizer=optimizer)

    assert outcome.intent.intent == "product_search"
    assert outcome.route.platform == SUPPLEMENTS_PLATFORM
    assert len(outcome.summaries) == 3


def test_optimize_for_product_agent(optimizer, empty_optimizer):
    context = agents.optimize_for_product_agent("buy a stack", optimizer=optimizer)
    assert "**Whey Protein Isolate**" in context.context
    assert context.token_count == len(context.context)
    assert context.action_advice == "search_products"

    empty = agents.optimize_for_product_agent("buy a stack", optimizer=empty_optimizer)
    assert empty.context == agents.NO_PRODUCT_CONTEXT


def test_optimize_for_faq_agent(optimizer):
    services = agents.optimize_for_faq_agent("custom coaching program", optimizer=optimizer)
    assert services.platform == NUTRITION_PLATFORM
    assert services.should_mention_products
    assert services.platform_context == "User interested in services/education"

    shopping = agents.optimize_for_faq_agent("buy a stack", optimizer=optimizer)
    assert shopping.platform_context == "User interested in products/supplements"

    assert not agents.optimize_for_faq_agent("hi", optimizer=optimizer).should_mention_products


def test_product_agent_workflow_success(optimizer):
    result = agents.product_agent_workflow("buy a stack", optimizer=optimizer)

    assert isinstance(result, agents.ProductAgentResult)
    assert result.context.count("\n") == 2
    assert result.detailed_context is not None
    assert result.confidence == pytest.approx(0.8)


def test_product_agent_workflow_low_confidence(optimizer):
    assert agents.product_agent_workflow("what types", optimizer=optimizer) == agents.LOW_CONFIDENCE_MESSAGE


def test_product_agent_workflow_without_products(empty_optimizer):
    assert (
        agents.product_agent_workflow("buy a stack", optimizer=empty_optimizer)
        == agents.NO_PRODUCTS_MESSAGE
    )


def test_faq_agent_workflow(optimizer):
    general = agents.faq_agent_workflow("hi", optimizer=optimizer)
    assert general.should_handle_query
    assert general.additional_context is None

    services = agents.faq_agent_workflow("custom coaching program", optimizer=optimizer)
    assert not services.should_handle_query
    assert services.additional_context == "Note: User may also be interested in products"


def test_performance_tracker_window_and_stats(optimizer):
    tracker = agents.PerformanceTracker(optimizer=optimizer, window=3)
    for timing in (10, 20, 30, 40):
        tracker.record_query(timing)

    stats = tracker.get_performance_stats()
    assert stats.total_queries == 3
    assert stats.average_query_time == pytest.approx(30.0)
    assert stats.p95_query_time == 40.0

    tracker.reset()
    assert tracker.get_performance_stats().total_queries == 0


def test_performance_tracker_should_optimize(optimizer):
    tracker = agents.PerformanceTracker(optimizer=optimizer)
    optimizer.detect_intent("buy a stack")
    optimizer.detect_intent("buy a stack")
    tracker.record_query(5)
    assert not tracker.should_optimize()

    tracker.record_query(500)
    assert tracker.should_optimize()

    optimizer.clear_cache()
    tracker.reset()
    assert tracker.should_optimize()
