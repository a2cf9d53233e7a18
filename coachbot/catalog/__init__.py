"""Product catalog lookups, the cached optimizer and agent workflows."""

from .agent_integration import (
    PerformanceTracker,
    extract_goal_from_query,
    faq_agent_workflow,
    optimize_for_faq_agent,
    optimize_for_product_agent,
    product_agent_workflow,
    quick_route,
)
from .models import PlatformRoute, Product, ProductSummary, QuickIntent
from .optimizer import CatalogOptimizer, get_catalog_optimizer
from .products import CatalogError, determine_platform_recommendation, get_product_by_id, search_products

__all__ = [
    "CatalogError",
    "CatalogOptimizer",
    "PerformanceTracker",
    "PlatformRoute",
    "Product",
    "ProductSummary",
    "QuickIntent",
    "determine_platform_recommendation",
    "extract_goal_from_query",
    "faq_agent_workflow",
    "get_catalog_optimizer",
    "get_product_by_id",
    "optimize_for_faq_agent",
    "optimize_for_product_agent",
    "product_agent_workflow",
    "quick_route",
    "search_products",
]
