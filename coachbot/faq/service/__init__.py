from __future__ import annotations

from coachbot.faq.models import ExpansionPolicy

from .search import (
    RETRIEVAL_FEATURE_KEY,
    FAQSearchService,
    clear_expired_cache,
    get_default_service,
    get_random_faqs,
    search_faqs,
    set_default_service,
    simple_hybrid_search_faqs,
    smart_hybrid_search_faqs,
)

__all__ = [
    "ExpansionPolicy",
    "FAQSearchService",
    "RETRIEVAL_FEATURE_KEY",
    "get_default_service",
    "set_default_service",
    "search_faqs",
    "simple_hybrid_search_faqs",
    "smart_hybrid_search_faqs",
    "get_random_faqs",
    "clear_expired_cache",
]
