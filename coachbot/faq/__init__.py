"""FAQ retrieval: embeddings, vector and text search, reranking and prompt context."""

from .config import FAQSearchConfig
from .context import NO_KNOWLEDGE_TEXT, format_knowledge_context, search_knowledge_base
from .database import FAQStoreError, SupabaseClientHolder
from .embeddings import EmbeddingClient, EmbeddingError, EmbeddingTimeoutError
from .models import DistanceMetric, ExpansionPolicy, FAQMetadata, FAQResult
from .relevance import RelevanceThresholds
from .service import (
    FAQSearchService,
    clear_expired_cache,
    get_random_faqs,
    search_faqs,
    simple_hybrid_search_faqs,
    smart_hybrid_search_faqs,
)

__all__ = [
    "FAQSearchConfig",
    "FAQStoreError",
    "SupabaseClientHolder",
    "EmbeddingClient",
    "EmbeddingError",
    "EmbeddingTimeoutError",
    "DistanceMetric",
    "ExpansionPolicy",
    "FAQMetadata",
    "FAQResult",
    "RelevanceThresholds",
    "FAQSearchService",
    "search_faqs",
    "simple_hybrid_search_faqs",
    "smart_hybrid_search_faqs",
    "get_random_faqs",
    "clear_expired_cache",
    "format_knowledge_context",
    "search_knowledge_base",
    "NO_KNOWLEDGE_TEXT",
]
