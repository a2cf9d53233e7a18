"""FAQ search orchestration: caching, expansion, vector search and fallbacks."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from itertools import chain

import aiohttp

from coachbot.cache import SearchCaches
from coachbot.core.health import FeatureStatus, report_feature
from coachbot.faq import constants
from coachbot.faq.config import FAQSearchConfig
from coachbot.faq.database import SupabaseClientHolder
from coachbot.faq.embeddings import EmbeddingClient, EmbeddingError
from coachbot.faq.expansion import QueryExpander
from coachbot.faq.models import ExpansionPolicy, FAQResult
from coachbot.faq.relevance import (
    are_results_relevant,
    deduplicate_results,
    should_expand_query,
    simple_reranking,
    sort_by_similarity,
)
from coachbot.faq.text_search import FAQTextSearcher
from coachbot.faq.vector_store import FAQVectorStore

log = logging.getLogger(__name__)

__all__ = [
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

RETRIEVAL_FEATURE_KEY = "faq.retrieval"


def _results_key(policy: ExpansionPolicy, query: str, limit: int) -> str:
    return f"{policy.value}:{query}:{limit}"


@dataclass(slots=True)
class _SearchRun:
    """Per-call state: the memoized text fallback and where the answer came from."""

    query: str
    text_results: list[FAQResult] | None = None
    text_limit: int = 0
    text_calls: int = 0
    embedding_failed: bool = False
    vector_answered: bool = False
    source: str = "none"
    cacheable: bool = True


class FAQSearchService:
    def __init__(
        self,
        config: FAQSearchConfig | None = None,
        *,
        caches: SearchCaches | None = None,
        database: SupabaseClientHolder | None = None,
        embedder: EmbeddingClient | None = None,
        vector_store: FAQVectorStore | None = None,
        text_searcher: FAQTextSearcher | None = None,
        expander: QueryExpander | None = None,
        session_factory: Callable[..., aiohttp.ClientSession] = aiohttp.ClientSession,
        auto_sweep: bool = True,
    ) -> None:
        self.config = config or FAQSearchConfig.from_env()
        cfg = self.config
        self.caches = caches or SearchCaches(
            embedding_ttl=cfg.embedding_cache_ttl,
            results_ttl=cfg.results_cache_ttl,
            expansion_ttl=cfg.expansion_cache_ttl,
        )
        self._database = database or SupabaseClientHolder(cfg.supabase_url, cfg.supabase_key)
        self._embedder = embedder or EmbeddingClient(
            cfg.openai_api_key,
            model=cfg.embedding_model,
            url=cfg.embedding_url,
            dimensions=cfg.embedding_dimensions,
            timeout=cfg.embedding_timeout,
            cache=self.caches.embeddings,
            session_factory=session_factory,
        )
        self._vectors = vector_store or FAQVectorStore(
            self._database,
            table=cfg.table,
            match_function=cfg.match_function,
            timeout=cfg.vector_timeout,
            max_match_count=cfg.max_match_count,
            metric=cfg.distance_metric,
        )
        self._text = text_searcher or FAQTextSearcher(
            self._database,
            table=cfg.table,
            timeout=cfg.text_timeout,
        )
        self._expander = expander or QueryExpander(
            self.caches.expansions,
            max_terms=cfg.expansion_max_terms,
        )
        self._auto_sweep = auto_sweep

    async def close(self) -> None:
        await self.caches.stop_sweeper()
        await self._embedder.close()
        await self._database.close()

    async def search(
        self,
        query: str,
        limit: int = constants.DEFAULT_LIMIT,
        *,
        policy: ExpansionPolicy | str | None = None,
    ) -> list[FAQResult]:
        """Return up to ``limit`` FAQ results. Never raises for upstream failures."""

        policy = ExpansionPolicy(policy) if policy is not None else self.config.default_policy
        if self._auto_sweep:
            self.caches.start_sweeper(self.config.sweep_interval)

        cache_key = _results_key(policy, query, limit)
        cached = self.caches.results.get(cache_key)
        if cached is not None:
            log.debug("Results cache hit for %s", cache_key[:80])
            return list(cached)

        run = _SearchRun(query=query)
        try:
            if policy is ExpansionPolicy.ALWAYS:
                results = await self._expanded_stage(run, limit)
            elif policy is ExpansionPolicy.NEVER:
                results = await self._hybrid_stage(run, limit)
            else:
                results = await self._conditional_stage(run, limit)
        except asyncio.CancelledError:
            raise
        except Exception:
            log.exception("FAQ search failed for %r; using emergency fallback", query[:50])
            results = await self._emergency_fallback(run, policy, limit)
            self._report(run, results)
            return results

        if run.cacheable:
            self.caches.results.set(cache_key, list(results))
        self._report(run, results)
        log.info(
            "FAQ search (%s) for %r returned %s results from %s",
            policy.value,
            query[:50],
            len(results),
            run.source,
        )
        return list(results)

    async def random_faqs(self, limit: int = 3) -> list[FAQResult]:
        return await self._vectors.random_faqs(limit)

    def clear_expired_cache(self) -> int:
        return self.caches.sweep()

    async def _conditional_stage(self, run: _SearchRun, limit: int) -> list[FAQResult]:
        simple = await self._hybrid_stage(run, limit)
        self.caches.results.set(_results_key(ExpansionPolicy.NEVER, run.query, limit), list(simple))
        if not should_expand_query(run.query, simple, self.config.thresholds):
            return simple

        log.info("Simple results for %r look weak; expanding query", run.query[:50])
        simple_source = run.source
        expanded = await self._expanded_stage(run, limit)
        if expanded:
            return expanded
        run.source = simple_source
        return simple

    async def _hybrid_stage(self, run: _SearchRun, limit: int) -> list[FAQResult]:
        vector_results, text_results = await asyncio.gather(
            self._vector_for_query(run, limit * constants.HYBRID_VECTOR_FACTOR),
            self._text_fallback(run, limit * constants.HYBRID_TEXT_FACTOR),
        )
        combined = deduplicate_results(chain(vector_results, text_results))
        results = simple_reranking(run.query, combined, self.config.thresholds)[:limit]
        if vector_results:
            run.source = "vector"
        elif results:
            run.source = "text"
        return results

    async def _expanded_stage(self, run: _SearchRun, limit: int) -> list[FAQResult]:
        terms = self._expander.expand(run.query)
        vectors = await self._embedder.embed_many(terms)
        embedded = [(term, vector) for term, vector in zip(terms, vectors) if vector is not None]
        if not embedded:
            log.warning("No embeddings generated for %r; using text search", run.query[:50])
            run.embedding_failed = True
            run.source = "text"
            run.cacheable = False
            return await self._text_fallback(run, limit)

        groups = await asyncio.gather(
            *(self._vectors.match(vector, limit, term=term) for term, vector in embedded)
        )
        results = sort_by_similarity(deduplicate_results(chain.from_iterable(groups)))[:limit]
        if not results:
            log.info("Vector search empty for %r; using text search", run.query[:50])
            run.source = "text"
            return await self._text_fallback(run, limit)

        run.vector_answered = True
        run.source = "vector"
        if are_results_relevant(run.query, results, self.config.thresholds):
            return results

        fallback = await self._text_fallback(run, limit)
        if fallback and are_results_relevant(run.query, fallback, self.config.thresholds):
            log.info("Text search beat vector results for %r", run.query[:50])
            run.source = "text"
            return fallback
        return results

    async def _vector_for_query(self, run: _SearchRun, limit: int) -> list[FAQResult]:
        try:
            vector = await self._embedder.embed(run.query)
        except EmbeddingError as exc:
            log.warning("Embedding failed for %r: %s", run.query[:50], exc)
            run.embedding_failed = True
            return []
        results = await self._vectors.match(vector, limit, term=run.query)
        if results:
            run.vector_answered = True
        return results

    async def _text_fallback(self, run: _SearchRun, limit: int) -> list[FAQResult]:
        if run.text_results is not None and limit <= run.text_limit:
            return run.text_results[:limit]
        run.text_calls += 1
        results = await self._text.search(run.query, limit)
        run.text_results = results
        run.text_limit = limit
        return list(results)

    async def _emergency_fallback(
        self,
        run: _SearchRun,
        policy: ExpansionPolicy,
        limit: int,
    ) -> list[FAQResult]:
        try:
            if policy is ExpansionPolicy.ALWAYS:
                run.source = "text"
                return await self._text_fallback(run, limit)
            run.source = "vector"
            return await self._vector_for_query(run, limit)
        except asyncio.CancelledError:
            raise
        except Exception:
            log.exception("Emergency fallback failed for %r", run.query[:50])
            return []

    def _report(self, run: _SearchRun, results: list[FAQResult]) -> None:
        metadata = {"source": run.source, "results": len(results), "text_calls": run.text_calls}
        if run.embedding_failed and not run.vector_answered:
            status = FeatureStatus.UNAVAILABLE
            detail = "Embeddings unavailable; answering from text search."
        elif run.source == "text":
            status = FeatureStatus.DEGRADED
            detail = "Text search supplied the answer."
        else:
            status = FeatureStatus.OK
            detail = None
        report_feature(
            RETRIEVAL_FEATURE_KEY,
            label="FAQ retrieval",
            category="retrieval",
            status=status,
            detail=detail,
            using_fallback=run.source == "text",
            metadata=metadata,
        )


_default_service: FAQSearchService | None = None


def get_default_service() -> FAQSearchService:
    global _default_service
    if _default_service is None:
        _default_service = FAQSearchService(FAQSearchConfig.from_env())
    return _default_service


def set_default_service(service: FAQSearchService | None) -> None:
    global _default_service
    _default_service = service


async def search_faqs(query: str, limit: int = constants.DEFAULT_LIMIT) -> list[FAQResult]:
    return await get_default_service().search(query, limit, policy=ExpansionPolicy.ALWAYS)


async def simple_hybrid_search_faqs(query: str, limit: int = constants.DEFAULT_LIMIT) -> list[FAQResult]:
    return await get_default_service().search(query, limit, policy=ExpansionPolicy.NEVER)


async def smart_hybrid_search_faqs(query: str, limit: int = constants.DEFAULT_LIMIT) -> list[FAQResult]:
    return await get_default_service().search(query, limit, policy=ExpansionPolicy.CONDITIONAL)


async def get_random_faqs(limit: int = 3) -> list[FAQResult]:
    return await get_default_service().random_faqs(limit)


def clear_expired_cache() -> int:
    return get_default_service().clear_expired_cache()
