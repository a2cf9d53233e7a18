from __future__ import annotations

import logging

from coachbot.cache import TTLCache
from coachbot.faq import constants
from coachbot.faq.keywords import extract_nutrition_keywords

log = logging.getLogger(__name__)

__all__ = ["QueryExpander"]


class QueryExpander:
    """Expands a query into the original text plus a few topic phrases."""

    def __init__(
        self,
        cache: TTLCache[list[str]] | None = None,
        *,
        max_terms: int = constants.EXPANSION_MAX_TERMS,
    ) -> None:
        self._cache = cache
        self._max_terms = max(1, max_terms)

    def expand(self, query: str) -> list[str]:
        if self._cache is not None:
            cached = self._cache.get(query)
            if cached is not None:
                log.debug("Expansion cache hit for %r", query[:50])
                return list(cached)

        terms = [query]
        for keyword in extract_nutrition_keywords(query):
            if len(terms) >= self._max_terms:
                break
            if keyword.lower() != query.lower() and keyword not in terms:
                terms.append(keyword)

        if self._cache is not None:
            self._cache.set(query, list(terms))
        log.debug("Expanded %r into %s terms", query[:50], len(terms))
        return terms
