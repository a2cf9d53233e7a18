from __future__ import annotations

import asyncio
import logging

import httpx
from postgrest.exceptions import APIError as PostgrestAPIError

from coachbot.faq import constants
from coachbot.faq.database import FAQStoreError, SupabaseClientHolder
from coachbot.faq.keywords import build_search_terms
from coachbot.faq.models import FAQResult
from coachbot.faq.relevance import sort_by_similarity
from coachbot.faq.vector_store import rows_to_results

log = logging.getLogger(__name__)

__all__ = ["FAQTextSearcher", "score_text_match"]


def score_text_match(result: FAQResult, terms: list[str]) -> float:
    text = result.searchable_text()
    matched = sum(1 for term in terms if term.lower() in text)
    return min(
        constants.TEXT_SEARCH_MAX_SCORE,
        constants.TEXT_SEARCH_BASE_SCORE + constants.TEXT_SEARCH_TERM_SCORE * matched,
    )


class FAQTextSearcher:
    """Keyword ``ILIKE`` search used when vector search is unavailable or weak."""

    def __init__(
        self,
        database: SupabaseClientHolder,
        *,
        table: str = constants.FAQ_TABLE,
        timeout: float = constants.TEXT_SEARCH_TIMEOUT_SECONDS,
    ) -> None:
        self._database = database
        self._table = table
        self._timeout = timeout

    async def search(self, query: str, limit: int = constants.DEFAULT_LIMIT) -> list[FAQResult]:
        terms = build_search_terms(query)
        if not terms:
            log.debug("No usable search terms in %r; skipping text search", query[:50])
            return []

        filters = ",".join(f"content.ilike.%{term}%" for term in terms)
        try:
            client = await self._database.get()
            response = await asyncio.wait_for(
                client.table(self._table)
                .select("*")
                .eq("data_type", constants.FAQ_DATA_TYPE)
                .or_(filters)
                .order("upsert_key")
                .limit(limit * 2)
                .execute(),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            log.warning("Text search timed out after %.0fs for %r", self._timeout, query[:50])
            return []
        except (PostgrestAPIError, FAQStoreError, httpx.HTTPError, OSError) as exc:
            log.error("Text search failed for %r: %s", query[:50], exc)
            return []

        rows = rows_to_results(response.data, metric=None)
        scored = [row.with_similarity(score_text_match(row, terms)) for row in rows]
        results = sort_by_similarity(scored)[:limit]
        log.info("Text search for %r found %s results", query[:50], len(results))
        return results
