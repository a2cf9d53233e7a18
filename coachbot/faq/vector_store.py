"""Vector similarity search over FAQ documents via the Supabase match RPC."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Iterable, Mapping, Sequence

import httpx
import numpy as np
from postgrest.exceptions import APIError as PostgrestAPIError

from coachbot.faq import constants
from coachbot.faq.database import FAQStoreError, SupabaseClientHolder
from coachbot.faq.models import (
    MISSING_METADATA,
    PARSE_ERROR_METADATA,
    DistanceMetric,
    FAQMetadata,
    FAQResult,
)

log = logging.getLogger(__name__)

__all__ = ["FAQVectorStore", "parse_custom_metadata", "row_to_result", "rows_to_results"]


def parse_custom_metadata(raw: Any) -> FAQMetadata:
    if raw is None or raw == "":
        return MISSING_METADATA
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            log.warning("Could not parse custom metadata %r", raw[:80])
            return PARSE_ERROR_METADATA
    if not isinstance(raw, Mapping):
        return PARSE_ERROR_METADATA
    return FAQMetadata(
        question=str(raw.get("question") or MISSING_METADATA.question),
        answer=str(raw.get("answer") or MISSING_METADATA.answer),
    )


def _coerce_float(value: Any) -> float:
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        return 0.0
    if numeric != numeric:  # NaN check
        return 0.0
    return numeric


def row_to_result(
    row: Mapping[str, Any],
    *,
    metric: DistanceMetric | None = DistanceMetric.LEGACY,
) -> FAQResult:
    """Normalise one database row. ``metric=None`` keeps similarity at 0."""

    metadata_blob = row.get("metadata")
    if isinstance(metadata_blob, str):
        try:
            metadata_blob = json.loads(metadata_blob)
        except ValueError:
            metadata_blob = {}
    if not isinstance(metadata_blob, Mapping):
        metadata_blob = {}

    raw_custom = metadata_blob.get("custom_metadata_from_db", row.get("custom_metadata"))
    custom = parse_custom_metadata(raw_custom)

    content = row.get("content") or row.get("pageContent") or custom.answer or ""
    similarity = 0.0
    if metric is not None:
        similarity = round(
            metric.to_similarity(_coerce_float(row.get("similarity"))),
            constants.SIMILARITY_DECIMALS,
        )

    def pick(*names: str) -> Any:
        # Match RPC rows nest these under metadata; table rows carry them as columns.
        for source in (metadata_blob, row):
            for name in names:
                if source.get(name):
                    return source[name]
        return None

    return FAQResult(
        upsert_key=str(pick("upsert_key") or "unknown"),
        content=str(content),
        data_type=str(pick("data_type") or constants.FAQ_DATA_TYPE),
        source_doc_name=str(pick("source_doc_name", "source_doc") or "unknown"),
        custom_metadata=custom,
        similarity=similarity,
    )


def rows_to_results(
    rows: Iterable[Mapping[str, Any]] | None,
    *,
    metric: DistanceMetric | None = DistanceMetric.LEGACY,
) -> list[FAQResult]:
    return [row_to_result(row, metric=metric) for row in rows or []]


class FAQVectorStore:
    def __init__(
        self,
        database: SupabaseClientHolder,
        *,
        table: str = constants.FAQ_TABLE,
        match_function: str = constants.MATCH_FUNCTION,
        timeout: float = constants.VECTOR_SEARCH_TIMEOUT_SECONDS,
        max_match_count: int = constants.MAX_MATCH_COUNT,
        metric: DistanceMetric = DistanceMetric.LEGACY,
    ) -> None:
        self._database = database
        self._table = table
        self._match_function = match_function
        self._timeout = timeout
        self._max_match_count = max_match_count
        self._metric = metric

    async def match(
        self,
        embedding: np.ndarray | Sequence[float],
        limit: int,
        *,
        term: str = "",
    ) -> list[FAQResult]:
        """Run the match RPC; any failure is logged and yields ``[]``."""

        match_count = max(1, min(int(limit), self._max_match_count))
        params = {
            "query_embedding": np.asarray(embedding, dtype="float32").tolist(),
            "match_count": match_count,
            "filter": {"data_type": constants.FAQ_DATA_TYPE},
        }
        try:
            client = await self._database.get()
            response = await asyncio.wait_for(
                client.rpc(self._match_function, params).execute(),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            log.warning("Vector search timed out after %.0fs for %r", self._timeout, term[:50])
            return []
        except (PostgrestAPIError, FAQStoreError, httpx.HTTPError, OSError) as exc:
            log.error("Vector search failed for %r: %s", term[:50], exc)
            return []

        results = rows_to_results(response.data, metric=self._metric)
        log.debug("Vector search for %r returned %s rows", term[:50], len(results))
        return results

    async def random_faqs(self, limit: int = 3) -> list[FAQResult]:
        try:
            client = await self._database.get()
            response = await asyncio.wait_for(
                client.table(self._table)
                .select("*")
                .eq("data_type", constants.FAQ_DATA_TYPE)
                .limit(limit)
                .execute(),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            log.warning("Random FAQ read timed out after %.0fs", self._timeout)
            return []
        except (PostgrestAPIError, FAQStoreError, httpx.HTTPError, OSError) as exc:
            log.error("Random FAQ read failed: %s", exc)
            return []
        return rows_to_results(response.data, metric=None)
