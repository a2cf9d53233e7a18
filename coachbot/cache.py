"""In-process TTL caches shared by FAQ retrieval and the product catalog.

Entries are validated lazily on lookup; a background sweeper removes the rest.
No size bound is enforced, so sustained unique-key traffic grows the maps
until the next sweep.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Dict, Generic, Optional, TypeVar

import numpy as np

if TYPE_CHECKING:
    from coachbot.faq.models import FAQResult

log = logging.getLogger(__name__)

T = TypeVar("T")

EMBEDDING_CACHE_TTL = 5 * 60.0
RESULTS_CACHE_TTL = 2 * 60.0
QUERY_EXPANSION_CACHE_TTL = 10 * 60.0
SWEEP_INTERVAL = 5 * 60.0

__all__ = [
    "CacheEntry",
    "CacheStats",
    "TTLCache",
    "SearchCaches",
    "EMBEDDING_CACHE_TTL",
    "RESULTS_CACHE_TTL",
    "QUERY_EXPANSION_CACHE_TTL",
    "SWEEP_INTERVAL",
]


@dataclass(slots=True)
class CacheEntry(Generic[T]):
    data: T
    timestamp: float
    ttl: float

    def is_valid(self, now: float) -> bool:
        return now - self.timestamp < self.ttl


@dataclass(slots=True)
class CacheStats:
    size: int
    hits: int
    misses: int

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0


class TTLCache(Generic[T]):
    """Unbounded key/value map whose entries expire after a per-entry TTL."""

    def __init__(
        self,
        name: str,
        default_ttl: float,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self.default_ttl = float(default_ttl)
        self._clock = clock
        self._entries: Dict[str, CacheEntry[T]] = {}
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Optional[T]:
        entry = self._entries.get(key)
        if entry is not None and entry.is_valid(self._clock()):
            self._hits += 1
            return entry.data
        if entry is not None:
            del self._entries[key]
        self._misses += 1
        return None

    def set(self, key: str, data: T, ttl: float | None = None) -> None:
        self._entries[key] = CacheEntry(
            data=data,
            timestamp=self._clock(),
            ttl=self.default_ttl if ttl is None else float(ttl),
        )

    def sweep(self) -> int:
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if not entry.is_valid(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()
        self._hits = 0
        self._misses = 0

    def stats(self) -> CacheStats:
        return CacheStats(size=len(self._entries), hits=self._hits, misses=self._misses)

    def __contains__(self, key: object) -> bool:
        entry = self._entries.get(key)  # type: ignore[arg-type]
        return entry is not None and entry.is_valid(self._clock())

    def __len__(self) -> int:
        return len(self._entries)


class SearchCaches:
    """The three caches used by FAQ retrieval plus their periodic sweeper."""

    def __init__(
        self,
        *,
        embedding_ttl: float = EMBEDDING_CACHE_TTL,
        results_ttl: float = RESULTS_CACHE_TTL,
        expansion_ttl: float = QUERY_EXPANSION_CACHE_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.embeddings: TTLCache[np.ndarray] = TTLCache("embeddings", embedding_ttl, clock=clock)
        self.results: TTLCache[list[FAQResult]] = TTLCache("results", results_ttl, clock=clock)
        self.expansions: TTLCache[list[str]] = TTLCache("expansions", expansion_ttl, clock=clock)
        self._sweeper_task: asyncio.Task[None] | None = None

    def sweep(self) -> int:
        removed = self.embeddings.sweep() + self.results.sweep() + self.expansions.sweep()
        log.debug(
            "Cache cleanup removed %s entries: %s embeddings, %s results, %s queries remain",
            removed,
            len(self.embeddings),
            len(self.results),
            len(self.expansions),
        )
        return removed

    def clear(self) -> None:
        self.embeddings.clear()
        self.results.clear()
        self.expansions.clear()

    @property
    def sweeper_running(self) -> bool:
        return self._sweeper_task is not None and not self._sweeper_task.done()

    def start_sweeper(self, interval: float = SWEEP_INTERVAL) -> None:
        """Start the periodic sweep on the running loop; no-op without a loop."""

        if self.sweeper_running:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._sweeper_task = loop.create_task(self._sweep_forever(max(0.0, float(interval))))
        self._sweeper_task.add_done_callback(_handle_sweeper_done)

    async def stop_sweeper(self) -> None:
        task = self._sweeper_task
        self._sweeper_task = None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _sweep_forever(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            self.sweep()


def _handle_sweeper_done(task: asyncio.Task[None]) -> None:
    try:
        task.result()
    except asyncio.CancelledError:
        return
    except Exception:
        log.exception("Cache sweeper task failed")
