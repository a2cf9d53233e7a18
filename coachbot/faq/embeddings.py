from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from typing import Any

import aiohttp
import numpy as np

from coachbot.cache import TTLCache
from coachbot.faq import constants

log = logging.getLogger(__name__)

__all__ = ["EmbeddingClient", "EmbeddingError", "EmbeddingTimeoutError"]


class EmbeddingError(RuntimeError):
    """Raised when an embedding could not be generated."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class EmbeddingTimeoutError(EmbeddingError):
    """Raised when the embeddings endpoint does not answer in time."""


class EmbeddingClient:
    """Turns text into fixed-size float32 vectors via the embeddings HTTP API."""

    def __init__(
        self,
        api_key: str | None,
        *,
        model: str = constants.EMBEDDING_MODEL,
        url: str = constants.EMBEDDING_URL,
        dimensions: int = constants.EMBEDDING_DIMENSIONS,
        timeout: float = constants.EMBEDDING_TIMEOUT_SECONDS,
        cache: TTLCache[np.ndarray] | None = None,
        session_factory: Callable[..., aiohttp.ClientSession] = aiohttp.ClientSession,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._url = url
        self._dimensions = dimensions
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._cache = cache
        self._session_factory = session_factory
        self._session: aiohttp.ClientSession | None = None
        self._lock = asyncio.Lock()

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def close(self) -> None:
        async with self._lock:
            if self._session is not None:
                await self._session.close()
                self._session = None

    async def _ensure_session(self) -> aiohttp.ClientSession:
        async with self._lock:
            if self._session is None:
                self._session = self._session_factory(timeout=self._timeout)
            return self._session

    async def embed(self, text: str) -> np.ndarray:
        if self._cache is not None:
            cached = self._cache.get(text)
            if cached is not None:
                log.debug("Embedding cache hit for %r", text[:50])
                return cached

        if not self.is_configured:
            raise EmbeddingError("OPENAI_API_KEY is not configured.")

        payload = {
            "model": self._model,
            "input": text,
            "dimensions": self._dimensions,
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }

        session = await self._ensure_session()
        try:
            async with session.post(self._url, json=payload, headers=headers) as resp:
                if resp.status != 200:
                    body = await resp.text()
                    raise EmbeddingError(
                        f"Embeddings API returned {resp.status}: {body[:200]}",
                        status=resp.status,
                    )
                data = await resp.json(content_type=None)
        except asyncio.TimeoutError as exc:
            raise EmbeddingTimeoutError(
                f"Embedding generation timed out after {self._timeout.total:.0f}s"
            ) from exc
        except aiohttp.ClientError as exc:
            raise EmbeddingError(f"Failed to contact embeddings API: {exc}") from exc

        vector = self._parse_vector(data)
        if self._cache is not None:
            self._cache.set(text, vector)
        log.debug("Generated embedding for %r", text[:50])
        return vector

    async def embed_many(self, texts: Sequence[str]) -> list[np.ndarray | None]:
        """Embed every text concurrently; failed items come back as ``None``."""

        outcomes = await asyncio.gather(
            *(self.embed(text) for text in texts), return_exceptions=True
        )
        vectors: list[np.ndarray | None] = []
        for text, outcome in zip(texts, outcomes):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            if isinstance(outcome, BaseException):
                log.warning("Embedding failed for %r: %s", text[:50], outcome)
                vectors.append(None)
            else:
                vectors.append(outcome)
        return vectors

    def _parse_vector(self, data: Any) -> np.ndarray:
        try:
            raw = data["data"][0]["embedding"]
            vector = np.asarray(raw, dtype="float32")
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise EmbeddingError("Embeddings API returned a malformed body") from exc
        if vector.ndim != 1 or vector.shape[0] != self._dimensions:
            raise EmbeddingError(
                f"Expected a {self._dimensions}-dimension embedding, got shape {vector.shape}"
            )
        return vector
