from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from supabase import AsyncClient, create_async_client

log = logging.getLogger(__name__)

__all__ = ["FAQStoreError", "SupabaseClientHolder"]


class FAQStoreError(RuntimeError):
    """Raised when the FAQ store cannot be reached or is not configured."""


ClientFactory = Callable[[str, str], Awaitable[AsyncClient]]


class SupabaseClientHolder:
    """Lazily creates one shared async Supabase client."""

    def __init__(
        self,
        url: str | None,
        key: str | None,
        *,
        client: AsyncClient | None = None,
        client_factory: ClientFactory = create_async_client,
    ) -> None:
        self._url = url
        self._key = key
        self._client = client
        self._client_factory = client_factory
        self._lock = asyncio.Lock()

    @property
    def is_configured(self) -> bool:
        return self._client is not None or bool(self._url and self._key)

    async def get(self) -> AsyncClient:
        async with self._lock:
            if self._client is None:
                if not (self._url and self._key):
                    raise FAQStoreError("Supabase URL and service key are required.")
                log.debug("Creating Supabase client for %s", self._url)
                self._client = await self._client_factory(self._url, self._key)
            return self._client

    async def close(self) -> None:
        async with self._lock:
            client = self._client
            self._client = None
        if client is None:
            return
        postgrest = getattr(client, "postgrest", None)
        aclose = getattr(postgrest, "aclose", None)
        if aclose is not None:
            try:
                await aclose()
            except OSError as exc:
                log.debug("Ignoring error while closing Supabase client: %s", exc)
