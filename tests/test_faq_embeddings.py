from __future__ import annotations

import asyncio

import aiohttp
import numpy as np
import pytest

from coachbot.cache import TTLCache
from coachbot.faq.embeddings import EmbeddingClient, EmbeddingError, EmbeddingTimeoutError

pytestmark = pytest.mark.anyio


def _client(fake_http, **kwargs) -> EmbeddingClient:
    kwargs.setdefault("cache", TTLCache("embeddings", 300))
    return EmbeddingClient("test-key", session_factory=fake_http, **kwargs)


async def test_embed_posts_expected_payload(fake_http):
    client = _client(fake_http, model="text-embedding-3-small")

    vector = await client.embed("how much protein")

    assert isinstance(vector, np.ndarray)
    assert vector.dtype == np.float32
    assert vector.shape == (1536,)
    assert len(fake_http.posts) == 1
    request = fake_http.posts[0]
    assert request["json"] == {
        "model": "text-embedding-3-small",
        "input": "how much protein",
        "dimensions": 1536,
    }
    assert request["headers"]["Authorization"] == "Bearer test-key"
    timeout = fake_http.sessions[0].kwargs["timeout"]
    assert isinstance(timeout, aiohttp.ClientTimeout)
    assert timeout.total == 10.0


async def test_embed_cache_hit_skips_network(fake_http):
    client = _client(fake_http)
    first = await client.embed("creatine")
    second = await client.embed("creatine")

    assert len(fake_http.posts) == 1
    assert np.array_equal(first, second)


async def test_session_is_reused_and_closed(fake_http):
    client = _client(fake_http, cache=None)
    await client.embed("a")
    await client.embed("b")
    assert len(fake_http.sessions) == 1

    await client.close()
    assert fake_http.sessions[0].closed


async def test_missing_api_key_raises_before_request(fake_http):
    client = EmbeddingClient(None, session_factory=fake_http)
    with pytest.raises(EmbeddingError):
        await client.embed("anything")
    assert fake_http.posts == []


async def test_non_200_raises_with_status(fake_http):
    fake_http.status = 429
    client = _client(fake_http)
    with pytest.raises(EmbeddingError) as excinfo:
        await client.embed("rate limited")
    assert excinfo.value.status == 429


async def test_timeout_raises_timeout_error(fake_http):
    fake_http.raise_on_enter = asyncio.TimeoutError()
    client = _client(fake_http)
    with pytest.raises(EmbeddingTimeoutError):
        await client.embed("slow")


async def test_client_error_is_wrapped(fake_http):
    fake_http.raise_on_enter = aiohttp.ClientConnectionError("refused")
    client = _client(fake_http)
    with pytest.raises(EmbeddingError):
        await client.embed("offline")


@pytest.mark.parametrize(
    "body",
    [
        {},
        {"data": []},
        {"data": [{"embedding": [0.1] * 10}]},
        {"data": [{"embedding": "nope"}]},
    ],
)
async def test_malformed_bodies_raise(fake_http, body):
    fake_http.body = body
    cache: TTLCache[np.ndarray] = TTLCache("embeddings", 300)
    client = _client(fake_http, cache=cache)
    with pytest.raises(EmbeddingError):
        await client.embed("bad body")
    assert "bad body" not in cache


async def test_embed_many_maps_failures_to_none(fake_http):
    client = _client(fake_http)
    cache = client._cache
    assert cache is not None
    cache.set("cached", np.ones(1536, dtype="float32"))
    fake_http.status = 500

    vectors = await client.embed_many(["cached", "fails"])

    assert vectors[0] is not None
    assert vectors[1] is None
