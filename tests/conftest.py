from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from coachbot.core.health import reset_health  # noqa: E402

EMBEDDING_DIMENSIONS = 1536


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _clean_health():
    reset_health()
    yield
    reset_health()


def _custom(question: str, answer: str, as_string: bool) -> Any:
    custom = {"question": question, "answer": answer}
    return json.dumps(custom) if as_string else custom


def rpc_row(
    key: str,
    question: str,
    answer: str,
    *,
    distance: float | None = None,
    custom_as_string: bool = False,
) -> dict[str, Any]:
    """Row shaped like the match RPC output: identifiers live inside ``metadata``."""
    row: dict[str, Any] = {
        "content": answer,
        "metadata": {
            "upsert_key": key,
            "data_type": "faq",
            "source_doc_name": "faq.csv",
            "custom_metadata_from_db": _custom(question, answer, custom_as_string),
        },
    }
    if distance is not None:
        row["similarity"] = distance
    return row


def table_row(
    key: str,
    question: str,
    answer: str,
    *,
    custom_as_string: bool = False,
) -> dict[str, Any]:
    """Row shaped like a plain table select: identifiers are columns."""
    return {
        "content": answer,
        "upsert_key": key,
        "data_type": "faq",
        "source_doc_name": "faq.csv",
        "custom_metadata": _custom(question, answer, custom_as_string),
    }


class FakeQuery:
    """Chainable stand-in for a postgrest request builder."""

    def __init__(self, owner: "FakeSupabase", kind: str, name: str, params: Any = None) -> None:
        self.owner = owner
        self.kind = kind
        self.name = name
        self.params = params
        self.filters: list[tuple[str, Any]] = []

    def select(self, columns: str) -> "FakeQuery":
        self.filters.append(("select", columns))
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self.filters.append(("eq", (column, value)))
        return self

    def or_(self, expression: str) -> "FakeQuery":
        self.filters.append(("or", expression))
        return self

    def order(self, column: str) -> "FakeQuery":
        self.filters.append(("order", column))
        return self

    def limit(self, count: int) -> "FakeQuery":
        self.filters.append(("limit", count))
        return self

    async def execute(self) -> SimpleNamespace:
        await asyncio.sleep(self.owner.delay)
        if self.kind == "rpc":
            self.owner.rpc_calls.append(self)
            if self.owner.rpc_error is not None:
                raise self.owner.rpc_error
            return SimpleNamespace(data=list(self.owner.rpc_rows))
        self.owner.table_calls.append(self)
        if self.owner.table_error is not None:
            raise self.owner.table_error
        return SimpleNamespace(data=list(self.owner.table_rows))


class FakeSupabase:
    def __init__(self) -> None:
        self.rpc_rows: list[dict[str, Any]] = []
        self.table_rows: list[dict[str, Any]] = []
        self.rpc_error: BaseException | None = None
        self.table_error: BaseException | None = None
        self.delay = 0.0
        self.rpc_calls: list[FakeQuery] = []
        self.table_calls: list[FakeQuery] = []

    def rpc(self, name: str, params: dict[str, Any]) -> FakeQuery:
        return FakeQuery(self, "rpc", name, params)

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, "table", name)

    @property
    def network_calls(self) -> int:
        return len(self.rpc_calls) + len(self.table_calls)


class FakeEmbeddingResponse:
    def __init__(self, owner: "FakeEmbeddingHTTP") -> None:
        self.owner = owner
        self.status = owner.status

    async def __aenter__(self) -> "FakeEmbeddingResponse":
        await asyncio.sleep(0)
        if self.owner.raise_on_enter is not None:
            raise self.owner.raise_on_enter
        return self

    async def __aexit__(self, *_: Any) -> bool:
        return False

    async def json(self, **_: Any) -> Any:
        if self.owner.body is not None:
            return self.owner.body
        return {"data": [{"embedding": [0.01] * self.owner.dimensions}]}

    async def text(self) -> str:
        return "upstream error"


class FakeEmbeddingSession:
    def __init__(self, owner: "FakeEmbeddingHTTP", **kwargs: Any) -> None:
        self.owner = owner
        self.kwargs = kwargs
        self.closed = False

    def post(self, url: str, *, json: Any = None, headers: Any = None) -> FakeEmbeddingResponse:
        self.owner.posts.append({"url": url, "json": json, "headers": headers})
        return FakeEmbeddingResponse(self.owner)

    async def close(self) -> None:
        self.closed = True


class FakeEmbeddingHTTP:
    """Session factory recording every embeddings request."""

    def __init__(self) -> None:
        self.posts: list[dict[str, Any]] = []
        self.sessions: list[FakeEmbeddingSession] = []
        self.status = 200
        self.body: Any = None
        self.raise_on_enter: BaseException | None = None
        self.dimensions = EMBEDDING_DIMENSIONS

    def __call__(self, **kwargs: Any) -> FakeEmbeddingSession:
        session = FakeEmbeddingSession(self, **kwargs)
        self.sessions.append(session)
        return session


@pytest.fixture
def fake_supabase() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def fake_http() -> FakeEmbeddingHTTP:
    return FakeEmbeddingHTTP()


@pytest.fixture
def make_rpc_row():
    return rpc_row


@pytest.fixture
def make_table_row():
    return table_row
