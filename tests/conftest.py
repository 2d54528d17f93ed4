"""
Shared fakes and fixtures.

The fakes satisfy the protocols structurally and count their calls so
tests can assert how often each upstream was hit.
"""

import asyncio
import hashlib
from dataclasses import replace
from datetime import datetime, timedelta

import pytest

from worklog_assistant.entities import ConversationExchange, WorkLogRecord
from worklog_assistant.errors import PersistenceError
from worklog_assistant.models import LatencyWindow
from worklog_assistant.services import CacheService, ChatOrchestrator, RetrievalService


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeEmbeddingProvider:
    """Deterministic embeddings derived from a hash of the text."""

    def __init__(self, dimension: int = 8, delay: float = 0.0, error: Exception | None = None):
        self._dimension = dimension
        self.delay = delay
        self.error = error
        self.calls: list[str] = []

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def model_name(self) -> str:
        return "fake-embedding"

    async def encode(self, text: str) -> tuple[float, ...]:
        self.calls.append(text)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        return tuple((digest[i] - 128) / 128 for i in range(self._dimension))

    async def is_available(self) -> bool:
        return self.error is None


class FakeDocumentStore:
    """In-memory work log store.

    `semantic_error` makes vector_search raise; `semantic_empty` makes it
    return nothing, as when the vector index has not been created.
    """

    def __init__(
        self,
        records: list[WorkLogRecord] | None = None,
        semantic_error: Exception | None = None,
        semantic_empty: bool = False,
        delay: float = 0.0,
    ) -> None:
        self.records = list(records or [])
        self.semantic_error = semantic_error
        self.semantic_empty = semantic_empty
        self.delay = delay
        self.recent_error: Exception | None = None
        self.vector_search_calls = 0
        self.list_recent_calls = 0
        self.healthy = True

    async def vector_search(self, vector, num_candidates, limit):
        self.vector_search_calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.semantic_error is not None:
            raise self.semantic_error
        if self.semantic_empty:
            return []
        return [
            replace(record, score=round(0.95 - i * 0.1, 2))
            for i, record in enumerate(self.records[:limit])
        ]

    async def list_recent(self, limit):
        self.list_recent_calls += 1
        if self.recent_error is not None:
            raise self.recent_error
        newest_first = sorted(
            self.records, key=lambda r: r.created_at or datetime.min, reverse=True
        )
        return [replace(record, score=None) for record in newest_first[:limit]]

    async def health_check(self) -> bool:
        return self.healthy


class FakeCompletionProvider:
    """Returns a canned answer and records the prompts it was given."""

    def __init__(
        self,
        answer: str = "Alice migrated the billing tables.",
        error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self.answer = answer
        self.error = error
        self.delay = delay
        self.calls: list[tuple[str, str]] = []
        self._latency = LatencyWindow()

    async def complete(self, system_prompt: str, user_message: str) -> str:
        self.calls.append((system_prompt, user_message))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        self._latency.record(12.0)
        return self.answer

    def get_stats(self) -> dict:
        return self._latency.to_dict()


class FakeChatHistoryStore:
    """In-memory chat history."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.saved: list[ConversationExchange] = []

    async def save(self, exchange: ConversationExchange) -> None:
        if self.fail:
            raise PersistenceError("history store is down")
        self.saved.append(exchange)

    async def list_session(self, session_id: str) -> list[ConversationExchange]:
        return [e for e in self.saved if e.session_id == session_id]

    async def list_sessions(self, page: int, limit: int) -> tuple[list[dict], int]:
        sessions: dict[str, list[ConversationExchange]] = {}
        for exchange in self.saved:
            sessions.setdefault(exchange.session_id, []).append(exchange)
        ordered = sorted(sessions.items(), key=lambda item: item[1][-1].created_at, reverse=True)
        start = (page - 1) * limit
        summaries = [
            {
                "session_id": sid,
                "first_message": exchanges[0].question,
                "last_response": exchanges[-1].answer,
                "message_count": len(exchanges),
                "created_at": exchanges[0].created_at,
                "updated_at": exchanges[-1].created_at,
            }
            for sid, exchanges in ordered[start : start + limit]
        ]
        return summaries, len(ordered)

    async def delete_session(self, session_id: str) -> int:
        before = len(self.saved)
        self.saved = [e for e in self.saved if e.session_id != session_id]
        return before - len(self.saved)


def make_records(count: int, content_length: int = 120) -> list[WorkLogRecord]:
    """Work logs w1..wN, created one day apart (wN newest)."""
    base = datetime(2025, 10, 1, 9, 0)
    return [
        WorkLogRecord(
            id=f"w{i}",
            title=f"Work log {i}",
            content=("x" * content_length),
            tags=("backend", f"sprint-{i}"),
            created_at=base + timedelta(days=i),
            author_name="Alice",
            author_division="Platform",
        )
        for i in range(1, count + 1)
    ]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def embedding_provider():
    return FakeEmbeddingProvider()


@pytest.fixture
def document_store():
    return FakeDocumentStore(records=make_records(5))


@pytest.fixture
def completion():
    return FakeCompletionProvider()


@pytest.fixture
def history():
    return FakeChatHistoryStore()


@pytest.fixture
def make_orchestrator(embedding_provider, document_store, completion, history):
    """Factory for orchestrators wired to fakes; any collaborator can be overridden."""

    def factory(
        embeddings=None,
        store=None,
        completion_provider=None,
        history_store=None,
        cache=None,
    ) -> ChatOrchestrator:
        return ChatOrchestrator(
            embedding_provider=embeddings or embedding_provider,
            retrieval=RetrievalService(store=store or document_store, limit=3),
            completion=completion_provider or completion,
            history=history_store or history,
            cache=cache or CacheService(embedding_ttl=3600, search_ttl=300),
        )

    return factory

