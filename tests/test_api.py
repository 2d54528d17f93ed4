"""
Tests for the work log assistant API.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timedelta

import pytest
from conftest import (
    FakeChatHistoryStore,
    FakeCompletionProvider,
    FakeDocumentStore,
    FakeEmbeddingProvider,
    make_records,
)
from fastapi.testclient import TestClient

from worklog_assistant.api.app import create_app
from worklog_assistant.entities import ConversationExchange
from worklog_assistant.errors import CompletionTimeout
from worklog_assistant.handlers import ChatHandler
from worklog_assistant.services import (
    NO_CONTEXT_MESSAGE,
    CacheService,
    ChatOrchestrator,
    RetrievalService,
)


def build_client(store=None, completion=None, history=None, embeddings=None) -> TestClient:
    """Create a test client whose app.state is populated with fakes."""
    store = store or FakeDocumentStore(records=make_records(5))
    completion = completion or FakeCompletionProvider()
    history = history or FakeChatHistoryStore()
    embeddings = embeddings or FakeEmbeddingProvider()

    @asynccontextmanager
    async def fake_lifespan(app):
        orchestrator = ChatOrchestrator(
            embedding_provider=embeddings,
            retrieval=RetrievalService(store=store, limit=3),
            completion=completion,
            history=history,
            cache=CacheService(embedding_ttl=3600, search_ttl=300),
        )
        app.state.orchestrator = orchestrator
        app.state.chat_handler = ChatHandler(
            orchestrator=orchestrator, store=store, embedding_provider=embeddings
        )
        yield
        await orchestrator.drain()

    return TestClient(create_app(lifespan_handler=fake_lifespan))


@pytest.fixture
def client():
    """Create a test client."""
    with build_client() as test_client:
        yield test_client


def seeded_history(sessions: int, messages_per_session: int = 1) -> FakeChatHistoryStore:
    history = FakeChatHistoryStore()
    base = datetime(2025, 10, 1, 12, 0)
    for s in range(sessions):
        for m in range(messages_per_session):
            history.saved.append(
                ConversationExchange(
                    session_id=f"s{s}",
                    question=f"Question {s}-{m} " + "q" * 60,
                    answer=f"Answer {s}-{m} " + "a" * 120,
                    documents_used=2,
                    created_at=base + timedelta(minutes=s * 10 + m),
                )
            )
    return history


def test_root(client):
    """Test root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Work Log Assistant API"


def test_health(client):
    """Test health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {
        "status": "healthy",
        "store_healthy": True,
        "embedding_healthy": True,
    }


def test_health_reports_unhealthy_store():
    store = FakeDocumentStore(records=[])
    store.healthy = False
    with build_client(store=store) as client:
        assert client.get("/health").json()["status"] == "unhealthy"


def test_post_message(client):
    """Test answering a question."""
    response = client.post(
        "/api/chatbot",
        json={"message": "What did Alice work on?", "session_id": "abc"},
    )
    assert response.status_code == 201
    data = response.json()
    assert data["session_id"] == "abc"
    assert data["message"] == "What did Alice work on?"
    assert data["response"] == "Alice migrated the billing tables."
    assert data["context_logs_count"] == 3
    assert data["retrieval_degraded"] is False
    assert set(data["breakdown"]) == {
        "embedding",
        "search",
        "ai",
        "total",
        "embedding_percent",
        "search_percent",
        "ai_percent",
    }
    breakdown = data["breakdown"]
    shares = breakdown["embedding_percent"] + breakdown["search_percent"] + breakdown["ai_percent"]
    assert 0 <= shares <= 100.2
    assert isinstance(data["processing_time"], float)
    assert data["performance"]["status"] == "fast"
    assert "timestamp" in data


def test_post_message_generates_session_id(client):
    response = client.post("/api/chatbot", json={"message": "Any deploys?"})
    assert response.status_code == 201
    assert response.json()["session_id"]


@pytest.mark.parametrize("body", [{}, {"message": ""}, {"message": "   "}])
def test_post_message_rejects_blank_question(client, body):
    response = client.post("/api/chatbot", json=body)
    assert response.status_code == 400
    assert response.json()["detail"] == "Valid message is required"


def test_post_message_without_work_logs():
    completion = FakeCompletionProvider()
    with build_client(store=FakeDocumentStore(records=[]), completion=completion) as client:
        response = client.post("/api/chatbot", json={"message": "What did Alice do?"})

    assert response.status_code == 201
    data = response.json()
    assert data["context_logs_count"] == 0
    assert data["response"] == NO_CONTEXT_MESSAGE
    assert data["breakdown"]["ai"] == 0
    assert data["breakdown"]["ai_percent"] == 0
    assert completion.calls == []


def test_post_message_completion_failure_is_bad_gateway():
    completion = FakeCompletionProvider(error=CompletionTimeout("AI request timed out"))
    with build_client(completion=completion) as client:
        response = client.post("/api/chatbot", json={"message": "hello?"})

    assert response.status_code == 502
    assert response.json()["detail"] == "completion service unavailable"


def test_post_message_unexpected_failure_hides_details():
    embeddings = FakeEmbeddingProvider(error=KeyError("secret internal detail"))
    with build_client(embeddings=embeddings) as client:
        response = client.post("/api/chatbot", json={"message": "hello?"})

    assert response.status_code == 500
    assert response.json()["detail"] == "Something went wrong"
    assert "secret" not in response.text


def test_get_stats(client):
    """Test get stats endpoint."""
    client.post("/api/chatbot", json={"message": "What shipped?"})
    client.post("/api/chatbot", json={"message": "What shipped?"})

    response = client.get("/api/chatbot/stats")
    assert response.status_code == 200
    data = response.json()
    assert data["embedding"]["keys"] == 1
    assert data["embedding"]["hits"] == 1
    assert data["search"]["keys"] == 1
    assert data["in_flight"] == {"embedding": 0, "search": 0}
    assert data["ai"]["total_requests"] == 2
    assert data["ai"]["recent_times"] == [12.0, 12.0]


def test_clear_cache(client):
    client.post("/api/chatbot", json={"message": "What shipped?"})

    response = client.delete("/api/chatbot/cache")
    assert response.status_code == 200
    assert response.json()["cleared"] == {"embedding": 1, "search": 1}
    assert client.get("/api/chatbot/stats").json()["embedding"]["keys"] == 0


def test_get_session_messages():
    with build_client(history=seeded_history(1, messages_per_session=2)) as client:
        response = client.get("/api/chatbot/session/s0")

    assert response.status_code == 200
    data = response.json()
    assert data["count"] == 2
    assert data["messages"][0]["question"].startswith("Question 0-0")


def test_get_session_messages_not_found(client):
    response = client.get("/api/chatbot/session/missing")
    assert response.status_code == 404


def test_get_history_paginates_and_truncates():
    with build_client(history=seeded_history(3)) as client:
        response = client.get("/api/chatbot/history", params={"page": 1, "limit": 2})

    assert response.status_code == 200
    data = response.json()
    assert [c["session_id"] for c in data["chats"]] == ["s2", "s1"]
    assert len(data["chats"][0]["title"]) == 53
    assert data["chats"][0]["title"].endswith("...")
    assert len(data["chats"][0]["last_message"]) == 103
    assert data["pagination"] == {
        "current_page": 1,
        "total_pages": 2,
        "total_sessions": 3,
        "sessions_per_page": 2,
        "has_next": True,
        "has_prev": False,
    }


def test_get_history_caps_limit(client):
    response = client.get("/api/chatbot/history", params={"limit": 500})
    assert response.status_code == 200
    assert response.json()["pagination"]["sessions_per_page"] == 50


def test_delete_session():
    history = seeded_history(2, messages_per_session=3)
    with build_client(history=history) as client:
        response = client.delete("/api/chatbot/session/s1")
        assert response.status_code == 200
        assert response.json()["deleted_count"] == 3

        response = client.delete("/api/chatbot/session/s1")
        assert response.status_code == 404

    assert {e.session_id for e in history.saved} == {"s0"}


def test_main_serves_app_with_uvicorn(monkeypatch):
    import uvicorn

    from worklog_assistant.api.app import main

    calls = []
    monkeypatch.setattr(uvicorn, "run", lambda *args, **kwargs: calls.append((args, kwargs)))

    main()

    args, kwargs = calls[0]
    assert args == ("worklog_assistant.api.app:app",)
    assert {"host", "port", "reload"} <= set(kwargs)
