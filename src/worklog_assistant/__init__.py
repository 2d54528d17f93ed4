"""Work Log Assistant - question answering over team work logs.

This package provides a layered architecture for a retrieval-augmented
chatbot:

Layers:
    - protocols: Interface contracts (EmbeddingProvider, DocumentStore, ...)
    - repositories: Redis stores and HTTP gateways
    - services: Caches, retrieval, prompting and the chat pipeline
    - handlers: HTTP endpoint handlers
    - dto: Data transfer objects (API contracts)
    - entities: Domain models (internal)

Usage:
    ```python
    from worklog_assistant.services import ChatOrchestrator

    result = await orchestrator.answer("What did Alice work on this week?")
    print(result.response, result.timings.to_dict())
    ```

For HTTP API:
    ```python
    from worklog_assistant.api.app import app
    ```
"""

from worklog_assistant.config import get_redis_client, settings
from worklog_assistant.dto import ChatMessageRequest, ChatMessageResponse
from worklog_assistant.entities import ConversationExchange, RetrievedDocument, WorkLogRecord
from worklog_assistant.errors import (
    AssistantError,
    CompletionError,
    CompletionInvalidResponse,
    CompletionTimeout,
    CompletionTransportError,
    EmbeddingError,
    InputError,
    PersistenceError,
)
from worklog_assistant.handlers import ChatHandler
from worklog_assistant.protocols import (
    ChatHistoryStore,
    CompletionProvider,
    DocumentStore,
    EmbeddingProvider,
)
from worklog_assistant.repositories import (
    CompletionGateway,
    HttpEmbeddingProvider,
    RedisChatRepository,
    RedisWorkLogRepository,
)
from worklog_assistant.services import CacheService, ChatOrchestrator, RetrievalService

__all__ = [
    # Configuration
    "settings",
    "get_redis_client",
    # Errors
    "AssistantError",
    "InputError",
    "EmbeddingError",
    "CompletionError",
    "CompletionTimeout",
    "CompletionInvalidResponse",
    "CompletionTransportError",
    "PersistenceError",
    # Protocols (interfaces)
    "ChatHistoryStore",
    "CompletionProvider",
    "DocumentStore",
    "EmbeddingProvider",
    # Services (business logic)
    "CacheService",
    "ChatOrchestrator",
    "RetrievalService",
    # Handlers (HTTP)
    "ChatHandler",
    # Repositories (data access)
    "CompletionGateway",
    "HttpEmbeddingProvider",
    "RedisChatRepository",
    "RedisWorkLogRepository",
    # Entities (domain models)
    "ConversationExchange",
    "RetrievedDocument",
    "WorkLogRecord",
    # DTOs (API contracts)
    "ChatMessageRequest",
    "ChatMessageResponse",
]
