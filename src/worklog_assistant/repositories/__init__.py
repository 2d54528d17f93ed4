"""Repository layer for data access.

This layer wraps external dependencies (Redis, the embedding API, the
completion API) behind protocol-based interfaces, so services can be
tested with fakes and backends can be swapped.

The repositories are protocol-based (structural typing), not inheritance-based.
Any class implementing the required methods will satisfy the protocol.

`LocalEmbeddingProvider` is not re-exported here: it pulls in
sentence-transformers and is imported only when configured.
"""

from worklog_assistant.protocols import (
    ChatHistoryStore,
    CompletionProvider,
    DocumentStore,
    EmbeddingProvider,
)

from .completion_gateway import CompletionGateway
from .http_embedding_provider import HttpEmbeddingProvider
from .redis_chat_repository import RedisChatRepository
from .redis_worklog_repository import RedisWorkLogRepository

__all__ = [
    "ChatHistoryStore",
    "CompletionGateway",
    "CompletionProvider",
    "DocumentStore",
    "EmbeddingProvider",
    "HttpEmbeddingProvider",
    "RedisChatRepository",
    "RedisWorkLogRepository",
]
