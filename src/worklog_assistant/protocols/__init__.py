"""Protocol interfaces for swappable implementations.

This package contains protocol definitions using structural typing.
Protocols enable:
- Easy swapping of implementations (Redis -> MongoDB, HTTP -> local model, etc.)
- Unit testing with fake implementations
- Clear separation of concerns

Usage:
    ```python
    from worklog_assistant.protocols import DocumentStore, EmbeddingProvider

    store: DocumentStore = RedisWorkLogRepository.create()
    provider: EmbeddingProvider = HttpEmbeddingProvider.create()
    ```
"""

from .chat_history_store import ChatHistoryStore
from .completion_provider import CompletionProvider
from .document_store import DocumentStore
from .embedding_provider import EmbeddingProvider

__all__ = [
    "ChatHistoryStore",
    "CompletionProvider",
    "DocumentStore",
    "EmbeddingProvider",
]
