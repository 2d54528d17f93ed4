"""Service layer for business logic.

Services depend on protocols (interfaces), not concrete implementations,
making them testable and flexible.

Architecture:
    Handler -> Service -> Repository
    (HTTP)  -> (Business) -> (Data Access)

Usage:
    ```python
    from worklog_assistant.services import CacheService, ChatOrchestrator, RetrievalService

    cache = CacheService.create()
    retrieval = RetrievalService.create(store=RedisWorkLogRepository.create())
    orchestrator = ChatOrchestrator(
        embedding_provider=provider,
        retrieval=retrieval,
        completion=gateway,
        history=chat_repository,
        cache=cache,
    )
    ```
"""

from .cache_service import CacheService
from .chat_service import NO_CONTEXT_MESSAGE, ChatOrchestrator, ChatResult, PipelineState
from .prompting import ContextAssembler, PromptBuilder, prepare_text_for_embedding
from .retrieval_service import RetrievalService

__all__ = [
    "NO_CONTEXT_MESSAGE",
    "CacheService",
    "ChatOrchestrator",
    "ChatResult",
    "ContextAssembler",
    "PipelineState",
    "PromptBuilder",
    "RetrievalService",
    "prepare_text_for_embedding",
]
