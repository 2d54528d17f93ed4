"""Dependency injection configuration for FastAPI app.

Uses FastAPI's app.state pattern for storing service instances.

Pattern:
    - Services stored in app.state during lifespan
    - Dependency functions retrieve from request.app.state
    - Clean separation, no global mutable state
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Request

from worklog_assistant.config import get_redis_client, settings, setup_logging
from worklog_assistant.handlers import ChatHandler
from worklog_assistant.protocols import EmbeddingProvider
from worklog_assistant.repositories import (
    CompletionGateway,
    HttpEmbeddingProvider,
    RedisChatRepository,
    RedisWorkLogRepository,
)
from worklog_assistant.services import CacheService, ChatOrchestrator, RetrievalService

logger = logging.getLogger(__name__)

SHUTDOWN_DRAIN_TIMEOUT = 5.0


def get_orchestrator(request: Request) -> ChatOrchestrator:
    """Dependency injection for ChatOrchestrator from app.state.

    Raises:
        RuntimeError: If the orchestrator is not initialized
    """
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise RuntimeError("ChatOrchestrator not initialized. Check lifespan setup.")
    return orchestrator


def get_handler(request: Request) -> ChatHandler:
    """Dependency injection for ChatHandler from app.state.

    Raises:
        RuntimeError: If the handler is not initialized
    """
    handler = getattr(request.app.state, "chat_handler", None)
    if handler is None:
        raise RuntimeError("ChatHandler not initialized. Check lifespan setup.")
    return handler


def create_embedding_provider() -> EmbeddingProvider:
    """Build the embedding provider selected by EMBEDDING_PROVIDER.

    Re-seed the work log store after switching providers or dimensions.
    """
    if settings.uses_local_embeddings:
        from worklog_assistant.repositories.local_embedding_provider import (
            LocalEmbeddingProvider,
        )

        return LocalEmbeddingProvider.create()
    return HttpEmbeddingProvider.create()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for FastAPI app.

    Initializes all layers and stores them in app.state:
    1. Repositories (Redis store and history, embedding and completion gateways)
    2. Services (caches, retrieval, orchestrator) - app.state.orchestrator
    3. Handler (HTTP endpoints) - app.state.chat_handler

    On shutdown, waits briefly for background persistence and closes
    HTTP and Redis clients.
    """
    setup_logging()

    embedding_provider = create_embedding_provider()
    redis_client = get_redis_client()

    store = RedisWorkLogRepository(
        redis_client=redis_client,
        dimension=embedding_provider.dimension,
    )
    try:
        await asyncio.to_thread(store.ensure_index)
    except Exception as e:
        logger.warning(
            "Vector index unavailable (%s); answers will use recent work logs", e
        )

    history = RedisChatRepository(redis_client=redis_client)
    completion = CompletionGateway.create()
    cache_service = CacheService.create()

    orchestrator = ChatOrchestrator(
        embedding_provider=embedding_provider,
        retrieval=RetrievalService.create(store=store),
        completion=completion,
        history=history,
        cache=cache_service,
    )
    chat_handler = ChatHandler(
        orchestrator=orchestrator,
        store=store,
        embedding_provider=embedding_provider,
    )

    app.state.orchestrator = orchestrator
    app.state.chat_handler = chat_handler

    logger.info(
        "Chat service initialized: embeddings=%s (%d dims), completion=%s, index=%s",
        embedding_provider.model_name,
        embedding_provider.dimension,
        completion.model_name,
        store.index_name,
    )

    yield

    await orchestrator.drain(timeout=SHUTDOWN_DRAIN_TIMEOUT)
    await completion.close()
    if isinstance(embedding_provider, HttpEmbeddingProvider):
        await embedding_provider.close()
    redis_client.close()

    del app.state.chat_handler
    del app.state.orchestrator
    logger.info("Chat service shut down")


# Type aliases for cleaner dependency injection
HandlerDep = Annotated[ChatHandler, Depends(get_handler)]
OrchestratorDep = Annotated[ChatOrchestrator, Depends(get_orchestrator)]
