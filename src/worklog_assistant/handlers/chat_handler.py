"""HTTP handlers for chatbot operations.

Handlers convert between DTOs (API contracts) and service calls.
They handle HTTP concerns like status codes, validation, and error handling.
"""

import logging
import math
from datetime import datetime

from fastapi import HTTPException, status

from worklog_assistant.dto import (
    ChatExchangeItem,
    ChatHistoryResponse,
    ChatMessageRequest,
    ChatMessageResponse,
    ChatSessionSummary,
    ChatStatsResponse,
    ClearCacheResponse,
    DeleteSessionResponse,
    HealthCheckResponse,
    PaginationInfo,
    PerformanceInfo,
    PhaseBreakdown,
    SessionMessagesResponse,
)
from worklog_assistant.errors import CompletionError, InputError
from worklog_assistant.protocols import DocumentStore, EmbeddingProvider
from worklog_assistant.services import ChatOrchestrator

logger = logging.getLogger(__name__)

FAST_RESPONSE_MS = 6000
MAX_SESSIONS_PER_PAGE = 50
TITLE_LENGTH = 50
LAST_MESSAGE_LENGTH = 100


def shorten(text: str, length: int) -> str:
    """Cut `text` to `length` characters, marking the cut with "..."."""
    if len(text) <= length:
        return text
    return text[:length] + "..."


def _internal_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Something went wrong",
    )


class ChatHandler:
    """HTTP handlers for chatbot operations.

    Delegates the question pipeline to ChatOrchestrator and history
    queries to its chat history store. Internal error details never
    reach the client.
    """

    def __init__(
        self,
        orchestrator: ChatOrchestrator,
        store: DocumentStore,
        embedding_provider: EmbeddingProvider | None = None,
    ) -> None:
        """Initialize the chat handler.

        Args:
            orchestrator: The question-answering pipeline (required).
            store: Work log store, used for health checks.
            embedding_provider: Embedding service, used for health checks.
        """
        self._orchestrator = orchestrator
        self._store = store
        self._embeddings = embedding_provider

    async def post_message(self, request: ChatMessageRequest) -> ChatMessageResponse:
        """Handle POST /api/chatbot requests.

        Raises:
            HTTPException: 400 for an invalid question, 502 when the
                completion service fails, 500 for anything else
        """
        try:
            result = await self._orchestrator.answer(request.message, request.session_id)
        except InputError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
        except CompletionError as e:
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="completion service unavailable",
            ) from e
        except Exception as e:
            logger.exception("Chat pipeline failed")
            raise _internal_error() from e

        timings = result.timings
        fast = timings.total_ms < FAST_RESPONSE_MS
        return ChatMessageResponse(
            session_id=result.session_id,
            message=result.message,
            response=result.response,
            context_logs_count=result.context_logs_count,
            retrieval_degraded=result.retrieval_degraded,
            timestamp=datetime.now(),
            processing_time=result.processing_time,
            performance=PerformanceInfo(
                status="fast" if fast else "normal",
                message=(
                    "Response generated quickly"
                    if fast
                    else "Response generated (large context processed)"
                ),
            ),
            breakdown=PhaseBreakdown(
                **timings.to_dict(),
                **{f"{phase}_percent": share for phase, share in timings.share_of_total().items()},
            ),
        )

    async def get_session_messages(self, session_id: str) -> SessionMessagesResponse:
        """Handle GET /api/chatbot/session/{session_id} requests."""
        try:
            exchanges = await self._orchestrator.history.list_session(session_id)
        except Exception as e:
            logger.exception("Failed to load session %s", session_id)
            raise _internal_error() from e

        if not exchanges:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No chat history")

        return SessionMessagesResponse(
            session_id=session_id,
            messages=[
                ChatExchangeItem(
                    question=e.question,
                    answer=e.answer,
                    documents_used=e.documents_used,
                    created_at=e.created_at,
                )
                for e in exchanges
            ],
            count=len(exchanges),
        )

    async def get_history(self, page: int = 1, limit: int = 10) -> ChatHistoryResponse:
        """Handle GET /api/chatbot/history requests.

        Args:
            page: 1-based page number
            limit: Sessions per page, capped at 50
        """
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_SESSIONS_PER_PAGE)

        try:
            sessions, total = await self._orchestrator.history.list_sessions(page, limit)
        except Exception as e:
            logger.exception("Failed to fetch chat history")
            raise _internal_error() from e

        total_pages = math.ceil(total / limit)
        return ChatHistoryResponse(
            chats=[
                ChatSessionSummary(
                    session_id=s["session_id"],
                    title=shorten(s["first_message"], TITLE_LENGTH),
                    last_message=shorten(s["last_response"], LAST_MESSAGE_LENGTH),
                    message_count=s["message_count"],
                    created_at=s["created_at"],
                    updated_at=s["updated_at"],
                )
                for s in sessions
            ],
            pagination=PaginationInfo(
                current_page=page,
                total_pages=total_pages,
                total_sessions=total,
                sessions_per_page=limit,
                has_next=page < total_pages,
                has_prev=page > 1,
            ),
        )

    async def delete_session(self, session_id: str) -> DeleteSessionResponse:
        """Handle DELETE /api/chatbot/session/{session_id} requests."""
        try:
            deleted = await self._orchestrator.history.delete_session(session_id)
        except Exception as e:
            logger.exception("Failed to delete session %s", session_id)
            raise _internal_error() from e

        if deleted == 0:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Chat session not found or already deleted",
            )

        return DeleteSessionResponse(
            message="Chat session deleted successfully",
            session_id=session_id,
            deleted_count=deleted,
        )

    async def get_stats(self) -> ChatStatsResponse:
        """Handle GET /api/chatbot/stats requests."""
        stats = self._orchestrator.cache.get_stats()
        return ChatStatsResponse(
            embedding=stats["embedding"],
            search=stats["search"],
            in_flight=stats["in_flight"],
            ai=self._orchestrator.completion.get_stats(),
        )

    async def clear_cache(self) -> ClearCacheResponse:
        """Handle DELETE /api/chatbot/cache requests."""
        cleared = self._orchestrator.cache.clear_all()
        return ClearCacheResponse(
            success=True,
            cleared=cleared,
            message="Cache cleared successfully",
        )

    async def health_check(self) -> HealthCheckResponse:
        """Handle GET /health requests."""
        store_healthy = await self._store.health_check()
        embedding_healthy = None
        if self._embeddings is not None:
            embedding_healthy = await self._embeddings.is_available()

        healthy = store_healthy and embedding_healthy is not False
        return HealthCheckResponse(
            status="healthy" if healthy else "unhealthy",
            store_healthy=store_healthy,
            embedding_healthy=embedding_healthy,
        )
