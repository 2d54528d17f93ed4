"""Chat orchestration: question in, grounded answer out.

One pipeline per question, strictly sequential:

    RECEIVED -> EMBEDDING_READY -> RETRIEVED -> NO_CONTEXT
                                            -> CONTEXT_BUILT -> ANSWERED

Embeddings and search results go through the shared coalescing caches.
With no documents the completion model is never called and a fixed
answer is returned. The exchange is persisted in the background after
the result is built; persistence failures are only logged.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum

from worklog_assistant.background import BackgroundTasks
from worklog_assistant.entities import ConversationExchange, RetrievedDocument
from worklog_assistant.errors import CompletionError, EmbeddingError, InputError
from worklog_assistant.models import PhaseTimings
from worklog_assistant.protocols import ChatHistoryStore, CompletionProvider, EmbeddingProvider
from worklog_assistant.services.cache_service import CacheService
from worklog_assistant.services.prompting import ContextAssembler, PromptBuilder
from worklog_assistant.services.retrieval_service import RetrievalService

logger = logging.getLogger(__name__)

NO_CONTEXT_MESSAGE = (
    "I don't have any work logs to answer your question. "
    "The system doesn't have any work logs yet."
)
INVALID_MESSAGE = "Valid message is required"


class PipelineState(str, Enum):
    RECEIVED = "received"
    EMBEDDING_READY = "embedding_ready"
    RETRIEVED = "retrieved"
    NO_CONTEXT = "no_context"
    CONTEXT_BUILT = "context_built"
    ANSWERED = "answered"


@dataclass(frozen=True)
class ChatResult:
    """Outcome of one pipeline run.

    Attributes:
        session_id: Conversation identifier (generated when not supplied)
        message: The question as received
        response: The answer text
        context_logs_count: Work logs used as context, 0 for no-context answers
        timings: Per-phase durations in milliseconds
        retrieval_degraded: True when the documents came from the recency fallback
        state: Terminal pipeline state
        documents: The work logs used as context
    """

    session_id: str
    message: str
    response: str
    context_logs_count: int
    timings: PhaseTimings
    retrieval_degraded: bool = False
    state: PipelineState = PipelineState.ANSWERED
    documents: tuple[RetrievedDocument, ...] = field(default=(), repr=False)

    @property
    def processing_time(self) -> float:
        return self.timings.total_ms

    def to_dict(self) -> dict:
        return {
            "session_id": self.session_id,
            "message": self.message,
            "response": self.response,
            "context_logs_count": self.context_logs_count,
            "processing_time": self.processing_time,
            "breakdown": self.timings.to_dict(),
        }


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


class ChatOrchestrator:
    """Runs the question-answering pipeline.

    Depends on protocols, not concrete implementations, so every
    collaborator can be replaced with a fake in tests.

    Example:
        ```python
        orchestrator = ChatOrchestrator(
            embedding_provider=HttpEmbeddingProvider.create(),
            retrieval=RetrievalService.create(RedisWorkLogRepository.create()),
            completion=CompletionGateway.create(),
            history=RedisChatRepository.create(),
            cache=CacheService.create(),
        )
        result = await orchestrator.answer("What did Alice work on this week?")
        ```
    """

    def __init__(
        self,
        embedding_provider: EmbeddingProvider,
        retrieval: RetrievalService,
        completion: CompletionProvider,
        history: ChatHistoryStore,
        cache: CacheService,
        assembler: ContextAssembler | None = None,
        prompt_builder: PromptBuilder | None = None,
        background: BackgroundTasks | None = None,
    ) -> None:
        self._embeddings = embedding_provider
        self._retrieval = retrieval
        self._completion = completion
        self._history = history
        self._cache = cache
        self._assembler = assembler or ContextAssembler()
        self._prompts = prompt_builder or PromptBuilder()
        self._background = background or BackgroundTasks()

    @property
    def cache(self) -> CacheService:
        return self._cache

    @property
    def completion(self) -> CompletionProvider:
        return self._completion

    @property
    def history(self) -> ChatHistoryStore:
        return self._history

    @property
    def background(self) -> BackgroundTasks:
        return self._background

    async def answer(self, message: object, session_id: str | None = None) -> ChatResult:
        """Answer a question from the work logs.

        Args:
            message: The user's question
            session_id: Conversation to append to; a new id is generated if None

        Returns:
            The answer with its timing breakdown

        Raises:
            InputError: If `message` is not non-empty text
            EmbeddingError: If the question could not be embedded
            CompletionError: If the completion model failed or timed out
        """
        if not isinstance(message, str) or not message.strip():
            raise InputError(INVALID_MESSAGE)

        question = message.strip()
        session_id = session_id or str(uuid.uuid4())
        timings = PhaseTimings()
        started = time.perf_counter()

        # Phase 1: embedding
        phase_start = time.perf_counter()
        try:
            vector = await self._cache.get_embedding(
                question, lambda: self._embeddings.encode(question)
            )
        except EmbeddingError:
            logger.exception("Embedding failed for session %s", session_id)
            raise
        timings.embedding_ms = _elapsed_ms(phase_start)
        state = PipelineState.EMBEDDING_READY

        # Phase 2: retrieval
        phase_start = time.perf_counter()
        documents = await self._cache.get_search_results(
            vector, lambda: self._retrieval.search(vector)
        )
        timings.search_ms = _elapsed_ms(phase_start)
        state = PipelineState.RETRIEVED
        degraded = any(doc.score is None for doc in documents)

        context = self._assembler.build_context(documents)
        if context is None:
            timings.total_ms = _elapsed_ms(started)
            logger.info("No work logs available, answering without the model")
            return self._finish(
                session_id,
                message,
                NO_CONTEXT_MESSAGE,
                documents=(),
                timings=timings,
                degraded=degraded,
                state=PipelineState.NO_CONTEXT,
            )
        state = PipelineState.CONTEXT_BUILT

        # Phase 3: completion
        system_prompt = self._prompts.build_system_prompt(context)
        phase_start = time.perf_counter()
        try:
            response = await self._completion.complete(system_prompt, question)
        except CompletionError as e:
            logger.error("Completion failed in state %s: %s", state.value, e)
            raise
        timings.ai_ms = _elapsed_ms(phase_start)
        timings.total_ms = _elapsed_ms(started)

        logger.info(
            "Answered with %d work logs in %.0fms (embedding %.0fms, search %.0fms, ai %.0fms)",
            len(documents),
            timings.total_ms,
            timings.embedding_ms,
            timings.search_ms,
            timings.ai_ms,
        )
        return self._finish(
            session_id,
            message,
            response,
            documents=tuple(documents),
            timings=timings,
            degraded=degraded,
            state=PipelineState.ANSWERED,
        )

    def _finish(
        self,
        session_id: str,
        message: str,
        response: str,
        documents: tuple[RetrievedDocument, ...],
        timings: PhaseTimings,
        degraded: bool,
        state: PipelineState,
    ) -> ChatResult:
        result = ChatResult(
            session_id=session_id,
            message=message,
            response=response,
            context_logs_count=len(documents),
            timings=timings,
            retrieval_degraded=degraded,
            state=state,
            documents=documents,
        )
        self._persist_later(
            ConversationExchange(
                session_id=session_id,
                question=message,
                answer=response,
                documents_used=len(documents),
            )
        )
        return result

    def _persist_later(self, exchange: ConversationExchange) -> None:
        def log_failure(error: BaseException) -> None:
            logger.error(
                "Failed to save exchange for session %s",
                exchange.session_id,
                exc_info=error,
            )

        self._background.spawn(
            self._history.save(exchange),
            on_error=log_failure,
            name=f"persist-{exchange.session_id}",
        )

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for background persistence to finish (shutdown and tests)."""
        await self._background.drain(timeout)
