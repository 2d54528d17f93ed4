"""Response DTOs for API endpoints."""

from datetime import datetime

from pydantic import BaseModel, Field


class PhaseBreakdown(BaseModel):
    """Per-phase processing time in milliseconds."""

    embedding: float = Field(..., description="Time to obtain the question embedding", ge=0.0)
    search: float = Field(..., description="Time to retrieve work logs", ge=0.0)
    ai: float = Field(..., description="Time spent in the completion model (0 if skipped)", ge=0.0)
    total: float = Field(..., description="End-to-end pipeline time", ge=0.0)
    embedding_percent: float = Field(0.0, description="Embedding share of the total", ge=0.0)
    search_percent: float = Field(0.0, description="Search share of the total", ge=0.0)
    ai_percent: float = Field(0.0, description="Completion share of the total", ge=0.0)


class PerformanceInfo(BaseModel):
    """Coarse latency classification for display."""

    status: str = Field(..., description="'fast' under 6 seconds, otherwise 'normal'")
    message: str = Field(..., description="Human-readable status message")


class ChatMessageResponse(BaseModel):
    """Response DTO for an answered question."""

    session_id: str = Field(..., description="Conversation identifier")
    message: str = Field(..., description="The question as asked")
    response: str = Field(..., description="The assistant's answer")
    context_logs_count: int = Field(
        ...,
        description="Work logs used as context (0 when no work logs were available)",
        ge=0,
    )
    retrieval_degraded: bool = Field(
        False,
        description="True when semantic search was unavailable and recent work logs were used",
    )
    timestamp: datetime = Field(..., description="When the answer was produced")
    processing_time: float = Field(..., description="Total processing time in milliseconds")
    performance: PerformanceInfo
    breakdown: PhaseBreakdown


class ChatExchangeItem(BaseModel):
    """Single exchange of a session."""

    question: str
    answer: str
    documents_used: int = Field(..., ge=0)
    created_at: datetime


class SessionMessagesResponse(BaseModel):
    """Response DTO for all exchanges of one session."""

    session_id: str
    messages: list[ChatExchangeItem]
    count: int = Field(..., ge=0)


class ChatSessionSummary(BaseModel):
    """One session in the history listing."""

    session_id: str
    title: str = Field(..., description="First question, cut to 50 characters")
    last_message: str = Field(..., description="Latest answer, cut to 100 characters")
    message_count: int = Field(..., ge=0)
    created_at: datetime
    updated_at: datetime


class PaginationInfo(BaseModel):
    """Pagination block of the history listing."""

    current_page: int = Field(..., ge=1)
    total_pages: int = Field(..., ge=0)
    total_sessions: int = Field(..., ge=0)
    sessions_per_page: int = Field(..., ge=1)
    has_next: bool
    has_prev: bool


class ChatHistoryResponse(BaseModel):
    """Response DTO for the paginated session listing."""

    chats: list[ChatSessionSummary]
    pagination: PaginationInfo


class DeleteSessionResponse(BaseModel):
    """Response DTO for session deletion."""

    message: str
    session_id: str
    deleted_count: int = Field(..., ge=0)


class CacheStatsItem(BaseModel):
    """Counters of one cache."""

    keys: int = Field(..., ge=0)
    hits: int = Field(..., ge=0)
    misses: int = Field(..., ge=0)
    hit_rate: float = Field(..., ge=0.0, le=1.0)


class CompletionStats(BaseModel):
    """Completion latency over the rolling window."""

    average_response_time: float = Field(..., description="Mean latency in milliseconds")
    total_requests: int = Field(..., description="Requests in the window", ge=0)
    recent_times: list[float] = Field(..., description="Last 10 latencies in milliseconds")


class ChatStatsResponse(BaseModel):
    """Response DTO for cache and completion statistics."""

    embedding: CacheStatsItem
    search: CacheStatsItem
    in_flight: dict[str, int]
    ai: CompletionStats


class ClearCacheResponse(BaseModel):
    """Response DTO for clearing the caches."""

    success: bool
    cleared: dict[str, int] = Field(..., description="Entries removed per cache")
    message: str


class HealthCheckResponse(BaseModel):
    """Response DTO for health check."""

    status: str = Field(..., description="Health status: 'healthy' or 'unhealthy'")
    store_healthy: bool = Field(..., description="Whether the work log store is reachable")
    embedding_healthy: bool | None = Field(
        None,
        description="Whether the embedding service is reachable",
    )
