"""Data Transfer Objects for API contracts.

These Pydantic models define the external API contract.
They are used for request/response validation and serialization.

Internal domain logic should use entities from the entities package.
"""

from .requests import ChatMessageRequest
from .responses import (
    CacheStatsItem,
    ChatExchangeItem,
    ChatHistoryResponse,
    ChatMessageResponse,
    ChatSessionSummary,
    ChatStatsResponse,
    ClearCacheResponse,
    CompletionStats,
    DeleteSessionResponse,
    HealthCheckResponse,
    PaginationInfo,
    PerformanceInfo,
    PhaseBreakdown,
    SessionMessagesResponse,
)

__all__ = [
    "ChatMessageRequest",
    "CacheStatsItem",
    "ChatExchangeItem",
    "ChatHistoryResponse",
    "ChatMessageResponse",
    "ChatSessionSummary",
    "ChatStatsResponse",
    "ClearCacheResponse",
    "CompletionStats",
    "DeleteSessionResponse",
    "HealthCheckResponse",
    "PaginationInfo",
    "PerformanceInfo",
    "PhaseBreakdown",
    "SessionMessagesResponse",
]
