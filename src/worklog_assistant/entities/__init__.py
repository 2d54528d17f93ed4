"""Domain entities for internal representation.

These are pure dataclasses (frozen) used internally by services
and repositories. They are NOT used for API contracts - use DTOs
from the dto package for that.
"""

from .cache_entry import CacheEntry
from .worklog import ConversationExchange, EmbeddingVector, RetrievedDocument, WorkLogRecord

__all__ = [
    "CacheEntry",
    "ConversationExchange",
    "EmbeddingVector",
    "RetrievedDocument",
    "WorkLogRecord",
]
