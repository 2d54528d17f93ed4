"""Document store protocol.

Defines the interface for the work log store that backs retrieval: a
semantic similarity query plus a plain recency listing used when semantic
search is unavailable.

Implementations can include:
- Redis Stack with vector search (default)
- MongoDB Atlas Vector Search
- PostgreSQL with pgvector
"""

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from worklog_assistant.entities import WorkLogRecord


@runtime_checkable
class DocumentStore(Protocol):
    """Protocol for work log storage backends.

    Records returned by both queries carry the author's name and division
    already joined in.
    """

    async def vector_search(
        self,
        vector: Sequence[float],
        num_candidates: int,
        limit: int,
    ) -> list[WorkLogRecord]:
        """Find work logs by vector similarity.

        Args:
            vector: The query embedding vector
            num_candidates: Size of the candidate pool considered by the index
            limit: Maximum number of results to return

        Returns:
            Records ranked by similarity, each with `score` set
        """
        ...

    async def list_recent(self, limit: int) -> list[WorkLogRecord]:
        """List the most recently created work logs.

        Args:
            limit: Maximum number of results to return

        Returns:
            Records newest first, with `score` unset
        """
        ...

    async def health_check(self) -> bool:
        """Check if the store is accessible."""
        ...
