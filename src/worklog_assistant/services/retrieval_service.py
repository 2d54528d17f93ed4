"""Retrieval of work logs for a question embedding.

Semantic search first; when it raises or finds nothing, the most recent
work logs stand in so the pipeline always gets a document set of the
same shape. Fallback documents carry no relevance score.
"""

import logging
from collections.abc import Sequence

from worklog_assistant.config import settings
from worklog_assistant.entities import RetrievedDocument, WorkLogRecord
from worklog_assistant.protocols import DocumentStore

logger = logging.getLogger(__name__)


def truncate(text: str, limit: int) -> tuple[str, bool]:
    """Cut `text` to at most `limit` characters.

    Returns:
        (text, truncated)
    """
    if len(text) <= limit:
        return text, False
    return text[:limit], True


class RetrievalService:
    """Finds the work logs most relevant to a query vector.

    `search` never raises: store failures are logged and degrade to the
    recency listing, and a failing recency listing yields an empty list.
    """

    def __init__(
        self,
        store: DocumentStore,
        limit: int | None = None,
        num_candidates: int | None = None,
        content_char_limit: int | None = None,
        fallback_content_char_limit: int | None = None,
    ) -> None:
        """Initialize the retrieval service.

        Args:
            store: Work log store.
            limit: Default number of documents per query. Defaults to settings.
            num_candidates: Candidate pool for the vector index. Defaults to settings.
            content_char_limit: Content budget for semantic results.
            fallback_content_char_limit: Content budget for fallback results.
        """
        self._store = store
        self._limit = limit or settings.search_limit
        self._num_candidates = num_candidates or settings.search_num_candidates
        self._content_limit = content_char_limit or settings.content_char_limit
        self._fallback_content_limit = (
            fallback_content_char_limit or settings.fallback_content_char_limit
        )

    @classmethod
    def create(cls, store: DocumentStore, limit: int | None = None) -> "RetrievalService":
        """Factory method to create RetrievalService with defaults."""
        return cls(store=store, limit=limit)

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def store(self) -> DocumentStore:
        return self._store

    @staticmethod
    def _to_document(record: WorkLogRecord, char_limit: int, keep_score: bool) -> RetrievedDocument:
        content, truncated = truncate(record.content, char_limit)
        return RetrievedDocument(
            title=record.title,
            content=content,
            tags=record.tags,
            created_at=record.created_at,
            author_name=record.author_name,
            author_division=record.author_division,
            score=record.score if keep_score else None,
            truncated=truncated,
        )

    async def search(
        self,
        vector: Sequence[float],
        limit: int | None = None,
    ) -> list[RetrievedDocument]:
        """Return up to `limit` work logs for `vector`.

        Args:
            vector: Query embedding
            limit: Number of documents. Defaults to the service limit.

        Returns:
            Semantic results ranked by score, or the most recent work logs
            without a score when semantic search is unavailable
        """
        limit = limit or self._limit

        try:
            records = await self._store.vector_search(
                vector, num_candidates=self._num_candidates, limit=limit
            )
        except Exception as e:
            logger.warning("Semantic search failed, using recent work logs: %s", e)
            return await self.fallback(limit)

        if not records:
            logger.warning("Semantic search returned no results, using recent work logs")
            return await self.fallback(limit)

        return [self._to_document(r, self._content_limit, keep_score=True) for r in records[:limit]]

    async def fallback(self, limit: int | None = None) -> list[RetrievedDocument]:
        """Return the `limit` most recently created work logs, without scores."""
        limit = limit or self._limit
        try:
            records = await self._store.list_recent(limit)
        except Exception:
            logger.exception("Recent work log listing failed")
            return []

        return [
            self._to_document(r, self._fallback_content_limit, keep_score=False)
            for r in records[:limit]
        ]
