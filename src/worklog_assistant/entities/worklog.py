"""Work log domain entities."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

# Produced once per distinct input text and shared by every caller that
# asked for it, so it must not be mutable.
EmbeddingVector = tuple[float, ...]


@dataclass(frozen=True)
class WorkLogRecord:
    """A work log as returned by the document store.

    The store has already joined the author's name and division. `score`
    is the similarity score for vector search results and None for
    recency listings.

    Attributes:
        id: Storage identifier
        title: Work log title
        content: Full, untruncated content
        tags: Tag list
        created_at: Creation time
        author_name: Name of the author, if the author still exists
        author_division: Division of the author, if known
        score: Similarity score (0-1), vector search only
    """

    id: str
    title: str
    content: str
    tags: tuple[str, ...] = ()
    created_at: datetime | None = None
    author_name: str | None = None
    author_division: str | None = None
    score: float | None = None


@dataclass(frozen=True)
class RetrievedDocument:
    """A work log prepared for context assembly.

    Semantic search results and fallback results share this shape; only
    `score` differs (None for fallback results).

    Attributes:
        title: Work log title
        content: Content cut to the retrieval character budget
        tags: Tag list
        created_at: Creation time
        author_name: Name of the author
        author_division: Division of the author
        score: Relevance score, present only for semantic search results
        truncated: Whether `content` was cut short
    """

    title: str
    content: str
    tags: tuple[str, ...] = ()
    created_at: datetime | None = None
    author_name: str | None = None
    author_division: str | None = None
    score: float | None = None
    truncated: bool = False

    def as_dict(self) -> dict[str, Any]:
        """Plain dict view; the `score` key is omitted for fallback results."""
        data = asdict(self)
        data["tags"] = list(self.tags)
        if self.score is None:
            del data["score"]
        return data


@dataclass(frozen=True)
class ConversationExchange:
    """One completed question/answer exchange.

    Produced by the chat orchestrator and handed to the chat history store.

    Attributes:
        session_id: Conversation identifier
        question: The user's question
        answer: The answer returned to the user
        documents_used: Number of work logs used as context (0 for no-context answers)
        created_at: When the exchange completed
    """

    session_id: str
    question: str
    answer: str
    documents_used: int
    created_at: datetime = field(default_factory=datetime.now)
