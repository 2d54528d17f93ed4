"""Chat history store protocol.

Defines the interface for persisting completed conversation exchanges
and reading them back per session.
"""

from typing import Protocol, runtime_checkable

from worklog_assistant.entities import ConversationExchange


@runtime_checkable
class ChatHistoryStore(Protocol):
    """Protocol for chat history backends."""

    async def save(self, exchange: ConversationExchange) -> None:
        """Persist a completed exchange.

        Raises:
            PersistenceError: If the exchange could not be stored
        """
        ...

    async def list_session(self, session_id: str) -> list[ConversationExchange]:
        """Return all exchanges of a session, oldest first."""
        ...

    async def list_sessions(self, page: int, limit: int) -> tuple[list[dict], int]:
        """Return one page of session summaries, most recently updated first.

        Args:
            page: 1-based page number
            limit: Sessions per page

        Returns:
            (summaries, total_sessions). Each summary has session_id,
            first_message, last_response, message_count, created_at and
            updated_at.
        """
        ...

    async def delete_session(self, session_id: str) -> int:
        """Delete all exchanges of a session.

        Returns:
            Number of exchanges deleted
        """
        ...
