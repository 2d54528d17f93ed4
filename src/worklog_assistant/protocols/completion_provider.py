"""Completion provider protocol.

Defines the interface for an LLM chat-completion service that answers a
user message under a system prompt.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class CompletionProvider(Protocol):
    """Protocol for LLM completion services."""

    async def complete(self, system_prompt: str, user_message: str) -> str:
        """Generate an answer.

        Args:
            system_prompt: Instructions plus retrieved context
            user_message: The user's question

        Returns:
            Non-empty answer text

        Raises:
            CompletionError: On timeout, transport failure or invalid response
        """
        ...

    def get_stats(self) -> dict:
        """Return latency statistics for recent requests."""
        ...
