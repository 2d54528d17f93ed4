"""Context assembly and system prompt construction.

The context is a plain-text rendering of the retrieved work logs, one
numbered block per log:

    Log #1 [95%]
    Title: Migrate billing to Postgres
    Author: Alice (Platform) | Date: Oct 15, 2025
    Tags: database, billing
    Content: Moved the invoice tables ...

Blocks are separated by a `---` line. The relevance percentage appears
only for semantic search results.
"""

from collections.abc import Sequence
from datetime import datetime

from worklog_assistant.entities import RetrievedDocument

BLOCK_SEPARATOR = "\n\n---\n\n"
TRUNCATION_MARKER = "..."

SYSTEM_PROMPT_TEMPLATE = """You are a work log assistant. Answer based ONLY on the logs below.

Rules:
- Cite sources (e.g., "Per Sarah's Oct 15 log...")
- Mention all contributors if multiple people worked on it
- Be concise yet thorough
- If info isn't in logs, say "not found in available logs"

{context}

Answer the user's question using these logs."""


def format_date(value: datetime | None) -> str:
    """Render a date as e.g. "Oct 15, 2025"."""
    if value is None:
        return "Unknown date"
    return f"{value:%b} {value.day}, {value.year}"


def prepare_text_for_embedding(
    title: str | None,
    content: str | None,
    tags: Sequence[str] | None = None,
) -> str:
    """Combine a work log's title, content and tags into the text that gets embedded."""
    parts = []
    if title:
        parts.append(f"Title: {title}")
    if content:
        parts.append(f"Content: {content}")
    if tags:
        parts.append(f"Tags: {', '.join(tags)}")
    return "\n".join(parts)


class ContextAssembler:
    """Renders retrieved work logs into a bounded context block."""

    def render_document(self, index: int, document: RetrievedDocument) -> str:
        """Render one document as a numbered block (1-based `index`)."""
        relevance = f" [{document.score * 100:.0f}%]" if document.score is not None else ""
        division = f" ({document.author_division})" if document.author_division else ""
        tags = ", ".join(document.tags) if document.tags else "None"
        content = document.content or "No content"
        if document.truncated:
            content += TRUNCATION_MARKER

        return (
            f"Log #{index}{relevance}\n"
            f"Title: {document.title}\n"
            f"Author: {document.author_name or 'Unknown'}{division}"
            f" | Date: {format_date(document.created_at)}\n"
            f"Tags: {tags}\n"
            f"Content: {content}"
        )

    def build_context(self, documents: Sequence[RetrievedDocument]) -> str | None:
        """Render `documents` as numbered blocks.

        Returns:
            The context text, or None when there are no documents. None
            tells the caller to skip the completion call.
        """
        if not documents:
            return None
        return BLOCK_SEPARATOR.join(
            self.render_document(i, doc) for i, doc in enumerate(documents, start=1)
        )


class PromptBuilder:
    """Wraps an assembled context in the fixed instruction header."""

    def __init__(self, template: str = SYSTEM_PROMPT_TEMPLATE) -> None:
        if "{context}" not in template:
            raise ValueError("Prompt template must contain a {context} placeholder")
        self._template = template

    def build_system_prompt(self, context: str) -> str:
        return self._template.replace("{context}", context)
