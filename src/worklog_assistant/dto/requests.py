"""Request DTOs for API endpoints."""

from pydantic import BaseModel, Field


class ChatMessageRequest(BaseModel):
    """Request DTO for asking the assistant a question.

    `message` is optional at the schema level so that a missing or blank
    question reaches the service and gets the same 400 response.
    """

    message: str | None = Field(None, description="The question about the work logs")
    session_id: str | None = Field(
        None,
        description="Conversation to continue. A new id is generated if omitted.",
    )
