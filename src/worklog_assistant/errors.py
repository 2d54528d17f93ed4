"""Exception types raised by the chat pipeline.

Retrieval problems have no exception type here: the retrieval service
absorbs them and falls back to recent work logs.
"""


class AssistantError(Exception):
    """Base class for all work log assistant errors."""


class InputError(AssistantError):
    """The inbound question is missing or empty.

    Raised before any upstream call is made. The message is safe to show
    to the client verbatim.
    """


class EmbeddingError(AssistantError):
    """The embedding upstream failed or returned an unusable vector."""


class CompletionError(AssistantError):
    """The LLM completion upstream could not produce an answer."""


class CompletionTimeout(CompletionError):
    """The completion request exceeded its wall-clock timeout and was cancelled."""


class CompletionInvalidResponse(CompletionError):
    """The completion response had an unexpected shape or empty answer text."""


class CompletionTransportError(CompletionError):
    """The completion request failed at the transport or HTTP status level."""


class PersistenceError(AssistantError):
    """A completed exchange could not be written to the chat history store."""
