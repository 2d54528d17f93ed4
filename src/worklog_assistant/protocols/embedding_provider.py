"""Embedding provider protocol.

Defines the interface for any embedding generation service that can
convert text to vector embeddings.

Implementations can include:
- An OpenAI-compatible HTTP embeddings endpoint (default)
- sentence-transformers running locally
- Any other service returning a fixed-length float vector
"""

from typing import Protocol, runtime_checkable

from worklog_assistant.entities import EmbeddingVector


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Protocol for embedding generation services.

    Any type that implements these methods satisfies the protocol,
    no explicit inheritance needed.

    Example:
        ```python
        provider: EmbeddingProvider = HttpEmbeddingProvider.create()
        provider: EmbeddingProvider = LocalEmbeddingProvider.create()
        ```
    """

    @property
    def dimension(self) -> int:
        """Return the dimension of the embedding vectors.

        Returns:
            The vector dimension (e.g., 3072 for text-embedding-3-large)
        """
        ...

    @property
    def model_name(self) -> str:
        """Return the name/identifier of the model."""
        ...

    async def encode(self, text: str) -> EmbeddingVector:
        """Generate embedding vector for a single text.

        Args:
            text: The text to encode

        Returns:
            The embedding vector as an immutable tuple of floats

        Raises:
            EmbeddingError: On transport failure or an unusable response.
                Never returns an empty vector.
        """
        ...

    async def is_available(self) -> bool:
        """Check if the embedding provider is available.

        Returns:
            True if available, False otherwise
        """
        ...
