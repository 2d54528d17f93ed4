"""OpenAI-compatible HTTP embedding provider.

Posts to a `/v1/embeddings` endpoint and normalizes the response into a
fixed-length vector. Any service speaking the OpenAI embeddings wire
format works (OpenAI, Azure OpenAI, vLLM, LiteLLM, Ollama's OpenAI shim).

Request:
    {"model": "...", "input": "text", "encoding_format": "float"}

Response:
    {"data": [{"embedding": [0.0123, -0.0456, ...]}]}
"""

import logging
from typing import Any

import httpx

from worklog_assistant.config import settings
from worklog_assistant.entities import EmbeddingVector
from worklog_assistant.errors import EmbeddingError

logger = logging.getLogger(__name__)


def normalize_embedding(data: Any, expected_dimension: int | None = None) -> EmbeddingVector:
    """Extract and validate the embedding from an OpenAI-style response body.

    Args:
        data: Decoded JSON response
        expected_dimension: If set, the vector must have exactly this length

    Returns:
        The embedding as an immutable tuple of floats

    Raises:
        EmbeddingError: If the body has no usable embedding
    """
    try:
        embedding = data["data"][0]["embedding"]
    except (KeyError, IndexError, TypeError) as e:
        raise EmbeddingError("Invalid embedding format from API") from e

    if not isinstance(embedding, list) or len(embedding) == 0:
        raise EmbeddingError("Embedding is not a non-empty array")

    try:
        vector = tuple(float(v) for v in embedding)
    except (TypeError, ValueError) as e:
        raise EmbeddingError("Embedding contains non-numeric values") from e

    if expected_dimension is not None and len(vector) != expected_dimension:
        raise EmbeddingError(
            f"Embedding has {len(vector)} dimensions, expected {expected_dimension}"
        )

    return vector


class HttpEmbeddingProvider:
    """HTTP implementation of EmbeddingProvider protocol.

    This class satisfies the EmbeddingProvider protocol through structural
    typing - no explicit inheritance needed.

    Example:
        ```python
        provider = HttpEmbeddingProvider.create(
            api_url="https://api.openai.com/v1/embeddings",
            model_name="text-embedding-3-large",
        )
        embedding = await provider.encode("What did Alice ship last week?")
        print(len(embedding))  # 3072
        ```
    """

    def __init__(
        self,
        api_url: str | None = None,
        api_key: str | None = None,
        model_name: str | None = None,
        dimension: int | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the HTTP embedding provider.

        Args:
            api_url: Embeddings endpoint. Defaults to settings.embedding_api_url.
            api_key: Bearer token. Defaults to settings.embedding_api_key.
            model_name: Model identifier. Defaults to settings.embedding_model.
            dimension: Expected vector length. Defaults to settings.embedding_dimension.
            timeout: Request timeout in seconds. Defaults to settings.embedding_timeout.
            client: Pre-built async HTTP client (tests inject a mock transport here).
        """
        self._api_url = api_url or settings.embedding_api_url
        self._api_key = api_key if api_key is not None else settings.embedding_api_key
        self._model_name = model_name or settings.embedding_model
        self._dimension = dimension or settings.embedding_dimension
        self._timeout = timeout or settings.embedding_timeout
        self._client = client

    @classmethod
    def create(
        cls,
        api_url: str | None = None,
        model_name: str | None = None,
        dimension: int | None = None,
    ) -> "HttpEmbeddingProvider":
        """Factory method to create HttpEmbeddingProvider with defaults.

        Args:
            api_url: Embeddings endpoint. If None, uses settings.
            model_name: Model name. If None, uses settings.
            dimension: Expected vector length. If None, uses settings.

        Returns:
            Configured HttpEmbeddingProvider
        """
        return cls(api_url=api_url, model_name=model_name, dimension=dimension)

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-load the async HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
            )
        return self._client

    @property
    def dimension(self) -> int:
        """Get the embedding vector dimension."""
        return self._dimension

    @property
    def model_name(self) -> str:
        """Get the model name/identifier."""
        return self._model_name

    async def encode(self, text: str) -> EmbeddingVector:
        """Generate embedding vector for a single text.

        Args:
            text: The text to encode

        Returns:
            The embedding vector

        Raises:
            EmbeddingError: If the text is empty, the request fails or the
                response is malformed
        """
        if not isinstance(text, str) or not text.strip():
            raise EmbeddingError("Invalid text input for embedding")

        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"

        payload = {
            "model": self._model_name,
            "input": text.strip(),
            "encoding_format": "float",
        }

        try:
            response = await self.client.post(self._api_url, json=payload, headers=headers)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "Embedding API returned %s: %s", e.response.status_code, e.response.text[:200]
            )
            raise EmbeddingError(f"Embedding API error: {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error("Embedding API request failed: %s", e)
            raise EmbeddingError(f"Embedding API request failed: {e}") from e
        except ValueError as e:
            raise EmbeddingError("Embedding API returned invalid JSON") from e

        return normalize_embedding(data, expected_dimension=self._dimension)

    async def is_available(self) -> bool:
        """Check if the embedding endpoint answers with a valid vector."""
        try:
            await self.encode("test")
            return True
        except EmbeddingError:
            return False

    async def close(self) -> None:
        """Close the async HTTP client.

        Should be called when shutting down the application.
        """
        if self._client is not None:
            await self._client.aclose()
            self._client = None
