"""Local sentence-transformers embedding provider.

Runs a sentence-transformers model in-process. Useful for development
and for deployments without an embeddings API. Encoding is CPU-bound,
so it runs in a worker thread to keep the event loop responsive.

Work logs must be embedded with the same model that answers queries;
re-seed the store after switching providers.
"""

import asyncio
import logging
import time

import numpy as np
from sentence_transformers import SentenceTransformer

from worklog_assistant.config import settings
from worklog_assistant.entities import EmbeddingVector
from worklog_assistant.errors import EmbeddingError

logger = logging.getLogger(__name__)


class LocalEmbeddingProvider:
    """Local sentence-transformers implementation of EmbeddingProvider.

    This class satisfies the EmbeddingProvider protocol through structural
    typing - no explicit inheritance needed.
    """

    def __init__(self, model_name: str | None = None) -> None:
        """Initialize the local embedding provider.

        Args:
            model_name: Name of the sentence-transformers model.
                       Defaults to settings.local_embedding_model.
        """
        self._model_name = model_name or settings.local_embedding_model
        self._model: SentenceTransformer | None = None
        self._dimension: int | None = None

    @classmethod
    def create(cls, model_name: str | None = None) -> "LocalEmbeddingProvider":
        """Factory method to create LocalEmbeddingProvider with defaults."""
        return cls(model_name=model_name)

    @property
    def model(self) -> SentenceTransformer:
        """Lazy-load the embedding model."""
        if self._model is None:
            logger.info("Loading embedding model: %s", self._model_name)
            start_time = time.time()
            self._model = SentenceTransformer(self._model_name)
            logger.info("Model loaded in %.2fs", time.time() - start_time)
        return self._model

    @property
    def dimension(self) -> int:
        """Get the embedding vector dimension."""
        if self._dimension is None:
            sample_embedding = self.model.encode(["test"], show_progress_bar=False)
            self._dimension = len(sample_embedding[0])
        return self._dimension

    @property
    def model_name(self) -> str:
        """Get the model name/identifier."""
        return self._model_name

    def _encode_sync(self, text: str) -> EmbeddingVector:
        embedding = self.model.encode(
            text,
            show_progress_bar=False,
            normalize_embeddings=True,
        )
        if isinstance(embedding, np.ndarray) and embedding.ndim > 1:
            embedding = embedding[0]
        return tuple(float(v) for v in embedding)

    async def encode(self, text: str) -> EmbeddingVector:
        """Generate embedding vector for a single text.

        Raises:
            EmbeddingError: If the text is empty or the model fails
        """
        if not isinstance(text, str) or not text.strip():
            raise EmbeddingError("Invalid text input for embedding")

        try:
            vector = await asyncio.to_thread(self._encode_sync, text.strip())
        except Exception as e:
            logger.exception("Local embedding failed")
            raise EmbeddingError(f"Local embedding failed: {e}") from e

        if not vector:
            raise EmbeddingError("Model returned an empty embedding")
        return vector

    async def is_available(self) -> bool:
        """Check if the model can be loaded."""
        try:
            await asyncio.to_thread(lambda: self.model)
            return True
        except Exception:
            return False
