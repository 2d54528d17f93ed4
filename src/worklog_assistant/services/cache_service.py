"""Cache service for embeddings and search results.

Owns the two process-wide coalescing caches of the chat pipeline:

- embeddings, keyed by a hash of the trimmed question (1 hour)
- search results, keyed by a fingerprint of the query vector (5 minutes)

Callers pass the upstream call as a zero-argument function; the service
decides whether it runs.
"""

import logging
from collections.abc import Awaitable, Callable, Sequence

from worklog_assistant.cache import CoalescingCache, KeyedTTLCache
from worklog_assistant.config import settings
from worklog_assistant.entities import EmbeddingVector, RetrievedDocument
from worklog_assistant.keys import SearchKeyFn, hash_text, make_fingerprint_fn, normalize_text

logger = logging.getLogger(__name__)

# Shared by every caller that hits the entry, so stored as a tuple.
SearchResults = tuple[RetrievedDocument, ...]


class CacheService:
    """Process-wide embedding and search caches with request coalescing.

    Construct one instance at startup and share it; separate instances
    do not share entries or in-flight work.

    Example:
        ```python
        caches = CacheService.create()
        vector = await caches.get_embedding(question, lambda: provider.encode(question))
        docs = await caches.get_search_results(vector, lambda: retrieval.search(vector))
        ```
    """

    def __init__(
        self,
        embedding_ttl: float | None = None,
        search_ttl: float | None = None,
        search_key_fn: SearchKeyFn | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        """Initialize the cache service.

        Args:
            embedding_ttl: Embedding entry lifetime in seconds. Defaults to settings.
            search_ttl: Search entry lifetime in seconds. Defaults to settings.
            search_key_fn: Maps a query vector to a search key. Defaults to
                the prefix fingerprint configured in settings.
            clock: Monotonic clock override for both caches (tests).
        """
        clock_kwargs = {"clock": clock} if clock is not None else {}
        self._embeddings: CoalescingCache[EmbeddingVector] = CoalescingCache(
            KeyedTTLCache(
                embedding_ttl or settings.embedding_cache_ttl, name="embedding", **clock_kwargs
            )
        )
        self._searches: CoalescingCache[SearchResults] = CoalescingCache(
            KeyedTTLCache(search_ttl or settings.search_cache_ttl, name="search", **clock_kwargs)
        )
        self._search_key_fn = search_key_fn or make_fingerprint_fn(
            dimensions=settings.fingerprint_dimensions,
            precision=settings.fingerprint_precision,
        )

    @classmethod
    def create(cls, search_key_fn: SearchKeyFn | None = None) -> "CacheService":
        """Factory method to create CacheService with TTLs from settings."""
        return cls(search_key_fn=search_key_fn)

    @staticmethod
    def embedding_key(text: str) -> str:
        return f"emb_{hash_text(normalize_text(text))}"

    def search_key(self, vector: EmbeddingVector) -> str:
        return f"search_{self._search_key_fn(vector)}"

    async def get_embedding(
        self,
        text: str,
        generate_fn: Callable[[], Awaitable[EmbeddingVector]],
    ) -> EmbeddingVector:
        """Return the embedding of `text`, generating it at most once concurrently.

        Failures are not cached; every concurrent waiter gets the error.
        """
        return await self._embeddings.get_or_compute(self.embedding_key(text), generate_fn)

    async def get_search_results(
        self,
        vector: EmbeddingVector,
        search_fn: Callable[[], Awaitable[Sequence[RetrievedDocument]]],
    ) -> SearchResults:
        """Return search results for `vector`, searching at most once concurrently.

        Raises:
            ValueError: If the vector is empty
        """

        async def search() -> SearchResults:
            return tuple(await search_fn())

        return await self._searches.get_or_compute(self.search_key(vector), search)

    def clear_all(self) -> dict[str, int]:
        """Drop every cached entry and reset counters.

        Computations already running complete normally but are neither joined
        by later callers nor stored.

        Returns:
            Number of entries removed per cache
        """
        cleared = {
            "embedding": self._embeddings.clear(),
            "search": self._searches.clear(),
        }
        logger.info(
            "Cleared caches: %d embeddings, %d searches", cleared["embedding"], cleared["search"]
        )
        return cleared

    def purge_expired(self) -> int:
        """Evict expired entries from both caches. Returns how many were evicted."""
        return self._embeddings.cache.purge_expired() + self._searches.cache.purge_expired()

    def get_stats(self) -> dict:
        """Get cache statistics.

        Returns:
            {"embedding": {...}, "search": {...}, "in_flight": {...}}
        """
        return {
            "embedding": self._embeddings.cache.stats().to_dict(),
            "search": self._searches.cache.stats().to_dict(),
            "in_flight": {
                "embedding": self._embeddings.coalescer.in_flight,
                "search": self._searches.coalescer.in_flight,
            },
        }
