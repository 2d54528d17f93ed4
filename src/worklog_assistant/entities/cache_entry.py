"""Cache entry domain entity."""

from dataclasses import dataclass
from typing import Generic, TypeVar

V = TypeVar("V")


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    """Domain entity for a value held by a KeyedTTLCache.

    Entries are owned by a single cache and expire lazily: the cache
    checks `is_expired` on lookup and evicts the entry when it is stale.

    Attributes:
        key: The cache key
        value: The cached value
        inserted_at: Clock reading when the entry was stored (seconds)
        ttl: Time-to-live in seconds
    """

    key: str
    value: V
    inserted_at: float
    ttl: float

    @property
    def expires_at(self) -> float:
        """Clock reading after which the entry is stale."""
        return self.inserted_at + self.ttl

    def is_expired(self, now: float) -> bool:
        """Check whether the entry has outlived its TTL."""
        return now >= self.expires_at
