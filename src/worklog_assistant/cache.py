"""In-process keyed TTL cache with request coalescing.

`KeyedTTLCache` stores values with a lifetime and evicts them lazily on
lookup. `RequestCoalescer` makes concurrent callers for the same key share
one upstream computation. `CoalescingCache` combines the two so that a
value is computed at most once concurrently per key and served from
memory on repeat until it expires.

Bookkeeping is guarded by plain locks around map operations only; the
upstream computation always runs outside them.
"""

import asyncio
import logging
import threading
import time
from collections.abc import Awaitable, Callable
from functools import partial
from typing import Generic, TypeVar

from worklog_assistant.entities import CacheEntry
from worklog_assistant.models import CacheStats

logger = logging.getLogger(__name__)

V = TypeVar("V")

ComputeFn = Callable[[], Awaitable[V]]


class KeyedTTLCache(Generic[V]):
    """Maps string keys to values that expire after a time-to-live.

    There is no background sweeper: expired entries are treated as absent
    and evicted when looked up. `purge_expired` can be called for memory
    hygiene when key cardinality is high. Key count is otherwise bounded
    only by TTL.
    """

    def __init__(
        self,
        default_ttl: float,
        name: str = "cache",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the cache.

        Args:
            default_ttl: Lifetime in seconds for entries stored without an explicit ttl.
            name: Label used in logs and stats.
            clock: Monotonic clock returning seconds (injectable for tests).
        """
        if default_ttl <= 0:
            raise ValueError(f"default_ttl must be positive, got {default_ttl}")
        self._default_ttl = default_ttl
        self._name = name
        self._clock = clock
        self._entries: dict[str, CacheEntry[V]] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    @property
    def name(self) -> str:
        return self._name

    @property
    def default_ttl(self) -> float:
        return self._default_ttl

    def lookup(self, key: str) -> tuple[bool, V | None]:
        """Look up a live entry.

        Returns:
            (True, value) on a hit, (False, None) on a miss or expired entry
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry.is_expired(self._clock()):
                del self._entries[key]
                entry = None

            if entry is None:
                self._misses += 1
                return False, None

            self._hits += 1
            return True, entry.value

    def get(self, key: str) -> V | None:
        """Return the live value for `key`, or None."""
        _, value = self.lookup(key)
        return value

    def set(self, key: str, value: V, ttl: float | None = None) -> bool:
        """Store a value.

        Args:
            key: Cache key
            value: Value to store
            ttl: Lifetime in seconds. Defaults to the cache's default_ttl.
                A ttl of 0 or less means "do not cache".

        Returns:
            True if the value was stored
        """
        ttl = self._default_ttl if ttl is None else ttl
        if ttl <= 0:
            return False

        with self._lock:
            self._entries[key] = CacheEntry(
                key=key,
                value=value,
                inserted_at=self._clock(),
                ttl=ttl,
            )
        return True

    def delete(self, key: str) -> bool:
        """Remove an entry. Returns True if one was present."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> int:
        """Remove all entries and reset counters.

        Returns:
            Number of entries removed
        """
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            self._hits = 0
            self._misses = 0
        return count

    def purge_expired(self) -> int:
        """Evict every expired entry.

        Returns:
            Number of entries evicted
        """
        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def stats(self) -> CacheStats:
        """Current key count and hit/miss counters."""
        with self._lock:
            return CacheStats(keys=len(self._entries), hits=self._hits, misses=self._misses)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            entry = self._entries.get(key)  # type: ignore[arg-type]
            return entry is not None and not entry.is_expired(self._clock())


class RequestCoalescer(Generic[V]):
    """Deduplicates concurrent in-flight computations by key.

    The first caller for a key starts the computation as a task and
    registers it; callers arriving while it is pending await the same
    task. The registration is removed when the task settles, whether it
    succeeded or failed, so a failure is never served to later callers.
    """

    def __init__(self) -> None:
        self._in_flight: dict[str, asyncio.Future[V]] = {}
        self._lock = threading.Lock()

    @property
    def in_flight(self) -> int:
        """Number of computations currently pending."""
        with self._lock:
            return len(self._in_flight)

    def is_in_flight(self, key: str) -> bool:
        with self._lock:
            return key in self._in_flight

    def join_or_start(
        self,
        key: str,
        compute_fn: ComputeFn[V],
        on_success: Callable[[V], object] | None = None,
    ) -> tuple["asyncio.Future[V]", bool]:
        """Return the pending computation for `key`, starting one if needed.

        Must be called from a running event loop.

        Args:
            key: Deduplication key
            compute_fn: Zero-argument callable returning an awaitable
            on_success: Called with the result before the registration is
                removed; only used when a new computation is started

        Returns:
            (future, started) where `started` is True if this call started it
        """
        with self._lock:
            pending = self._in_flight.get(key)
            if pending is not None:
                return pending, False

            future = asyncio.ensure_future(compute_fn())
            self._in_flight[key] = future
            future.add_done_callback(partial(self._settle, key, on_success=on_success))
            return future, True

    async def run(self, key: str, compute_fn: ComputeFn[V]) -> V:
        """Run `compute_fn` once for all concurrent callers with the same key."""
        future, _ = self.join_or_start(key, compute_fn)
        # shield: one caller being cancelled must not cancel the shared work
        return await asyncio.shield(future)

    def clear(self) -> None:
        """Forget all registrations. Pending computations keep running."""
        with self._lock:
            self._in_flight.clear()

    def _settle(
        self,
        key: str,
        future: "asyncio.Future[V]",
        on_success: Callable[[V], object] | None,
    ) -> None:
        try:
            # exception() also marks the error as retrieved when nobody is left waiting
            if not future.cancelled() and future.exception() is None and on_success is not None:
                on_success(future.result())
        finally:
            with self._lock:
                if self._in_flight.get(key) is future:
                    del self._in_flight[key]


class CoalescingCache(Generic[V]):
    """A KeyedTTLCache fronted by a RequestCoalescer.

    Example:
        ```python
        embeddings = CoalescingCache(KeyedTTLCache(default_ttl=3600, name="embedding"))
        vector = await embeddings.get_or_compute(key, lambda: provider.encode(text))
        ```
    """

    def __init__(
        self,
        cache: KeyedTTLCache[V],
        coalescer: RequestCoalescer[V] | None = None,
    ) -> None:
        self._cache = cache
        self._coalescer = coalescer if coalescer is not None else RequestCoalescer()
        self._lock = threading.Lock()
        # bumped by clear(); computations started earlier do not write back
        self._generation = 0

    @property
    def cache(self) -> KeyedTTLCache[V]:
        return self._cache

    @property
    def coalescer(self) -> RequestCoalescer[V]:
        return self._coalescer

    async def get_or_compute(
        self,
        key: str,
        compute_fn: ComputeFn[V],
        ttl: float | None = None,
    ) -> V:
        """Return the cached value for `key`, computing it at most once concurrently.

        1. A live cache entry is returned immediately.
        2. Otherwise a pending computation for `key` is awaited.
        3. Otherwise `compute_fn` is started; on success its value is cached
           with `ttl`, on failure nothing is cached and every waiter gets
           the same exception.

        Args:
            key: Cache key
            compute_fn: Zero-argument callable returning an awaitable
            ttl: Lifetime in seconds. Defaults to the cache's default_ttl;
                0 or less computes (still coalesced) without caching.

        Returns:
            The cached or freshly computed value
        """
        ttl = self._cache.default_ttl if ttl is None else ttl

        # check cache -> check in-flight -> register must not interleave
        with self._lock:
            found, value = self._cache.lookup(key)
            if found:
                return value  # type: ignore[return-value]

            on_success = partial(self._store, key, ttl, self._generation) if ttl > 0 else None
            future, started = self._coalescer.join_or_start(key, compute_fn, on_success)

        if not started:
            logger.debug("%s: joined in-flight computation for key %s", self._cache.name, key)

        return await asyncio.shield(future)

    def clear(self) -> int:
        """Clear cached values and in-flight registrations.

        Computations already running still resolve for their waiters, but
        their results are not stored.
        """
        with self._lock:
            self._generation += 1
            self._coalescer.clear()
            return self._cache.clear()

    def _store(self, key: str, ttl: float, generation: int, value: V) -> None:
        with self._lock:
            if generation != self._generation:
                logger.debug("%s: dropping stale result for key %s", self._cache.name, key)
                return
            self._cache.set(key, value, ttl=ttl)
