from collections import deque
from dataclasses import dataclass


@dataclass
class CacheStats:
    """Hit/miss counters for one keyed cache."""

    keys: int = 0
    hits: int = 0
    misses: int = 0

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total

    def to_dict(self) -> dict[str, float | int]:
        """Convert stats to dictionary."""
        return {
            "keys": self.keys,
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": self.hit_rate,
        }


class LatencyWindow:
    """Rolling window of the most recent request durations."""

    def __init__(self, size: int = 100) -> None:
        if size < 1:
            raise ValueError("Latency window size must be at least 1")
        self._durations: deque[float] = deque(maxlen=size)

    def record(self, duration_ms: float) -> None:
        """Record a request duration, dropping the oldest once full."""
        self._durations.append(duration_ms)

    @property
    def average_ms(self) -> float:
        """Average duration over the window, 0 when empty."""
        if not self._durations:
            return 0.0
        return sum(self._durations) / len(self._durations)

    def recent(self, count: int = 10) -> list[float]:
        """The last `count` durations, oldest first."""
        if count <= 0:
            return []
        return list(self._durations)[-count:]

    def __len__(self) -> int:
        return len(self._durations)

    def to_dict(self) -> dict[str, float | int | list[float]]:
        """Convert window summary to dictionary."""
        return {
            "average_response_time": round(self.average_ms),
            "total_requests": len(self._durations),
            "recent_times": self.recent(10),
        }


@dataclass
class PhaseTimings:
    """Per-phase wall-clock timings of one chat pipeline run, in milliseconds."""

    embedding_ms: float = 0.0
    search_ms: float = 0.0
    ai_ms: float = 0.0
    total_ms: float = 0.0

    def to_dict(self) -> dict[str, float]:
        """Convert timings to dictionary."""
        return {
            "embedding": self.embedding_ms,
            "search": self.search_ms,
            "ai": self.ai_ms,
            "total": self.total_ms,
        }

    def share_of_total(self) -> dict[str, float]:
        """Each phase as a percentage of the total, one decimal; 0 when nothing was timed."""
        phases = {"embedding": self.embedding_ms, "search": self.search_ms, "ai": self.ai_ms}
        if self.total_ms <= 0:
            return {name: 0.0 for name in phases}
        return {name: round(ms / self.total_ms * 100, 1) for name, ms in phases.items()}
