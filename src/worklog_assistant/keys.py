"""Cache key derivation for embeddings and search results.

Embedding entries are keyed by a hash of the trimmed question text.
Search entries are keyed by a fingerprint of the query vector: the first
few dimensions, rounded, joined and hashed. Two noisy repeats of the same
question land on the same key; two close but distinct questions may too,
which the search cache tolerates.
"""

import hashlib
from collections.abc import Callable, Sequence

DEFAULT_FINGERPRINT_DIMENSIONS = 20
DEFAULT_FINGERPRINT_PRECISION = 4

# Maps a query vector to a search cache key.
SearchKeyFn = Callable[[Sequence[float]], str]


def normalize_text(text: str) -> str:
    """Trim surrounding whitespace. Case is kept: embeddings are case-sensitive."""
    return text.strip()


def hash_text(text: str) -> str:
    """Return a short, stable, non-cryptographic hash of `text`."""
    return hashlib.blake2b(text.encode("utf-8"), digest_size=8).hexdigest()


def embedding_fingerprint(
    vector: Sequence[float],
    dimensions: int = DEFAULT_FINGERPRINT_DIMENSIONS,
    precision: int = DEFAULT_FINGERPRINT_PRECISION,
) -> str:
    """Derive a search cache key from the leading dimensions of a vector.

    Args:
        vector: The query embedding
        dimensions: How many leading dimensions to sample
        precision: Decimal places each sampled value is rounded to

    Returns:
        Hash of the rounded, comma-joined prefix

    Raises:
        ValueError: If the vector is empty
    """
    if len(vector) == 0:
        raise ValueError("Cannot fingerprint an empty embedding")

    # + 0.0 folds -0.0 into 0.0 so tiny negative jitter keeps the same key
    sample = [f"{round(float(v), precision) + 0.0:.{precision}f}" for v in vector[:dimensions]]
    return hash_text(",".join(sample))


def make_fingerprint_fn(
    dimensions: int = DEFAULT_FINGERPRINT_DIMENSIONS,
    precision: int = DEFAULT_FINGERPRINT_PRECISION,
) -> SearchKeyFn:
    """Build a search key function with fixed fingerprint parameters."""

    def fingerprint(vector: Sequence[float]) -> str:
        return embedding_fingerprint(vector, dimensions=dimensions, precision=precision)

    return fingerprint


def full_vector_key(vector: Sequence[float]) -> str:
    """Exact-duplicate key over the whole vector, for callers that want no collisions."""
    if len(vector) == 0:
        raise ValueError("Cannot derive a key from an empty embedding")
    return hash_text(",".join(repr(float(v)) for v in vector))
