"""
Tests for cache key derivation.
"""

import pytest

from worklog_assistant.keys import (
    embedding_fingerprint,
    full_vector_key,
    hash_text,
    make_fingerprint_fn,
    normalize_text,
)
from worklog_assistant.services import CacheService


def test_hash_text_is_stable_and_short():
    assert hash_text("What did Alice ship?") == hash_text("What did Alice ship?")
    assert hash_text("a") != hash_text("b")
    assert len(hash_text("anything")) == 16


def test_normalize_text_trims_but_keeps_case():
    assert normalize_text("  Hello World \n") == "Hello World"
    assert normalize_text("Hello") != normalize_text("hello")


def test_embedding_key_ignores_surrounding_whitespace():
    assert CacheService.embedding_key("  deploys this week ") == CacheService.embedding_key(
        "deploys this week"
    )
    assert CacheService.embedding_key("x").startswith("emb_")


def test_fingerprint_absorbs_jitter_below_precision():
    base = [0.12340, -0.56780, 0.90120, 0.00010]
    jittered = [0.123401, -0.567801, 0.901199, 0.000099]
    assert embedding_fingerprint(base) == embedding_fingerprint(jittered)


def test_fingerprint_folds_negative_zero():
    assert embedding_fingerprint([-0.00001, 0.5]) == embedding_fingerprint([0.00001, 0.5])


def test_fingerprint_differs_when_prefix_differs():
    assert embedding_fingerprint([0.1234, 0.5]) != embedding_fingerprint([0.1235, 0.5])


def test_fingerprint_only_reads_leading_dimensions():
    prefix = [0.01 * i for i in range(20)]
    a = prefix + [0.9, 0.8, 0.7]
    b = prefix + [-0.9, -0.8, -0.7]
    assert embedding_fingerprint(a) == embedding_fingerprint(b)
    assert embedding_fingerprint(a, dimensions=21) != embedding_fingerprint(b, dimensions=21)


def test_fingerprint_handles_vectors_shorter_than_prefix():
    assert embedding_fingerprint([0.5, 0.25]) == embedding_fingerprint((0.5, 0.25))


def test_fingerprint_rejects_empty_vector():
    with pytest.raises(ValueError):
        embedding_fingerprint([])


def test_make_fingerprint_fn_uses_its_parameters():
    coarse = make_fingerprint_fn(dimensions=2, precision=1)
    assert coarse([0.11, 0.22, 0.5]) == coarse([0.12, 0.18, -0.5])


def test_full_vector_key_distinguishes_tail_differences():
    prefix = [0.01 * i for i in range(20)]
    assert full_vector_key(prefix + [0.1]) != full_vector_key(prefix + [0.2])
    with pytest.raises(ValueError):
        full_vector_key([])


def test_cache_service_uses_pluggable_search_key_fn():
    service = CacheService(embedding_ttl=60, search_ttl=60, search_key_fn=full_vector_key)
    prefix = tuple(0.01 * i for i in range(20))
    assert service.search_key(prefix + (0.1,)) != service.search_key(prefix + (0.2,))
    assert service.search_key(prefix).startswith("search_")
