import pytest

from embeddings.cache import EmbeddingCache, make_cache_key


def test_cache_evicts_oldest_insertion_first() -> None:
    cache = EmbeddingCache(max_size=2)
    cache.set("a", [1.0])
    cache.set("b", [2.0])

    # Reads do not refresh position (FIFO, not LRU)
    assert cache.get("a") == [1.0]
    cache.set("c", [3.0])

    assert "a" not in cache
    assert cache.keys() == ["b", "c"]


def test_overwriting_key_keeps_insertion_slot() -> None:
    cache = EmbeddingCache(max_size=2)
    cache.set("a", [1.0])
    cache.set("b", [2.0])
    cache.set("a", [9.0])
    cache.set("c", [3.0])

    assert cache.keys() == ["b", "c"]


def test_cache_stats_track_hit_rate() -> None:
    cache = EmbeddingCache(max_size=10)
    cache.set("a", [1.0])
    cache.get("a")
    cache.get("missing")

    stats = cache.stats()
    assert stats["size"] == 1
    assert stats["max_size"] == 10
    assert stats["hits"] == 1
    assert stats["misses"] == 1
    assert stats["hit_rate"] == pytest.approx(0.5)

    cache.clear()
    assert len(cache) == 0
    assert EmbeddingCache().hit_rate == 0.0


def test_cache_key_uses_text_prefix() -> None:
    prefix = "p" * 200
    assert make_cache_key(prefix + "first") == make_cache_key(prefix + "second")
    assert make_cache_key(prefix + "first", max_chars=None) != make_cache_key(
        prefix + "second", max_chars=None
    )
    assert make_cache_key("cat") != make_cache_key("dog")


def test_cache_rejects_non_positive_size() -> None:
    with pytest.raises(ValueError):
        EmbeddingCache(max_size=0)


def test_cached_vectors_are_returned_as_copies() -> None:
    cache = EmbeddingCache(max_size=2)
    vector = [1.0, 2.0]
    cache.set("a", vector)

    vector[0] = 5.0
    hit = cache.get("a")
    hit[1] = 7.0

    assert cache.get("a") == [1.0, 2.0]
