"""
Embedding cache.

Each backend owns one EmbeddingCache. Eviction is FIFO: when full, the
oldest inserted key is dropped, and reads never reorder entries. Vectors are
stored immutably and handed out as fresh lists, so callers may mutate results.
"""

import hashlib
import logging
from collections import OrderedDict
from typing import Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

CACHE_KEY_CHARS = 200


def make_cache_key(text: str, max_chars: Optional[int] = CACHE_KEY_CHARS) -> str:
    """
    Create a cache key from the leading characters of a text.

    Texts sharing the same first `max_chars` characters map to the same
    key. Pass max_chars=None to hash the whole text.
    """
    prefix = text if max_chars is None else text[:max_chars]
    return hashlib.md5(prefix.encode("utf-8")).hexdigest()[:16]


class EmbeddingCache:
    """
    Capacity-bounded FIFO cache of embedding vectors.

    Usage:
        cache = EmbeddingCache(max_size=1000)
        cache.set(make_cache_key(text), vector)
        vector = cache.get(make_cache_key(text))
    """

    def __init__(self, max_size: int = 1000):
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self.max_size = max_size
        self._entries: "OrderedDict[str, Tuple[float, ...]]" = OrderedDict()
        self._hits = 0
        self._misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str) -> Optional[List[float]]:
        """Get a copy of the cached vector, counting the hit or miss."""
        vector = self._entries.get(key)
        if vector is None:
            self._misses += 1
            return None
        self._hits += 1
        return list(vector)

    def set(self, key: str, vector: List[float]) -> None:
        """Store a vector, evicting the oldest entry when full."""
        if key in self._entries:
            # Overwrite keeps the original insertion slot
            self._entries[key] = tuple(vector)
            return
        if len(self._entries) >= self.max_size:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Cache full, evicted {evicted}")
        self._entries[key] = tuple(vector)

    def keys(self) -> List[str]:
        """Keys in insertion order, oldest first."""
        return list(self._entries.keys())

    def clear(self) -> None:
        """Clear all cache entries. Hit/miss counters are kept."""
        self._entries.clear()

    def reset_stats(self) -> None:
        self._hits = 0
        self._misses = 0

    @property
    def hit_rate(self) -> float:
        lookups = self._hits + self._misses
        return self._hits / lookups if lookups else 0.0

    def stats(self) -> Dict[str, float]:
        """Get cache statistics."""
        return {
            "size": len(self._entries),
            "max_size": self.max_size,
            "hit_rate": self.hit_rate,
            "hits": self._hits,
            "misses": self._misses,
        }
