"""
Capability contract shared by every embedding backend.

Backends:
- TfIdfEmbeddingEngine: local, corpus statistics, always available
- SentenceTransformerEmbedder: local neural model, may fail to load
- OpenAIEmbedder: remote API, may fail per call

Every backend declares a fixed `dimensions` and returns vectors of exactly
that length.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, List, Optional

from .cache import EmbeddingCache
from .errors import BackendUnavailableError
from .notifier import StatusNotifier, safe_notify

logger = logging.getLogger(__name__)

PROBE_TEXT = "This is a test sentence."


class BackendState(Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


class EmbeddingBackend(ABC):
    """
    Base class for embedding backends.

    Subclasses implement `_load`, `embed` and `embed_batch`. `initialize`
    is idempotent: a call made while another is in progress, or after
    success, returns immediately without loading again.
    """

    name: str = "embedding-backend"
    dimensions: int = 0
    is_local: bool = True

    def __init__(self, cache_size: int = 1000, notifier: Optional[StatusNotifier] = None):
        self.state = BackendState.UNINITIALIZED
        self.notifier = notifier or StatusNotifier()
        self._cache = EmbeddingCache(max_size=cache_size)

    async def initialize(self) -> None:
        """Load the backend. Safe to call repeatedly and concurrently."""
        if self.state in (BackendState.INITIALIZING, BackendState.READY):
            return

        self.state = BackendState.INITIALIZING
        logger.info(f"Initializing {self.name} embeddings...")
        try:
            await self._load()
            self.state = BackendState.READY
        finally:
            # Covers exceptions and cancellation (e.g. an initialization timeout)
            if self.state is BackendState.INITIALIZING:
                self.state = BackendState.FAILED
                logger.warning(f"{self.name} initialization failed")

        logger.info(f"{self.name} embeddings ready ({self.dimensions}D)")
        safe_notify(self.notifier, f"{self.name} embeddings ready")

    @abstractmethod
    async def _load(self) -> None:
        """Backend-specific initialization."""

    @abstractmethod
    async def embed(self, text: str) -> List[float]:
        """Embed a single text."""

    @abstractmethod
    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """Embed many texts, preserving input order."""

    def is_ready(self) -> bool:
        return self.state is BackendState.READY

    def _require_ready(self) -> None:
        if not self.is_ready():
            raise BackendUnavailableError(f"{self.name} embedding backend not initialized")

    async def test_availability(self) -> bool:
        """Round-trip a probe text and check the vector length."""
        try:
            vector = await self.embed(PROBE_TEXT)
        except Exception as e:
            logger.warning(f"{self.name} availability test failed: {e}")
            return False
        return len(vector) == self.dimensions

    def get_model_info(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "dimensions": self.dimensions,
            "is_local": self.is_local,
            "is_initialized": self.is_ready(),
            "state": self.state.value,
            "cache_size": len(self._cache),
        }

    def get_cache_stats(self) -> Dict[str, float]:
        return self._cache.stats()

    def clear_cache(self) -> None:
        self._cache.clear()
        logger.info(f"{self.name} embedding cache cleared")

    async def cleanup(self) -> None:
        """Release resources and return to UNINITIALIZED."""
        self._cache.clear()
        self.state = BackendState.UNINITIALIZED
        logger.info(f"{self.name} embedding backend cleaned up")
