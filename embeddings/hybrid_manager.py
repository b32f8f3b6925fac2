"""
Hybrid embedding manager.

Serves embeddings from the best available backend and demotes to the
TF-IDF engine when the preferred backend times out, fails to initialize,
fails its self-test, or errors at runtime.

State machine:
    UNINITIALIZED -> INITIALIZING -> READY(using_fallback) -> CLEANED

Invariant: `dimensions` always equals the active backend's dimensions.
Every transition swaps the active backend and its dimensions without a
suspension point, so no request can observe one without the other.
"""

import asyncio
import dataclasses
import logging
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional

from shared.config import EmbeddingMethod, HybridEmbeddingConfig, get_settings

from .base import EmbeddingBackend
from .errors import BackendUnavailableError, DimensionMismatchError, InitializationFatalError
from .notifier import StatusNotifier, safe_notify
from .openai_embedder import OpenAIEmbedder
from .sentence_encoder import SentenceTransformerEmbedder
from .tfidf_engine import SimilarDocument, TfIdfEmbeddingEngine

logger = logging.getLogger(__name__)


class OrchestratorState(Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    CLEANED = "cleaned"


class HybridEmbeddingManager:
    """
    Orchestrates the TF-IDF engine and the optional neural/remote backends.

    Methods:
    - auto: prefer the neural backend, fall back to TF-IDF
    - neural / openai: require that backend (still falls back if TF-IDF is ready)
    - tfidf: TF-IDF only, preferred backends are never touched

    Usage:
        manager = HybridEmbeddingManager(HybridEmbeddingConfig(method="auto"))
        await manager.initialize()
        await manager.add_documents([{"content": "..."}])
        vector = await manager.embed("query")
    """

    def __init__(
        self,
        config: Optional[HybridEmbeddingConfig] = None,
        fallback: Optional[TfIdfEmbeddingEngine] = None,
        neural: Optional[EmbeddingBackend] = None,
        remote: Optional[EmbeddingBackend] = None,
        notifier: Optional[StatusNotifier] = None,
    ):
        """
        Args:
            config: Orchestrator configuration; copied so switch_method()
                never mutates shared settings
            fallback: TF-IDF engine (built from config.tfidf if None)
            neural: Neural backend (SentenceTransformerEmbedder if None)
            remote: Remote backend (OpenAIEmbedder if None)
            notifier: Status message sink
        """
        self.config = dataclasses.replace(config or get_settings().embedding)
        self.notifier = notifier or StatusNotifier()

        self._fallback = fallback or TfIdfEmbeddingEngine(self.config.tfidf, notifier=self.notifier)
        self._backends: Dict[EmbeddingMethod, EmbeddingBackend] = {
            EmbeddingMethod.TFIDF: self._fallback,
            EmbeddingMethod.NEURAL: neural
            or SentenceTransformerEmbedder(
                model_name=self.config.neural_model_name, notifier=self.notifier
            ),
            EmbeddingMethod.OPENAI: remote
            or OpenAIEmbedder(
                api_key=self.config.openai_api_key,
                model=self.config.openai_model,
                notifier=self.notifier,
            ),
        }

        self.state = OrchestratorState.UNINITIALIZED
        self.last_fallback_reason: Optional[str] = None
        self._select_initial_backend()

    def _preferred_method(self) -> EmbeddingMethod:
        if self.config.method is EmbeddingMethod.AUTO:
            return EmbeddingMethod.NEURAL
        return self.config.method

    def _select_initial_backend(self) -> None:
        self._activate(self._preferred_method())

    def _activate(self, method: EmbeddingMethod) -> None:
        """Swap the active backend and the advertised dimensions together."""
        backend = self._backends[method]
        self._active_method = method
        self._active = backend
        self.using_fallback = method is EmbeddingMethod.TFIDF
        self.dimensions = backend.dimensions
        if not self.using_fallback:
            self.last_fallback_reason = None

    def _use_fallback(self, reason: str) -> None:
        logger.warning(f"Using TF-IDF fallback: {reason}")
        self.last_fallback_reason = reason
        self._activate(EmbeddingMethod.TFIDF)
        safe_notify(self.notifier, f"Embeddings switched to TF-IDF: {reason}")

    @property
    def name(self) -> str:
        if self.config.method is EmbeddingMethod.TFIDF:
            return "TF-IDF (Forced)"
        preferred = self._backends[self._preferred_method()]
        return f"Hybrid ({preferred.name} + TF-IDF)"

    @property
    def is_initialized(self) -> bool:
        return self.state is OrchestratorState.READY

    async def initialize(self) -> None:
        """
        Bring up TF-IDF, then try the preferred backend under a timeout.

        Concurrent callers return immediately while initialization runs.

        Raises:
            InitializationFatalError: If not even TF-IDF is usable
        """
        if self.state in (OrchestratorState.INITIALIZING, OrchestratorState.READY):
            return

        self.state = OrchestratorState.INITIALIZING
        try:
            logger.info("Initializing hybrid embedding system...")
            safe_notify(self.notifier, "Initializing embedding system...")

            await self._fallback.initialize()

            if self.config.method is EmbeddingMethod.TFIDF:
                self._use_fallback("TF-IDF mode selected")
            else:
                await self._initialize_preferred()

            self.state = OrchestratorState.READY
            self._log_final_status()
        except Exception as e:
            logger.error(f"Error during hybrid embedding initialization: {e}")
            if not self._fallback.is_ready():
                raise InitializationFatalError(f"No usable embedding backend: {e}") from e

            self._use_fallback(f"Initialization error: {e}")
            self.state = OrchestratorState.READY
        finally:
            if self.state is OrchestratorState.INITIALIZING:
                self.state = OrchestratorState.UNINITIALIZED

    async def _race_initialization(self, backend: EmbeddingBackend) -> None:
        timeout_ms = self.config.fallback_timeout
        try:
            await asyncio.wait_for(backend.initialize(), timeout=timeout_ms / 1000)
        except asyncio.TimeoutError as e:
            raise BackendUnavailableError(
                f"{backend.name} initialization timeout after {timeout_ms}ms"
            ) from e

    async def _initialize_preferred(self) -> None:
        method = self._preferred_method()
        backend = self._backends[method]
        logger.info(f"Attempting to initialize {backend.name}...")

        try:
            await self._race_initialization(backend)
            if not await backend.test_availability():
                raise BackendUnavailableError(f"{backend.name} availability test failed")
        except Exception as e:
            logger.warning(f"{backend.name} initialization failed: {e}")
            if self.config.method is not EmbeddingMethod.AUTO:
                raise BackendUnavailableError(
                    f"{backend.name} required but failed to initialize: {e}"
                ) from e
            self._use_fallback(f"{backend.name} failed: {e}")
            return

        self._activate(method)
        logger.info(f"{backend.name} initialized successfully")

    def _log_final_status(self) -> None:
        method = self.get_active_method()
        logger.info(f"Hybrid embedding system ready: {method} ({self.dimensions}D)")
        safe_notify(self.notifier, f"Embeddings: {method}")

    async def cleanup(self) -> None:
        """Clean up every backend and return to the initial selection."""
        for backend in self._backends.values():
            await backend.cleanup()
        self.state = OrchestratorState.CLEANED
        self.last_fallback_reason = None
        self._select_initial_backend()
        logger.info("Hybrid embedding manager cleaned up")

    async def _retry_on_fallback(self, reason: str, call, *args):
        if not self.using_fallback:
            self._use_fallback(reason)
        return await call(*args)

    async def embed(self, text: str) -> List[float]:
        """
        Embed a text with the active backend.

        A failing or mismatched preferred backend is demoted once and the
        request retried on TF-IDF. Errors on TF-IDF itself propagate.
        """
        if not self.is_initialized:
            await self.initialize()

        on_fallback = self.using_fallback
        try:
            embedding = await self._active.embed(text)
        except Exception as e:
            if on_fallback:
                raise
            logger.error(f"Primary embedding failed: {e}")
            return await self._retry_on_fallback(
                f"Primary embedding error: {e}", self._fallback.embed, text
            )

        if len(embedding) != self.dimensions:
            message = (
                f"Embedding dimension mismatch: expected {self.dimensions}, got {len(embedding)}"
            )
            if on_fallback:
                raise DimensionMismatchError(message)
            logger.warning(message)
            return await self._retry_on_fallback(message, self._fallback.embed, text)

        return embedding

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """Embed many texts; a failure demotes and retries the whole batch."""
        if not self.is_initialized:
            await self.initialize()

        on_fallback = self.using_fallback
        try:
            embeddings = await self._active.embed_batch(texts)
        except Exception as e:
            if on_fallback:
                raise
            logger.error(f"Primary batch embedding failed: {e}")
            return await self._retry_on_fallback(
                f"Batch embedding error: {e}", self._fallback.embed_batch, texts
            )

        mismatched = [len(e) for e in embeddings if len(e) != self.dimensions]
        if mismatched:
            message = (
                f"Batch embedding dimension mismatch: expected {self.dimensions}, "
                f"got {mismatched[0]}"
            )
            if on_fallback:
                raise DimensionMismatchError(message)
            logger.warning(message)
            return await self._retry_on_fallback(message, self._fallback.embed_batch, texts)

        return embeddings

    async def add_documents(self, documents: Iterable[Mapping[str, Any]]) -> List[str]:
        """Add documents to the TF-IDF corpus, whichever backend is active."""
        doc_ids = await self._fallback.add_documents(documents)
        logger.info(f"Added {len(doc_ids)} documents to TF-IDF corpus")
        return doc_ids

    async def find_similar(
        self, query_text: str, top_k: int = 10, threshold: float = 0.1
    ) -> List[SimilarDocument]:
        """Search the TF-IDF corpus."""
        if not self.is_initialized:
            await self.initialize()

        return await self._fallback.find_similar(query_text, top_k=top_k, threshold=threshold)

    def switch_method(self, method: EmbeddingMethod) -> bool:
        """
        Re-evaluate which backend should serve requests.

        Ignores earlier failures: a demoted backend that reports ready is
        promoted again.

        Returns:
            False if the requested backend is not ready (nothing changes)
        """
        method = EmbeddingMethod(method)
        logger.info(f"Switching embedding method to: {method.value}")

        if method is EmbeddingMethod.TFIDF:
            self.config.method = method
            self._use_fallback("Manual switch to TF-IDF")
        elif method is EmbeddingMethod.AUTO:
            self.config.method = method
            if self._backends[EmbeddingMethod.NEURAL].is_ready():
                self._activate(EmbeddingMethod.NEURAL)
            else:
                self._use_fallback("Auto mode: neural backend not available")
        else:
            backend = self._backends[method]
            if not backend.is_ready():
                logger.warning(
                    f"{backend.name} not available, staying with {self.get_active_method()}"
                )
                return False
            self.config.method = method
            self._activate(method)

        safe_notify(self.notifier, f"Embedding method: {self.get_active_method()}")
        return True

    def update_api_key(self, api_key: str) -> None:
        """Rotate the remote backend's API key."""
        remote = self._backends[EmbeddingMethod.OPENAI]
        if self._active_method is EmbeddingMethod.OPENAI:
            self._use_fallback("OpenAI API key rotated")
        if isinstance(remote, OpenAIEmbedder):
            remote.update_api_key(api_key)
        self.config.openai_api_key = api_key

    def get_active_method(self) -> str:
        return self._active.name

    def get_status(self) -> Dict[str, Any]:
        preferred = self._backends[self._preferred_method()]
        return {
            "method": self.config.method.value,
            "active_manager": self.get_active_method(),
            "using_fallback": self.using_fallback,
            "is_initialized": self.is_initialized,
            "state": self.state.value,
            "preferred_available": preferred.is_ready(),
            "tfidf_ready": self._fallback.is_ready(),
            "dimensions": self.dimensions,
            "fallback_reason": self.last_fallback_reason,
        }

    def get_model_info(self) -> Dict[str, Any]:
        active_info = self._active.get_model_info()
        return {
            "name": self.name,
            "dimensions": self.dimensions,
            "is_local": active_info.get("is_local", True),
            "is_initialized": self.is_initialized,
            "cache_size": active_info.get("cache_size", 0),
            "active_method": self.get_active_method(),
            "fallback_available": self._fallback.is_ready(),
        }

    def is_ready(self) -> bool:
        return self.is_initialized and self._active.is_ready()

    def clear_cache(self) -> None:
        for backend in self._backends.values():
            backend.clear_cache()
        logger.info("All embedding caches cleared")

    def get_cache_stats(self) -> Dict[str, float]:
        stats = dict(self._active.get_cache_stats())
        stats["fallback_cache_size"] = self._fallback.get_cache_stats()["size"]
        return stats

    @property
    def fallback(self) -> TfIdfEmbeddingEngine:
        return self._fallback

    def get_backend(self, method: EmbeddingMethod) -> EmbeddingBackend:
        return self._backends[EmbeddingMethod(method)]


# Global manager instance
_embedding_manager: Optional[HybridEmbeddingManager] = None


def get_embedding_manager(
    config: Optional[HybridEmbeddingConfig] = None,
) -> HybridEmbeddingManager:
    """
    Get or create the global hybrid embedding manager.

    Args:
        config: Optional custom configuration; replaces the global manager

    Returns:
        HybridEmbeddingManager instance
    """
    global _embedding_manager
    if _embedding_manager is None or config is not None:
        _embedding_manager = HybridEmbeddingManager(config)
    return _embedding_manager
