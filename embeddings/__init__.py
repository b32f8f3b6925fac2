"""
Embeddings Module.

Hybrid text embeddings with graceful degradation:
- TF-IDF engine built from a local corpus (always available)
- Sentence-transformers neural backend (optional, 512D)
- OpenAI embeddings API backend (optional, 1536D)
- Hybrid manager that demotes to TF-IDF on timeout or failure

Usage:
    from embeddings import get_embedding_manager

    manager = get_embedding_manager()
    await manager.initialize()
    vector = await manager.embed("some text")
"""

from .base import BackendState, EmbeddingBackend
from .cache import EmbeddingCache, make_cache_key
from .errors import (
    BackendUnavailableError,
    DimensionMismatchError,
    EmbeddingError,
    InitializationFatalError,
    LengthMismatchError,
    MalformedResponseError,
)
from .hybrid_manager import HybridEmbeddingManager, OrchestratorState, get_embedding_manager
from .notifier import CallbackNotifier, RecordingNotifier, StatusNotifier
from .openai_embedder import OpenAIEmbedder
from .sentence_encoder import SentenceTransformerEmbedder
from .tfidf_engine import Document, SimilarDocument, TfIdfEmbeddingEngine

__all__ = [
    "HybridEmbeddingManager",
    "OrchestratorState",
    "get_embedding_manager",
    "EmbeddingBackend",
    "BackendState",
    "TfIdfEmbeddingEngine",
    "SentenceTransformerEmbedder",
    "OpenAIEmbedder",
    "Document",
    "SimilarDocument",
    "EmbeddingCache",
    "make_cache_key",
    "StatusNotifier",
    "CallbackNotifier",
    "RecordingNotifier",
    "EmbeddingError",
    "InitializationFatalError",
    "DimensionMismatchError",
    "BackendUnavailableError",
    "MalformedResponseError",
    "LengthMismatchError",
]
