"""
Neural embedding backend using sentence-transformers.

The default model produces 512-dimensional vectors. Model loading can be
slow or fail outright (missing package, no network for the download), which
is why the hybrid manager races it against a timeout.
"""

import asyncio
import logging
from typing import Any, Callable, List, Optional

from .base import EmbeddingBackend
from .cache import make_cache_key
from .errors import BackendUnavailableError, DimensionMismatchError
from .notifier import StatusNotifier
from .vector_math import create_zero_vector

logger = logging.getLogger(__name__)

DEFAULT_MODEL_NAME = "sentence-transformers/distiluse-base-multilingual-cased-v2"
MAX_INPUT_CHARS = 1000


def load_sentence_transformer(model_name: str) -> Any:
    """Load a SentenceTransformer model (blocking)."""
    try:
        from sentence_transformers import SentenceTransformer
    except ImportError as e:
        raise BackendUnavailableError(
            "sentence-transformers package required. Install with: pip install sentence-transformers"
        ) from e
    return SentenceTransformer(model_name)


class SentenceTransformerEmbedder(EmbeddingBackend):
    """
    Local neural embeddings.

    Usage:
        embedder = SentenceTransformerEmbedder()
        await embedder.initialize()
        vector = await embedder.embed("hello world")
    """

    is_local = True

    def __init__(
        self,
        model_name: str = DEFAULT_MODEL_NAME,
        dimensions: int = 512,
        model_loader: Optional[Callable[[str], Any]] = None,
        cache_size: int = 1000,
        notifier: Optional[StatusNotifier] = None,
    ):
        """
        Args:
            model_name: sentence-transformers model id
            dimensions: Declared output size of the model
            model_loader: Blocking model factory, run in a worker thread
            cache_size: Maximum number of cached vectors
            notifier: Status message sink
        """
        super().__init__(cache_size=cache_size, notifier=notifier)
        self.model_name = model_name
        self.name = f"Sentence-Transformer ({model_name})"
        self.dimensions = dimensions
        self._model_loader = model_loader or load_sentence_transformer
        self._model: Optional[Any] = None

    async def _load(self) -> None:
        logger.info(f"Loading embedding model: {self.model_name}")
        self._model = await asyncio.to_thread(self._model_loader, self.model_name)

    def preprocess_text(self, text: str) -> str:
        """Collapse whitespace and truncate very long texts."""
        return " ".join(text.split())[:MAX_INPUT_CHARS]

    async def _encode(self, texts: List[str]) -> List[List[float]]:
        matrix = await asyncio.to_thread(self._model.encode, texts, convert_to_numpy=True)
        vectors = [[float(x) for x in row] for row in matrix]
        for vector in vectors:
            if len(vector) != self.dimensions:
                raise DimensionMismatchError(
                    f"Expected {self.dimensions} dimensions, got {len(vector)}"
                )
        return vectors

    async def embed(self, text: str) -> List[float]:
        self._require_ready()

        cache_key = make_cache_key(text)
        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        processed = self.preprocess_text(text)
        if not processed:
            vector = create_zero_vector(self.dimensions)
        else:
            vector = (await self._encode([processed]))[0]

        self._cache.set(cache_key, vector)
        return vector

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """Embed texts, encoding every cache miss in a single model call."""
        self._require_ready()
        if not texts:
            return []

        embeddings: List[Optional[List[float]]] = [None] * len(texts)
        uncached: List[int] = []
        for i, text in enumerate(texts):
            cached = self._cache.get(make_cache_key(text))
            if cached is not None:
                embeddings[i] = cached
            else:
                uncached.append(i)

        if uncached:
            logger.info(f"Generating neural embeddings for {len(uncached)} texts...")
            processed = [self.preprocess_text(texts[i]) for i in uncached]
            vectors = await self._encode(processed)
            for i, vector in zip(uncached, vectors):
                embeddings[i] = vector
                self._cache.set(make_cache_key(texts[i]), vector)

        return embeddings

    def get_model_info(self):
        info = super().get_model_info()
        info["model_name"] = self.model_name
        return info

    async def cleanup(self) -> None:
        self._model = None
        await super().cleanup()
