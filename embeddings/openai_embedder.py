"""
Remote embedding backend using the OpenAI embeddings API.

- text-embedding-3-small, 1536 dimensions
- Batches of at most 100 inputs with a short pause between batches
- Response items re-sorted by their `index` before matching to inputs
- Calls guarded by a circuit breaker
"""

import asyncio
import logging
from typing import Any, List, Optional

from deployment.circuit_breaker import CircuitBreaker, get_embedding_api_breaker

from .base import BackendState, EmbeddingBackend
from .cache import make_cache_key
from .errors import BackendUnavailableError, DimensionMismatchError, MalformedResponseError
from .notifier import StatusNotifier

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "text-embedding-3-small"
BATCH_SIZE = 100
BATCH_DELAY_SECONDS = 0.1
MAX_INPUT_CHARS = 8192


def chunk_list(items: List[Any], size: int) -> List[List[Any]]:
    return [items[i : i + size] for i in range(0, len(items), size)]


class OpenAIEmbedder(EmbeddingBackend):
    """
    OpenAI embeddings client with caching and batching.

    Usage:
        embedder = OpenAIEmbedder(api_key="sk-...")
        await embedder.initialize()
        vectors = await embedder.embed_batch(["text1", "text2"])
    """

    is_local = False

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_MODEL,
        dimensions: int = 1536,
        client: Any = None,
        breaker: Optional[CircuitBreaker] = None,
        batch_size: int = BATCH_SIZE,
        batch_delay: float = BATCH_DELAY_SECONDS,
        cache_size: int = 2000,
        notifier: Optional[StatusNotifier] = None,
    ):
        """
        Args:
            api_key: OpenAI API key
            model: Embedding model name
            dimensions: Declared output size of the model
            client: Pre-built AsyncOpenAI-compatible client
            breaker: Circuit breaker for API calls
            batch_size: Inputs per API request (max 100)
            batch_delay: Seconds to wait between batch requests
            cache_size: Maximum number of cached vectors
            notifier: Status message sink
        """
        super().__init__(cache_size=cache_size, notifier=notifier)
        self.api_key = api_key or None
        self.model = model
        self.name = model
        self.dimensions = dimensions
        self.batch_size = min(batch_size, BATCH_SIZE)
        self.batch_delay = batch_delay
        self.breaker = breaker or get_embedding_api_breaker()
        self._client = client

    @property
    def client(self):
        """Lazy load OpenAI client."""
        if self._client is None:
            try:
                from openai import AsyncOpenAI
            except ImportError as e:
                raise BackendUnavailableError(
                    "openai package required. Install with: pip install openai"
                ) from e
            self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    async def _load(self) -> None:
        if not self.api_key:
            raise BackendUnavailableError("OpenAI API key is required for embedding generation")
        # Build the client now so a missing package fails initialization
        _ = self.client

    def update_api_key(self, api_key: str) -> None:
        """Rotate the API key. The backend must be initialized again."""
        self.api_key = api_key or None
        self._client = None
        self.state = BackendState.UNINITIALIZED
        # Failures recorded under the old key say nothing about the new one
        self.breaker.reset()
        logger.info("OpenAI API key updated")

    def preprocess_text(self, text: str) -> str:
        return " ".join(text.split())[:MAX_INPUT_CHARS]

    def _cache_key(self, text: str) -> str:
        return make_cache_key(self.preprocess_text(text), max_chars=None)

    async def _request(self, inputs: List[str]) -> List[List[float]]:
        """Call the embeddings endpoint and return vectors in input order."""
        response = await self.breaker.call_async(
            self.client.embeddings.create,
            model=self.model,
            input=inputs,
            encoding_format="float",
        )

        data = getattr(response, "data", None)
        if not data or len(data) != len(inputs):
            got = len(data) if data else 0
            raise MalformedResponseError(f"Expected {len(inputs)} embeddings, got {got}")

        vectors = []
        for item in sorted(data, key=lambda d: d.index):
            vector = [float(x) for x in item.embedding]
            if len(vector) != self.dimensions:
                raise DimensionMismatchError(
                    f"Expected {self.dimensions} dimensions, got {len(vector)}"
                )
            vectors.append(vector)
        return vectors

    async def embed(self, text: str) -> List[float]:
        self._require_ready()

        cache_key = self._cache_key(text)
        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            vector = (await self._request([self.preprocess_text(text)]))[0]
        except Exception as e:
            logger.error(f"Error generating OpenAI embedding: {e}")
            raise

        self._cache.set(cache_key, vector)
        return vector

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """
        Embed texts in API batches of at most `batch_size`.

        Args:
            texts: Texts to embed

        Returns:
            One vector per input, in input order
        """
        self._require_ready()
        if not texts:
            return []

        embeddings: List[Optional[List[float]]] = [None] * len(texts)
        uncached: List[int] = []
        for i, text in enumerate(texts):
            cached = self._cache.get(self._cache_key(text))
            if cached is not None:
                embeddings[i] = cached
            else:
                uncached.append(i)

        if not uncached:
            return embeddings

        logger.info(f"Generating OpenAI embeddings for {len(uncached)} texts...")
        batches = chunk_list(uncached, self.batch_size)
        processed_count = 0

        for batch_number, batch in enumerate(batches):
            if batch_number > 0:
                # Rate limiting
                await asyncio.sleep(self.batch_delay)

            try:
                vectors = await self._request([self.preprocess_text(texts[i]) for i in batch])
            except Exception as e:
                logger.error(f"Error in OpenAI batch embedding generation: {e}")
                raise

            for i, vector in zip(batch, vectors):
                embeddings[i] = vector
                self._cache.set(self._cache_key(texts[i]), vector)

            processed_count += len(batch)
            if len(uncached) > 50:
                logger.info(f"Processed {processed_count}/{len(uncached)} texts...")

        return embeddings

    def get_model_info(self):
        info = super().get_model_info()
        info["has_api_key"] = self.api_key is not None
        info["circuit_breaker"] = self.breaker.get_stats()
        return info

    async def cleanup(self) -> None:
        self._client = None
        await super().cleanup()
