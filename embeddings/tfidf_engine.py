"""
TF-IDF embedding engine.

Builds a vocabulary and document-frequency table from an ingested corpus
and turns any text into a normalized TF-IDF vector. No model, no network:
this is the backend of last resort, so its errors are never caught.

Key behaviors:
- Vocabulary is capped at max_vocabulary_size and locked after the first
  add_documents() batch; later documents still count toward N but no
  longer update the vocabulary or document frequencies
- Only vocabulary indices < dimensions are written into vectors
- Every add_document() clears the cache, since N and DF changed
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from shared.config import TfIdfConfig

from .base import EmbeddingBackend
from .cache import make_cache_key
from .notifier import StatusNotifier
from .text_processing import (
    Preprocessor,
    calculate_term_frequency,
    create_document_id,
    make_preprocessor,
)
from .vector_math import (
    calculate_tfidf,
    cosine_similarity,
    create_zero_vector,
    normalize_vector,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Document:
    """A corpus document. Immutable once stored."""

    id: str
    content: str
    tokens: List[str]
    term_frequency: Dict[str, float]
    source: Optional[str] = None


@dataclass
class SimilarDocument:
    """Result from find_similar."""

    id: str
    score: float
    content: str
    source: Optional[str] = None


class TfIdfEmbeddingEngine(EmbeddingBackend):
    """
    Statistical embedding backend.

    Usage:
        engine = TfIdfEmbeddingEngine(TfIdfConfig(dimensions=1000))
        await engine.initialize()
        await engine.add_documents([{"content": "the cat sat"}, {"content": "the dog ran"}])
        vector = await engine.embed("cat")
    """

    name = "TF-IDF"
    is_local = True

    def __init__(
        self,
        config: Optional[TfIdfConfig] = None,
        preprocessor: Optional[Preprocessor] = None,
        clock: Callable[[], float] = time.time,
        cache_size: int = 1000,
        notifier: Optional[StatusNotifier] = None,
    ):
        """
        Args:
            config: Engine options (dimensions, vocabulary cap, preprocessing)
            preprocessor: Text -> tokens function; built from config if None
            clock: Seconds since epoch, used for document ids
            cache_size: Maximum number of cached vectors
            notifier: Status message sink
        """
        super().__init__(cache_size=cache_size, notifier=notifier)
        self.config = config or TfIdfConfig()
        self.dimensions = self.config.dimensions
        self._preprocess = preprocessor or make_preprocessor(
            remove_stopwords=self.config.use_stopwords,
            apply_stemming=self.config.use_stemming,
            min_word_length=self.config.min_word_length,
        )
        self._clock = clock

        self._vocabulary: Dict[str, int] = {}  # term -> index
        self._document_frequency: Dict[str, int] = {}  # term -> doc count
        self._documents: Dict[str, Document] = {}
        self._total_documents = 0
        self._vocabulary_locked = False

    async def _load(self) -> None:
        # Nothing to load: corpus statistics are built from add_documents()
        return None

    async def embed(self, text: str) -> List[float]:
        """
        Embed a text with the current corpus statistics.

        Returns:
            Unit-length vector of `dimensions` floats, or the zero vector if
            no tokens survive preprocessing
        """
        self._require_ready()

        cache_key = make_cache_key(text)
        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        return await self._compute(text, cache_key)

    async def _compute(self, text: str, cache_key: str) -> List[float]:
        """Build and cache the vector for a text already known to be a cache miss."""
        # Suspension point: identical concurrent requests each compute a vector
        await asyncio.sleep(0)

        tokens = self._preprocess(text)
        if not tokens:
            vector = create_zero_vector(self.dimensions)
        else:
            term_freq = calculate_term_frequency(tokens)
            vector = normalize_vector(self._generate_tfidf_vector(term_freq))

        self._cache.set(cache_key, vector)
        return vector

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
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
            logger.info(f"Generating TF-IDF embeddings for {len(uncached)} texts...")
            for i in uncached:
                embeddings[i] = await self._compute(texts[i], make_cache_key(texts[i]))

        return embeddings

    async def add_document(self, content: str, source: Optional[str] = None) -> str:
        """
        Add a document to the corpus.

        Not idempotent: adding the same content twice stores two documents
        and, while the vocabulary is unlocked, counts it twice in DF.

        Returns:
            The new document id, or "" if the content has no usable tokens
        """
        if not self.is_ready():
            await self.initialize()

        tokens = self._preprocess(content)
        if not tokens:
            logger.warning("Document has no valid tokens after preprocessing")
            return ""

        doc_id = create_document_id(content, source, timestamp_ms=int(self._clock() * 1000))
        document = Document(
            id=doc_id,
            content=content,
            tokens=tokens,
            term_frequency=calculate_term_frequency(tokens),
            source=source,
        )

        self._update_vocabulary(tokens)
        self._documents[doc_id] = document
        self._total_documents += 1

        # Every cached vector used the old N and DF
        self.clear_cache()

        logger.debug(f"Added document {doc_id} with {len(tokens)} tokens")
        return doc_id

    async def add_documents(self, documents: Iterable[Mapping[str, Any]]) -> List[str]:
        """
        Add a batch of documents, then lock the vocabulary.

        Args:
            documents: Mappings with "content" and optional "source"

        Returns:
            Ids of the documents that were stored
        """
        documents = list(documents)
        logger.info(f"Adding {len(documents)} documents to TF-IDF corpus...")

        doc_ids = []
        for doc in documents:
            doc_id = await self.add_document(doc["content"], doc.get("source"))
            if doc_id:
                doc_ids.append(doc_id)

        self._vocabulary_locked = True

        logger.info(
            f"TF-IDF corpus ready: {self._total_documents} documents, "
            f"{len(self._vocabulary)} terms"
        )
        return doc_ids

    async def find_similar(
        self, query_text: str, top_k: int = 10, threshold: float = 0.1
    ) -> List[SimilarDocument]:
        """
        Rank corpus documents by cosine similarity to a query.

        Args:
            query_text: Query string
            top_k: Maximum number of results
            threshold: Minimum similarity score

        Returns:
            Results sorted by score, ties kept in corpus order
        """
        query_embedding = await self.embed(query_text)

        results = []
        for document in list(self._documents.values()):
            doc_embedding = await self.embed(document.content)
            score = cosine_similarity(query_embedding, doc_embedding)
            if score >= threshold:
                results.append(
                    SimilarDocument(
                        id=document.id,
                        score=score,
                        content=document.content,
                        source=document.source,
                    )
                )

        results.sort(key=lambda r: r.score, reverse=True)
        return results[:top_k]

    async def calculate_similarity(self, text1: str, text2: str) -> float:
        embedding1 = await self.embed(text1)
        embedding2 = await self.embed(text2)
        return cosine_similarity(embedding1, embedding2)

    def _generate_tfidf_vector(self, term_freq: Dict[str, float]) -> List[float]:
        """Write TF-IDF weights at the vocabulary index of each known term."""
        vector = create_zero_vector(self.dimensions)
        total = max(self._total_documents, 1)

        for term, tf in term_freq.items():
            index = self._vocabulary.get(term)
            # Indices >= dimensions exist in the vocabulary but never reach a vector
            if index is not None and index < self.dimensions:
                df = self._document_frequency.get(term) or 1
                vector[index] = calculate_tfidf(tf, df, total)

        return vector

    def _update_vocabulary(self, tokens: List[str]) -> None:
        if self._vocabulary_locked:
            return

        for token in dict.fromkeys(tokens):
            self._document_frequency[token] = self._document_frequency.get(token, 0) + 1
            if (
                token not in self._vocabulary
                and len(self._vocabulary) < self.config.max_vocabulary_size
            ):
                self._vocabulary[token] = len(self._vocabulary)

    def get_vocabulary(self) -> List[str]:
        """Vocabulary terms in index order."""
        return list(self._vocabulary.keys())

    def get_vocabulary_index(self, term: str) -> Optional[int]:
        return self._vocabulary.get(term)

    def get_document_frequency(self, term: str) -> int:
        return self._document_frequency.get(term, 0)

    def get_document(self, doc_id: str) -> Optional[Document]:
        return self._documents.get(doc_id)

    @property
    def vocabulary_size(self) -> int:
        return len(self._vocabulary)

    @property
    def document_count(self) -> int:
        return self._total_documents

    @property
    def vocabulary_locked(self) -> bool:
        return self._vocabulary_locked

    def get_model_info(self) -> Dict[str, Any]:
        info = super().get_model_info()
        info.update(
            {
                "vocabulary_size": len(self._vocabulary),
                "document_count": self._total_documents,
                "vocabulary_locked": self._vocabulary_locked,
                "max_vocabulary_size": self.config.max_vocabulary_size,
                "min_document_frequency": self.config.min_document_frequency,
                "max_document_frequency": self.config.max_document_frequency,
            }
        )
        return info

    async def cleanup(self) -> None:
        """Drop the corpus, vocabulary and cache."""
        self._vocabulary.clear()
        self._document_frequency.clear()
        self._documents.clear()
        self._total_documents = 0
        self._vocabulary_locked = False
        await super().cleanup()
