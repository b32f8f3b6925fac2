"""
Pydantic schemas for API request/response models.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from shared.config import EmbeddingMethod


class EmbedRequest(BaseModel):
    """Request model for single-text embedding."""

    text: str = Field(..., description="Text to embed")


class EmbedResponse(BaseModel):
    embedding: List[float]
    dimensions: int
    method: str


class EmbedBatchRequest(BaseModel):
    """Request model for batch embedding."""

    texts: List[str] = Field(..., description="Texts to embed, order is preserved")


class EmbedBatchResponse(BaseModel):
    embeddings: List[List[float]]
    dimensions: int
    method: str


class DocumentIn(BaseModel):
    """A corpus document to ingest."""

    content: str = Field(..., description="Document text")
    source: Optional[str] = Field(default=None, description="Origin of the document")


class AddDocumentsRequest(BaseModel):
    documents: List[DocumentIn]


class AddDocumentsResponse(BaseModel):
    document_ids: List[str]
    document_count: int
    vocabulary_size: int


class SearchRequest(BaseModel):
    """Request model for corpus similarity search."""

    query: str = Field(..., description="Search query")
    top_k: int = Field(default=10, ge=1, le=100, description="Number of results to return")
    threshold: float = Field(
        default=0.1, ge=-1.0, le=1.0, description="Minimum cosine similarity"
    )


class SearchResult(BaseModel):
    id: str
    score: float
    content: str
    source: Optional[str] = None


class SearchResponse(BaseModel):
    results: List[SearchResult]
    total_found: int


class SwitchMethodRequest(BaseModel):
    method: EmbeddingMethod


class SwitchMethodResponse(BaseModel):
    switched: bool
    active_method: str
    dimensions: int


class HealthResponse(BaseModel):
    status: str
    version: str
    active_method: str
    dimensions: int
    using_fallback: bool


class StatusResponse(BaseModel):
    method: str
    active_manager: str
    using_fallback: bool
    is_initialized: bool
    state: str
    preferred_available: bool
    tfidf_ready: bool
    dimensions: int
    fallback_reason: Optional[str] = None


class CacheStatsResponse(BaseModel):
    stats: Dict[str, Any]
