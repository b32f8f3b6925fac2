"""
FastAPI application for the hybrid embedding service.

Endpoints:
- Embedding (single and batch) through the hybrid manager
- Corpus ingestion and similarity search on the TF-IDF engine
- Method switching, status and cache management
- Request tracing via X-Request-ID
"""

import logging
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from embeddings import (
    EmbeddingError,
    HybridEmbeddingManager,
    InitializationFatalError,
    LengthMismatchError,
    get_embedding_manager,
)
from shared.config import get_settings
from shared.schemas import (
    AddDocumentsRequest,
    AddDocumentsResponse,
    CacheStatsResponse,
    EmbedBatchRequest,
    EmbedBatchResponse,
    EmbedRequest,
    EmbedResponse,
    HealthResponse,
    SearchRequest,
    SearchResponse,
    SearchResult,
    StatusResponse,
    SwitchMethodRequest,
    SwitchMethodResponse,
)

# Configure logging
logging.basicConfig(
    level=get_settings().LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

__version__ = "1.0.0"


def get_manager() -> HybridEmbeddingManager:
    """Dependency returning the global embedding manager."""
    return get_embedding_manager()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info(f"Starting hybrid embedding service v{__version__}")
    manager = get_embedding_manager()
    try:
        await manager.initialize()
        logger.info(f"Embedding manager ready: {manager.get_active_method()}")
    except InitializationFatalError as e:
        logger.error(f"Embedding manager failed to initialize: {e}")

    yield

    logger.info("Shutting down hybrid embedding service")
    await manager.cleanup()


app = FastAPI(
    title="Hybrid Embeddings",
    description="Text embeddings with TF-IDF fallback",
    version=__version__,
    lifespan=lifespan,
)


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Add request ID for tracing."""
    request_id = str(uuid.uuid4())[:8]
    request.state.request_id = request_id

    start_time = time.time()
    response = await call_next(request)

    duration_ms = (time.time() - start_time) * 1000
    logger.info(
        f"[{request_id}] {request.method} {request.url.path} "
        f"- {response.status_code} - {duration_ms:.1f}ms"
    )

    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(InitializationFatalError)
async def initialization_fatal_handler(request: Request, exc: InitializationFatalError):
    return JSONResponse(
        status_code=503,
        content={"error": "No embedding backend available", "detail": str(exc)},
    )


@app.exception_handler(LengthMismatchError)
async def length_mismatch_handler(request: Request, exc: LengthMismatchError):
    return JSONResponse(
        status_code=422,
        content={"error": "Vector length mismatch", "detail": str(exc)},
    )


@app.exception_handler(EmbeddingError)
async def embedding_error_handler(request: Request, exc: EmbeddingError):
    request_id = getattr(request.state, "request_id", "unknown")
    logger.error(f"[{request_id}] Embedding failed: {exc}")
    return JSONResponse(
        status_code=500,
        content={"error": "Embedding failed", "detail": str(exc)},
    )


@app.get("/health", response_model=HealthResponse)
async def health_check(manager: HybridEmbeddingManager = Depends(get_manager)):
    """Health check endpoint."""
    return HealthResponse(
        status="healthy" if manager.is_ready() else "degraded",
        version=__version__,
        active_method=manager.get_active_method(),
        dimensions=manager.dimensions,
        using_fallback=manager.using_fallback,
    )


@app.get("/status", response_model=StatusResponse)
async def status_endpoint(manager: HybridEmbeddingManager = Depends(get_manager)):
    return StatusResponse(**manager.get_status())


@app.post("/embed", response_model=EmbedResponse)
async def embed_endpoint(body: EmbedRequest, manager: HybridEmbeddingManager = Depends(get_manager)):
    """Embed a single text with the active backend."""
    embedding = await manager.embed(body.text)
    return EmbedResponse(
        embedding=embedding,
        dimensions=manager.dimensions,
        method=manager.get_active_method(),
    )


@app.post("/embed/batch", response_model=EmbedBatchResponse)
async def embed_batch_endpoint(
    body: EmbedBatchRequest, manager: HybridEmbeddingManager = Depends(get_manager)
):
    embeddings = await manager.embed_batch(body.texts)
    return EmbedBatchResponse(
        embeddings=embeddings,
        dimensions=manager.dimensions,
        method=manager.get_active_method(),
    )


@app.post("/documents", response_model=AddDocumentsResponse)
async def add_documents_endpoint(
    body: AddDocumentsRequest, manager: HybridEmbeddingManager = Depends(get_manager)
):
    """
    Ingest documents into the TF-IDF corpus.

    The first batch fixes the vocabulary; later batches only grow the corpus.
    """
    doc_ids = await manager.add_documents([doc.model_dump() for doc in body.documents])
    return AddDocumentsResponse(
        document_ids=doc_ids,
        document_count=manager.fallback.document_count,
        vocabulary_size=manager.fallback.vocabulary_size,
    )


@app.post("/search", response_model=SearchResponse)
async def search_endpoint(body: SearchRequest, manager: HybridEmbeddingManager = Depends(get_manager)):
    """Rank corpus documents against a query."""
    if not manager.is_initialized:
        await manager.initialize()

    results = await manager.find_similar(body.query, top_k=body.top_k, threshold=body.threshold)
    return SearchResponse(
        results=[
            SearchResult(id=r.id, score=r.score, content=r.content, source=r.source)
            for r in results
        ],
        total_found=len(results),
    )


@app.post("/method", response_model=SwitchMethodResponse)
async def switch_method_endpoint(
    body: SwitchMethodRequest, manager: HybridEmbeddingManager = Depends(get_manager)
):
    if not manager.is_initialized:
        await manager.initialize()

    switched = manager.switch_method(body.method)
    return SwitchMethodResponse(
        switched=switched,
        active_method=manager.get_active_method(),
        dimensions=manager.dimensions,
    )


@app.get("/cache/stats", response_model=CacheStatsResponse)
async def cache_stats_endpoint(manager: HybridEmbeddingManager = Depends(get_manager)):
    return CacheStatsResponse(stats=manager.get_cache_stats())


@app.delete("/cache")
async def clear_cache_endpoint(manager: HybridEmbeddingManager = Depends(get_manager)):
    manager.clear_cache()
    return {"cleared": True}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
