"""
Exception hierarchy for the embedding backends and orchestrator.

Only the orchestrator converts backend errors into fallback transitions;
everything raised by the TF-IDF engine propagates to the caller.
"""


class EmbeddingError(Exception):
    """Base class for embedding failures."""

    pass


class InitializationFatalError(EmbeddingError):
    """No usable backend at all, not even the TF-IDF fallback."""

    pass


class DimensionMismatchError(EmbeddingError):
    """A backend returned a vector of the wrong length."""

    pass


class BackendUnavailableError(EmbeddingError):
    """A backend is not initialized, failed to load, or timed out."""

    pass


class MalformedResponseError(EmbeddingError):
    """A remote embeddings API returned an unusable payload."""

    pass


class LengthMismatchError(EmbeddingError, ValueError):
    """Vector math called with vectors of different lengths."""

    pass
