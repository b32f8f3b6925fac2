"""
Configuration module for the hybrid embedding service.
Manages environment variables and settings with validation.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache


class EmbeddingMethod(str, Enum):
    """Which backend the orchestrator should try to serve from."""

    AUTO = "auto"  # prefer the neural backend, fall back to TF-IDF
    NEURAL = "neural"  # require the sentence-transformers backend
    OPENAI = "openai"  # require the OpenAI embeddings API
    TFIDF = "tfidf"  # statistical engine only


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class TfIdfConfig:
    """Statistical engine configuration."""

    dimensions: int = field(default_factory=lambda: int(os.getenv("TFIDF_DIMENSIONS", "1000")))
    max_vocabulary_size: int = field(
        default_factory=lambda: int(os.getenv("TFIDF_MAX_VOCABULARY_SIZE", "50000"))
    )
    min_document_frequency: int = 2
    max_document_frequency: float = 0.95  # fraction of documents
    use_stopwords: bool = field(default_factory=lambda: _env_bool("TFIDF_USE_STOPWORDS", "true"))
    use_stemming: bool = field(default_factory=lambda: _env_bool("TFIDF_USE_STEMMING", "false"))
    min_word_length: int = 2

    def __post_init__(self):
        if self.dimensions <= 0:
            raise ValueError("dimensions must be positive")
        if self.max_vocabulary_size <= 0:
            raise ValueError("max_vocabulary_size must be positive")
        if not 0.0 < self.max_document_frequency <= 1.0:
            raise ValueError("max_document_frequency must be in (0, 1]")
        if self.min_word_length < 0:
            raise ValueError("min_word_length must not be negative")


@dataclass
class HybridEmbeddingConfig:
    """Orchestrator configuration - resolved once per manager."""

    method: EmbeddingMethod = field(
        default_factory=lambda: EmbeddingMethod(os.getenv("EMBEDDING_METHOD", "auto"))
    )
    tfidf: TfIdfConfig = field(default_factory=TfIdfConfig)
    fallback_timeout: int = field(
        default_factory=lambda: int(os.getenv("EMBEDDING_FALLBACK_TIMEOUT_MS", "30000"))
    )  # milliseconds, bounds preferred-backend initialization
    neural_model_name: str = field(
        default_factory=lambda: os.getenv(
            "NEURAL_MODEL_NAME",
            "sentence-transformers/distiluse-base-multilingual-cased-v2",
        )
    )
    openai_api_key: str = field(default_factory=lambda: os.getenv("OPENAI_API_KEY", ""))
    openai_model: str = field(
        default_factory=lambda: os.getenv("OPENAI_EMBEDDING_MODEL", "text-embedding-3-small")
    )

    def __post_init__(self):
        # Accept plain strings ("auto", "tfidf", ...) as well as enum members
        self.method = EmbeddingMethod(self.method)
        if self.fallback_timeout <= 0:
            raise ValueError("fallback_timeout must be positive")


@dataclass
class Settings:
    """Main application settings loaded from environment."""

    DEBUG: bool = field(default_factory=lambda: _env_bool("DEBUG", "false"))
    LOG_LEVEL: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    embedding: HybridEmbeddingConfig = field(default_factory=HybridEmbeddingConfig)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
