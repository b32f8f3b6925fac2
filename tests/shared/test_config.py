import pytest

from shared.config import EmbeddingMethod, HybridEmbeddingConfig, TfIdfConfig


def test_defaults() -> None:
    config = TfIdfConfig()
    assert config.dimensions == 1000
    assert config.max_vocabulary_size == 50000
    assert config.use_stopwords is True
    assert config.use_stemming is False


def test_environment_overrides(monkeypatch) -> None:
    monkeypatch.setenv("EMBEDDING_METHOD", "tfidf")
    monkeypatch.setenv("TFIDF_DIMENSIONS", "256")
    monkeypatch.setenv("EMBEDDING_FALLBACK_TIMEOUT_MS", "500")

    config = HybridEmbeddingConfig()

    assert config.method is EmbeddingMethod.TFIDF
    assert config.tfidf.dimensions == 256
    assert config.fallback_timeout == 500


def test_method_accepts_strings() -> None:
    assert HybridEmbeddingConfig(method="openai").method is EmbeddingMethod.OPENAI
    with pytest.raises(ValueError):
        HybridEmbeddingConfig(method="word2vec")


def test_invalid_values_are_rejected() -> None:
    with pytest.raises(ValueError):
        TfIdfConfig(dimensions=0)
    with pytest.raises(ValueError):
        TfIdfConfig(max_document_frequency=1.5)
    with pytest.raises(ValueError):
        HybridEmbeddingConfig(fallback_timeout=0)
