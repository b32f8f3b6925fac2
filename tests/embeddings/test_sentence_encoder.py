import asyncio

import numpy as np
import pytest

from embeddings.base import BackendState
from embeddings.errors import BackendUnavailableError, DimensionMismatchError
from embeddings.sentence_encoder import SentenceTransformerEmbedder


class FakeModel:
    def __init__(self, dimensions: int = 512):
        self.dimensions = dimensions
        self.calls = []

    def encode(self, texts, convert_to_numpy=True):
        self.calls.append(list(texts))
        return np.array([[float(len(t))] * self.dimensions for t in texts])


def make_embedder(model: FakeModel) -> SentenceTransformerEmbedder:
    return SentenceTransformerEmbedder(model_name="fake-model", model_loader=lambda name: model)


def test_embed_returns_declared_dimensions() -> None:
    model = FakeModel()
    embedder = make_embedder(model)

    async def run():
        await embedder.initialize()
        return await embedder.embed("hello   world")

    vector = asyncio.run(run())

    assert len(vector) == 512
    assert vector[0] == float(len("hello world"))
    assert model.calls == [["hello world"]]
    assert embedder.name == "Sentence-Transformer (fake-model)"


def test_empty_text_skips_the_model() -> None:
    model = FakeModel()
    embedder = make_embedder(model)

    async def run():
        await embedder.initialize()
        return await embedder.embed("   ")

    assert asyncio.run(run()) == [0.0] * 512
    assert model.calls == []


def test_batch_encodes_misses_in_one_call() -> None:
    model = FakeModel()
    embedder = make_embedder(model)

    async def run():
        await embedder.initialize()
        await embedder.embed("cached")
        return await embedder.embed_batch(["a", "cached", "abc"])

    vectors = asyncio.run(run())

    assert [v[0] for v in vectors] == [1.0, 6.0, 3.0]
    assert model.calls == [["cached"], ["a", "abc"]]


def test_wrong_model_output_size_is_rejected() -> None:
    embedder = make_embedder(FakeModel(dimensions=384))

    async def run():
        await embedder.initialize()
        await embedder.embed("hello")

    with pytest.raises(DimensionMismatchError):
        asyncio.run(run())


def test_failed_load_marks_backend_failed() -> None:
    def loader(name):
        raise OSError(f"cannot download {name}")

    embedder = SentenceTransformerEmbedder(model_name="missing", model_loader=loader)

    with pytest.raises(OSError):
        asyncio.run(embedder.initialize())

    assert embedder.state is BackendState.FAILED
    with pytest.raises(BackendUnavailableError):
        asyncio.run(embedder.embed("hello"))


def test_cleanup_releases_model() -> None:
    embedder = make_embedder(FakeModel())

    async def run():
        await embedder.initialize()
        await embedder.cleanup()

    asyncio.run(run())

    assert embedder.state is BackendState.UNINITIALIZED
    assert embedder._model is None
