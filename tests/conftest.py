"""Shared test doubles for the search pipeline."""

from typing import Any, Dict, List, Optional, Sequence

import pytest

from semsearch.core.config import Settings
from semsearch.retrieval.cache import InMemoryEmbeddingCache
from semsearch.retrieval.embedding import EmbeddingClient, EmbeddingModel, HashingEncoder
from semsearch.retrieval.pipeline import RetrievalPipeline
from semsearch.vectorstore.base import DistanceMetric, StoreHit, VectorStore

DIMENSION = 8


class CountingEncoder(EmbeddingModel):
    """Deterministic encoder that records how often the model is invoked."""

    def __init__(self, dimension: int = DIMENSION, fail: bool = False):
        self.model_id = "counting-test-encoder"
        self._inner = HashingEncoder(dimension)
        self.fail = fail
        self.encode_calls: List[str] = []
        self.batch_calls: List[List[str]] = []

    @property
    def dimension(self) -> int:
        return self._inner.dimension

    @property
    def total_calls(self) -> int:
        return len(self.encode_calls) + len(self.batch_calls)

    def encode(self, text: str) -> List[float]:
        self.encode_calls.append(text)
        if self.fail:
            raise TimeoutError("model timed out")
        return self._inner.encode(text)

    def encode_batch(self, texts: Sequence[str]) -> List[List[float]]:
        self.batch_calls.append(list(texts))
        if self.fail:
            raise TimeoutError("model timed out")
        return [self._inner.encode(text) for text in texts]


class ScriptedStore(VectorStore):
    """Vector store returning preset hits and recording every query."""

    def __init__(
        self,
        hits: Optional[List[StoreHit]] = None,
        dimension: int = DIMENSION,
        metric: DistanceMetric = DistanceMetric.COSINE,
        fail: bool = False,
    ):
        self.hits = list(hits or [])
        self.dimension = dimension
        self.metric = metric
        self.fail = fail
        self.queries: List[Dict[str, Any]] = []

    def add(self, ids, vectors, documents, metadatas=None) -> None:
        raise NotImplementedError

    def query(self, vector, n_results, metadata_filter=None) -> List[StoreHit]:
        self.queries.append(
            {"vector": vector, "n_results": n_results, "metadata_filter": metadata_filter}
        )
        if self.fail:
            raise ConnectionError("store unreachable")
        return self.hits[:n_results]

    def update(self, id, vector=None, document=None, metadata=None) -> None:
        raise NotImplementedError

    def delete(self, ids) -> None:
        raise NotImplementedError

    def count(self) -> int:
        return len(self.hits)


def hit(doc_id: str, similarity: float, content: str = "", **metadata) -> StoreHit:
    """Cosine-store hit with the given similarity."""
    return StoreHit(
        id=doc_id,
        document=content or f"content of {doc_id}",
        distance=1.0 - similarity,
        metadata=metadata,
    )


def make_settings(**overrides) -> Settings:
    values = dict(
        EMBEDDING_BACKEND="hash",
        EMBEDDING_DIMENSION=DIMENSION,
        EMBEDDING_CACHE_SIZE=0,
        VECTOR_BACKEND="memory",
        DISTANCE_METRIC="cosine",
        SIMILARITY_FLOOR=0.5,
        OVERFETCH_FACTOR=2,
        DEFAULT_N_RESULTS=5,
        MAX_N_RESULTS=50,
        ENABLE_LEXICAL_RERANK=False,
        LEXICAL_WEIGHT=0.3,
        FEEDBACK_POSITIVE_BOOST=1.5,
        FEEDBACK_NEGATIVE_PENALTY=0.5,
        CONTEXT_MAX_LENGTH=4000,
        GROQ_API_KEY=None,
        NUM_REFORMULATED_QUERIES=3,
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def encoder():
    return CountingEncoder()


@pytest.fixture
def cache():
    return InMemoryEmbeddingCache()


@pytest.fixture
def embedder(encoder, cache):
    return EmbeddingClient(encoder, cache=cache, batch_size=4)


@pytest.fixture
def store():
    return ScriptedStore()


@pytest.fixture
def build_pipeline(embedder, store):
    """Factory for a pipeline over the shared encoder and store doubles."""

    def _build(hits=None, reformulator=None, **overrides) -> RetrievalPipeline:
        if hits is not None:
            store.hits = list(hits)
        return RetrievalPipeline(
            embedder=embedder,
            store=store,
            config=make_settings(**overrides),
            reformulator=reformulator,
        )

    return _build
