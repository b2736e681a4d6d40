"""
Query and document embedding.

The embedding model runtime is wrapped behind EmbeddingModel so the client can
be exercised with deterministic doubles. EmbeddingClient adds content-hash
caching, batching, and output validation on top of a model.

The same model must be used for both indexing and query-time embedding to
ensure vector space consistency.
"""

import hashlib
import logging
import math
import struct
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence

from semsearch.core.config import Settings, settings
from semsearch.core.exceptions import ConfigurationError, EmbeddingUnavailableError
from semsearch.core.schemas import EmbeddingVector
from semsearch.retrieval.cache import EmbeddingCache, InMemoryEmbeddingCache, cache_key

logger = logging.getLogger(__name__)


class EmbeddingModel(ABC):
    """Abstract interface for embedding model runtimes."""

    model_id: str

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Fixed dimensionality of the produced vectors."""

    @abstractmethod
    def encode(self, text: str) -> Sequence[float]:
        """Embed one text."""

    def encode_batch(self, texts: Sequence[str]) -> List[Sequence[float]]:
        """Embed several texts, preserving order."""
        return [self.encode(text) for text in texts]


class SentenceTransformerEncoder(EmbeddingModel):
    """sentence-transformers model runtime, loaded lazily on first use."""

    def __init__(self, model_name: str, device: str = "cpu"):
        self.model_id = model_name
        self.device = device
        self._model = None

    @property
    def model(self):
        if self._model is None:
            from sentence_transformers import SentenceTransformer

            logger.info(f"Loading embedding model {self.model_id} on {self.device}")
            self._model = SentenceTransformer(
                self.model_id,
                device=self.device,
                trust_remote_code=True,
            )
            self._model.eval()
        return self._model

    @property
    def dimension(self) -> int:
        return self.model.get_sentence_embedding_dimension()

    def encode(self, text: str) -> List[float]:
        return self.encode_batch([text])[0]

    def encode_batch(self, texts: Sequence[str]) -> List[List[float]]:
        embeddings = self.model.encode(
            list(texts),
            normalize_embeddings=True,
            convert_to_numpy=True,
            show_progress_bar=False,
        )
        return embeddings.tolist()


class HashingEncoder(EmbeddingModel):
    """
    Deterministic hash-based encoder.

    Produces reproducible unit-length vectors without a model download, which
    is useful for tests and offline development. Vectors carry no semantics
    beyond exact-text identity.
    """

    def __init__(self, dimension: int = 384):
        self.model_id = f"hash-{dimension}"
        self._dimension = dimension

    @property
    def dimension(self) -> int:
        return self._dimension

    def encode(self, text: str) -> List[float]:
        values: List[float] = []
        counter = 0
        while len(values) < self._dimension:
            digest = hashlib.sha256(f"{counter}:{text}".encode("utf-8")).digest()
            for (word,) in struct.iter_unpack(">I", digest):
                # Map to [-1, 1]
                values.append(word / 0xFFFFFFFF * 2 - 1)
            counter += 1
        values = values[: self._dimension]

        norm = math.sqrt(sum(v * v for v in values))
        return [v / norm for v in values] if norm else values


class EmbeddingClient:
    """
    Produces cached, validated embeddings.

    Cache hits never reach the model. Model failures surface as
    EmbeddingUnavailableError and are not retried here.
    """

    def __init__(
        self,
        model: EmbeddingModel,
        cache: Optional[EmbeddingCache] = None,
        batch_size: int = 32,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.model = model
        self.cache = cache if cache is not None else InMemoryEmbeddingCache()
        self.batch_size = batch_size

    @property
    def dimension(self) -> int:
        return self.model.dimension

    def _key(self, text: str) -> str:
        return cache_key(text, self.model.model_id)

    def _validate(self, vector: Sequence[float]) -> EmbeddingVector:
        if len(vector) != self.dimension:
            raise ConfigurationError(
                f"Embedding dimension mismatch: expected {self.dimension}, got {len(vector)}"
            )
        result = tuple(float(v) for v in vector)
        if not all(math.isfinite(v) for v in result):
            raise EmbeddingUnavailableError("Embedding model returned non-finite values")
        return result

    def embed(self, text: str) -> EmbeddingVector:
        """Embed one text, consulting the cache first."""
        key = self._key(text)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Embedding cache hit")
            return cached

        logger.debug("Embedding cache miss")
        try:
            raw = self.model.encode(text)
        except Exception as e:
            logger.error(f"Embedding model call failed: {type(e).__name__}")
            raise EmbeddingUnavailableError(f"Embedding model call failed: {e}") from e

        vector = self._validate(raw)
        self.cache.put(key, vector)
        return vector

    def embed_many(self, texts: Sequence[str]) -> List[EmbeddingVector]:
        """
        Embed several texts, preserving input order and length.

        Only cache misses are sent to the model, in batches of at most
        batch_size distinct texts.
        """
        results: List[Optional[EmbeddingVector]] = [None] * len(texts)
        pending: Dict[str, List[int]] = {}

        for position, text in enumerate(texts):
            key = self._key(text)
            cached = self.cache.get(key)
            if cached is not None:
                results[position] = cached
            else:
                pending.setdefault(key, []).append(position)

        misses = list(pending.items())
        logger.debug(f"embed_many: {len(texts)} texts, {len(misses)} distinct misses")

        for start in range(0, len(misses), self.batch_size):
            batch = misses[start : start + self.batch_size]
            batch_texts = [texts[positions[0]] for _, positions in batch]
            try:
                vectors = self.model.encode_batch(batch_texts)
            except Exception as e:
                logger.error(f"Embedding model batch call failed: {type(e).__name__}")
                raise EmbeddingUnavailableError(f"Embedding model call failed: {e}") from e

            if len(vectors) != len(batch):
                raise EmbeddingUnavailableError(
                    f"Embedding model returned {len(vectors)} vectors for {len(batch)} texts"
                )

            for (key, positions), raw in zip(batch, vectors):
                vector = self._validate(raw)
                self.cache.put(key, vector)
                for position in positions:
                    results[position] = vector

        return results  # type: ignore[return-value]


def build_embedding_model(config: Optional[Settings] = None) -> EmbeddingModel:
    """Build the embedding model selected by EMBEDDING_BACKEND."""
    config = config or settings
    if config.EMBEDDING_BACKEND == "hash":
        return HashingEncoder(dimension=config.EMBEDDING_DIMENSION)
    if config.EMBEDDING_BACKEND == "sentence-transformers":
        return SentenceTransformerEncoder(config.EMBEDDING_MODEL, device=config.EMBEDDING_DEVICE)
    raise ConfigurationError(f"Invalid EMBEDDING_BACKEND: {config.EMBEDDING_BACKEND}")


def build_embedding_client(config: Optional[Settings] = None) -> EmbeddingClient:
    config = config or settings
    cache = InMemoryEmbeddingCache(max_size=config.EMBEDDING_CACHE_SIZE or None)
    return EmbeddingClient(
        build_embedding_model(config),
        cache=cache,
        batch_size=config.EMBEDDING_BATCH_SIZE,
    )
