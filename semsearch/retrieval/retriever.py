"""
Vector similarity retrieval.

Issues similarity queries against the vector store, converts raw distances
into similarities according to the store's declared metric, applies the
similarity floor, and returns at most n_results candidates.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

from semsearch.core.exceptions import ConfigurationError, RetrievalUnavailableError
from semsearch.core.schemas import Candidate
from semsearch.vectorstore.base import DistanceMetric, StoreHit, VectorStore

logger = logging.getLogger(__name__)

# Tolerance for floating point error at the [0, 1] bounds
SIMILARITY_EPSILON = 1e-6

SimilarityConverter = Callable[[float], float]


def _cosine_similarity(distance: float) -> float:
    return 1.0 - distance


def _unit_euclidean_similarity(distance: float) -> float:
    # For L2-normalized vectors: ||a - b||^2 = 2 - 2 cos(a, b)
    return 1.0 - (distance * distance) / 2.0


def similarity_converter(metric: DistanceMetric) -> SimilarityConverter:
    """
    Select the distance -> similarity conversion for a metric.

    Cosine distance maps to 1 - distance. Euclidean distance is only
    convertible when embeddings are L2-normalized, which the sentence
    transformer and hashing encoders guarantee. Dot-product scores are
    unbounded and have no conversion into [0, 1].

    Raises:
        ConfigurationError: for metrics without a defined conversion
    """
    metric = DistanceMetric.parse(metric)
    if metric == DistanceMetric.COSINE:
        return _cosine_similarity
    if metric == DistanceMetric.EUCLIDEAN:
        return _unit_euclidean_similarity
    raise ConfigurationError(
        f"No similarity conversion is defined for the '{metric.value}' distance metric; "
        "configure the store with cosine distance"
    )


class VectorRetriever:
    """Over-fetching similarity search with a similarity floor."""

    def __init__(
        self,
        store: VectorStore,
        similarity_floor: float = 0.5,
        overfetch_factor: int = 2,
    ):
        if not 0.0 <= similarity_floor <= 1.0:
            raise ConfigurationError(
                f"similarity_floor must be within [0, 1], got {similarity_floor}"
            )
        if overfetch_factor < 1:
            raise ConfigurationError("overfetch_factor must be >= 1")

        self.store = store
        self.similarity_floor = similarity_floor
        self.overfetch_factor = overfetch_factor
        self._to_similarity = similarity_converter(store.metric)

    def _similarity(self, hit: StoreHit) -> Optional[float]:
        """Similarity of a hit, or None when it cannot reach any floor."""
        similarity = self._to_similarity(hit.distance)

        if similarity > 1.0 + SIMILARITY_EPSILON or similarity < -1.0 - SIMILARITY_EPSILON:
            raise ConfigurationError(
                f"Similarity {similarity:.4f} for '{hit.id}' is impossible under "
                f"{self.store.metric.value} distance; the store metric is misconfigured"
            )
        if similarity < 0.0:
            # Opposing vectors; below any valid floor
            return None
        return min(similarity, 1.0)

    def retrieve(
        self,
        query_vector: Sequence[float],
        n_results: int,
        similarity_floor: Optional[float] = None,
        metadata_filter: Optional[Dict[str, Any]] = None,
    ) -> List[Candidate]:
        """
        Retrieve candidates for a query vector.

        Args:
            query_vector: Embedding of the normalized query
            n_results: Maximum number of candidates to return
            similarity_floor: Overrides the configured floor for this call
            metadata_filter: Passed through to the store unmodified

        Returns:
            Candidates in store order (ascending distance). An empty list is a
            normal outcome, not an error.
        """
        if n_results < 1:
            return []

        floor = self.similarity_floor if similarity_floor is None else similarity_floor
        if not 0.0 <= floor <= 1.0:
            raise ConfigurationError(f"similarity_floor must be within [0, 1], got {floor}")

        fetch_k = n_results * self.overfetch_factor
        try:
            hits = self.store.query(query_vector, fetch_k, metadata_filter=metadata_filter)
        except Exception as e:
            logger.error(f"Vector store query failed: {type(e).__name__}")
            raise RetrievalUnavailableError(f"Vector store query failed: {e}") from e

        candidates: List[Candidate] = []
        seen = set()
        for hit in hits:
            similarity = self._similarity(hit)
            if similarity is None or similarity < floor:
                continue
            if hit.id in seen:
                continue
            seen.add(hit.id)

            candidates.append(
                Candidate(
                    id=hit.id,
                    content=hit.document,
                    metadata=hit.metadata,
                    distance=hit.distance,
                    similarity=similarity,
                )
            )
            if len(candidates) >= n_results:
                break

        logger.info(
            f"Retrieved {len(hits)} hits (requested {fetch_k}), "
            f"{len(candidates)} above floor {floor:.2f}"
        )
        return candidates
