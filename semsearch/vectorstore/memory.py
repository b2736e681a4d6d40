"""
In-memory vector store.

Exact nearest-neighbour search over numpy arrays. Used for local development,
tests, and small corpora that do not warrant a Qdrant deployment.
"""

import threading
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from semsearch.vectorstore.base import DistanceMetric, StoreHit, VectorStore, coerce_metadata


def _matches(metadata: Dict[str, Any], metadata_filter: Dict[str, Any]) -> bool:
    """Exact-equality filter; a list value matches any of its elements."""
    for key, expected in metadata_filter.items():
        if key not in metadata:
            return False
        if isinstance(expected, (list, tuple, set)):
            if metadata[key] not in expected:
                return False
        elif metadata[key] != expected:
            return False
    return True


class InMemoryVectorStore(VectorStore):
    """Simple in-memory implementation of VectorStore."""

    def __init__(self, dimension: int, metric: DistanceMetric = DistanceMetric.COSINE):
        self.dimension = dimension
        self.metric = DistanceMetric.parse(metric)
        self._lock = threading.Lock()
        self._vectors: Dict[str, np.ndarray] = {}
        self._documents: Dict[str, str] = {}
        self._metadatas: Dict[str, Dict[str, Any]] = {}

    def add(
        self,
        ids: Sequence[str],
        vectors: Sequence[Sequence[float]],
        documents: Sequence[str],
        metadatas: Optional[Sequence[Dict[str, Any]]] = None,
    ) -> None:
        if metadatas is None:
            metadatas = [{} for _ in ids]
        if not len(ids) == len(vectors) == len(documents) == len(metadatas):
            raise ValueError("ids, vectors, documents and metadatas must have the same length")

        for vector in vectors:
            self._check_dimension(vector)

        with self._lock:
            for record_id, vector, document, metadata in zip(ids, vectors, documents, metadatas):
                self._vectors[record_id] = np.asarray(vector, dtype=np.float64)
                self._documents[record_id] = document
                self._metadatas[record_id] = dict(metadata or {})

    def query(
        self,
        vector: Sequence[float],
        n_results: int,
        metadata_filter: Optional[Dict[str, Any]] = None,
    ) -> List[StoreHit]:
        self._check_dimension(vector)
        if n_results < 1:
            return []

        with self._lock:
            ids = [
                record_id
                for record_id in self._vectors
                if not metadata_filter or _matches(self._metadatas[record_id], metadata_filter)
            ]
            if not ids:
                return []
            matrix = np.vstack([self._vectors[record_id] for record_id in ids])
            documents = [self._documents[record_id] for record_id in ids]
            metadatas = [coerce_metadata(self._metadatas[record_id]) for record_id in ids]

        distances = self._distances(np.asarray(vector, dtype=np.float64), matrix)

        # Stable sort so equal distances keep insertion order
        order = np.argsort(distances, kind="stable")[:n_results]
        return [
            StoreHit(
                id=ids[i],
                document=documents[i],
                distance=float(distances[i]),
                metadata=metadatas[i],
            )
            for i in order
        ]

    def _distances(self, query: np.ndarray, matrix: np.ndarray) -> np.ndarray:
        if self.metric == DistanceMetric.COSINE:
            norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
            dots = matrix @ query
            # Zero vectors are maximally distant
            cosine = np.divide(dots, norms, out=np.full_like(dots, -1.0), where=norms > 0)
            return 1.0 - cosine
        if self.metric == DistanceMetric.EUCLIDEAN:
            return np.linalg.norm(matrix - query, axis=1)
        # Dot product: larger is closer, so negate to keep "ascending distance"
        return -(matrix @ query)

    def update(
        self,
        id: str,
        vector: Optional[Sequence[float]] = None,
        document: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        if vector is not None:
            self._check_dimension(vector)

        with self._lock:
            if id not in self._vectors:
                raise KeyError(f"Record '{id}' not found")
            if vector is not None:
                self._vectors[id] = np.asarray(vector, dtype=np.float64)
            if document is not None:
                self._documents[id] = document
            if metadata is not None:
                self._metadatas[id] = dict(metadata)

    def delete(self, ids: Sequence[str]) -> None:
        with self._lock:
            for record_id in ids:
                self._vectors.pop(record_id, None)
                self._documents.pop(record_id, None)
                self._metadatas.pop(record_id, None)

    def count(self) -> int:
        with self._lock:
            return len(self._vectors)
