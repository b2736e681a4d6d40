"""
Vector store contract.

The pipeline only depends on this interface; concrete stores (in-memory,
Qdrant) implement it. The distance metric is declared when the store is
created and never changes afterwards.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Collection, Dict, List, Optional, Sequence

from semsearch.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class DistanceMetric(str, Enum):
    """Distance semantics of a vector store."""

    COSINE = "cosine"
    EUCLIDEAN = "euclidean"
    DOT = "dot"

    @classmethod
    def parse(cls, value: "str | DistanceMetric") -> "DistanceMetric":
        """Resolve a configured metric name, failing on anything unknown."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ConfigurationError(
                f"Unrecognized distance metric '{value}'. "
                f"Expected one of: {', '.join(m.value for m in cls)}"
            ) from None


def coerce_metadata(metadata: Dict[str, Any], skip: Collection[str] = ()) -> Dict[str, Any]:
    """
    Reduce stored metadata to the scalar types a Candidate accepts.

    None values are dropped, lists become comma-joined strings, and any
    other non-scalar value is dropped.
    """
    coerced: Dict[str, Any] = {}
    for key, value in metadata.items():
        if key in skip or value is None:
            continue
        if isinstance(value, (list, tuple)):
            coerced[key] = ", ".join(str(v) for v in value)
        elif isinstance(value, (str, int, float, bool, datetime)):
            coerced[key] = value
        else:
            logger.debug(f"Dropping non-scalar metadata field '{key}'")
    return coerced


@dataclass
class StoreHit:
    """Raw hit returned by a vector store query."""

    id: str
    document: str
    distance: float
    metadata: Dict[str, Any] = field(default_factory=dict)


class VectorStore(ABC):
    """Abstract interface for vector storage operations."""

    metric: DistanceMetric
    dimension: int

    @abstractmethod
    def add(
        self,
        ids: Sequence[str],
        vectors: Sequence[Sequence[float]],
        documents: Sequence[str],
        metadatas: Optional[Sequence[Dict[str, Any]]] = None,
    ) -> None:
        """Add (or overwrite) records in the store."""

    @abstractmethod
    def query(
        self,
        vector: Sequence[float],
        n_results: int,
        metadata_filter: Optional[Dict[str, Any]] = None,
    ) -> List[StoreHit]:
        """Return up to n_results hits ordered by ascending distance."""

    @abstractmethod
    def update(
        self,
        id: str,
        vector: Optional[Sequence[float]] = None,
        document: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Replace the given fields of an existing record."""

    @abstractmethod
    def delete(self, ids: Sequence[str]) -> None:
        """Delete records by id. Unknown ids are ignored."""

    @abstractmethod
    def count(self) -> int:
        """Number of records in the store."""

    def _check_dimension(self, vector: Sequence[float]) -> None:
        if len(vector) != self.dimension:
            raise ValueError(
                f"Vector dimension {len(vector)} does not match expected dimension {self.dimension}"
            )
