"""
Qdrant-backed vector store.

Document ids are opaque strings, while Qdrant point ids must be unsigned
integers or UUIDs, so each document id is mapped to a deterministic UUID and
the original id is kept in the payload.
"""

import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from qdrant_client import QdrantClient
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    MatchAny,
    MatchValue,
    PayloadSchemaType,
    PointIdsList,
    PointStruct,
    PointVectors,
    VectorParams,
)

from semsearch.core.exceptions import ConfigurationError
from semsearch.vectorstore.base import DistanceMetric, StoreHit, VectorStore, coerce_metadata

logger = logging.getLogger(__name__)

ID_FIELD = "doc_id"
CONTENT_FIELD = "content"
KEYWORD_INDEX_FIELDS = ("doc_id", "source", "title")

_POINT_NAMESPACE = uuid.UUID("8b7f6c1e-3f5a-4e8e-9a43-2f1c0d9b6a71")

_TO_QDRANT = {
    DistanceMetric.COSINE: Distance.COSINE,
    DistanceMetric.EUCLIDEAN: Distance.EUCLID,
    DistanceMetric.DOT: Distance.DOT,
}
_FROM_QDRANT = {v: k for k, v in _TO_QDRANT.items()}


def point_id(doc_id: str) -> str:
    """Deterministic Qdrant point id for a document id."""
    return str(uuid.uuid5(_POINT_NAMESPACE, doc_id))


def _payload_value(value: Any) -> Any:
    return value.isoformat() if isinstance(value, datetime) else value


class QdrantVectorStore(VectorStore):
    """Qdrant implementation of VectorStore."""

    def __init__(
        self,
        client: QdrantClient,
        collection_name: str,
        dimension: int,
        metric: DistanceMetric = DistanceMetric.COSINE,
    ):
        self.client = client
        self.collection_name = collection_name
        self.dimension = dimension
        self.metric = DistanceMetric.parse(metric)

        if self.client.collection_exists(collection_name):
            self._verify_collection()

    def _verify_collection(self) -> None:
        """Check the existing collection against the declared dimension and metric."""
        info = self.client.get_collection(self.collection_name)
        params = info.config.params.vectors
        if isinstance(params, dict):
            raise ConfigurationError(
                f"Collection '{self.collection_name}' uses named vectors, which are not supported"
            )

        actual_metric = _FROM_QDRANT.get(params.distance)
        if actual_metric is None:
            raise ConfigurationError(
                f"Collection '{self.collection_name}' uses unsupported distance {params.distance}"
            )
        if actual_metric != self.metric:
            raise ConfigurationError(
                f"Collection '{self.collection_name}' uses {actual_metric.value} distance, "
                f"but {self.metric.value} was configured"
            )
        if params.size != self.dimension:
            raise ConfigurationError(
                f"Collection '{self.collection_name}' stores {params.size}-dimensional vectors, "
                f"but the embedding dimension is {self.dimension}"
            )

    def ensure_collection(self) -> bool:
        """
        Create the collection and its payload indexes if missing.

        Returns:
            True if the collection was created, False if it already existed
        """
        if self.client.collection_exists(self.collection_name):
            self._verify_collection()
            return False

        self.client.create_collection(
            collection_name=self.collection_name,
            vectors_config=VectorParams(size=self.dimension, distance=_TO_QDRANT[self.metric]),
        )
        for field_name in KEYWORD_INDEX_FIELDS:
            self.client.create_payload_index(
                collection_name=self.collection_name,
                field_name=field_name,
                field_schema=PayloadSchemaType.KEYWORD,
            )
        logger.info(
            f"Created collection '{self.collection_name}' "
            f"(dim={self.dimension}, metric={self.metric.value})"
        )
        return True

    def build_filter(self, metadata_filter: Optional[Dict[str, Any]]) -> Optional[Filter]:
        """Translate an equality filter mapping into a Qdrant Filter."""
        if not metadata_filter:
            return None

        conditions = []
        for key, value in metadata_filter.items():
            if isinstance(value, (list, tuple, set)):
                match = MatchAny(any=[_payload_value(v) for v in value])
            else:
                match = MatchValue(value=_payload_value(value))
            conditions.append(FieldCondition(key=key, match=match))
        return Filter(must=conditions)

    def _to_distance(self, score: float) -> float:
        if self.metric == DistanceMetric.COSINE:
            # Qdrant reports cosine similarity as the score
            return 1.0 - score
        if self.metric == DistanceMetric.EUCLIDEAN:
            return score
        return -score

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

        points = []
        for doc_id, vector, document, metadata in zip(ids, vectors, documents, metadatas):
            self._check_dimension(vector)
            payload = {k: _payload_value(v) for k, v in (metadata or {}).items()}
            payload[ID_FIELD] = doc_id
            payload[CONTENT_FIELD] = document
            points.append(PointStruct(id=point_id(doc_id), vector=list(vector), payload=payload))

        if points:
            self.client.upsert(collection_name=self.collection_name, points=points)

    def query(
        self,
        vector: Sequence[float],
        n_results: int,
        metadata_filter: Optional[Dict[str, Any]] = None,
    ) -> List[StoreHit]:
        self._check_dimension(vector)
        response = self.client.query_points(
            collection_name=self.collection_name,
            query=list(vector),
            limit=n_results,
            query_filter=self.build_filter(metadata_filter),
            with_payload=True,
        )

        hits = []
        for point in response.points:
            payload = point.payload or {}
            hits.append(
                StoreHit(
                    id=str(payload.get(ID_FIELD, point.id)),
                    document=payload.get(CONTENT_FIELD) or "",
                    distance=self._to_distance(point.score),
                    metadata=coerce_metadata(payload, skip=(ID_FIELD, CONTENT_FIELD)),
                )
            )
        return hits

    def update(
        self,
        id: str,
        vector: Optional[Sequence[float]] = None,
        document: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        pid = point_id(id)
        if vector is not None:
            self._check_dimension(vector)
            self.client.update_vectors(
                collection_name=self.collection_name,
                points=[PointVectors(id=pid, vector=list(vector))],
            )

        if metadata is not None:
            payload = {k: _payload_value(v) for k, v in metadata.items()}
            payload[ID_FIELD] = id
            if document is None:
                # overwrite_payload replaces everything, so keep the stored content
                records = self.client.retrieve(
                    collection_name=self.collection_name, ids=[pid], with_payload=True
                )
                if records:
                    payload[CONTENT_FIELD] = (records[0].payload or {}).get(CONTENT_FIELD, "")
            else:
                payload[CONTENT_FIELD] = document
            self.client.overwrite_payload(
                collection_name=self.collection_name, payload=payload, points=[pid]
            )
        elif document is not None:
            self.client.set_payload(
                collection_name=self.collection_name,
                payload={CONTENT_FIELD: document},
                points=[pid],
            )

    def delete(self, ids: Sequence[str]) -> None:
        if not ids:
            return
        self.client.delete(
            collection_name=self.collection_name,
            points_selector=PointIdsList(points=[point_id(i) for i in ids]),
        )

    def count(self) -> int:
        return self.client.count(collection_name=self.collection_name, exact=True).count
