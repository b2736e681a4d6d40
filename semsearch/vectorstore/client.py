"""
Vector database client.

This module provides connection management for the Qdrant vector database
and selects the configured vector store implementation.
"""

import logging
from typing import Optional

from qdrant_client import QdrantClient

from semsearch.core.config import Settings, settings
from semsearch.core.exceptions import ConfigurationError
from semsearch.vectorstore.base import DistanceMetric, VectorStore

logger = logging.getLogger(__name__)

_client: Optional[QdrantClient] = None


def get_qdrant_client(timeout: Optional[float] = None) -> QdrantClient:
    """Get or create the singleton QdrantClient instance."""
    global _client
    if _client is None:
        _client = QdrantClient(
            url=settings.QDRANT_ENDPOINT,
            api_key=settings.QDRANT_API_KEY,
            timeout=int(timeout or settings.QDRANT_TIMEOUT),
        )
    return _client


def get_vector_store(config: Optional[Settings] = None) -> VectorStore:
    """Build the vector store selected by VECTOR_BACKEND."""
    config = config or settings
    metric = DistanceMetric.parse(config.DISTANCE_METRIC)

    if config.VECTOR_BACKEND == "memory":
        from semsearch.vectorstore.memory import InMemoryVectorStore

        logger.info(f"Using in-memory vector store (dim={config.EMBEDDING_DIMENSION})")
        return InMemoryVectorStore(dimension=config.EMBEDDING_DIMENSION, metric=metric)

    if config.VECTOR_BACKEND == "qdrant":
        from semsearch.vectorstore.qdrant_store import QdrantVectorStore

        logger.info(
            f"Using Qdrant collection '{config.QDRANT_COLLECTION}' at {config.QDRANT_ENDPOINT}"
        )
        return QdrantVectorStore(
            client=get_qdrant_client(config.QDRANT_TIMEOUT),
            collection_name=config.QDRANT_COLLECTION,
            dimension=config.EMBEDDING_DIMENSION,
            metric=metric,
        )

    raise ConfigurationError(f"Invalid VECTOR_BACKEND: {config.VECTOR_BACKEND}")
