"""
Vector store module for embedding storage and retrieval.

This module provides an abstraction layer over the vector database
for storing and querying document chunk embeddings.

Key operations:
- Storing embeddings with associated metadata
- Similarity search with optional metadata filtering
- Record update, deletion and counting
"""

from semsearch.vectorstore.base import DistanceMetric, StoreHit, VectorStore
from semsearch.vectorstore.memory import InMemoryVectorStore

__all__ = [
    "DistanceMetric",
    "StoreHit",
    "VectorStore",
    "InMemoryVectorStore",
]
