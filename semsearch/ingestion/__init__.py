"""
Ingestion module for populating the vector store.

This module handles the offline data preparation workflow:
1. Loading pre-chunked documents from JSON or JSONL files
2. Generating dense vector embeddings with the query-time model
3. Storing embeddings, content and metadata in the vector store

Chunking itself happens upstream; records arrive ready to embed.
"""

from semsearch.ingestion.ingest import DocumentChunk, Indexer, load_chunks

__all__ = ["DocumentChunk", "Indexer", "load_chunks"]
