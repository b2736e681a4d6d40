"""
Retrieval module for semantic search over indexed documents.

This module handles the query-time retrieval workflow:
- Query normalization and rule-based intent labeling
- Cached query embedding
- Similarity-floor filtering of vector store candidates
- Multi-stage ranking (similarity, lexical overlap, feedback)
- Context assembly for downstream consumers
- Result aggregation across multiple query variants

RetrievalPipeline ties the stages together behind search(),
multi_search() and reformulate_and_search().
"""

from semsearch.retrieval.aggregator import ResultAggregator
from semsearch.retrieval.context import build_citations, build_context
from semsearch.retrieval.embedding import EmbeddingClient, build_embedding_client
from semsearch.retrieval.pipeline import RetrievalPipeline, get_pipeline
from semsearch.retrieval.query_processor import process_query
from semsearch.retrieval.ranker import ResultRanker
from semsearch.retrieval.retriever import VectorRetriever

__all__ = [
    "RetrievalPipeline",
    "get_pipeline",
    "EmbeddingClient",
    "build_embedding_client",
    "VectorRetriever",
    "ResultRanker",
    "ResultAggregator",
    "build_context",
    "build_citations",
    "process_query",
]
