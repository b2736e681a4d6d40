"""
Retrieval pipeline orchestration.

This module coordinates the full query processing workflow:
Query → Normalization/Intent → Embedding → Vector Search → Ranking → Context

It provides the main entry points for executing searches: a single-query
search and a multi-query search that fans out over query variants and merges
their results.
"""

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional, Sequence

from semsearch.core.config import Settings, settings
from semsearch.core.exceptions import (
    ConfigurationError,
    EmbeddingUnavailableError,
    InvalidInputError,
    RetrievalUnavailableError,
    SearchPipelineError,
)
from semsearch.core.schemas import (
    ErrorDescriptor,
    Feedback,
    MultiSearchResponse,
    Query,
    SearchResponse,
    VariantFailure,
)
from semsearch.llm.reformulator import QueryReformulator
from semsearch.retrieval.aggregator import ResultAggregator
from semsearch.retrieval.context import build_citations, build_context
from semsearch.retrieval.embedding import EmbeddingClient, build_embedding_client
from semsearch.retrieval.query_processor import process_query
from semsearch.retrieval.ranker import FeedbackStage, LexicalBlendStage, RankingStage, ResultRanker
from semsearch.retrieval.retriever import VectorRetriever
from semsearch.vectorstore.base import DistanceMetric, VectorStore

logger = logging.getLogger(__name__)


class RetrievalPipeline:
    """
    Main search pipeline.

    Components are injected so tests can substitute doubles; get_pipeline()
    builds the configured production instance. Construction validates the
    configuration and fails with ConfigurationError on any mismatch between
    the embedding model and the vector store.
    """

    def __init__(
        self,
        embedder: EmbeddingClient,
        store: VectorStore,
        config: Optional[Settings] = None,
        ranker: Optional[ResultRanker] = None,
        reformulator: Optional[QueryReformulator] = None,
        aggregator: Optional[ResultAggregator] = None,
    ):
        self.config = config or settings
        self.config.check()

        self.embedder = embedder
        self.store = store
        self.reformulator = reformulator
        self.aggregator = aggregator or ResultAggregator()

        self._check_compatibility()

        self.retriever = VectorRetriever(
            store,
            similarity_floor=self.config.SIMILARITY_FLOOR,
            overfetch_factor=self.config.OVERFETCH_FACTOR,
        )
        self.ranker = ranker or ResultRanker(self._configured_stages())

    def _check_compatibility(self) -> None:
        expected_metric = DistanceMetric.parse(self.config.DISTANCE_METRIC)
        if self.store.metric != expected_metric:
            raise ConfigurationError(
                f"Vector store uses {self.store.metric.value} distance, "
                f"but DISTANCE_METRIC is {expected_metric.value}"
            )

        dimension = self.embedder.dimension
        if dimension != self.store.dimension:
            raise ConfigurationError(
                f"Embedding dimension {dimension} does not match "
                f"vector store dimension {self.store.dimension}"
            )
        if dimension != self.config.EMBEDDING_DIMENSION:
            raise ConfigurationError(
                f"Embedding model produces {dimension}-dimensional vectors, "
                f"but EMBEDDING_DIMENSION is {self.config.EMBEDDING_DIMENSION}"
            )

    def _configured_stages(self) -> List[RankingStage]:
        stages: List[RankingStage] = []
        if self.config.ENABLE_LEXICAL_RERANK:
            stages.append(LexicalBlendStage(weight=self.config.LEXICAL_WEIGHT))
        return stages

    def _feedback_stages(self, feedback: Optional[Feedback]) -> List[RankingStage]:
        if feedback is None or feedback.is_empty():
            return []
        return [
            FeedbackStage(
                positive_ids=feedback.positive_ids,
                negative_ids=feedback.negative_ids,
                boost=self.config.FEEDBACK_POSITIVE_BOOST,
                penalty=self.config.FEEDBACK_NEGATIVE_PENALTY,
            )
        ]

    def _check_n_results(self, n_results: int) -> None:
        if not 1 <= n_results <= self.config.MAX_N_RESULTS:
            raise InvalidInputError(
                f"n_results must be between 1 and {self.config.MAX_N_RESULTS}, got {n_results}"
            )

    async def _run(
        self,
        query: Query,
        n_results: int,
        metadata_filter: Optional[Dict[str, Any]],
        include_context: bool,
        feedback: Optional[Feedback],
        timestamps: Dict[str, float],
    ) -> SearchResponse:
        """Embed, retrieve, rank and optionally assemble context for a processed query."""
        query_vector = await asyncio.to_thread(self.embedder.embed, query.normalized_text)
        timestamps["embedded"] = time.time()

        candidates = await asyncio.to_thread(
            self.retriever.retrieve,
            query_vector,
            n_results,
            None,
            metadata_filter,
        )
        timestamps["retrieved"] = time.time()

        results = self.ranker.rank(
            query.normalized_text,
            candidates,
            n_results=n_results,
            extra_stages=self._feedback_stages(feedback),
        )
        timestamps["ranked"] = time.time()

        context = citations = None
        if include_context:
            context = build_context(query.raw, results, self.config.CONTEXT_MAX_LENGTH)
            citations = build_citations(results)

        timestamps["completed"] = time.time()
        return SearchResponse(
            query=query.raw,
            normalized_query=query.normalized_text,
            intent=query.intent,
            results=results,
            context=context,
            citations=citations,
            timestamps=timestamps,
        )

    async def search(
        self,
        query: str,
        n_results: Optional[int] = None,
        metadata_filter: Optional[Dict[str, Any]] = None,
        include_context: bool = False,
        feedback: Optional[Feedback] = None,
    ) -> SearchResponse:
        """
        Execute a single-query search.

        Args:
            query: Raw query text
            n_results: Maximum number of results (default: DEFAULT_N_RESULTS)
            metadata_filter: Passed through to the vector store
            include_context: Attach the assembled text context
            feedback: Previously marked positive/negative document ids

        Returns:
            SearchResponse; on embedding or retrieval failure the response has
            no results and carries an error descriptor

        Raises:
            InvalidInputError: empty query or out-of-range n_results
            ConfigurationError: metric or dimension mismatch detected at query time
        """
        n_results = n_results if n_results is not None else self.config.DEFAULT_N_RESULTS
        timestamps = {"start": time.time()}

        self._check_n_results(n_results)
        processed = process_query(query)
        timestamps["normalized"] = time.time()

        logger.info(f"Search: query='{processed.normalized_text[:50]}', n_results={n_results}")

        try:
            return await self._run(
                processed, n_results, metadata_filter, include_context, feedback, timestamps
            )
        except (EmbeddingUnavailableError, RetrievalUnavailableError) as e:
            logger.error(f"Search failed: {e.code}: {e}")
            timestamps["completed"] = time.time()
            return SearchResponse(
                query=query,
                normalized_query=processed.normalized_text,
                intent=processed.intent,
                error=ErrorDescriptor.from_exception(e),
                timestamps=timestamps,
            )

    async def _search_variant(
        self,
        query: str,
        n_results: int,
        metadata_filter: Optional[Dict[str, Any]],
    ) -> SearchResponse:
        """Run one variant; pipeline errors degrade to an error response."""
        try:
            return await self.search(query, n_results, metadata_filter)
        except ConfigurationError:
            raise
        except SearchPipelineError as e:
            return SearchResponse(query=query, error=ErrorDescriptor.from_exception(e))

    async def _search_multiple_queries(
        self,
        queries: Sequence[str],
        n_results: int,
        metadata_filter: Optional[Dict[str, Any]],
    ) -> List[SearchResponse]:
        """Run all variants concurrently and wait for every one of them."""
        return list(
            await asyncio.gather(
                *(self._search_variant(q, n_results, metadata_filter) for q in queries)
            )
        )

    async def multi_search(
        self,
        queries: Sequence[str],
        n_results: Optional[int] = None,
        metadata_filter: Optional[Dict[str, Any]] = None,
    ) -> MultiSearchResponse:
        """
        Search several query variants and merge their results.

        A failing variant contributes an empty result set and is recorded in
        `failures`; it never aborts the other variants. Only when every
        variant fails does the merged response carry an error.

        Raises:
            InvalidInputError: no queries given or out-of-range n_results
        """
        n_results = n_results if n_results is not None else self.config.DEFAULT_N_RESULTS
        queries = list(queries)
        if not queries:
            raise InvalidInputError("At least one query is required")
        self._check_n_results(n_results)

        timestamps = {"start": time.time()}
        individual = await self._search_multiple_queries(queries, n_results, metadata_filter)
        timestamps["searched"] = time.time()

        failures = [
            VariantFailure(query=response.query, error=response.error)
            for response in individual
            if response.error is not None
        ]
        for failure in failures:
            logger.warning(
                f"Variant '{failure.query[:50]}' failed: {failure.error.code}: {failure.error.message}"
            )

        if len(failures) == len(individual):
            timestamps["completed"] = time.time()
            return MultiSearchResponse(
                queries=queries,
                individual=individual,
                failures=failures,
                error=ErrorDescriptor(
                    code="all_variants_failed",
                    message=f"All {len(queries)} query variants failed",
                    retryable=any(f.error.retryable for f in failures),
                ),
                timestamps=timestamps,
            )

        merged = self.aggregator.aggregate([r.results for r in individual], top_k=n_results)
        timestamps["completed"] = time.time()

        logger.info(
            f"Multi-search: {len(queries)} variants, {len(failures)} failed, "
            f"{len(merged)} merged results"
        )
        return MultiSearchResponse(
            queries=queries,
            individual=individual,
            results=merged,
            failures=failures,
            timestamps=timestamps,
        )

    async def reformulate_and_search(
        self,
        query: str,
        n_results: Optional[int] = None,
        metadata_filter: Optional[Dict[str, Any]] = None,
    ) -> MultiSearchResponse:
        """Expand a query into LLM-generated variants, then multi-search them."""
        if not query or not query.strip():
            raise InvalidInputError("Search query cannot be empty")

        if self.reformulator is None:
            variants = [query]
        else:
            variants = await self.reformulator.reformulate(query)
        return await self.multi_search(variants, n_results, metadata_filter)

    def health(self) -> Dict[str, Any]:
        """Return pipeline health information."""
        try:
            count = self.store.count()
            status = "healthy"
        except Exception as e:
            logger.error(f"Vector store health check failed: {type(e).__name__}")
            count = None
            status = "unhealthy"

        return {
            "status": status,
            "documents": count,
            "embedding_model": self.embedder.model.model_id,
            "dimension": self.store.dimension,
            "distance_metric": self.store.metric.value,
            "lexical_rerank": self.config.ENABLE_LEXICAL_RERANK,
            "reformulation": self.reformulator is not None,
        }


# Module-level singleton
_pipeline: Optional[RetrievalPipeline] = None


def get_pipeline() -> RetrievalPipeline:
    """Get or create the singleton RetrievalPipeline from settings."""
    global _pipeline
    if _pipeline is None:
        from semsearch.llm.reformulator import get_reformulator
        from semsearch.vectorstore.client import get_vector_store

        _pipeline = RetrievalPipeline(
            embedder=build_embedding_client(settings),
            store=get_vector_store(settings),
            reformulator=get_reformulator(),
        )
    return _pipeline
