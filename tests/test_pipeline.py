"""End-to-end tests for the retrieval pipeline over test doubles."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import DIMENSION, CountingEncoder, ScriptedStore, hit, make_settings
from semsearch.core.exceptions import (
    ConfigurationError,
    InvalidInputError,
    RetrievalUnavailableError,
)
from semsearch.core.schemas import Feedback, IntentType
from semsearch.retrieval.cache import InMemoryEmbeddingCache
from semsearch.retrieval.embedding import EmbeddingClient
from semsearch.retrieval.pipeline import RetrievalPipeline
from semsearch.vectorstore.base import DistanceMetric
from semsearch.vectorstore.memory import InMemoryVectorStore


def run(coro):
    return asyncio.run(coro)


class TestSearch:
    def test_vacation_policy_scenario(self, build_pipeline):
        pipeline = build_pipeline(
            [hit("doc_1", 0.82, content="Employees get 20 days.", title="HR Handbook", source="hr.pdf")]
        )

        response = run(pipeline.search("What is the vacation policy?", include_context=True))

        assert response.ok
        assert len(response.results) == 1
        result = response.results[0]
        assert result.id == "doc_1"
        assert result.rank == 1
        assert result.final_score == pytest.approx(0.82)
        assert "Relevance Score: 0.82" in response.context
        assert "HR Handbook" in response.context
        assert response.citations == "[1] HR Handbook (hr.pdf)"

    def test_response_carries_normalized_query_and_intent(self, build_pipeline):
        response = run(build_pipeline([hit("a", 0.9)]).search("  What  IS the Policy? "))
        assert response.query == "  What  IS the Policy? "
        assert response.normalized_query == "what is the policy?"
        assert response.intent.type == IntentType.FACTUAL

    def test_normalized_text_is_embedded(self, build_pipeline, encoder):
        run(build_pipeline([hit("a", 0.9)]).search("  Vacation   POLICY "))
        assert encoder.encode_calls == ["vacation policy"]

    def test_empty_query_makes_no_backend_calls(self, build_pipeline, encoder, store):
        pipeline = build_pipeline([hit("a", 0.9)])
        with pytest.raises(InvalidInputError):
            run(pipeline.search(""))
        assert encoder.total_calls == 0
        assert store.queries == []

    @pytest.mark.parametrize("n_results", [0, 51])
    def test_out_of_range_n_results(self, build_pipeline, n_results):
        with pytest.raises(InvalidInputError):
            run(build_pipeline().search("policy", n_results=n_results))

    def test_context_omitted_unless_requested(self, build_pipeline):
        response = run(build_pipeline([hit("a", 0.9)]).search("policy"))
        assert response.context is None
        assert response.citations is None

    def test_no_results_is_success_with_message(self, build_pipeline):
        response = run(build_pipeline([hit("a", 0.3)]).search("policy", include_context=True))
        assert response.ok
        assert response.results == []
        assert "No relevant information found." in response.context

    def test_floor_and_truncation_hold(self, build_pipeline):
        hits = [hit(f"doc_{i}", 0.99 - i * 0.04) for i in range(20)]
        response = run(build_pipeline(hits).search("policy", n_results=3))

        assert len(response.results) <= 3
        assert all(0.5 <= r.similarity <= 1.0 for r in response.results)

    def test_similarity_respects_floor_with_lexical_blend(self, build_pipeline):
        hits = [hit("a", 0.55, content="policy"), hit("b", 0.45, content="policy policy")]
        response = run(build_pipeline(hits, ENABLE_LEXICAL_RERANK=True).search("policy"))
        assert [r.id for r in response.results] == ["a"]
        assert response.results[0].final_score == pytest.approx(0.7 * 0.55 + 0.3)

    def test_negative_feedback_scenario(self, build_pipeline):
        response = run(
            build_pipeline([hit("doc_1", 0.9)]).search(
                "policy", feedback=Feedback(negative_ids={"doc_1"})
            )
        )
        assert response.results[0].final_score == pytest.approx(0.45)

    def test_metadata_filter_reaches_store(self, build_pipeline, store):
        run(build_pipeline([hit("a", 0.9)]).search("policy", metadata_filter={"source": "hr.pdf"}))
        assert store.queries[0]["metadata_filter"] == {"source": "hr.pdf"}

    def test_repeated_query_uses_cache(self, build_pipeline, encoder):
        pipeline = build_pipeline([hit("a", 0.9)])
        run(pipeline.search("vacation policy"))
        run(pipeline.search("Vacation  Policy"))
        assert len(encoder.encode_calls) == 1

    def test_timestamps_recorded_in_order(self, build_pipeline):
        response = run(build_pipeline([hit("a", 0.9)]).search("policy"))
        keys = ["start", "normalized", "embedded", "retrieved", "ranked", "completed"]
        assert list(response.timestamps) == keys
        values = [response.timestamps[k] for k in keys]
        assert values == sorted(values)

    def test_embedding_failure_returns_error_response(self, store):
        store.hits = [hit("a", 0.9)]
        pipeline = RetrievalPipeline(
            embedder=EmbeddingClient(CountingEncoder(fail=True), cache=InMemoryEmbeddingCache()),
            store=store,
            config=make_settings(),
        )

        response = run(pipeline.search("policy"))

        assert response.results == []
        assert response.error.code == "embedding_unavailable"
        assert response.error.retryable is True
        assert store.queries == []

    def test_retrieval_failure_returns_error_response(self, build_pipeline, store):
        pipeline = build_pipeline([hit("a", 0.9)])
        store.fail = True

        response = run(pipeline.search("policy"))

        assert not response.ok
        assert response.results == []
        assert response.error.code == "retrieval_unavailable"


    def test_non_scalar_store_metadata_is_searchable(self, embedder):
        store = InMemoryVectorStore(dimension=DIMENSION)
        store.add(
            ids=["doc_1"],
            vectors=[embedder.embed("vacation policy")],
            documents=["Employees get 20 days."],
            metadatas=[{"title": "HR Handbook", "tags": ["hr", "leave"], "date": None}],
        )
        pipeline = RetrievalPipeline(embedder, store, config=make_settings())

        response = run(pipeline.search("Vacation policy", include_context=True))

        assert response.ok
        assert [r.id for r in response.results] == ["doc_1"]
        assert response.results[0].metadata == {"title": "HR Handbook", "tags": "hr, leave"}
        assert "Date:" not in response.context


class TestConstruction:
    def test_dimension_mismatch_with_store(self, embedder):
        with pytest.raises(ConfigurationError):
            RetrievalPipeline(embedder, ScriptedStore(dimension=DIMENSION * 2), config=make_settings())

    def test_dimension_mismatch_with_settings(self, embedder, store):
        with pytest.raises(ConfigurationError):
            RetrievalPipeline(embedder, store, config=make_settings(EMBEDDING_DIMENSION=384))

    def test_metric_mismatch(self, embedder):
        store = ScriptedStore(metric=DistanceMetric.EUCLIDEAN)
        with pytest.raises(ConfigurationError):
            RetrievalPipeline(embedder, store, config=make_settings(DISTANCE_METRIC="cosine"))

    def test_unknown_metric(self, embedder, store):
        with pytest.raises(ConfigurationError):
            RetrievalPipeline(embedder, store, config=make_settings(DISTANCE_METRIC="hamming"))

    def test_invalid_settings(self, embedder, store):
        with pytest.raises(ConfigurationError):
            RetrievalPipeline(embedder, store, config=make_settings(SIMILARITY_FLOOR=1.5))

    def test_euclidean_store_accepted(self, embedder):
        store = ScriptedStore(metric=DistanceMetric.EUCLIDEAN)
        pipeline = RetrievalPipeline(embedder, store, config=make_settings(DISTANCE_METRIC="euclidean"))
        assert pipeline.store.metric == DistanceMetric.EUCLIDEAN

    def test_health(self, build_pipeline):
        health = build_pipeline([hit("a", 0.9), hit("b", 0.8)]).health()
        assert health["status"] == "healthy"
        assert health["documents"] == 2
        assert health["distance_metric"] == "cosine"
        assert health["reformulation"] is False


class TestMultiSearch:
    def test_shared_document_returned_once(self, build_pipeline):
        pipeline = build_pipeline([hit("doc_1", 0.9), hit("doc_2", 0.8)])

        response = run(pipeline.multi_search(["vacation policy", "paid time off"], n_results=5))

        assert [r.id for r in response.results].count("doc_1") == 1
        assert len(response.individual) == 2
        assert all(len(r.results) == 2 for r in response.individual)
        assert [r.rank for r in response.results] == [1, 2]

    def test_each_variant_requests_n_results(self, build_pipeline, store):
        run(build_pipeline([hit("a", 0.9)]).multi_search(["one", "two", "three"], n_results=4))
        assert [q["n_results"] for q in store.queries] == [8, 8, 8]

    def test_invalid_variant_degrades_and_is_recorded(self, build_pipeline):
        response = run(build_pipeline([hit("doc_1", 0.9)]).multi_search(["policy", "   "]))

        assert response.error is None
        assert [r.id for r in response.results] == ["doc_1"]
        assert len(response.failures) == 1
        assert response.failures[0].query == "   "
        assert response.failures[0].error.code == "invalid_input"

    def test_failed_variant_does_not_drop_others(self, build_pipeline):
        pipeline = build_pipeline([hit("doc_1", 0.9)])
        failing_vector = pipeline.embedder.embed("first variant")
        original = pipeline.retriever.retrieve

        def flaky(vector, n_results, floor=None, metadata_filter=None):
            if tuple(vector) == failing_vector:
                raise RetrievalUnavailableError("store timed out")
            return original(vector, n_results, floor, metadata_filter)

        pipeline.retriever.retrieve = flaky
        response = run(pipeline.multi_search(["first variant", "second variant"]))

        assert response.error is None
        assert [r.id for r in response.results] == ["doc_1"]
        assert [f.query for f in response.failures] == ["first variant"]
        assert response.failures[0].error.code == "retrieval_unavailable"

    def test_all_variants_failed(self, build_pipeline, store):
        pipeline = build_pipeline([hit("doc_1", 0.9)])
        store.fail = True

        response = run(pipeline.multi_search(["a", "b"]))

        assert response.results == []
        assert response.error.code == "all_variants_failed"
        assert response.error.retryable is True
        assert len(response.failures) == 2

    def test_empty_query_list(self, build_pipeline):
        with pytest.raises(InvalidInputError):
            run(build_pipeline().multi_search([]))


class TestReformulateAndSearch:
    def test_without_reformulator_searches_original_only(self, build_pipeline):
        response = run(build_pipeline([hit("doc_1", 0.9)]).reformulate_and_search("policy"))
        assert response.queries == ["policy"]
        assert [r.id for r in response.results] == ["doc_1"]

    def test_uses_reformulated_variants(self, build_pipeline, store):
        reformulator = MagicMock()
        reformulator.reformulate = AsyncMock(return_value=["policy", "leave rules", "pto"])
        pipeline = build_pipeline([hit("doc_1", 0.9)], reformulator=reformulator)

        response = run(pipeline.reformulate_and_search("policy", n_results=3))

        reformulator.reformulate.assert_awaited_once_with("policy")
        assert response.queries == ["policy", "leave rules", "pto"]
        assert len(store.queries) == 3
        assert [r.id for r in response.results] == ["doc_1"]

    def test_blank_query_rejected_before_reformulation(self, build_pipeline):
        reformulator = MagicMock()
        reformulator.reformulate = AsyncMock()
        with pytest.raises(InvalidInputError):
            run(build_pipeline(reformulator=reformulator).reformulate_and_search("  "))
        reformulator.reformulate.assert_not_awaited()
