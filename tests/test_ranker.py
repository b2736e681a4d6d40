"""Tests for result ranking stages."""

import pytest

from semsearch.core.schemas import Candidate
from semsearch.retrieval.ranker import (
    FeedbackStage,
    LexicalBlendStage,
    ResultRanker,
    ScoredCandidate,
    overlap_ratio,
    tokenize,
)


def candidate(doc_id, similarity, content="unrelated text"):
    return Candidate(
        id=doc_id,
        content=content,
        distance=1.0 - similarity,
        similarity=similarity,
    )


def test_tokenize_lowercases_and_dedups():
    assert tokenize("Vacation vacation POLICY, policy!") == frozenset({"vacation", "policy"})


def test_overlap_ratio():
    tokens = tokenize("vacation policy details")
    assert overlap_ratio(tokens, "The vacation policy is generous") == pytest.approx(2 / 3)
    assert overlap_ratio(frozenset(), "anything") == 0.0


def test_base_score_is_similarity():
    results = ResultRanker().rank("q", [candidate("a", 0.9), candidate("b", 0.6)])
    assert [r.final_score for r in results] == [0.9, 0.6]
    assert [r.rank for r in results] == [1, 2]


def test_sorts_descending():
    results = ResultRanker().rank("q", [candidate("a", 0.6), candidate("b", 0.9), candidate("c", 0.7)])
    assert [r.id for r in results] == ["b", "c", "a"]


def test_ties_keep_retrieval_order():
    candidates = [candidate("first", 0.8), candidate("second", 0.8), candidate("third", 0.8)]
    results = ResultRanker().rank("q", candidates)
    assert [r.id for r in results] == ["first", "second", "third"]


def test_ranking_is_deterministic():
    candidates = [candidate(f"doc_{i}", (i * 37 % 10) / 10) for i in range(10)]
    ranker = ResultRanker([LexicalBlendStage()])
    first = ranker.rank("doc text", candidates)
    second = ranker.rank("doc text", candidates)
    assert first == second


@pytest.mark.parametrize("n_results", [0, 1, 3, 10])
def test_truncates_to_n_results(n_results):
    candidates = [candidate(f"doc_{i}", 0.9 - i * 0.05) for i in range(5)]
    results = ResultRanker().rank("q", candidates, n_results=n_results)
    assert len(results) == min(n_results, 5)


def test_lexical_blend_formula():
    stage = LexicalBlendStage(weight=0.3)
    scored = stage.apply(
        "vacation policy",
        [ScoredCandidate(candidate("a", 0.8, "our vacation rules"), 0.8)],
    )
    assert scored[0].score == pytest.approx(0.7 * 0.8 + 0.3 * 0.5)


def test_lexical_blend_can_reorder():
    candidates = [
        candidate("semantic", 0.80, "annual leave entitlement"),
        candidate("lexical", 0.75, "vacation policy overview"),
    ]
    plain = ResultRanker().rank("vacation policy", candidates)
    blended = ResultRanker([LexicalBlendStage()]).rank("vacation policy", candidates)

    assert [r.id for r in plain] == ["semantic", "lexical"]
    assert [r.id for r in blended] == ["lexical", "semantic"]
    # Similarity itself is untouched by the blend
    assert blended[0].similarity == 0.75


def test_invalid_lexical_weight():
    with pytest.raises(ValueError):
        LexicalBlendStage(weight=1.5)


def test_negative_feedback_halves_score():
    stage = FeedbackStage(negative_ids={"doc_1"})
    results = ResultRanker().rank("q", [candidate("doc_1", 0.9)], extra_stages=[stage])
    assert results[0].final_score == pytest.approx(0.45)


def test_positive_feedback_boosts_score():
    stage = FeedbackStage(positive_ids={"doc_2"})
    results = ResultRanker().rank(
        "q", [candidate("doc_1", 0.9), candidate("doc_2", 0.7)], extra_stages=[stage]
    )
    assert [r.id for r in results] == ["doc_2", "doc_1"]
    assert results[0].final_score == pytest.approx(1.05)


def test_negative_wins_when_id_marked_both_ways():
    stage = FeedbackStage(positive_ids={"doc_1"}, negative_ids={"doc_1"})
    results = ResultRanker().rank("q", [candidate("doc_1", 0.8)], extra_stages=[stage])
    assert results[0].final_score == pytest.approx(0.4)


def test_feedback_applies_after_lexical_blend():
    ranker = ResultRanker([LexicalBlendStage(weight=0.3)])
    feedback = FeedbackStage(positive_ids={"a"})
    results = ranker.rank(
        "vacation policy",
        [candidate("a", 0.8, "vacation policy")],
        extra_stages=[feedback],
    )
    assert results[0].final_score == pytest.approx((0.7 * 0.8 + 0.3 * 1.0) * 1.5)


def test_ranked_result_carries_candidate_fields():
    c = Candidate(
        id="doc_1",
        content="body",
        metadata={"title": "HR Handbook"},
        distance=0.1,
        similarity=0.9,
    )
    result = ResultRanker().rank("q", [c])[0]
    assert (result.id, result.content, result.metadata) == ("doc_1", "body", {"title": "HR Handbook"})
    assert result.distance == 0.1
