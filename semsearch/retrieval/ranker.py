"""
Result ranking and re-ranking.

The base score of every candidate is its vector similarity. Optional stages
adjust that score in order:

1. LexicalBlendStage: blends in query/content token overlap
2. FeedbackStage: boosts or penalizes ids the user marked before

Candidates are then sorted by final score (stable, so ties keep retrieval
order) and truncated. Ranking is a pure function of its inputs.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import AbstractSet, FrozenSet, Iterable, List, Optional, Sequence

from semsearch.core.schemas import Candidate, RankedResult

_TOKEN = re.compile(r"\w+")


def tokenize(text: str) -> FrozenSet[str]:
    """Distinct lowercase word tokens of a text."""
    return frozenset(_TOKEN.findall(text.lower()))


def overlap_ratio(query_tokens: AbstractSet[str], content: str) -> float:
    """Fraction of distinct query tokens that occur in the content."""
    if not query_tokens:
        return 0.0
    return len(query_tokens & tokenize(content)) / len(query_tokens)


@dataclass
class ScoredCandidate:
    """A candidate carrying its score through the ranking stages."""

    candidate: Candidate
    score: float


class RankingStage(ABC):
    """One independently toggleable score adjustment."""

    @abstractmethod
    def apply(self, query_text: str, scored: List[ScoredCandidate]) -> List[ScoredCandidate]:
        """Return candidates with adjusted scores, in the same order."""


class LexicalBlendStage(RankingStage):
    """score = (1 - weight) * score + weight * overlap_ratio"""

    def __init__(self, weight: float = 0.3):
        if not 0.0 <= weight <= 1.0:
            raise ValueError(f"weight must be within [0, 1], got {weight}")
        self.weight = weight

    def apply(self, query_text: str, scored: List[ScoredCandidate]) -> List[ScoredCandidate]:
        query_tokens = tokenize(query_text)
        return [
            ScoredCandidate(
                candidate=s.candidate,
                score=(1.0 - self.weight) * s.score
                + self.weight * overlap_ratio(query_tokens, s.candidate.content),
            )
            for s in scored
        ]


class FeedbackStage(RankingStage):
    """
    Multiplies scores of previously marked documents.

    An id marked both positive and negative is treated as negative.
    """

    def __init__(
        self,
        positive_ids: Iterable[str] = (),
        negative_ids: Iterable[str] = (),
        boost: float = 1.5,
        penalty: float = 0.5,
    ):
        self.positive_ids = frozenset(positive_ids)
        self.negative_ids = frozenset(negative_ids)
        self.boost = boost
        self.penalty = penalty

    def _factor(self, doc_id: str) -> float:
        if doc_id in self.negative_ids:
            return self.penalty
        if doc_id in self.positive_ids:
            return self.boost
        return 1.0

    def apply(self, query_text: str, scored: List[ScoredCandidate]) -> List[ScoredCandidate]:
        return [
            ScoredCandidate(candidate=s.candidate, score=s.score * self._factor(s.candidate.id))
            for s in scored
        ]


class ResultRanker:
    """Scores, sorts and truncates retrieved candidates."""

    def __init__(self, stages: Sequence[RankingStage] = ()):
        self.stages = list(stages)

    def rank(
        self,
        query_text: str,
        candidates: Sequence[Candidate],
        n_results: Optional[int] = None,
        extra_stages: Sequence[RankingStage] = (),
    ) -> List[RankedResult]:
        """
        Rank candidates for a normalized query.

        Args:
            query_text: Normalized query text
            candidates: Candidates in retrieval order
            n_results: Truncation width (None keeps all)
            extra_stages: Request-scoped stages applied after the configured ones

        Returns:
            Ranked results with 1-based ranks
        """
        scored = [ScoredCandidate(candidate=c, score=c.similarity) for c in candidates]

        for stage in [*self.stages, *extra_stages]:
            scored = stage.apply(query_text, scored)

        # sorted() is stable, so equal scores keep retrieval order
        ordered = sorted(scored, key=lambda s: s.score, reverse=True)
        if n_results is not None:
            ordered = ordered[: max(n_results, 0)]

        return [
            RankedResult(**s.candidate.model_dump(), rank=position, final_score=s.score)
            for position, s in enumerate(ordered, start=1)
        ]
