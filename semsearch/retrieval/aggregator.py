"""
Result aggregation for multi-query search.

Merges the ranked results of several query variants into one list. The first
occurrence of a document id wins; scores are never summed or averaged across
variants. The deduplicated set is re-sorted by each result's own final score.
"""

import logging
from typing import List, Sequence

from semsearch.core.schemas import RankedResult

logger = logging.getLogger(__name__)


class ResultAggregator:
    """Merges per-variant result lists."""

    def deduplicate(self, results_per_query: Sequence[Sequence[RankedResult]]) -> List[RankedResult]:
        """Keep the first occurrence of each id, scanning variants in order."""
        seen = set()
        unique: List[RankedResult] = []
        for results in results_per_query:
            for result in results:
                if result.id in seen:
                    continue
                seen.add(result.id)
                unique.append(result)
        return unique

    def aggregate(
        self,
        results_per_query: Sequence[Sequence[RankedResult]],
        top_k: int,
    ) -> List[RankedResult]:
        """
        Merge variant results and return the top_k, re-ranked from 1.

        Args:
            results_per_query: Ranked results of each variant, in variant order
            top_k: Maximum number of merged results

        Returns:
            Merged results ordered by final score descending
        """
        unique = self.deduplicate(results_per_query)
        total = sum(len(r) for r in results_per_query)
        logger.debug(f"Aggregated {total} results into {len(unique)} unique documents")

        ordered = sorted(unique, key=lambda r: r.final_score, reverse=True)[: max(top_k, 0)]
        return [
            result.model_copy(update={"rank": position})
            for position, result in enumerate(ordered, start=1)
        ]
