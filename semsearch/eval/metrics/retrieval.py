"""
Ranking metrics over retrieved document ids.

All functions compare a ranked id list with the set of ids judged relevant.
They are deterministic and need no model calls.
"""

import math
from typing import Dict, Iterable, List, Set


def _hits(retrieved_ids: List[str], relevant_ids: Set[str], k: int) -> int:
    return len([doc_id for doc_id in retrieved_ids[:k] if doc_id in relevant_ids])


def precision_at_k(retrieved_ids: List[str], relevant_ids: Set[str], k: int) -> float:
    """Relevant share of the top-k slots; missing results count as misses."""
    if k <= 0 or not retrieved_ids:
        return 0.0
    return _hits(retrieved_ids, relevant_ids, k) / k


def recall_at_k(retrieved_ids: List[str], relevant_ids: Set[str], k: int) -> float:
    """Share of relevant ids found in the top-k."""
    if not relevant_ids:
        return 1.0
    return _hits(retrieved_ids, relevant_ids, k) / len(relevant_ids)


def mrr(retrieved_ids: List[str], relevant_ids: Set[str]) -> float:
    """Reciprocal rank of the first relevant id."""
    for rank, doc_id in enumerate(retrieved_ids, start=1):
        if doc_id in relevant_ids:
            return 1.0 / rank
    return 0.0


def _discount(rank: int) -> float:
    return 1.0 / math.log2(rank + 1)


def ndcg_at_k(retrieved_ids: List[str], relevant_ids: Set[str], k: int) -> float:
    """Binary-relevance nDCG at k."""
    dcg = sum(
        _discount(rank)
        for rank, doc_id in enumerate(retrieved_ids[:k], start=1)
        if doc_id in relevant_ids
    )
    ideal = sum(_discount(rank) for rank in range(1, min(len(relevant_ids), k) + 1))
    return dcg / ideal if ideal else 0.0


def hit_rate_at_k(retrieved_ids: List[str], relevant_ids: Set[str], k: int) -> float:
    """1.0 when any relevant id appears in the top-k, else 0.0."""
    return 1.0 if _hits(retrieved_ids, relevant_ids, k) else 0.0


def compute_retrieval_metrics(
    retrieved_ids: List[str],
    relevant_ids: Set[str],
    k_values: Iterable[int],
) -> Dict[str, float]:
    """All metrics at every k, keyed like "precision@5", plus "mrr"."""
    metrics: Dict[str, float] = {}
    for k in k_values:
        metrics[f"precision@{k}"] = precision_at_k(retrieved_ids, relevant_ids, k)
        metrics[f"recall@{k}"] = recall_at_k(retrieved_ids, relevant_ids, k)
        metrics[f"ndcg@{k}"] = ndcg_at_k(retrieved_ids, relevant_ids, k)
        metrics[f"hit_rate@{k}"] = hit_rate_at_k(retrieved_ids, relevant_ids, k)
    metrics["mrr"] = mrr(retrieved_ids, relevant_ids)
    return metrics
