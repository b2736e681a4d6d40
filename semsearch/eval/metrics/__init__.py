"""Retrieval quality and latency metrics."""

from semsearch.eval.metrics.latency import aggregate_latencies, compute_stage_latencies
from semsearch.eval.metrics.retrieval import (
    compute_retrieval_metrics,
    hit_rate_at_k,
    mrr,
    ndcg_at_k,
    precision_at_k,
    recall_at_k,
)

__all__ = [
    "aggregate_latencies",
    "compute_stage_latencies",
    "compute_retrieval_metrics",
    "hit_rate_at_k",
    "mrr",
    "ndcg_at_k",
    "precision_at_k",
    "recall_at_k",
]
