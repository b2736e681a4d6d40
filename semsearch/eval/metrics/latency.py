"""
Latency analysis from the timestamps recorded on each SearchResponse.

The pipeline records epoch seconds at these points:
  start, normalized, embedded, retrieved, ranked, completed

A stage whose end timestamp is missing (for example after a failed
embedding call) is skipped rather than reported as zero.
"""

import statistics
from typing import Dict, List

STAGES = [
    ("normalization_ms", "start", "normalized"),
    ("embedding_ms", "normalized", "embedded"),
    ("retrieval_ms", "embedded", "retrieved"),
    ("ranking_ms", "retrieved", "ranked"),
    ("assembly_ms", "ranked", "completed"),
    ("total_ms", "start", "completed"),
]


def compute_stage_latencies(timestamps: Dict[str, float]) -> Dict[str, float]:
    """Per-stage latency in milliseconds."""
    latencies: Dict[str, float] = {}
    for name, begin, end in STAGES:
        if begin in timestamps and end in timestamps:
            latencies[name] = (timestamps[end] - timestamps[begin]) * 1000
    return latencies


def _p95(values: List[float]) -> float:
    ordered = sorted(values)
    return ordered[min(int(len(ordered) * 0.95), len(ordered) - 1)]


def aggregate_latencies(all_latencies: List[Dict[str, float]]) -> Dict[str, Dict[str, float]]:
    """Mean, median, p95, min and max per stage across queries."""
    aggregated: Dict[str, Dict[str, float]] = {}
    for name, _, _ in STAGES:
        values = [lat[name] for lat in all_latencies if name in lat]
        if not values:
            continue
        aggregated[name] = {
            "mean": statistics.mean(values),
            "median": statistics.median(values),
            "p95": _p95(values),
            "min": min(values),
            "max": max(values),
            "count": len(values),
        }
    return aggregated


def format_latency_report(aggregated: Dict[str, Dict[str, float]]) -> str:
    lines = ["Pipeline Latency Report", "=" * 60]
    for name, _, _ in STAGES:
        if name not in aggregated:
            continue
        stats = aggregated[name]
        label = name[: -len("_ms")].replace("_", " ").title()
        lines.append(f"\n{label}:")
        for key in ("mean", "median", "p95", "min", "max"):
            lines.append(f"  {key.capitalize() + ':':<8}{stats[key]:>8.1f} ms")
    return "\n".join(lines)
