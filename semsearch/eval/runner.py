"""
Evaluation orchestrator.

Loads the ground truth set, runs every query through the pipeline, scores
the retrieved ids, and writes a JSON report.

Usage:
    python scripts/run_eval.py
    python scripts/run_eval.py --mode reformulated --categories factual,list
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from semsearch.eval.config import eval_config
from semsearch.eval.dataset import GroundTruthDataset, load_ground_truth
from semsearch.eval.metrics.latency import aggregate_latencies, compute_stage_latencies
from semsearch.eval.metrics.retrieval import compute_retrieval_metrics
from semsearch.retrieval.pipeline import RetrievalPipeline, get_pipeline

logger = logging.getLogger(__name__)

MODES = ("single", "reformulated")


def _average(rows: List[Dict[str, float]]) -> Dict[str, float]:
    if not rows:
        return {}
    return {key: sum(row[key] for row in rows) / len(rows) for key in rows[0]}


class EvaluationRunner:
    """
    Runs ground truth queries and aggregates the scores.

    Modes:
    - "single": one search per query
    - "reformulated": LLM variants merged through multi-query search
    """

    def __init__(
        self,
        mode: str = "single",
        categories: Optional[List[str]] = None,
        ground_truth_path: Optional[str] = None,
        top_k: Optional[int] = None,
        pipeline: Optional[RetrievalPipeline] = None,
        dataset: Optional[GroundTruthDataset] = None,
        results_dir: Optional[str] = None,
    ):
        if mode not in MODES:
            raise ValueError(f"Unknown evaluation mode '{mode}', expected one of {MODES}")
        self.mode = mode
        self.categories = categories
        self.top_k = top_k or eval_config.DEFAULT_TOP_K
        self.k_values = [k for k in eval_config.RETRIEVAL_K_VALUES if k <= self.top_k]
        self.dataset = dataset if dataset is not None else load_ground_truth(ground_truth_path)
        self.pipeline = pipeline if pipeline is not None else get_pipeline()
        self.results_dir = Path(results_dir or eval_config.RESULTS_DIR)
        self.results: List[Dict[str, Any]] = []
        self.output_path: Optional[str] = None

    def _select_queries(self) -> List[Dict[str, Any]]:
        if self.categories:
            return self.dataset.get_by_categories(self.categories)
        return list(self.dataset)

    async def run(self) -> Dict[str, Any]:
        """Evaluate every selected query, save the report and return its summary."""
        queries = self._select_queries()
        logger.info(f"Starting {self.mode} evaluation with {len(queries)} queries")

        self.results = []
        for position, item in enumerate(queries, start=1):
            logger.info(
                f"[{position}/{len(queries)}] {item.get('category', 'unknown')}/"
                f"{item.get('id')}: {item['query'][:60]}"
            )
            self.results.append(await self._evaluate_single(item))

        summary = self._compute_summary()
        self._save_results(summary)
        return summary

    async def _evaluate_single(self, item: Dict[str, Any]) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "query_id": item.get("id", "unknown"),
            "category": item.get("category", "unknown"),
            "query": item["query"],
        }

        if self.mode == "reformulated":
            response = await self.pipeline.reformulate_and_search(item["query"], self.top_k)
            result["variants"] = response.queries
        else:
            response = await self.pipeline.search(item["query"], self.top_k)
            if response.timestamps:
                result["latency"] = compute_stage_latencies(response.timestamps)

        if response.error is not None:
            result["error"] = response.error.model_dump()
            logger.warning(f"Query {result['query_id']} failed: {response.error.code}")

        retrieved_ids = [r.id for r in response.results]
        result["retrieved_ids"] = retrieved_ids
        result["retrieval_metrics"] = compute_retrieval_metrics(
            retrieved_ids,
            GroundTruthDataset.relevant_ids(item),
            self.k_values,
        )
        return result

    def _compute_summary(self) -> Dict[str, Any]:
        summary: Dict[str, Any] = {
            "mode": self.mode,
            "top_k": self.top_k,
            "total_queries": len(self.results),
            "failed_queries": len([r for r in self.results if "error" in r]),
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "avg_retrieval_metrics": _average([r["retrieval_metrics"] for r in self.results]),
        }

        latencies = [r["latency"] for r in self.results if "latency" in r]
        if latencies:
            summary["latency_stats"] = aggregate_latencies(latencies)

        by_category: Dict[str, List[Dict[str, Any]]] = {}
        for r in self.results:
            by_category.setdefault(r["category"], []).append(r)

        summary["per_category"] = {
            category: {
                "count": len(rows),
                "retrieval": _average([r["retrieval_metrics"] for r in rows]),
            }
            for category, rows in sorted(by_category.items())
        }
        summary["individual_results"] = self.results
        return summary

    def _save_results(self, summary: Dict[str, Any]) -> None:
        """Write a timestamped report and refresh latest.json."""
        self.results_dir.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
        self.output_path = str(self.results_dir / f"eval_{self.mode}_{timestamp}.json")

        for path in (self.output_path, self.results_dir / "latest.json"):
            with open(path, "w", encoding="utf-8") as f:
                json.dump(summary, f, indent=2, default=str)

        logger.info(f"Results saved to {self.output_path}")
