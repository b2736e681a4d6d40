"""
CLI entry point for running the evaluation pipeline.

Usage:
    python scripts/run_eval.py
    python scripts/run_eval.py --mode reformulated
    python scripts/run_eval.py --categories factual,list --top-k 5
"""

import argparse
import asyncio
import logging

from semsearch.eval.metrics.latency import format_latency_report
from semsearch.eval.runner import MODES, EvaluationRunner


def main():
    parser = argparse.ArgumentParser(description="Run the retrieval evaluation pipeline")
    parser.add_argument(
        "--mode",
        choices=MODES,
        default="single",
        help="'single' (one search per query) or 'reformulated' (LLM variants, merged)",
    )
    parser.add_argument(
        "--categories",
        type=str,
        default=None,
        help="Comma-separated list of query categories to evaluate (default: all)",
    )
    parser.add_argument(
        "--ground-truth",
        type=str,
        default=None,
        help="Path to ground truth JSON file (default: $EVAL_DATA_DIR/ground_truth.json)",
    )
    parser.add_argument("--top-k", type=int, default=None, help="Results retrieved per query")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    runner = EvaluationRunner(
        mode=args.mode,
        categories=args.categories.split(",") if args.categories else None,
        ground_truth_path=args.ground_truth,
        top_k=args.top_k,
    )
    results = asyncio.run(runner.run())

    print("\n" + "=" * 60)
    print("EVALUATION SUMMARY")
    print("=" * 60)
    print(f"Queries: {results['total_queries']} ({results['failed_queries']} failed)")

    print("\nRetrieval Metrics (averaged):")
    for key, val in results["avg_retrieval_metrics"].items():
        print(f"  {key}: {val:.3f}")

    for category, stats in results["per_category"].items():
        print(f"\n{category} ({stats['count']} queries):")
        for key in ("mrr", f"ndcg@{runner.k_values[-1]}"):
            if key in stats["retrieval"]:
                print(f"  {key}: {stats['retrieval'][key]:.3f}")

    if "latency_stats" in results:
        print("\n" + format_latency_report(results["latency_stats"]))

    print(f"\nResults saved to: {runner.output_path}")


if __name__ == "__main__":
    main()
