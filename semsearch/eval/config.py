"""Evaluation pipeline configuration."""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

DATA_DIR = Path(os.getenv("EVAL_DATA_DIR", "data/eval"))
RESULTS_DIR = DATA_DIR / "results"
GROUND_TRUTH_PATH = DATA_DIR / "ground_truth.json"


class EvalConfig:
    """Configuration for the evaluation pipeline."""

    DEFAULT_TOP_K = int(os.getenv("EVAL_TOP_K", "5"))
    RETRIEVAL_K_VALUES = [1, 3, 5, 10]

    # Paths
    GROUND_TRUTH_PATH = str(GROUND_TRUTH_PATH)
    RESULTS_DIR = str(RESULTS_DIR)


eval_config = EvalConfig()
