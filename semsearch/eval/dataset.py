"""Ground truth dataset loading."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Set

from semsearch.eval.config import eval_config

logger = logging.getLogger(__name__)


class GroundTruthDataset:
    """
    Labeled evaluation queries.

    File format:
        {"queries": [{"id": "q1", "query": "...", "category": "factual",
                      "expected_relevant_ids": ["doc_1", "doc_7"]}]}
    """

    def __init__(self, path: Optional[str] = None):
        self.path = Path(path or eval_config.GROUND_TRUTH_PATH)
        self._queries: Optional[List[Dict[str, Any]]] = None

    def load(self) -> "GroundTruthDataset":
        if not self.path.exists():
            raise FileNotFoundError(f"Ground truth file not found: {self.path}")

        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)

        queries = data.get("queries", []) if isinstance(data, dict) else data
        for position, item in enumerate(queries):
            if not item.get("query"):
                raise ValueError(f"Ground truth entry {position} has no query text")
        self._queries = queries

        logger.info(f"Loaded {len(queries)} ground truth queries from {self.path}")
        return self

    @property
    def queries(self) -> List[Dict[str, Any]]:
        if self._queries is None:
            self.load()
        return self._queries  # type: ignore[return-value]

    @property
    def categories(self) -> List[str]:
        return sorted({q.get("category", "unknown") for q in self.queries})

    def get_by_categories(self, categories: List[str]) -> List[Dict[str, Any]]:
        wanted = set(categories)
        return [q for q in self.queries if q.get("category", "unknown") in wanted]

    @staticmethod
    def relevant_ids(item: Dict[str, Any]) -> Set[str]:
        return set(item.get("expected_relevant_ids", []))

    def __len__(self) -> int:
        return len(self.queries)

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        return iter(self.queries)


def load_ground_truth(path: Optional[str] = None) -> GroundTruthDataset:
    return GroundTruthDataset(path).load()
