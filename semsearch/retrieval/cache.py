"""
Embedding cache.

Entries are keyed by a content hash and are insert-only: a vector is never
mutated after it is written. Two requests racing on the same key may both
compute the embedding; the second insert overwrites with an identical value.
"""

import hashlib
import threading
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Optional

from semsearch.core.schemas import EmbeddingVector


def cache_key(text: str, namespace: str = "") -> str:
    """Content hash of a text, scoped to a model namespace."""
    return hashlib.sha256(f"{namespace}\x00{text}".encode("utf-8")).hexdigest()


class EmbeddingCache(ABC):
    """Abstract interface for embedding caches."""

    @abstractmethod
    def get(self, key: str) -> Optional[EmbeddingVector]:
        """Return the cached vector, or None on a miss."""

    @abstractmethod
    def put(self, key: str, vector: EmbeddingVector) -> None:
        """Insert a vector."""

    @abstractmethod
    def __len__(self) -> int:
        ...


class InMemoryEmbeddingCache(EmbeddingCache):
    """
    Process-local cache, unbounded by default.

    With max_size set it evicts the least-recently-used entry, reordering
    entries on access with an OrderedDict.
    """

    def __init__(self, max_size: Optional[int] = None):
        if max_size is not None and max_size < 1:
            raise ValueError("max_size must be >= 1, or None for an unbounded cache")
        self._max_size = max_size
        self._entries: "OrderedDict[str, EmbeddingVector]" = OrderedDict()
        self._lock = threading.Lock()

    @property
    def max_size(self) -> Optional[int]:
        return self._max_size

    def get(self, key: str) -> Optional[EmbeddingVector]:
        with self._lock:
            vector = self._entries.get(key)
            if vector is not None and self._max_size is not None:
                self._entries.move_to_end(key)
            return vector

    def put(self, key: str, vector: EmbeddingVector) -> None:
        with self._lock:
            self._entries[key] = tuple(vector)
            if self._max_size is not None:
                self._entries.move_to_end(key)
                while len(self._entries) > self._max_size:
                    self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
