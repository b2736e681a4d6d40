"""
Application configuration management.

This module centralizes all configuration settings for the search pipeline,
loading values from environment variables with sensible defaults.

Configuration categories:
- Embedding model settings (backend, model name, dimension, cache bound)
- Vector store connection settings
- Retrieval and ranking parameters
- LLM settings used for query reformulation
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

from semsearch.core.exceptions import ConfigurationError

load_dotenv()

EMBEDDING_BACKENDS = ("sentence-transformers", "hash")
VECTOR_BACKENDS = ("memory", "qdrant")


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class Settings:
    """
    Central configuration for the semantic search pipeline.

    All configuration values are loaded from environment variables.
    This class serves as the single source of truth for pipeline settings.
    """

    # Embedding model
    EMBEDDING_BACKEND: str = field(
        default_factory=lambda: os.getenv("EMBEDDING_BACKEND", "sentence-transformers")
    )
    EMBEDDING_MODEL: str = field(
        default_factory=lambda: os.getenv(
            "EMBEDDING_MODEL", "sentence-transformers/all-MiniLM-L6-v2"
        )
    )
    EMBEDDING_DIMENSION: int = field(
        default_factory=lambda: int(os.getenv("EMBEDDING_DIMENSION", "384"))
    )
    EMBEDDING_DEVICE: str = field(default_factory=lambda: os.getenv("EMBEDDING_DEVICE", "cpu"))
    EMBEDDING_BATCH_SIZE: int = field(
        default_factory=lambda: int(os.getenv("EMBEDDING_BATCH_SIZE", "32"))
    )
    # 0 keeps the cache unbounded
    EMBEDDING_CACHE_SIZE: int = field(
        default_factory=lambda: int(os.getenv("EMBEDDING_CACHE_SIZE", "0"))
    )

    # Vector store
    VECTOR_BACKEND: str = field(default_factory=lambda: os.getenv("VECTOR_BACKEND", "memory"))
    QDRANT_ENDPOINT: str = field(
        default_factory=lambda: os.getenv("QDRANT_ENDPOINT", "http://localhost:6333")
    )
    QDRANT_API_KEY: Optional[str] = field(default_factory=lambda: os.getenv("QDRANT_API_KEY"))
    QDRANT_COLLECTION: str = field(
        default_factory=lambda: os.getenv("QDRANT_COLLECTION", "documents")
    )
    QDRANT_TIMEOUT: float = field(
        default_factory=lambda: float(os.getenv("QDRANT_TIMEOUT", "30"))
    )
    DISTANCE_METRIC: str = field(default_factory=lambda: os.getenv("DISTANCE_METRIC", "cosine"))

    # Retrieval and ranking
    SIMILARITY_FLOOR: float = field(
        default_factory=lambda: float(os.getenv("SIMILARITY_FLOOR", "0.5"))
    )
    OVERFETCH_FACTOR: int = field(default_factory=lambda: int(os.getenv("OVERFETCH_FACTOR", "2")))
    DEFAULT_N_RESULTS: int = field(
        default_factory=lambda: int(os.getenv("DEFAULT_N_RESULTS", "5"))
    )
    MAX_N_RESULTS: int = field(default_factory=lambda: int(os.getenv("MAX_N_RESULTS", "50")))
    ENABLE_LEXICAL_RERANK: bool = field(
        default_factory=lambda: _env_bool("ENABLE_LEXICAL_RERANK")
    )
    LEXICAL_WEIGHT: float = field(default_factory=lambda: float(os.getenv("LEXICAL_WEIGHT", "0.3")))
    FEEDBACK_POSITIVE_BOOST: float = field(
        default_factory=lambda: float(os.getenv("FEEDBACK_POSITIVE_BOOST", "1.5"))
    )
    FEEDBACK_NEGATIVE_PENALTY: float = field(
        default_factory=lambda: float(os.getenv("FEEDBACK_NEGATIVE_PENALTY", "0.5"))
    )
    CONTEXT_MAX_LENGTH: int = field(
        default_factory=lambda: int(os.getenv("CONTEXT_MAX_LENGTH", "4000"))
    )

    # LLM (query reformulation)
    GROQ_API_KEY: Optional[str] = field(default_factory=lambda: os.getenv("GROQ_API_KEY"))
    GROQ_MODEL: str = field(default_factory=lambda: os.getenv("GROQ_MODEL", "llama-3.1-8b-instant"))
    LLM_MAX_TOKENS: int = field(default_factory=lambda: int(os.getenv("LLM_MAX_TOKENS", "512")))
    LLM_TEMPERATURE: float = field(
        default_factory=lambda: float(os.getenv("LLM_TEMPERATURE", "0.3"))
    )
    NUM_REFORMULATED_QUERIES: int = field(
        default_factory=lambda: int(os.getenv("NUM_REFORMULATED_QUERIES", "3"))
    )

    # HTTP server
    API_HOST: str = field(default_factory=lambda: os.getenv("API_HOST", "localhost"))
    API_PORT: int = field(default_factory=lambda: int(os.getenv("API_PORT", "8000")))
    API_RELOAD: bool = field(default_factory=lambda: _env_bool("API_RELOAD"))

    LOG_LEVEL: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())

    def validate(self) -> List[str]:
        """Validate configuration and return any issues."""
        issues = []

        if self.EMBEDDING_BACKEND not in EMBEDDING_BACKENDS:
            issues.append(f"Invalid EMBEDDING_BACKEND: {self.EMBEDDING_BACKEND}")

        if self.VECTOR_BACKEND not in VECTOR_BACKENDS:
            issues.append(f"Invalid VECTOR_BACKEND: {self.VECTOR_BACKEND}")

        if self.EMBEDDING_DIMENSION < 1:
            issues.append("EMBEDDING_DIMENSION must be >= 1")

        if self.EMBEDDING_BATCH_SIZE < 1:
            issues.append("EMBEDDING_BATCH_SIZE must be >= 1")

        if self.EMBEDDING_CACHE_SIZE < 0:
            issues.append("EMBEDDING_CACHE_SIZE must be >= 0 (0 means unbounded)")

        if not 0.0 <= self.SIMILARITY_FLOOR <= 1.0:
            issues.append(f"SIMILARITY_FLOOR must be within [0, 1], got {self.SIMILARITY_FLOOR}")

        if self.OVERFETCH_FACTOR < 1:
            issues.append("OVERFETCH_FACTOR must be >= 1")

        if not 1 <= self.DEFAULT_N_RESULTS <= self.MAX_N_RESULTS:
            issues.append("DEFAULT_N_RESULTS must be between 1 and MAX_N_RESULTS")

        if not 0.0 <= self.LEXICAL_WEIGHT <= 1.0:
            issues.append(f"LEXICAL_WEIGHT must be within [0, 1], got {self.LEXICAL_WEIGHT}")

        if self.FEEDBACK_POSITIVE_BOOST <= 0 or self.FEEDBACK_NEGATIVE_PENALTY <= 0:
            issues.append("Feedback multipliers must be positive")

        if self.CONTEXT_MAX_LENGTH < 1:
            issues.append("CONTEXT_MAX_LENGTH must be >= 1")

        if self.NUM_REFORMULATED_QUERIES < 0:
            issues.append("NUM_REFORMULATED_QUERIES must be >= 0")

        return issues

    def check(self) -> None:
        """Raise ConfigurationError when any setting is invalid."""
        issues = self.validate()
        if issues:
            raise ConfigurationError("; ".join(issues))


settings = Settings()
