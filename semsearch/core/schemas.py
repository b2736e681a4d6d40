"""
Pydantic schemas for request/response validation and data models.

This module defines the data structures used throughout the pipeline
for type safety and API documentation. Schemas include:
- Query and intent representation
- Retrieved candidates and ranked results
- Search responses (single and multi-query)
- API request models
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from semsearch.core.config import settings
from semsearch.core.exceptions import SearchPipelineError

# Candidate metadata is restricted to a closed set of scalar types
MetadataValue = Union[bool, int, float, datetime, str]
Metadata = Dict[str, MetadataValue]

EmbeddingVector = Tuple[float, ...]


class IntentType(str, Enum):
    """Coarse query type used as advisory metadata."""

    FACTUAL = "factual"
    EXPLANATORY = "explanatory"
    LIST = "list"
    GENERAL = "general"


class Intent(BaseModel):
    """Rule-based labeling of a normalized query."""

    model_config = ConfigDict(frozen=True)

    type: IntentType = IntentType.GENERAL
    requires_list: bool = False
    time_sensitive: bool = False


class Query(BaseModel):
    """A query for the duration of one search call."""

    model_config = ConfigDict(frozen=True)

    raw: str
    normalized_text: str
    intent: Intent


class Candidate(BaseModel):
    """One item retrieved from the vector store."""

    model_config = ConfigDict(frozen=True)

    id: str
    content: str
    metadata: Metadata = Field(default_factory=dict)
    distance: float
    similarity: float


class RankedResult(Candidate):
    """A candidate with its final position and blended score."""

    rank: int = Field(ge=1)
    final_score: float


class ErrorDescriptor(BaseModel):
    """Describes why a search produced no results."""

    code: str
    message: str
    retryable: bool = False

    @classmethod
    def from_exception(cls, exc: SearchPipelineError) -> "ErrorDescriptor":
        return cls(code=exc.code, message=str(exc), retryable=exc.retryable)


class SearchResponse(BaseModel):
    """Result of a single search. Never carries both results and an error."""

    query: str
    normalized_query: Optional[str] = None
    intent: Optional[Intent] = None
    results: List[RankedResult] = Field(default_factory=list)
    context: Optional[str] = None
    citations: Optional[str] = None
    error: Optional[ErrorDescriptor] = None
    timestamps: Dict[str, float] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _error_excludes_results(self) -> "SearchResponse":
        if self.error is not None and self.results:
            raise ValueError("A response with an error must not carry results")
        return self

    @property
    def ok(self) -> bool:
        return self.error is None


class VariantFailure(BaseModel):
    """A multi-query variant that degraded to an empty result set."""

    query: str
    error: ErrorDescriptor


class MultiSearchResponse(BaseModel):
    """Merged result of several query variants plus per-variant diagnostics."""

    queries: List[str]
    individual: List[SearchResponse] = Field(default_factory=list)
    results: List[RankedResult] = Field(default_factory=list)
    failures: List[VariantFailure] = Field(default_factory=list)
    error: Optional[ErrorDescriptor] = None
    timestamps: Dict[str, float] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _error_excludes_results(self) -> "MultiSearchResponse":
        if self.error is not None and self.results:
            raise ValueError("A response with an error must not carry results")
        return self


class Feedback(BaseModel):
    """Document ids previously marked relevant or irrelevant by the user."""

    positive_ids: Set[str] = Field(default_factory=set)
    negative_ids: Set[str] = Field(default_factory=set)

    def is_empty(self) -> bool:
        return not self.positive_ids and not self.negative_ids


class SearchRequest(BaseModel):
    """Search request body."""

    query: str = Field(..., description="Natural language search query")
    n_results: int = Field(
        default=settings.DEFAULT_N_RESULTS,
        ge=1,
        le=settings.MAX_N_RESULTS,
        description="Number of results to return",
    )
    metadata_filter: Optional[Dict[str, Union[MetadataValue, List[MetadataValue]]]] = None
    include_context: bool = False
    feedback: Optional[Feedback] = None


class MultiSearchRequest(BaseModel):
    """Multi-query search request body."""

    queries: List[str] = Field(..., min_length=1)
    n_results: int = Field(default=settings.DEFAULT_N_RESULTS, ge=1, le=settings.MAX_N_RESULTS)
    metadata_filter: Optional[Dict[str, Union[MetadataValue, List[MetadataValue]]]] = None
    reformulate: bool = Field(
        default=False,
        description="Expand a single query into LLM-generated variants before searching",
    )
