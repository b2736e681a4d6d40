"""
Error taxonomy for the search pipeline.

Every failure a caller can observe is one of these types. Collaborator
exceptions (model runtime, vector store, LLM) are re-raised as the matching
type at the boundary where they occur.
"""


class SearchPipelineError(Exception):
    """Base class for all pipeline errors."""

    code = "pipeline_error"
    retryable = False


class InvalidInputError(SearchPipelineError):
    """Query is empty or malformed after normalization."""

    code = "invalid_input"


class EmbeddingUnavailableError(SearchPipelineError):
    """The embedding backend failed (timeout, resource error)."""

    code = "embedding_unavailable"
    retryable = True


class RetrievalUnavailableError(SearchPipelineError):
    """The vector store failed."""

    code = "retrieval_unavailable"
    retryable = True


class ConfigurationError(SearchPipelineError):
    """Fatal misconfiguration: dimension or distance metric mismatch, bad settings."""

    code = "configuration_error"
