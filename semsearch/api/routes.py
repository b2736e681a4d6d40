"""
API route definitions.

This module defines the HTTP endpoints for the retrieval system:
- GET /health - Vector store and model status
- POST /search - Execute a semantic search query
- POST /search/multi - Search several query variants and merge the results
"""

import logging
from typing import Any, Dict, Union

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from semsearch.core.schemas import (
    MultiSearchRequest,
    MultiSearchResponse,
    SearchRequest,
    SearchResponse,
)
from semsearch.retrieval.pipeline import RetrievalPipeline, get_pipeline

logger = logging.getLogger(__name__)

router = APIRouter()


def _respond(response: BaseModel) -> Union[BaseModel, JSONResponse]:
    """Responses carrying an error mean a collaborator was unavailable."""
    if getattr(response, "error", None) is not None:
        return JSONResponse(status_code=503, content=response.model_dump(mode="json"))
    return response


@router.get("/health")
async def health(pipeline: RetrievalPipeline = Depends(get_pipeline)) -> Dict[str, Any]:
    """Report vector store size and the configured model and metric."""
    return pipeline.health()


@router.post("/search", response_model=SearchResponse)
async def search(
    request: SearchRequest,
    pipeline: RetrievalPipeline = Depends(get_pipeline),
):
    """Execute a semantic search query."""
    response = await pipeline.search(
        request.query,
        n_results=request.n_results,
        metadata_filter=request.metadata_filter,
        include_context=request.include_context,
        feedback=request.feedback,
    )
    return _respond(response)


@router.post("/search/multi", response_model=MultiSearchResponse)
async def multi_search(
    request: MultiSearchRequest,
    pipeline: RetrievalPipeline = Depends(get_pipeline),
):
    """
    Search several query variants and merge the results.

    With reformulate=true and a single query, the variants are generated
    by the LLM reformulator first.
    """
    if request.reformulate and len(request.queries) == 1:
        response = await pipeline.reformulate_and_search(
            request.queries[0],
            n_results=request.n_results,
            metadata_filter=request.metadata_filter,
        )
    else:
        response = await pipeline.multi_search(
            request.queries,
            n_results=request.n_results,
            metadata_filter=request.metadata_filter,
        )
    return _respond(response)
