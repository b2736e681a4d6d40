"""
Ingestion pipeline orchestration.

This module coordinates the indexing workflow:
Load → Embed → Store

Input files hold one record per chunk, either as a JSON array (or an object
with a "documents" array) or as JSON Lines:

    {"id": "doc_1", "content": "...", "metadata": {"title": "HR Handbook"}}
"""

import json
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from semsearch.core.config import settings
from semsearch.core.exceptions import ConfigurationError, InvalidInputError
from semsearch.core.schemas import Metadata
from semsearch.retrieval.embedding import EmbeddingClient
from semsearch.vectorstore.base import VectorStore

logger = logging.getLogger(__name__)


class DocumentChunk(BaseModel):
    """A single retrievable unit of text."""

    id: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    metadata: Metadata = Field(default_factory=dict)


def _parse_records(raw: object, path: Path) -> List[dict]:
    if isinstance(raw, dict):
        raw = raw.get("documents", [])
    if not isinstance(raw, list):
        raise InvalidInputError(f"Expected a list of documents in {path}")
    return raw


def load_chunks(path: Union[str, Path]) -> List[DocumentChunk]:
    """
    Load document chunks from a JSON or JSONL file.

    Raises:
        FileNotFoundError: path does not exist
        InvalidInputError: a record is malformed
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Document file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        if path.suffix == ".jsonl":
            records = [json.loads(line) for line in f if line.strip()]
        else:
            records = _parse_records(json.load(f), path)

    chunks = []
    for position, record in enumerate(records):
        try:
            chunks.append(DocumentChunk.model_validate(record))
        except ValidationError as e:
            raise InvalidInputError(f"Invalid document at position {position} in {path}: {e}") from e

    logger.info(f"Loaded {len(chunks)} document chunks from {path}")
    return chunks


class Indexer:
    """Embeds document chunks and writes them to a vector store."""

    def __init__(
        self,
        embedder: EmbeddingClient,
        store: VectorStore,
        batch_size: Optional[int] = None,
    ):
        if embedder.dimension != store.dimension:
            raise ConfigurationError(
                f"Embedding dimension {embedder.dimension} does not match "
                f"vector store dimension {store.dimension}"
            )
        self.embedder = embedder
        self.store = store
        self.batch_size = batch_size or settings.EMBEDDING_BATCH_SIZE

    def index(self, chunks: Iterable[DocumentChunk]) -> int:
        """
        Index chunks in batches.

        Returns:
            Number of chunks written
        """
        chunks = list(chunks)
        total = 0

        for start in range(0, len(chunks), self.batch_size):
            batch = chunks[start : start + self.batch_size]
            vectors = self.embedder.embed_many([c.content for c in batch])
            self.store.add(
                ids=[c.id for c in batch],
                vectors=vectors,
                documents=[c.content for c in batch],
                metadatas=[dict(c.metadata) for c in batch],
            )
            total += len(batch)
            logger.info(f"Indexed {total}/{len(chunks)} chunks")

        return total
