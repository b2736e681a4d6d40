"""
Embed pre-chunked documents and write them to the vector store.

Usage:
    python scripts/index_documents.py data/chunks.jsonl
    python scripts/index_documents.py data/chunks.json --batch-size 64
"""

import argparse
import logging
import sys

from semsearch.core.config import settings
from semsearch.core.exceptions import SearchPipelineError
from semsearch.ingestion.ingest import Indexer, load_chunks
from semsearch.retrieval.embedding import build_embedding_client
from semsearch.vectorstore.client import get_vector_store

logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Index document chunks into the vector store")
    parser.add_argument("path", help="JSON or JSONL file of document chunks")
    parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Chunks per embedding batch (default: EMBEDDING_BATCH_SIZE)",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if settings.VECTOR_BACKEND == "memory":
        logger.warning("VECTOR_BACKEND is 'memory'; indexed documents will not persist")

    try:
        chunks = load_chunks(args.path)
        indexer = Indexer(
            build_embedding_client(settings),
            get_vector_store(settings),
            batch_size=args.batch_size,
        )
        total = indexer.index(chunks)
    except (FileNotFoundError, SearchPipelineError) as e:
        logger.error(f"Indexing failed: {e}")
        sys.exit(1)

    logger.info(f"Indexed {total} chunks")


if __name__ == "__main__":
    main()
