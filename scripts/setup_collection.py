"""
Create the Qdrant collection and its payload indexes.

The collection is created with the configured embedding dimension and
distance metric, plus keyword indexes for the fields used in metadata
filters. An existing collection is verified against the configuration.

Usage:
    python scripts/setup_collection.py
    python scripts/setup_collection.py --fields category,department
"""

import argparse
import logging
import sys

from qdrant_client.models import PayloadSchemaType

from semsearch.core.config import settings
from semsearch.core.exceptions import ConfigurationError
from semsearch.vectorstore.base import DistanceMetric
from semsearch.vectorstore.client import get_qdrant_client
from semsearch.vectorstore.qdrant_store import QdrantVectorStore

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def create_keyword_indexes(store: QdrantVectorStore, fields) -> None:
    """Add keyword indexes for extra filterable metadata fields."""
    for field in fields:
        try:
            store.client.create_payload_index(
                collection_name=store.collection_name,
                field_name=field,
                field_schema=PayloadSchemaType.KEYWORD,
            )
            logger.info(f"Created keyword index for '{field}'")
        except Exception as e:
            if "already exists" in str(e).lower():
                logger.info(f"Index for '{field}' already exists")
            else:
                logger.error(f"Failed to create index for '{field}': {e}")


def main():
    parser = argparse.ArgumentParser(description="Create the Qdrant collection and payload indexes")
    parser.add_argument(
        "--fields",
        type=str,
        default=None,
        help="Comma-separated extra metadata fields to index as keywords",
    )
    args = parser.parse_args()

    logger.info(f"Connecting to Qdrant at {settings.QDRANT_ENDPOINT}...")
    try:
        store = QdrantVectorStore(
            client=get_qdrant_client(),
            collection_name=settings.QDRANT_COLLECTION,
            dimension=settings.EMBEDDING_DIMENSION,
            metric=DistanceMetric.parse(settings.DISTANCE_METRIC),
        )
        created = store.ensure_collection()
    except ConfigurationError as e:
        logger.error(f"Collection does not match configuration: {e}")
        sys.exit(1)

    if created:
        logger.info(f"Collection '{store.collection_name}' created")
    else:
        logger.info(f"Collection '{store.collection_name}' exists with {store.count()} points")

    if args.fields:
        create_keyword_indexes(store, [f.strip() for f in args.fields.split(",") if f.strip()])

    logger.info("Collection setup complete")


if __name__ == "__main__":
    main()
