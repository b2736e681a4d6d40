"""Tests for document loading and indexing."""

import json

import pytest

from conftest import DIMENSION, CountingEncoder
from semsearch.core.exceptions import ConfigurationError, InvalidInputError
from semsearch.ingestion import DocumentChunk, Indexer, load_chunks
from semsearch.retrieval.cache import InMemoryEmbeddingCache
from semsearch.retrieval.embedding import EmbeddingClient
from semsearch.vectorstore.memory import InMemoryVectorStore

RECORDS = [
    {"id": "doc_1", "content": "Employees get 20 vacation days.", "metadata": {"source": "hr.pdf"}},
    {"id": "doc_2", "content": "Expenses are filed monthly."},
    {"id": "doc_3", "content": "Remote work requires approval."},
]


class TestLoadChunks:
    def test_json_array(self, tmp_path):
        path = tmp_path / "docs.json"
        path.write_text(json.dumps(RECORDS))

        chunks = load_chunks(path)

        assert [c.id for c in chunks] == ["doc_1", "doc_2", "doc_3"]
        assert chunks[0].metadata == {"source": "hr.pdf"}
        assert chunks[1].metadata == {}

    def test_documents_object(self, tmp_path):
        path = tmp_path / "docs.json"
        path.write_text(json.dumps({"documents": RECORDS[:1]}))
        assert [c.id for c in load_chunks(str(path))] == ["doc_1"]

    def test_jsonl_skips_blank_lines(self, tmp_path):
        path = tmp_path / "docs.jsonl"
        path.write_text("\n".join(json.dumps(r) for r in RECORDS) + "\n\n")
        assert len(load_chunks(path)) == 3

    def test_empty_content_rejected(self, tmp_path):
        path = tmp_path / "docs.json"
        path.write_text(json.dumps([{"id": "doc_1", "content": ""}]))
        with pytest.raises(InvalidInputError):
            load_chunks(path)

    def test_non_list_rejected(self, tmp_path):
        path = tmp_path / "docs.json"
        path.write_text(json.dumps("not documents"))
        with pytest.raises(InvalidInputError):
            load_chunks(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_chunks(tmp_path / "missing.json")


class TestIndexer:
    def test_indexes_in_batches(self, encoder):
        store = InMemoryVectorStore(dimension=DIMENSION)
        embedder = EmbeddingClient(encoder, cache=InMemoryEmbeddingCache(), batch_size=10)
        chunks = [DocumentChunk.model_validate(r) for r in RECORDS]

        written = Indexer(embedder, store, batch_size=2).index(chunks)

        assert written == 3
        assert store.count() == 3
        assert [len(batch) for batch in encoder.batch_calls] == [2, 1]

    def test_indexed_document_is_searchable(self, encoder):
        store = InMemoryVectorStore(dimension=DIMENSION)
        embedder = EmbeddingClient(encoder, cache=InMemoryEmbeddingCache())
        Indexer(embedder, store, batch_size=8).index(
            [DocumentChunk.model_validate(r) for r in RECORDS]
        )

        hits = store.query(embedder.embed(RECORDS[0]["content"]), n_results=1)

        assert hits[0].id == "doc_1"
        assert hits[0].metadata == {"source": "hr.pdf"}

    def test_dimension_mismatch(self):
        embedder = EmbeddingClient(CountingEncoder(dimension=4), cache=InMemoryEmbeddingCache())
        with pytest.raises(ConfigurationError):
            Indexer(embedder, InMemoryVectorStore(dimension=DIMENSION))
