"""Tests for document indexing."""

from __future__ import annotations

from vizassist.rag.indexer import SAMPLE_DOCUMENTS, DocumentIndexer


class _FlakyEmbedder:
    """Fails on every second call."""

    def __init__(self) -> None:
        self.count = 0

    def embed(self, text):
        self.count += 1
        return None if self.count % 2 == 0 else [1.0, 0.0]


def test_short_document_stored_once(memory_storage, embedder):
    docs = DocumentIndexer(memory_storage, embedder).add_document(
        "Bars", "Bar charts compare categories.", {"source": "notes.md"}
    )

    assert len(docs) == 1
    assert docs[0].embedding is not None
    assert docs[0].metadata == {"source": "notes.md"}
    assert memory_storage.list_documents() == docs


def test_long_document_is_chunked_with_metadata(memory_storage, embedder):
    content = "Line charts show trends over time. " * 80  # 2800 chars
    docs = DocumentIndexer(memory_storage, embedder, max_length=1000, overlap=200).add_document(
        "Line guide", content
    )

    assert len(docs) > 1
    for i, doc in enumerate(docs):
        assert len(doc.content) <= 1000
        assert doc.metadata["parent_title"] == "Line guide"
        assert doc.metadata["chunk_index"] == i
        assert doc.metadata["chunk_count"] == len(docs)
        assert content[doc.metadata["start"]:doc.metadata["end"]].strip() == doc.content
    assert docs[0].title == f"Line guide (part 1/{len(docs)})"


def test_embedding_failure_skips_chunk(memory_storage):
    content = "word " * 600  # 3000 chars, 4 windows
    docs = DocumentIndexer(memory_storage, _FlakyEmbedder(), max_length=1000, overlap=200).add_document(
        "Flaky", content
    )

    assert [d.metadata["chunk_index"] for d in docs] == [0, 2]
    assert len(memory_storage.list_documents()) == 2


def test_failed_short_document_returns_empty(memory_storage, failing_embedder):
    assert DocumentIndexer(memory_storage, failing_embedder).add_document("x", "short") == []
    assert memory_storage.list_documents() == []


def test_seed_samples_loads_builtin_notes_once(sqlite_storage, embedder):
    indexer = DocumentIndexer(sqlite_storage, embedder)

    first = indexer.seed_samples()
    second = indexer.seed_samples()

    assert [d.title for d in first] == [title for title, _ in SAMPLE_DOCUMENTS]
    assert second == []
    assert sqlite_storage.count_documents() == len(SAMPLE_DOCUMENTS)
