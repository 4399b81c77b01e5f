"""Unit tests for the ingestion pipeline, end to end against fakes."""

from __future__ import annotations

from pathlib import Path

import pytest
from fakes import DIMENSION, NO_WAIT, FakeOpenAI, FakeStatusError
from langchain_core.documents import Document

from knowledge_rag.ingestion.chunker import TextChunker, make_document_prefix
from knowledge_rag.ingestion.embedder import EmbeddingClient
from knowledge_rag.ingestion.pipeline import IngestionPipeline
from knowledge_rag.retrieval.memory_store import InMemoryVectorStore

ARTICLE = "\n\n".join(
    f"Section {i}. The service stores document {i} in the index and answers questions about topic {i}. "
    f"Each section is long enough to be split into several overlapping chunks of text."
    for i in range(5)
)


@pytest.fixture()
def pipeline(embedder: EmbeddingClient, memory_store: InMemoryVectorStore) -> IngestionPipeline:
    return IngestionPipeline(TextChunker(100, 50), embedder, memory_store)


def _write(directory: Path, name: str, text: str) -> Path:
    path = directory / name
    path.write_text(text, encoding="utf-8")
    return path


class TestEndToEnd:
    def test_hello_world(
        self,
        tmp_path: Path,
        pipeline: IngestionPipeline,
        embedder: EmbeddingClient,
        memory_store: InMemoryVectorStore,
    ) -> None:
        path = _write(tmp_path, "hello.txt", "Hello world. This is a test.")

        report = pipeline.ingest_paths([path], namespace="default")

        assert report.documents_processed == 1
        assert 1 <= report.chunks_created <= 2
        assert report.vectors_embedded == report.chunks_created
        assert report.dimension == DIMENSION
        assert report.upload.ok

        matches = memory_store.query("default", embedder.embed("Hello world"), 8)
        expected_id = f"{make_document_prefix(str(path.resolve()))}_chunk_0000"
        assert matches
        assert expected_id in {m.id for m in matches}
        assert matches[0].metadata["chunk_position"] == "1/1"

    def test_long_document_is_indexed(
        self, tmp_path: Path, pipeline: IngestionPipeline, memory_store: InMemoryVectorStore
    ) -> None:
        report = pipeline.ingest_paths([_write(tmp_path, "article.md", ARTICLE)], namespace="docs")

        assert report.chunks_created > 1
        assert report.upload.succeeded == report.chunks_created
        assert report.index_vector_count == report.chunks_created
        assert report.min_chars <= report.avg_chars <= report.max_chars
        assert memory_store.describe_stats()["namespaces"]["docs"]["vector_count"] == report.chunks_created


class TestPartialFailure:
    def test_bad_documents_are_skipped(self, tmp_path: Path, pipeline: IngestionPipeline) -> None:
        good = _write(tmp_path, "good.txt", "A perfectly fine document.")
        empty = _write(tmp_path, "empty.md", "   ")
        unsupported = _write(tmp_path, "slides.pdf", "%PDF")

        report = pipeline.ingest_paths([good, empty, unsupported, tmp_path / "missing.txt"], namespace="ns")

        assert report.documents_processed == 1
        assert report.documents_failed == 3
        assert any("Unsupported file type" in failure for failure in report.failures)
        assert report.chunks_created == 1

    def test_nothing_to_embed_makes_no_provider_calls(
        self, tmp_path: Path, pipeline: IngestionPipeline, fake_openai: FakeOpenAI
    ) -> None:
        report = pipeline.ingest_paths([tmp_path / "missing.txt"], namespace="ns")
        assert report.chunks_created == 0
        assert report.upload.batches == 0
        assert fake_openai.calls == []

    def test_upload_failures_are_reported_not_raised(self, embedder: EmbeddingClient) -> None:
        mismatched_store = InMemoryVectorStore(dimension=DIMENSION * 2)
        pipeline = IngestionPipeline(TextChunker(100, 50), embedder, mismatched_store)

        report = pipeline.ingest_documents([Document(page_content=ARTICLE, metadata={"source": "a.md"})])

        assert report.upload.failed == report.chunks_created
        assert report.upload_failed
        assert "uploads failed" in report.summary()

    def test_embedding_failure_aborts_run(self, memory_store: InMemoryVectorStore) -> None:
        fake = FakeOpenAI(errors=[FakeStatusError(401)])
        embedder = EmbeddingClient(fake, dimension=DIMENSION, retry_policy=NO_WAIT)
        pipeline = IngestionPipeline(TextChunker(100, 50), embedder, memory_store)

        with pytest.raises(FakeStatusError):
            pipeline.ingest_documents([Document(page_content="Some text.", metadata={"source": "a.txt"})])
        assert memory_store.describe_stats()["total_vector_count"] == 0


class TestDocumentIds:
    def test_same_name_in_different_directories_does_not_collide(
        self, pipeline: IngestionPipeline, memory_store: InMemoryVectorStore
    ) -> None:
        docs = [
            Document(page_content="First readme.", metadata={"source": "README.md", "path": "/a/README.md"}),
            Document(page_content="Second readme.", metadata={"source": "README.md", "path": "/b/README.md"}),
        ]
        report = pipeline.ingest_documents(docs, namespace="ns")

        assert report.chunks_created == 2
        assert memory_store.describe_stats()["namespaces"]["ns"]["vector_count"] == 2

    def test_reingesting_overwrites(self, pipeline: IngestionPipeline, memory_store: InMemoryVectorStore) -> None:
        doc = Document(page_content="Version one.", metadata={"source": "notes.txt", "path": "/n/notes.txt"})
        pipeline.ingest_documents([doc], namespace="ns")
        pipeline.ingest_documents(
            [Document(page_content="Version two.", metadata=doc.metadata)],
            namespace="ns",
        )

        record_id = f"{make_document_prefix('/n/notes.txt')}_chunk_0000"
        assert memory_store.get("ns", record_id).metadata["text"] == "Version two."
        assert memory_store.describe_stats()["namespaces"]["ns"]["vector_count"] == 1


def test_summary_lists_counts(pipeline: IngestionPipeline) -> None:
    report = pipeline.ingest_documents([Document(page_content="Short note.", metadata={"source": "n.txt"})])
    summary = report.summary()
    assert "documents processed: 1" in summary
    assert "chunks created:      1" in summary
    assert "namespace:           default" in summary
