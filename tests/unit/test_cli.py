"""Unit tests for the command-line entry point."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from fakes import FakeStatusError

from knowledge_rag.cli import main
from knowledge_rag.errors import ConfigurationError, DimensionMismatchError
from knowledge_rag.ingestion.chunker import TextChunker
from knowledge_rag.ingestion.embedder import EmbeddingClient
from knowledge_rag.ingestion.pipeline import IngestionPipeline
from knowledge_rag.retrieval.memory_store import InMemoryVectorStore


def test_ingest_prints_summary(
    tmp_path: Path,
    embedder: EmbeddingClient,
    memory_store: InMemoryVectorStore,
    capsys: pytest.CaptureFixture[str],
) -> None:
    path = tmp_path / "faq.md"
    path.write_text("Questions and answers about the product.", encoding="utf-8")
    pipeline = IngestionPipeline(TextChunker(100, 50), embedder, memory_store)

    with patch("knowledge_rag.factory.build_ingestion_pipeline", return_value=pipeline):
        exit_code = main(["ingest", str(path), "--namespace", "faq"])

    assert exit_code == 0
    assert "documents processed: 1" in capsys.readouterr().out
    assert memory_store.describe_stats()["namespaces"]["faq"]["vector_count"] == 1


def test_ingest_embedding_failure_exits_nonzero(tmp_path: Path) -> None:
    path = tmp_path / "faq.md"
    path.write_text("Questions and answers.", encoding="utf-8")
    pipeline = MagicMock(spec=IngestionPipeline)
    pipeline.ingest_paths.side_effect = DimensionMismatchError(1536, 3072)

    with patch("knowledge_rag.factory.build_ingestion_pipeline", return_value=pipeline):
        assert main(["ingest", str(path)]) == 1


def test_missing_configuration_exits_nonzero() -> None:
    with patch(
        "knowledge_rag.factory.build_retriever",
        side_effect=ConfigurationError("Missing required configuration: OPENAI_API_KEY"),
    ):
        assert main(["context", "what?"]) == 1


def test_context_prints_result(capsys: pytest.CaptureFixture[str]) -> None:
    retriever = MagicMock()
    retriever.get_context.return_value = "the context"

    with patch("knowledge_rag.factory.build_retriever", return_value=retriever):
        exit_code = main(["context", "what?", "--namespace", "docs", "--max-chars", "50", "--min-score", "0.2"])

    assert exit_code == 0
    assert capsys.readouterr().out.strip() == "the context"
    retriever.get_context.assert_called_once_with("what?", namespace="docs", max_chars=50, min_score=0.2)


def test_unknown_command_is_usage_error() -> None:
    with pytest.raises(SystemExit):
        main(["rebuild"])


def test_unexpected_error_propagates(tmp_path: Path) -> None:
    path = tmp_path / "faq.txt"
    path.write_text("Some text.", encoding="utf-8")
    failing = MagicMock(spec=IngestionPipeline)
    failing.ingest_paths.side_effect = FakeStatusError(401)

    with patch("knowledge_rag.factory.build_ingestion_pipeline", return_value=failing):
        with pytest.raises(FakeStatusError):
            main(["ingest", str(path)])
