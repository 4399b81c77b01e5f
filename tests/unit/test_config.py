"""Unit tests for settings and the component factory."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from knowledge_rag import factory
from knowledge_rag.config import Settings
from knowledge_rag.errors import ConfigurationError
from knowledge_rag.ingestion.pipeline import IngestionPipeline
from knowledge_rag.retrieval.retriever import ContextRetriever

PROVIDER_ENV = ("OPENAI_API_KEY", "PINECONE_API_KEY", "PINECONE_INDEX", "PINECONE_NAMESPACE", "CHUNK_SIZE")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in PROVIDER_ENV:
        monkeypatch.delenv(name, raising=False)


def _configured(**overrides: object) -> Settings:
    values = {"openai_api_key": "sk-test", "pinecone_api_key": "pc-test", "pinecone_index": "docs"}
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestSettings:
    def test_defaults(self) -> None:
        cfg = Settings(_env_file=None)
        assert cfg.embedding_model == "text-embedding-3-small"
        assert cfg.embedding_dimension == 1536
        assert (cfg.chunk_size, cfg.chunk_overlap) == (100, 50)
        assert cfg.retrieval_top_k == 8
        assert cfg.query_timeout == 10.0
        assert cfg.max_context_chars == 3000
        assert cfg.min_score == 0.0
        assert cfg.pinecone_namespace == ""

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CHUNK_SIZE", "200")
        assert Settings(_env_file=None).chunk_size == 200

    def test_env_file(self, tmp_path: Path) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text("PINECONE_INDEX=from-file\nUNRELATED_SETTING=1\n", encoding="utf-8")
        assert Settings(_env_file=env_file).pinecone_index == "from-file"

    def test_require_names_missing_variables(self) -> None:
        cfg = Settings(_env_file=None, openai_api_key="sk-test")
        with pytest.raises(ConfigurationError, match="PINECONE_API_KEY, PINECONE_INDEX"):
            cfg.require("openai_api_key", "pinecone_api_key", "pinecone_index")

    def test_require_passes_when_set(self) -> None:
        _configured().require("openai_api_key", "pinecone_api_key", "pinecone_index")


class TestFactory:
    def test_missing_configuration_fails_before_any_client(self) -> None:
        with patch.object(factory, "Pinecone") as pinecone_cls, patch.object(factory.openai, "OpenAI") as openai_cls:
            with pytest.raises(ConfigurationError, match="OPENAI_API_KEY"):
                factory.build_retriever(Settings(_env_file=None, pinecone_api_key="pc", pinecone_index="docs"))
        pinecone_cls.assert_not_called()
        openai_cls.assert_not_called()

    def test_build_retriever(self) -> None:
        with patch.object(factory, "Pinecone") as pinecone_cls, patch.object(factory.openai, "OpenAI") as openai_cls:
            pinecone_cls.return_value.Index.return_value = MagicMock()
            retriever = factory.build_retriever(_configured(pinecone_index="https://docs-x1.svc.pinecone.io/"))

        assert isinstance(retriever, ContextRetriever)
        assert retriever.top_k == 8
        openai_cls.assert_called_once_with(api_key="sk-test")
        pinecone_cls.assert_called_once_with(api_key="pc-test")
        pinecone_cls.return_value.Index.assert_called_once_with("docs-x1")

    def test_build_ingestion_pipeline(self) -> None:
        with patch.object(factory, "Pinecone"), patch.object(factory.openai, "OpenAI"):
            pipeline = factory.build_ingestion_pipeline(_configured(chunk_size=300, chunk_overlap=30))
        assert isinstance(pipeline, IngestionPipeline)
