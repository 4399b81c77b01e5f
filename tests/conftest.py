"""Shared pytest configuration and fixtures."""

from __future__ import annotations

import pytest
from fakes import DIMENSION, NO_WAIT, FakeOpenAI

from knowledge_rag.ingestion.embedder import EmbeddingClient
from knowledge_rag.retrieval.memory_store import InMemoryVectorStore


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests requiring external services")


# ── Fixtures ────────────────────────────────────────────────────────────


@pytest.fixture()
def fake_openai() -> FakeOpenAI:
    return FakeOpenAI()


@pytest.fixture()
def embedder(fake_openai: FakeOpenAI) -> EmbeddingClient:
    return EmbeddingClient(fake_openai, model="test-embedding", dimension=DIMENSION, retry_policy=NO_WAIT)


@pytest.fixture()
def memory_store() -> InMemoryVectorStore:
    return InMemoryVectorStore(dimension=DIMENSION)
