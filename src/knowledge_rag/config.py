"""Shared configuration loaded from environment / .env files."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings

from knowledge_rag.errors import ConfigurationError


class Settings(BaseSettings):
    """Application-wide settings, populated from env vars or ``.env`` / ``.env.local``."""

    # Providers
    openai_api_key: str = Field(default="", description="OpenAI API key used for embeddings")
    pinecone_api_key: str = Field(default="", description="Pinecone API key")
    pinecone_index: str = Field(
        default="",
        description=(
            "Pinecone index name. A full host such as "
            "'https://docs-abc123.svc.us-east1-gcp.pinecone.io/' is accepted "
            "and reduced to the bare index name."
        ),
    )
    pinecone_namespace: str = Field(default="", description="Namespace; empty means the default partition")

    # Embedding
    embedding_model: str = "text-embedding-3-small"
    embedding_dimension: int = 1536
    embed_batch_size: int = 100
    embed_retry_delay: float = 1.0

    # Chunking
    chunk_size: int = 100
    chunk_overlap: int = 50
    min_chunk_length: int = 50

    # Index
    upsert_batch_size: int = 100
    query_timeout: float = Field(default=10.0, description="Hard wall-clock limit for one query, in seconds")

    # Retrieval
    retrieval_top_k: int = 8
    max_context_chars: int = 3000
    min_score: float = Field(default=0.0, description="Matches must score strictly above this to be kept")
    context_max_attempts: int = 3
    context_retry_delay: float = 0.5

    log_level: str = "INFO"

    model_config = {
        "env_file": (".env", ".env.local"),
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    def require(self, *fields: str) -> None:
        """Raise :class:`ConfigurationError` unless every named field is set.

        The message names the environment variables, not the field names.
        """
        missing = [name.upper() for name in fields if not str(getattr(self, name)).strip()]
        if missing:
            raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")


# Singleton; import `settings` wherever needed.
settings = Settings()
