"""Build injected provider clients and pipeline components from settings.

Nothing here is cached at module level; every call constructs fresh
clients so tests and multiple configurations never share state.
"""

from __future__ import annotations

import logging

import openai
from pinecone import Pinecone

from knowledge_rag.config import Settings, settings
from knowledge_rag.ingestion.chunker import TextChunker
from knowledge_rag.ingestion.embedder import EmbeddingClient
from knowledge_rag.ingestion.pipeline import IngestionPipeline
from knowledge_rag.retrieval.pinecone_store import PineconeVectorStore
from knowledge_rag.retrieval.retriever import ContextRetriever, is_retryable_fetch_error
from knowledge_rag.retry import RetryPolicy

logger = logging.getLogger(__name__)


def build_embedder(cfg: Settings = settings) -> EmbeddingClient:
    """Return an :class:`EmbeddingClient` backed by ``openai.OpenAI``."""
    cfg.require("openai_api_key")
    return EmbeddingClient(
        openai.OpenAI(api_key=cfg.openai_api_key),
        model=cfg.embedding_model,
        dimension=cfg.embedding_dimension,
        batch_size=cfg.embed_batch_size,
        retry_policy=RetryPolicy(max_attempts=2, delay=cfg.embed_retry_delay),
    )


def build_vector_store(cfg: Settings = settings) -> PineconeVectorStore:
    """Return a :class:`PineconeVectorStore` for ``PINECONE_INDEX``."""
    cfg.require("pinecone_api_key", "pinecone_index")
    return PineconeVectorStore(
        Pinecone(api_key=cfg.pinecone_api_key),
        cfg.pinecone_index,
        dimension=cfg.embedding_dimension,
        batch_size=cfg.upsert_batch_size,
        query_timeout=cfg.query_timeout,
        retry_policy=RetryPolicy(max_attempts=2, delay=cfg.embed_retry_delay),
    )


def build_retriever(cfg: Settings = settings) -> ContextRetriever:
    """Return a ready :class:`ContextRetriever`.

    Raises
    ------
    ConfigurationError
        Before any client is built, if a key or the index is missing.
    """
    cfg.require("openai_api_key", "pinecone_api_key", "pinecone_index")
    return ContextRetriever(
        build_embedder(cfg),
        build_vector_store(cfg),
        top_k=cfg.retrieval_top_k,
        retry_policy=RetryPolicy(
            max_attempts=cfg.context_max_attempts,
            delay=cfg.context_retry_delay,
            exponential=True,
            retry_on=is_retryable_fetch_error,
        ),
    )


def build_ingestion_pipeline(cfg: Settings = settings) -> IngestionPipeline:
    """Return a ready :class:`IngestionPipeline`."""
    cfg.require("openai_api_key", "pinecone_api_key", "pinecone_index")
    logger.debug("Building ingestion pipeline (chunk_size=%d, overlap=%d)", cfg.chunk_size, cfg.chunk_overlap)
    return IngestionPipeline(TextChunker.from_settings(cfg), build_embedder(cfg), build_vector_store(cfg))
