"""Context retriever — the retrieval entry point.

Usage::

    from knowledge_rag.factory import build_retriever

    retriever = build_retriever()
    context = retriever.get_context("How do I rotate API keys?", namespace="docs")

A total failure to fetch context is logged and degrades to ``""`` so the
caller can decide how to answer without it.  Only configuration errors
propagate.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import openai

from knowledge_rag.errors import ConfigurationError, QueryTimeoutError
from knowledge_rag.retrieval.context import ContextAssembler
from knowledge_rag.retrieval.models import Match
from knowledge_rag.retry import RetryPolicy, is_transient

if TYPE_CHECKING:
    from knowledge_rag.ingestion.embedder import EmbeddingClient
    from knowledge_rag.retrieval.base import VectorStoreBase

logger = logging.getLogger(__name__)


def is_retryable_fetch_error(exc: BaseException) -> bool:
    """Timeouts, dropped connections and transient provider errors are worth another try."""
    if isinstance(exc, (QueryTimeoutError, ConnectionError, TimeoutError, openai.APIConnectionError)):
        return True
    return is_transient(exc)


class ContextRetriever:
    """Embed a question, query the index and assemble a bounded context.

    Parameters
    ----------
    embedder:
        Used for the single query embedding.
    store:
        Vector-index backend.
    top_k:
        Matches requested per query.
    assembler:
        Defaults to a plain :class:`ContextAssembler`.
    retry_policy:
        Applied to the whole embed-and-query step.  Defaults to three
        attempts with exponential backoff from 0.5 s.
    """

    def __init__(
        self,
        embedder: EmbeddingClient,
        store: VectorStoreBase,
        *,
        top_k: int = 8,
        assembler: ContextAssembler | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self._embedder = embedder
        self._store = store
        self.top_k = top_k
        self._assembler = assembler or ContextAssembler()
        self._retry = retry_policy or RetryPolicy(
            max_attempts=3, delay=0.5, exponential=True, retry_on=is_retryable_fetch_error
        )

    # -- public API -----------------------------------------------------------

    def fetch_matches(self, question: str, namespace: str = "") -> list[Match]:
        """One embedding call and one top-K query, no retry or filtering."""
        vector = self._embedder.embed(question)
        return self._store.query(namespace, vector, self.top_k)

    def get_matches(self, question: str, namespace: str = "", min_score: float = 0.0) -> list[Match]:
        """Return the matches scoring above *min_score*, or ``[]`` when the fetch fails.

        Same retry and degradation as :meth:`get_context`, without the text
        assembly.
        """
        if not question or not question.strip():
            logger.info("Empty question; returning no matches")
            return []

        try:
            matches = self._retry.call(self.fetch_matches, question, namespace)
        except ConfigurationError:
            raise
        except Exception:
            logger.exception("Context fetch failed for namespace '%s'; continuing without context", namespace)
            return []
        return self._assembler.relevant(matches, min_score)

    def get_context(
        self,
        question: str,
        namespace: str = "",
        max_chars: int = 3000,
        min_score: float = 0.0,
    ) -> str:
        """Return the context for *question*, or ``""`` when none is available.

        Parameters
        ----------
        question:
            Natural-language question.
        namespace:
            Index partition to search; ``""`` is the default partition.
        max_chars:
            Upper bound on the returned string length.
        min_score:
            Matches must score strictly above this.
        """
        if max_chars < 0:
            raise ValueError(f"max_chars must be >= 0, got {max_chars}")

        matches = self.get_matches(question, namespace, min_score)
        context = self._assembler.assemble(matches, min_score, max_chars)
        logger.info(
            "Assembled %d chars of context from %d matches (namespace '%s')",
            len(context),
            len(matches),
            namespace,
        )
        return context
