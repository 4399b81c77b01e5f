"""Batched text embedding through the OpenAI embeddings API."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from knowledge_rag.errors import DimensionMismatchError, EmbeddingError, InputError
from knowledge_rag.retry import RetryPolicy

logger = logging.getLogger(__name__)


def normalise_input(text: str) -> str:
    """Collapse line breaks to spaces and trim, as the embedding model expects."""
    return text.replace("\r\n", " ").replace("\n", " ").strip()


class EmbeddingClient:
    """Turn texts into fixed-dimension vectors, in input order.

    Parameters
    ----------
    client:
        An ``openai.OpenAI`` instance (or anything exposing
        ``embeddings.create(model=..., input=[...])``).
    model:
        Embedding model identifier.
    dimension:
        Expected vector length; any other length fails the call.
    batch_size:
        Texts per provider request.
    retry_policy:
        Applied to every provider request.  Defaults to one retry on
        429/5xx after one second.
    """

    def __init__(
        self,
        client: Any,
        *,
        model: str = "text-embedding-3-small",
        dimension: int = 1536,
        batch_size: int = 100,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self._client = client
        self.model = model
        self.dimension = dimension
        self.batch_size = batch_size
        self._retry = retry_policy or RetryPolicy(max_attempts=2, delay=1.0)

    # -- public API -----------------------------------------------------------

    def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        """Embed *texts*, one vector per text, same order.

        Raises
        ------
        InputError
            A text is empty after normalisation; raised before any request.
        DimensionMismatchError
            Any returned vector has the wrong length.  No partial result.
        EmbeddingError
            The provider returned a different number of vectors.
        TransientProviderError
            Still rate-limited or failing after the retry.
        """
        cleaned = [normalise_input(text) for text in texts]
        empty = [position for position, text in enumerate(cleaned) if not text]
        if empty:
            raise InputError(f"Cannot embed empty text (input positions {empty[:10]})")
        if not cleaned:
            return []

        total_batches = (len(cleaned) + self.batch_size - 1) // self.batch_size
        vectors: list[list[float]] = []
        for number, start in enumerate(range(0, len(cleaned), self.batch_size), start=1):
            batch = cleaned[start : start + self.batch_size]
            logger.info("Embedding batch %d/%d (%d texts)", number, total_batches, len(batch))
            vectors.extend(self._embed_request(batch))
        return vectors

    def embed(self, text: str) -> list[float]:
        """Embed a single text through the same path as :meth:`embed_batch`."""
        return self.embed_batch([text])[0]

    # -- internals ------------------------------------------------------------

    def _embed_request(self, batch: list[str]) -> list[list[float]]:
        response = self._retry.call(self._client.embeddings.create, model=self.model, input=batch)
        batch_vectors = [list(item.embedding) for item in response.data]
        if len(batch_vectors) != len(batch):
            raise EmbeddingError(f"requested {len(batch)} embeddings, received {len(batch_vectors)}")
        for vector in batch_vectors:
            if len(vector) != self.dimension:
                raise DimensionMismatchError(self.dimension, len(vector))
        return batch_vectors
