"""Exception hierarchy shared by the ingestion and retrieval layers."""

from __future__ import annotations


class KnowledgeRagError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(KnowledgeRagError):
    """A required setting (API key, index name) is missing or invalid."""


class InputError(KnowledgeRagError):
    """A document or text cannot be processed.

    Fatal for that single document only; ingestion moves on to the next one.
    """


class TransientProviderError(KnowledgeRagError):
    """Rate limiting or a server error from a provider, after retries ran out."""

    def __init__(self, status: int | None, message: str = "") -> None:
        self.status = status
        super().__init__(f"provider returned {status}: {message}" if message else f"provider returned {status}")


class QueryTimeoutError(KnowledgeRagError):
    """A similarity query exceeded its wall-clock budget."""


class EmbeddingError(KnowledgeRagError):
    """The embedding provider returned a response that breaks its contract."""


class DimensionMismatchError(EmbeddingError):
    """A vector does not have the configured dimension. Never retried."""

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"expected embedding dimension {expected}, got {actual}")
