"""Abstract base class for vector-index backends.

Adding a new backend only requires subclassing :class:`VectorStoreBase`
and implementing the three abstract methods.  The ingestion pipeline and
the retriever only ever talk to this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from knowledge_rag.retrieval.models import IndexRecord, Match, UpsertResult


class VectorStoreBase(ABC):
    """Namespaced vector-index interface.

    Parameters
    ----------
    index_name:
        Name of the underlying index.
    dimension:
        Vector length every record and query must have.
    """

    def __init__(self, index_name: str, dimension: int) -> None:
        self.index_name = index_name
        self.dimension = dimension

    # -- required overrides ---------------------------------------------------

    @abstractmethod
    def upsert(self, namespace: str, records: Sequence[IndexRecord]) -> UpsertResult:
        """Insert or overwrite *records* (keyed by id) in *namespace*.

        A failing batch is counted in the returned result instead of
        raising, so the remaining batches still go through.
        """
        ...

    @abstractmethod
    def query(self, namespace: str, vector: list[float], top_k: int) -> list[Match]:
        """Return up to *top_k* matches for *vector*, best first.

        Vector values are never returned; metadata always is.
        """
        ...

    @abstractmethod
    def health_check(self) -> bool:
        """Return ``True`` when the backend is reachable and ready."""
        ...

    # -- optional overrides ---------------------------------------------------

    def describe_stats(self) -> dict[str, Any]:
        """Return index statistics (``dimension``, ``namespaces`` …).  Optional — raises by default."""
        raise NotImplementedError(f"{type(self).__name__} does not support describe_stats")

    def close(self) -> None:
        """Release any resources held by the backend."""

    # -- shared helpers -------------------------------------------------------

    def _dimension_error(self, record: IndexRecord) -> str | None:
        if len(record.values) != self.dimension:
            return f"{record.id}: expected dimension {self.dimension}, got {len(record.values)}"
        return None
