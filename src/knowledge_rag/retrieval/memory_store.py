"""Dict-backed vector store for tests and local dry runs."""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from typing import Any

from knowledge_rag.retrieval.base import VectorStoreBase
from knowledge_rag.retrieval.models import IndexRecord, Match, UpsertResult

logger = logging.getLogger(__name__)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    if norm == 0:
        return 0.0
    return sum(x * y for x, y in zip(a, b)) / norm


class InMemoryVectorStore(VectorStoreBase):
    """Brute-force cosine search over records kept in memory."""

    def __init__(self, dimension: int = 1536, index_name: str = "memory") -> None:
        super().__init__(index_name, dimension)
        self._namespaces: dict[str, dict[str, IndexRecord]] = {}

    def upsert(self, namespace: str, records: Sequence[IndexRecord]) -> UpsertResult:
        bucket = self._namespaces.setdefault(namespace, {})
        details: list[str] = []
        for record in records:
            error = self._dimension_error(record)
            if error:
                details.append(error)
                continue
            bucket[record.id] = record
        failed = len(details)
        if failed:
            logger.warning("Rejected %d records with the wrong dimension in namespace '%s'", failed, namespace)
        return UpsertResult(
            succeeded=len(records) - failed,
            failed=failed,
            batches=1 if records else 0,
            failed_batches=1 if failed else 0,
            details=tuple(details),
        )

    def query(self, namespace: str, vector: list[float], top_k: int) -> list[Match]:
        records = self._namespaces.get(namespace, {}).values()
        scored = sorted(
            ((cosine_similarity(vector, record.values), record) for record in records),
            key=lambda pair: pair[0],
            reverse=True,
        )
        return [Match(id=record.id, score=score, metadata=dict(record.metadata)) for score, record in scored[:top_k]]

    def get(self, namespace: str, record_id: str) -> IndexRecord | None:
        return self._namespaces.get(namespace, {}).get(record_id)

    def describe_stats(self) -> dict[str, Any]:
        namespaces = {name: {"vector_count": len(bucket)} for name, bucket in self._namespaces.items()}
        return {
            "dimension": self.dimension,
            "namespaces": namespaces,
            "total_vector_count": sum(ns["vector_count"] for ns in namespaces.values()),
        }

    def health_check(self) -> bool:
        return True
