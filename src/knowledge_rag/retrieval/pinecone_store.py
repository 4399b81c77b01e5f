"""Pinecone-backed implementation of :class:`VectorStoreBase`."""

from __future__ import annotations

import logging
import re
import threading
from collections.abc import Mapping, Sequence
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from functools import reduce
from typing import Any

from knowledge_rag.errors import ConfigurationError, KnowledgeRagError, QueryTimeoutError, TransientProviderError
from knowledge_rag.retrieval.base import VectorStoreBase
from knowledge_rag.retrieval.models import IndexRecord, Match, UpsertResult
from knowledge_rag.retry import RetryPolicy, is_transient_status, status_of

logger = logging.getLogger(__name__)

_SCHEME = re.compile(r"^https?://", re.IGNORECASE)
_SERVICE_MARKER = ".svc."


def resolve_index_name(value: str) -> str:
    """Reduce a possibly URL-shaped setting to the bare index name.

    ``https://docs-abc123.svc.us-east1-gcp.pinecone.io/`` becomes
    ``docs-abc123``; a plain name is returned unchanged.
    """
    name = _SCHEME.sub("", value.strip()).rstrip("/")
    if _SERVICE_MARKER in name:
        name = name.split(".", 1)[0]
    if not name:
        raise ConfigurationError("PINECONE_INDEX does not contain an index name")
    return name


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def normalise_match(raw: Any) -> Match:
    """Build a :class:`Match` from a dict- or object-shaped response entry.

    Some responses carry per-record data under ``metadata``, others under
    ``fields``; both end up in :attr:`Match.metadata`.
    """
    metadata = _field(raw, "metadata") or _field(raw, "fields") or {}
    score = _field(raw, "score")
    return Match(
        id=str(_field(raw, "id") or ""),
        score=float(score) if score is not None else None,
        metadata=dict(metadata),
    )


def _run_detached(func: Any, **kwargs: Any) -> Future:
    """Run *func* on its own daemon thread; an abandoned call never holds up later ones."""
    future: Future = Future()

    def _target() -> None:
        if not future.set_running_or_notify_cancel():
            return
        try:
            future.set_result(func(**kwargs))
        except Exception as exc:
            future.set_exception(exc)

    threading.Thread(target=_target, name="pinecone-query", daemon=True).start()
    return future

class PineconeVectorStore(VectorStoreBase):
    """Batched upsert and time-bounded query against one Pinecone index.

    Parameters
    ----------
    client:
        A ``pinecone.Pinecone`` instance.
    index:
        Index name or host URL, resolved with :func:`resolve_index_name`.
    dimension:
        Vector length; records of any other length are never sent.
    batch_size:
        Records per upsert request.
    query_timeout:
        Hard wall-clock limit for a single query, in seconds.
    retry_policy:
        Applied to each upsert request.  Defaults to one retry on 429/5xx.
    """

    def __init__(
        self,
        client: Any,
        index: str,
        *,
        dimension: int = 1536,
        batch_size: int = 100,
        query_timeout: float = 10.0,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        super().__init__(resolve_index_name(index), dimension)
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self._index = client.Index(self.index_name)
        self.batch_size = batch_size
        self.query_timeout = query_timeout
        self._retry = retry_policy or RetryPolicy(max_attempts=2, delay=1.0)
        logger.info("Using Pinecone index '%s' (dimension %d)", self.index_name, dimension)

    # -- upsert ---------------------------------------------------------------

    def upsert(self, namespace: str, records: Sequence[IndexRecord]) -> UpsertResult:
        batches = [records[i : i + self.batch_size] for i in range(0, len(records), self.batch_size)]
        outcome = reduce(
            UpsertResult.merge,
            (self._upsert_batch(namespace, batch, n, len(batches)) for n, batch in enumerate(batches, start=1)),
            UpsertResult(),
        )
        logger.info(
            "Upserted %d/%d records into namespace '%s' (%d failed batches)",
            outcome.succeeded,
            len(records),
            namespace,
            outcome.failed_batches,
        )
        return outcome

    def _upsert_batch(self, namespace: str, batch: Sequence[IndexRecord], number: int, total: int) -> UpsertResult:
        errors = [error for error in map(self._dimension_error, batch) if error]
        if errors:
            message = f"batch {number}: {len(errors)} vectors with wrong dimension ({errors[0]})"
            logger.error("Skipping upsert %s", message)
            return UpsertResult(failed=len(batch), batches=1, failed_batches=1, details=(message,))

        try:
            self._retry.call(
                self._index.upsert,
                vectors=[record.to_payload() for record in batch],
                namespace=namespace,
            )
        except Exception as exc:
            logger.error("Upsert batch %d/%d failed: %s", number, total, exc, exc_info=True)
            return UpsertResult(
                failed=len(batch), batches=1, failed_batches=1, details=(f"batch {number}: {exc}",)
            )

        logger.info("Upserted batch %d/%d (%d records)", number, total, len(batch))
        return UpsertResult(succeeded=len(batch), batches=1)

    # -- query ----------------------------------------------------------------

    def query(self, namespace: str, vector: list[float], top_k: int) -> list[Match]:
        future = _run_detached(
            self._index.query,
            vector=vector,
            top_k=top_k,
            namespace=namespace,
            include_values=False,
            include_metadata=True,
        )
        try:
            response = future.result(timeout=self.query_timeout)
        except FutureTimeoutError as exc:
            raise QueryTimeoutError(f"query exceeded {self.query_timeout:.1f}s") from exc
        except KnowledgeRagError:
            raise
        except Exception as exc:
            status = status_of(exc)
            if is_transient_status(status):
                raise TransientProviderError(status, str(exc)) from exc
            raise

        matches = [normalise_match(raw) for raw in (_field(response, "matches") or [])]
        logger.debug("Query returned %d matches from namespace '%s'", len(matches), namespace)
        return matches

    # -- stats ----------------------------------------------------------------

    def describe_stats(self) -> dict[str, Any]:
        stats = self._index.describe_index_stats()
        if hasattr(stats, "to_dict"):
            return stats.to_dict()
        return dict(stats)

    def health_check(self) -> bool:
        try:
            self._index.describe_index_stats()
        except Exception:
            logger.warning("Pinecone index '%s' is not reachable", self.index_name, exc_info=True)
            return False
        return True
