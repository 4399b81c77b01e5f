"""Domain models for index records, query matches and upload outcomes."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class IndexRecord(BaseModel):
    """The persisted unit: one vector plus its metadata, keyed by ``id``.

    Upserting a record whose ``id`` already exists in the namespace
    replaces the earlier one.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    values: list[float]
    metadata: dict[str, Any] = Field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        """Return the dict shape expected by ``Index.upsert(vectors=...)``."""
        return {"id": self.id, "values": list(self.values), "metadata": dict(self.metadata)}


class Match(BaseModel):
    """A single similarity-query hit.

    Attributes
    ----------
    id:
        Record identifier.
    score:
        Similarity score (higher = more relevant); ``None`` when the
        backend did not report one.
    metadata:
        Record metadata, whichever key the backend returned it under.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    score: float | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class UpsertResult(BaseModel):
    """Immutable outcome of one or more upload batches.

    Batch outcomes are combined with :meth:`merge`, so a whole upload is a
    fold over its batches::

        reduce(UpsertResult.merge, per_batch, UpsertResult())
    """

    model_config = ConfigDict(frozen=True)

    succeeded: int = 0
    failed: int = 0
    batches: int = 0
    failed_batches: int = 0
    details: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.failed == 0

    def merge(self, other: UpsertResult) -> UpsertResult:
        return UpsertResult(
            succeeded=self.succeeded + other.succeeded,
            failed=self.failed + other.failed,
            batches=self.batches + other.batches,
            failed_batches=self.failed_batches + other.failed_batches,
            details=self.details + other.details,
        )
