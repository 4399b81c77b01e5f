"""Domain models produced by the ingestion pipeline."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from knowledge_rag.retrieval.models import UpsertResult

# Chunk text is duplicated under each of these keys so consumers that read
# different field names all find it.
TEXT_ALIASES: tuple[str, ...] = ("text", "content", "chunk")


class Chunk(BaseModel):
    """A bounded span of one document's text, ready to be embedded.

    Attributes
    ----------
    id:
        ``<document prefix>_chunk_<NNNN>``.
    text:
        The chunk text that gets embedded.
    metadata:
        ``source``, ``doc_id``, ``chunk_index``, ``total_chunks``,
        ``char_count``, ``chunk_position``, ``preview`` and the text under
        every key in :data:`TEXT_ALIASES`.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    metadata: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_metadata(self) -> Chunk:
        meta = self.metadata
        if meta.get("char_count") != len(self.text):
            raise ValueError(f"char_count {meta.get('char_count')!r} != len(text) {len(self.text)}")
        index, total = meta.get("chunk_index"), meta.get("total_chunks")
        if not isinstance(index, int) or not isinstance(total, int) or not 0 <= index < total:
            raise ValueError(f"chunk_index {index!r} out of range for total_chunks {total!r}")
        missing = [key for key in TEXT_ALIASES if meta.get(key) != self.text]
        if missing:
            raise ValueError(f"text aliases missing or stale: {missing}")
        return self


class IngestionReport(BaseModel):
    """Summary of one ingestion run."""

    model_config = ConfigDict(frozen=True)

    namespace: str
    documents_processed: int = 0
    documents_failed: int = 0
    failures: tuple[str, ...] = ()
    chunks_created: int = 0
    vectors_embedded: int = 0
    upload: UpsertResult = Field(default_factory=UpsertResult)
    dimension: int | None = None
    min_chars: int = 0
    max_chars: int = 0
    avg_chars: float = 0.0
    index_vector_count: int | None = None

    @property
    def upload_failed(self) -> bool:
        """True when there was something to upload and none of it landed."""
        return self.upload.batches > 0 and self.upload.succeeded == 0

    def summary(self) -> str:
        """Human-readable multi-line summary."""
        lines = [
            "Ingestion summary",
            f"  namespace:           {self.namespace or '<default>'}",
            f"  documents processed: {self.documents_processed}",
            f"  documents failed:    {self.documents_failed}",
            f"  chunks created:      {self.chunks_created}",
            f"  vectors embedded:    {self.vectors_embedded}",
            f"  uploads succeeded:   {self.upload.succeeded} records",
            f"  uploads failed:      {self.upload.failed} records "
            f"({self.upload.failed_batches}/{self.upload.batches} batches)",
        ]
        if self.dimension is not None:
            lines.append(f"  vector dimension:    {self.dimension}")
        if self.chunks_created:
            lines.append(
                f"  chunk chars:         min {self.min_chars} / max {self.max_chars} / avg {self.avg_chars:.1f}"
            )
        if self.index_vector_count is not None:
            lines.append(f"  vectors in index:    {self.index_vector_count}")
        lines.extend(f"  ! {failure}" for failure in self.failures)
        lines.extend(f"  ! {detail}" for detail in self.upload.details)
        return "\n".join(lines)
