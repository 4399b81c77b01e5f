"""Ingestion pipeline — documents in, indexed vectors out.

Per document: read → preprocess → chunk.  Chunks from every document are
pooled, embedded in batches, and upserted in batches.  A bad document is
recorded and skipped; a failed upload batch is counted in the report.
Embedding failures abort the run.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING

from langchain_core.documents import Document

from knowledge_rag.errors import InputError
from knowledge_rag.ingestion.chunker import make_document_prefix
from knowledge_rag.ingestion.loader import load_document, preprocess_text
from knowledge_rag.ingestion.models import Chunk, IngestionReport
from knowledge_rag.retrieval.models import IndexRecord

if TYPE_CHECKING:
    from knowledge_rag.ingestion.chunker import TextChunker
    from knowledge_rag.ingestion.embedder import EmbeddingClient
    from knowledge_rag.retrieval.base import VectorStoreBase

logger = logging.getLogger(__name__)


class IngestionPipeline:
    """Orchestrate TextChunker → EmbeddingClient → vector store.

    Parameters
    ----------
    chunker:
        Splits each document into chunks.
    embedder:
        Embeds the pooled chunk texts.
    store:
        Receives the resulting records; it owns upload batching.
    """

    def __init__(self, chunker: TextChunker, embedder: EmbeddingClient, store: VectorStoreBase) -> None:
        self._chunker = chunker
        self._embedder = embedder
        self._store = store

    # -- public API -----------------------------------------------------------

    def ingest_paths(self, paths: Iterable[str | Path], namespace: str = "default") -> IngestionReport:
        """Load, chunk, embed and upsert every file in *paths*."""
        documents: list[Document] = []
        failures: list[str] = []
        for path in paths:
            try:
                documents.append(load_document(path))
            except InputError as exc:
                logger.warning("Skipping %s: %s", path, exc)
                failures.append(f"{path}: {exc}")
        return self._run(documents, namespace, failures)

    def ingest_documents(self, documents: Iterable[Document], namespace: str = "default") -> IngestionReport:
        """Same as :meth:`ingest_paths` for documents already in memory."""
        return self._run(list(documents), namespace, [])

    # -- internals ------------------------------------------------------------

    def _run(self, documents: list[Document], namespace: str, failures: list[str]) -> IngestionReport:
        chunks: list[Chunk] = []
        processed = 0
        for document in documents:
            source = str(document.metadata.get("source", "unknown"))
            text = preprocess_text(document.page_content)
            if not text:
                logger.warning("Skipping %s: no text after preprocessing", source)
                failures.append(f"{source}: no text after preprocessing")
                continue
            key = str(document.metadata.get("path", source))
            document_chunks = self._chunker.chunk(text, source=source, prefix=make_document_prefix(key))
            processed += 1
            chunks.extend(document_chunks)
            logger.info("Processed %s: %d chunks", source, len(document_chunks))

        if not chunks:
            logger.warning("No chunks produced; nothing to embed")
            return IngestionReport(namespace=namespace, documents_failed=len(failures), failures=tuple(failures))

        vectors = self._embedder.embed_batch([chunk.text for chunk in chunks])
        records = [
            IndexRecord(id=chunk.id, values=vector, metadata=chunk.metadata) for chunk, vector in zip(chunks, vectors)
        ]
        upload = self._store.upsert(namespace, records)

        sizes = [len(chunk.text) for chunk in chunks]
        report = IngestionReport(
            namespace=namespace,
            documents_processed=processed,
            documents_failed=len(failures),
            failures=tuple(failures),
            chunks_created=len(chunks),
            vectors_embedded=len(vectors),
            upload=upload,
            dimension=len(vectors[0]) if vectors else None,
            min_chars=min(sizes),
            max_chars=max(sizes),
            avg_chars=sum(sizes) / len(sizes),
            index_vector_count=self._namespace_count(namespace),
        )
        logger.info("%s", report.summary())
        return report

    def _namespace_count(self, namespace: str) -> int | None:
        """Read back the namespace size from index stats, if the backend offers them."""
        try:
            stats = self._store.describe_stats()
        except NotImplementedError:
            return None
        except Exception:
            logger.warning("Could not read index stats after upload", exc_info=True)
            return None
        summary = (stats.get("namespaces") or {}).get(namespace) or {}
        count = summary.get("vector_count")
        return int(count) if count is not None else None
