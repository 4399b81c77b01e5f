"""Text chunking strategies.

Three independent splitters run over every document and their output is
merged and deduplicated:

* :class:`RecursiveOverlapSplitter` — coarse-to-fine separator split with a
  single backward overlap pass (the primary strategy).
* :class:`SlidingWindowSplitter` — fixed-stride character windows.
* :class:`SentenceSplitter` — greedy sentence accumulation.

:class:`TextChunker` combines them and turns the surviving pieces into
:class:`~knowledge_rag.ingestion.models.Chunk` records.
"""

from __future__ import annotations

import hashlib
import logging
import re
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

from langchain_text_splitters import TextSplitter

from knowledge_rag.config import Settings, settings
from knowledge_rag.ingestion.models import TEXT_ALIASES, Chunk

logger = logging.getLogger(__name__)

DEFAULT_SEPARATORS: tuple[str, ...] = ("\n\n", "\n", ". ", "! ", "? ", "; ", ", ", " ", "")
MIN_CHUNK_LENGTH = 50
SIGNATURE_LENGTH = 100
PREVIEW_LENGTH = 100

_SENTENCE_END = re.compile(r"(?<=[.!?])\s+")


def _window_split(text: str, size: int, stride: int) -> list[str]:
    """Cut *text* into windows of *size* starting every *stride* characters."""
    windows: list[str] = []
    for start in range(0, len(text), stride):
        windows.append(text[start : start + size])
        if start + size >= len(text):
            break
    return windows


# -- strategies ---------------------------------------------------------------


class RecursiveOverlapSplitter(TextSplitter):
    """Split on the coarsest separator that works, then add backward overlap.

    Pieces are greedily packed up to ``chunk_size``.  A piece that is still
    too large is split again with the finer separators.  Overlap is applied
    once, to the final sequence: chunk *i* is prefixed with the last
    ``chunk_overlap`` characters of chunk *i-1*.
    """

    def __init__(self, separators: Sequence[str] | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._separators = list(separators or DEFAULT_SEPARATORS)

    def split_text(self, text: str) -> list[str]:
        if not text.strip():
            return []
        if len(text) <= self._chunk_size:
            return [text]

        pieces = self._split_recursive(text, self._separators)
        if pieces is None:
            # Nothing to split on; plain windows already overlap.
            return _window_split(text, self._chunk_size, self._chunk_size - self._chunk_overlap)
        return self._add_overlap(pieces)

    def _split_recursive(self, text: str, separators: Sequence[str]) -> list[str] | None:
        """Pack *text* on the first separator present in it, or ``None``."""
        found = next(((i, sep) for i, sep in enumerate(separators) if sep and sep in text), None)
        if found is None:
            return None
        position, separator = found
        finer = separators[position + 1 :]

        parts = text.split(separator)
        pieces = [part + separator for part in parts[:-1]] + [parts[-1]]

        size = self._chunk_size
        chunks: list[str] = []
        buffer = ""
        for piece in pieces:
            if len(buffer) + len(piece) <= size:
                buffer += piece
                continue
            self._flush(chunks, buffer)
            if len(piece) <= size:
                buffer = piece
                continue
            sub_pieces = self._split_recursive(piece, finer) or _window_split(piece, size, size)
            for sub in sub_pieces[:-1]:
                self._flush(chunks, sub)
            # The recursive pass strips its pieces; put this level's separator back.
            buffer = sub_pieces[-1].rstrip() + piece[len(piece.rstrip()) :]
        self._flush(chunks, buffer)
        return chunks

    @staticmethod
    def _flush(chunks: list[str], buffer: str) -> None:
        stripped = buffer.strip()
        if stripped:
            chunks.append(stripped)

    def _add_overlap(self, pieces: list[str]) -> list[str]:
        overlap = self._chunk_overlap
        if overlap <= 0 or len(pieces) < 2:
            return pieces
        return [pieces[0]] + [prev[-overlap:] + current for prev, current in zip(pieces, pieces[1:])]


class SlidingWindowSplitter(TextSplitter):
    """Fixed windows of ``chunk_size`` every ``chunk_size - chunk_overlap`` chars."""

    def __init__(self, min_length: int = MIN_CHUNK_LENGTH, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._min_length = min_length

    def split_text(self, text: str) -> list[str]:
        stride = self._chunk_size - self._chunk_overlap
        windows = (window.strip() for window in _window_split(text, self._chunk_size, stride))
        return [window for window in windows if len(window) >= self._min_length]


class SentenceSplitter(TextSplitter):
    """Accumulate whole sentences while the buffer stays under ``chunk_size``."""

    def split_text(self, text: str) -> list[str]:
        chunks: list[str] = []
        buffer = ""
        for sentence in _SENTENCE_END.split(text.strip()):
            if not sentence:
                continue
            if not buffer:
                buffer = sentence
            elif len(buffer) + len(sentence) < self._chunk_size:
                buffer = f"{buffer} {sentence}"
            else:
                chunks.append(buffer)
                buffer = sentence
        if buffer:
            chunks.append(buffer)
        return chunks


# -- combination --------------------------------------------------------------


def signature(chunk: str) -> str:
    """Normalised prefix used to detect duplicate chunks."""
    return chunk.strip().lower()[:SIGNATURE_LENGTH]


def deduplicate(chunks: Iterable[str], min_length: int = MIN_CHUNK_LENGTH) -> list[str]:
    """Drop short pieces and every piece whose :func:`signature` was already seen.

    The first occurrence wins, so the result is stable and running this
    twice gives the same list.
    """
    seen: set[str] = set()
    kept: list[str] = []
    for chunk in chunks:
        if len(chunk.strip()) < min_length:
            continue
        key = signature(chunk)
        if key in seen:
            continue
        seen.add(key)
        kept.append(chunk)
    return kept


def make_document_prefix(key: str) -> str:
    """Return ``<stem>-<hash>`` so equal file names in different places never collide."""
    digest = hashlib.sha256(key.encode("utf-8")).hexdigest()[:8]
    return f"{Path(key).stem or 'doc'}-{digest}"


def chunk_id(prefix: str, index: int) -> str:
    return f"{prefix}_chunk_{index:04d}"


def _chunk_metadata(text: str, *, source: str, doc_id: str, index: int, total: int) -> dict[str, Any]:
    metadata: dict[str, Any] = {
        "source": source,
        "doc_id": doc_id,
        "chunk_index": index,
        "total_chunks": total,
        "char_count": len(text),
        "chunk_position": f"{index + 1}/{total}",
        "preview": text[:PREVIEW_LENGTH].replace("\n", " ") + "...",
    }
    metadata.update(dict.fromkeys(TEXT_ALIASES, text))
    return metadata


class TextChunker:
    """Split one document into deduplicated :class:`Chunk` records.

    Parameters
    ----------
    chunk_size:
        Target maximum characters per piece, before overlap is added.
    chunk_overlap:
        Characters shared between consecutive pieces; must be smaller
        than *chunk_size*.
    min_chunk_length:
        Pieces shorter than this (after trimming) are dropped.
    separators:
        Coarse-to-fine separators for the primary strategy.
    """

    def __init__(
        self,
        chunk_size: int = 100,
        chunk_overlap: int = 50,
        *,
        min_chunk_length: int = MIN_CHUNK_LENGTH,
        separators: Sequence[str] | None = None,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        if chunk_overlap < 0:
            raise ValueError(f"chunk_overlap must be >= 0, got {chunk_overlap}")
        if chunk_overlap >= chunk_size:
            raise ValueError(f"chunk_overlap ({chunk_overlap}) must be < chunk_size ({chunk_size})")

        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.min_chunk_length = min_chunk_length
        self.primary = RecursiveOverlapSplitter(
            separators=separators, chunk_size=chunk_size, chunk_overlap=chunk_overlap
        )
        self.secondary = SlidingWindowSplitter(
            min_length=min_chunk_length, chunk_size=chunk_size, chunk_overlap=chunk_overlap
        )
        self.tertiary = SentenceSplitter(chunk_size=chunk_size, chunk_overlap=chunk_overlap)

    @classmethod
    def from_settings(cls, cfg: Settings = settings) -> TextChunker:
        return cls(cfg.chunk_size, cfg.chunk_overlap, min_chunk_length=cfg.min_chunk_length)

    def split(self, text: str) -> list[str]:
        """Return the deduplicated chunk texts for *text*."""
        if not text.strip():
            return []
        if len(text) <= self.chunk_size:
            return [text]

        primary = self.primary.split_text(text)
        combined = deduplicate(
            [*primary, *self.secondary.split_text(text), *self.tertiary.split_text(text)],
            self.min_chunk_length,
        )
        if combined:
            return combined
        # Only reachable when chunk_size is below the minimum length.
        logger.debug("All pieces under %d chars; keeping primary split", self.min_chunk_length)
        return deduplicate(primary, min_length=1)

    def chunk(self, text: str, *, source: str, prefix: str | None = None) -> list[Chunk]:
        """Split *text* and build :class:`Chunk` records.

        Parameters
        ----------
        text:
            Preprocessed document text.
        source:
            Human-readable source name stored in metadata.
        prefix:
            Document prefix for chunk ids; derived from *source* when omitted.
        """
        pieces = self.split(text)
        prefix = prefix or make_document_prefix(source)
        total = len(pieces)
        return [
            Chunk(
                id=chunk_id(prefix, index),
                text=piece,
                metadata=_chunk_metadata(piece, source=source, doc_id=prefix, index=index, total=total),
            )
            for index, piece in enumerate(pieces)
        ]
