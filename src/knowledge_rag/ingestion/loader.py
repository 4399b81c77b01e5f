"""Document loading and text preprocessing.

Only plain-text formats are supported; each is read verbatim through
LangChain's :class:`TextLoader` and normalised by :func:`preprocess_text`.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from pathlib import Path

from langchain_community.document_loaders import TextLoader
from langchain_core.documents import Document

from knowledge_rag.errors import InputError

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS: frozenset[str] = frozenset({".txt", ".md", ".mdx"})

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")
_HORIZONTAL_WS = re.compile(r"[^\S\n]+")
_EXCESS_NEWLINES = re.compile(r"\n{3,}")


def preprocess_text(text: str) -> str:
    """Normalise *text* before chunking.

    NFC-normalise, unify line endings, drop non-printable control
    characters, collapse horizontal whitespace to one space and runs of
    three or more newlines to a single blank line, then trim.
    """
    text = unicodedata.normalize("NFC", text)
    text = text.replace("\r\n", "\n")
    text = _CONTROL_CHARS.sub("", text)
    text = _HORIZONTAL_WS.sub(" ", text)
    text = _EXCESS_NEWLINES.sub("\n\n", text)
    return text.strip()


def load_document(path: str | Path) -> Document:
    """Read a single supported file into a preprocessed ``Document``.

    Parameters
    ----------
    path:
        Location of a ``.txt``, ``.md`` or ``.mdx`` file.

    Returns
    -------
    Document
        ``page_content`` is the preprocessed text; ``metadata`` carries
        ``source`` (the file name) and ``path`` (the resolved path).

    Raises
    ------
    InputError
        Unsupported extension (checked before any read), missing or
        unreadable file, or no text left after preprocessing.
    """
    path = Path(path)
    if path.suffix.lower() not in SUPPORTED_EXTENSIONS:
        raise InputError(f"Unsupported file type: {path.suffix or '<none>'} ({path.name})")
    if not path.is_file():
        raise InputError(f"File not found: {path}")

    try:
        loaded = TextLoader(str(path), encoding="utf-8").load()
    except RuntimeError as exc:
        # TextLoader wraps decode and OS errors in RuntimeError.
        raise InputError(f"Could not read {path}: {exc}") from exc

    text = preprocess_text("".join(doc.page_content for doc in loaded))
    if not text:
        raise InputError(f"File is empty: {path}")

    logger.debug("Loaded %s (%d chars)", path, len(text))
    return Document(page_content=text, metadata={"source": path.name, "path": str(path.resolve())})
