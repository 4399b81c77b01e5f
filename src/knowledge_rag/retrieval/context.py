"""Context assembly — turn query matches into one bounded text block."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from knowledge_rag.retrieval.models import Match

logger = logging.getLogger(__name__)

# Probed in order; the first non-blank string wins.
CONTENT_KEYS: tuple[str, ...] = (
    "chunk",
    "content",
    "text",
    "body",
    "message",
    "description",
    "pageContent",
    "value",
)
FALLBACK_MIN_LENGTH = 10


def extract_text(metadata: Mapping[str, Any]) -> str:
    """Return the passage text stored in *metadata*, or ``""``.

    Canonical content keys are tried first; failing those, any string
    value of at least ``FALLBACK_MIN_LENGTH`` characters is used.
    """
    for key in CONTENT_KEYS:
        value = metadata.get(key)
        if isinstance(value, str) and value.strip():
            return value
    for value in metadata.values():
        if isinstance(value, str) and len(value) >= FALLBACK_MIN_LENGTH:
            return value
    return ""


class ContextAssembler:
    """Score-filter matches, extract their text, join and truncate."""

    separator = "\n"

    @staticmethod
    def relevant(matches: Sequence[Match], min_score: float = 0.0) -> list[Match]:
        """Keep matches scoring strictly above *min_score*, in their original order."""
        return [match for match in matches if match.score is not None and match.score > min_score]

    def assemble(self, matches: Sequence[Match], min_score: float = 0.0, max_chars: int = 3000) -> str:
        """Build the context string.

        Parameters
        ----------
        matches:
            Query matches in ranking order.
        min_score:
            Matches must score strictly above this; score-less matches
            are always dropped.
        max_chars:
            Hard cut applied to the joined text.

        Returns
        -------
        str
            The context, or ``""`` when no match qualifies.
        """
        if max_chars < 0:
            raise ValueError(f"max_chars must be >= 0, got {max_chars}")

        texts: list[str] = []
        for match in self.relevant(matches, min_score):
            text = extract_text(match.metadata)
            if not text:
                logger.debug("Match %s has no extractable text; skipped", match.id)
                continue
            texts.append(text)

        return self.separator.join(texts)[:max_chars]
