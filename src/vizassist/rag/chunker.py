"""Boundary-aware text chunker with overlap.

Windows are ``max_length`` characters. Before cutting, the window end is pulled
back to the nearest paragraph break, sentence break, or word break so chunks
end on natural boundaries. Consecutive windows overlap by ``overlap`` characters.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

# Paragraph/sentence breaks are only honoured this close to the window end.
_BOUNDARY_LOOKBACK = 200

_PARAGRAPH_BREAK = "\n\n"
_SENTENCE_BREAK = ". "
_WORD_BREAK = " "

_WHITESPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class TextChunk:
    """A trimmed chunk plus the offsets of the window it was cut from."""

    text: str
    start: int
    end: int


def normalize_text(text: str) -> str:
    """Trim *text* and collapse every whitespace run to a single space."""
    return _WHITESPACE_RE.sub(" ", text.strip())


def chunk(text: str, max_length: int = 1000, overlap: int = 200) -> list[str]:
    """Split *text* into overlapping chunks that end on natural boundaries.

    Args:
        text: The text to split.
        max_length: Maximum characters per chunk (must be > 0).
        overlap: Characters shared between consecutive windows. Values
            ``>= max_length`` still terminate; each window starts strictly
            after the previous one.

    Returns:
        Ordered list of trimmed, non-empty chunks (empty for blank input).
    """
    return [c.text for c in chunk_spans(text, max_length, overlap)]


def chunk_spans(text: str, max_length: int = 1000, overlap: int = 200) -> list[TextChunk]:
    """Same segmentation as :func:`chunk`, with window offsets."""
    if not text or max_length < 1:
        return []

    length = len(text)
    spans: list[TextChunk] = []
    pos = 0

    while pos < length:
        end = min(pos + max_length, length)
        if end < length:
            end = _find_break(text, pos, end)

        segment = text[pos:end].strip()
        if segment:
            spans.append(TextChunk(text=segment, start=pos, end=end))

        if end >= length:
            break
        pos = max(end - overlap, 0, pos + 1)

    return spans


def _find_break(text: str, start: int, end: int) -> int:
    """Return the adjusted window end for the window ``text[start:end]``."""
    window_floor = end - _BOUNDARY_LOOKBACK

    paragraph = text.rfind(_PARAGRAPH_BREAK, start, end)
    if paragraph > start and paragraph > window_floor:
        return paragraph + len(_PARAGRAPH_BREAK)

    sentence = text.rfind(_SENTENCE_BREAK, start, end)
    if sentence > start and sentence > window_floor:
        return sentence + len(_SENTENCE_BREAK)

    word = text.rfind(_WORD_BREAK, start, end)
    if word > start:
        return word + len(_WORD_BREAK)

    return end
