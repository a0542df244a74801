"""Text helpers: lexical tokenization, sentence splitting and chunking."""

from __future__ import annotations

import re
from typing import AbstractSet, Iterable, Iterator, List

STOPWORDS: frozenset[str] = frozenset(
    {
        "the", "a", "an", "and", "or", "but", "if", "then", "than", "to", "of", "in",
        "on", "for", "by", "with", "as", "at", "from", "is", "are", "was", "were", "be",
        "being", "been", "it", "this", "that", "these", "those", "he", "she", "they",
        "we", "you", "i", "his", "her", "their", "our", "my", "your", "me", "him",
        "them", "do", "does", "did", "can", "could", "should", "would", "will",
    }
)

_RE_NON_WORD = re.compile(r"\W+")
_RE_SENT_SPLIT = re.compile(r"(?<=[.!?])\s+")


def tokenize(
    text: str,
    *,
    stopwords: AbstractSet[str] = STOPWORDS,
    min_chars: int = 3,
) -> List[str]:
    """Lowercase, split on non-word runs and drop short tokens and stopwords."""
    tokens = (piece.strip() for piece in _RE_NON_WORD.split(text.lower()))
    return [token for token in tokens if len(token) >= min_chars and token not in stopwords]


def split_sentences(text: str) -> List[str]:
    """Split after ``.``, ``!`` or ``?`` followed by whitespace."""
    parts = (part.strip() for part in _RE_SENT_SPLIT.split(text))
    return [part for part in parts if part]


def chunk_text_stream(
    text_stream: Iterable[str], *, max_chars: int = 500, overlap: int = 100
) -> Iterator[str]:
    """Split a stream of text parts into overlapping character chunks.

    Buffers incoming text just enough to produce chunks of `max_chars`.
    """
    buffer = ""
    step = max(max_chars - overlap, 1)
    emitted = False

    for part in text_stream:
        buffer += part
        while len(buffer) >= max_chars:
            yield buffer[:max_chars]
            emitted = True
            buffer = buffer[step:]

    # The tail is already covered when it only repeats the last overlap
    if buffer and (not emitted or len(buffer) > overlap):
        yield buffer


def normalize_whitespace(lines: Iterable[str]) -> str:
    """Collapse whitespace and join lines."""
    return "\n".join(line.strip() for line in lines if line.strip())
