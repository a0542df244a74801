"""Deterministic hashed bag-of-words embeddings.

Every whitespace-separated token is hashed into one bucket of a fixed-size
vector and the counts are L2-normalized. The same function must be used when
an index is built and when it is queried: vectors produced with a different
hash, casing rule or dimension are not comparable and retrieval quality
degrades silently.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Sequence

import numpy as np

DEFAULT_DIMENSION = 1536

_HASH_MULTIPLIER = 31
_HASH_MASK = 0xFFFFFFFF

# ECMAScript `\s`: indices written by JavaScript tooling split tokens on exactly this set
_RE_WHITESPACE = re.compile(
    "[\t\n\v\f\r \u00a0\u1680\u2000-\u200a\u2028\u2029\u202f\u205f\u3000\ufeff]+"
)

logger = logging.getLogger(__name__)


def _token_hash(token: str) -> int:
    """Unsigned 32-bit rolling hash over the token's UTF-16 code units."""
    encoded = token.encode("utf-16-le", "surrogatepass")
    value = 0
    for offset in range(0, len(encoded), 2):
        code_unit = encoded[offset] | (encoded[offset + 1] << 8)
        value = (value * _HASH_MULTIPLIER + code_unit) & _HASH_MASK
    return value


def normalize(vector: np.ndarray) -> np.ndarray:
    """Scale to unit L2 norm; a zero vector is returned unchanged."""
    norm = float(np.linalg.norm(vector))
    if norm == 0.0:
        return vector
    return vector / norm


def hash_embed(text: str, dimension: int = DEFAULT_DIMENSION) -> np.ndarray:
    """Embed ``text`` into a unit-length float64 vector of ``dimension`` buckets."""
    vector = np.zeros(dimension, dtype=np.float64)
    for token in _RE_WHITESPACE.split(text.lower()):
        if not token:
            continue
        vector[_token_hash(token) % dimension] += 1.0
    return normalize(vector)


@dataclass(slots=True)
class EmbeddingConfig:
    dimension: int = DEFAULT_DIMENSION


class HashEmbeddingModel:
    """Embedding model shared by index construction and query time."""

    def __init__(self, config: EmbeddingConfig | None = None) -> None:
        self.config = config or EmbeddingConfig()
        if self.config.dimension < 1:
            raise ValueError(f"dimension must be positive, got {self.config.dimension}")
        self.dimension = int(self.config.dimension)
        logger.debug("Hash embedding model ready | Dimension: %d", self.dimension)

    def embed(self, texts: Sequence[str] | Iterable[str]) -> np.ndarray:
        """Return a ``(len(texts), dimension)`` float64 matrix."""
        rows = [hash_embed(text, self.dimension) for text in texts]
        if not rows:
            return np.zeros((0, self.dimension), dtype=np.float64)
        return np.vstack(rows)

    def embed_query(self, text: str) -> np.ndarray:
        """Convenience wrapper for single-query embedding."""
        return hash_embed(text, self.dimension)
