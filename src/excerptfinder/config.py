"""Application configuration defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from excerptfinder.embedding.encoder import DEFAULT_DIMENSION
from excerptfinder.utils.text import STOPWORDS

INDEX_PATH_ENV = "LOCAL_VECTOR_STORE_PATH"
DEFAULT_INDEX_PATH = Path("local-index.json")


def _get_default_index_path() -> Path:
    """Index location from the environment, falling back to ./local-index.json."""
    configured = os.environ.get(INDEX_PATH_ENV, "").strip()
    if configured:
        return Path(configured)
    return DEFAULT_INDEX_PATH


@dataclass(frozen=True, slots=True)
class RetrievalConfig:
    """Ranking and answer-synthesis constants.

    Indices must be built and queried with the same ``dimension``; cosine
    similarity between vectors hashed into different spaces is meaningless.
    """

    dimension: int = DEFAULT_DIMENSION
    top_k: int = 5
    max_sentences: int = 4
    semantic_weight: float = 0.75
    lexical_weight: float = 0.25
    stopwords: frozenset[str] = STOPWORDS
    min_token_chars: int = 3
    unseen_idf: float = 0.5
    tf_cap: float = 1.5
    sentence_match_weight: float = 0.7
    sentence_overlap_weight: float = 0.3
    min_sentence_chars: int = 21
    fallback_chars: int = 500

    def __post_init__(self) -> None:
        if self.dimension < 1:
            raise ValueError(f"dimension must be positive, got {self.dimension}")
        if self.top_k < 1:
            raise ValueError(f"top_k must be positive, got {self.top_k}")
        if self.max_sentences < 1:
            raise ValueError(f"max_sentences must be positive, got {self.max_sentences}")
        weights = (
            self.semantic_weight,
            self.lexical_weight,
            self.sentence_match_weight,
            self.sentence_overlap_weight,
        )
        if any(weight < 0 for weight in weights):
            raise ValueError("score weights must be non-negative")


@dataclass(slots=True)
class AppConfig:
    index_path: Path | None = None
    chunk_chars: int = 500
    overlap: int = 100
    retrieval: RetrievalConfig = field(default_factory=RetrievalConfig)

    def __post_init__(self) -> None:
        if self.index_path is None:
            self.index_path = _get_default_index_path()

    def resolve_index_path(self, base_dir: Path | None = None) -> Path:
        if self.index_path is None:
            self.index_path = _get_default_index_path()
        if Path(self.index_path).is_absolute() or base_dir is None:
            return Path(self.index_path)
        return base_dir / self.index_path
