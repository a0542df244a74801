"""Core ExcerptFinder data models."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Tuple

import numpy as np


@dataclass(frozen=True, slots=True)
class Record:
    """One persisted corpus entry: a text chunk and its stored embedding."""

    id: str
    values: Tuple[float, ...]
    metadata: Dict[str, Any]
    text: str


@dataclass(frozen=True, slots=True, eq=False)
class IndexedRecord:
    """Record plus the token statistics derived from it at load time."""

    record: Record
    vector: np.ndarray = field(repr=False)
    tokens: Tuple[str, ...]
    token_set: frozenset[str]
    term_frequency: Counter


@dataclass(slots=True)
class RankedMatch:
    record: Record
    semantic_score: float
    lexical_score: float
    combined_score: float


@dataclass(slots=True)
class CandidateSentence:
    text: str
    score: float
    source_rank: int


@dataclass(slots=True)
class ChunkRecord:
    """Chunk of source document text paired with metadata."""

    source_path: Path
    index: int
    text: str
    metadata: Dict[str, Any]


@dataclass(slots=True)
class MatchSummary:
    """Match data exposed to callers of the query interface."""

    id: str
    semantic_score: float
    lexical_score: float
    combined_score: float
    text: str
    metadata: Dict[str, Any]

    @classmethod
    def from_match(cls, match: RankedMatch) -> "MatchSummary":
        return cls(
            id=match.record.id,
            semantic_score=match.semantic_score,
            lexical_score=match.lexical_score,
            combined_score=match.combined_score,
            text=match.record.text,
            metadata=dict(match.record.metadata),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "semantic_score": self.semantic_score,
            "lexical_score": self.lexical_score,
            "combined_score": self.combined_score,
            "text": self.text,
            "metadata": self.metadata,
        }


@dataclass(slots=True)
class QueryResult:
    answer: str
    matches: List[MatchSummary]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "answer": self.answer,
            "matches": [match.to_dict() for match in self.matches],
        }
