"""Immutable query-time corpus index.

:class:`CorpusIndex` is built once per process from the persisted records and
holds the per-record token statistics plus the corpus IDF table; it is never
mutated afterwards.
"""

from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Sequence, Tuple

import numpy as np

from excerptfinder.config import RetrievalConfig
from excerptfinder.index.storage import IndexFile
from excerptfinder.models import IndexedRecord, Record
from excerptfinder.utils.text import tokenize

LOGGER = logging.getLogger(__name__)


def build_indexed_records(
    records: Sequence[Record], config: RetrievalConfig | None = None
) -> Tuple[IndexedRecord, ...]:
    """Tokenize every record once and attach its term frequencies."""
    config = config or RetrievalConfig()
    indexed: List[IndexedRecord] = []
    for record in records:
        tokens = tokenize(
            record.text, stopwords=config.stopwords, min_chars=config.min_token_chars
        )
        vector = np.asarray(record.values, dtype=np.float64)
        vector.setflags(write=False)
        indexed.append(
            IndexedRecord(
                record=record,
                vector=vector,
                tokens=tuple(tokens),
                token_set=frozenset(tokens),
                term_frequency=Counter(tokens),
            )
        )
    return tuple(indexed)


def build_idf_table(records: Sequence[IndexedRecord]) -> Mapping[str, float]:
    """Smoothed inverse document frequency: ``ln((N + 1) / (df + 1)) + 1``."""
    document_frequency: Counter = Counter()
    for record in records:
        document_frequency.update(record.token_set)

    total_docs = len(records)
    idf = {
        token: math.log((total_docs + 1) / (df + 1)) + 1
        for token, df in document_frequency.items()
    }
    return MappingProxyType(idf)


@dataclass(frozen=True, slots=True)
class CorpusIndex:
    records: Tuple[IndexedRecord, ...]
    idf: Mapping[str, float]
    config: RetrievalConfig
    created_at: str = ""

    @classmethod
    def build(
        cls,
        records: Sequence[Record],
        config: RetrievalConfig | None = None,
        *,
        created_at: str = "",
    ) -> "CorpusIndex":
        config = config or RetrievalConfig()
        indexed = build_indexed_records(records, config)
        idf = build_idf_table(indexed)
        LOGGER.info("Built corpus index: %d records, %d distinct tokens", len(indexed), len(idf))
        return cls(records=indexed, idf=idf, config=config, created_at=created_at)

    @classmethod
    def from_file(cls, index_file: IndexFile, config: RetrievalConfig | None = None) -> "CorpusIndex":
        return cls.build(index_file.records, config, created_at=index_file.created_at)

    def idf_for(self, token: str) -> float:
        return self.idf.get(token, self.config.unseen_idf)

    def __len__(self) -> int:
        return len(self.records)

    def stats(self) -> Dict[str, Any]:
        dimensions = sorted({int(item.vector.shape[0]) for item in self.records})
        return {
            "created_at": self.created_at,
            "record_count": len(self.records),
            "vocabulary_size": len(self.idf),
            "dimension": self.config.dimension,
            "stored_dimensions": dimensions,
        }
