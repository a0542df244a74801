"""Hybrid retrieval: hashed-vector similarity fused with IDF keyword overlap."""

from __future__ import annotations

import logging
import math
from typing import List, Sequence

import numpy as np

from excerptfinder.embedding.encoder import EmbeddingConfig, HashEmbeddingModel
from excerptfinder.index.corpus import CorpusIndex
from excerptfinder.models import IndexedRecord, RankedMatch
from excerptfinder.utils.text import tokenize

LOGGER = logging.getLogger(__name__)


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Dot product over the shared prefix of two pre-normalized vectors.

    Vectors of different lengths are truncated to the shorter one rather than
    rejected.
    """
    length = min(len(a), len(b))
    if length == 0:
        return 0.0
    return float(np.dot(a[:length], b[:length]))


def lexical_score(
    query_tokens: Sequence[str], record: IndexedRecord, index: CorpusIndex
) -> float:
    """IDF-weighted keyword hit ratio in ``[0, 1]``.

    Repeated query tokens count once per occurrence. The term-frequency
    weight ``1 + ln(tf)`` is capped at ``tf_cap``.
    """
    if not query_tokens:
        return 0.0

    tf_cap = index.config.tf_cap
    hit_score = 0.0
    max_possible = 0.0
    for token in query_tokens:
        idf = index.idf_for(token)
        max_possible += idf
        tf = record.term_frequency.get(token, 0)
        if tf > 0:
            hit_score += min(tf_cap, 1 + math.log(tf)) * idf

    if max_possible == 0:
        return 0.0
    return min(1.0, max(0.0, hit_score / max_possible))


class HybridSearcher:
    """Ranks every record of an immutable :class:`CorpusIndex` for a query."""

    def __init__(self, index: CorpusIndex, embedder: HashEmbeddingModel | None = None) -> None:
        self.index = index
        self.config = index.config
        self.embedder = embedder or HashEmbeddingModel(EmbeddingConfig(dimension=self.config.dimension))

    def rank(self, query: str) -> List[RankedMatch]:
        """Score all records, in corpus order."""
        query_vector = self.embedder.embed_query(query)
        query_tokens = tokenize(
            query, stopwords=self.config.stopwords, min_chars=self.config.min_token_chars
        )

        semantic_weight = self.config.semantic_weight
        lexical_weight = self.config.lexical_weight
        ranked: List[RankedMatch] = []
        for indexed in self.index.records:
            semantic = cosine_similarity(query_vector, indexed.vector)
            lexical = lexical_score(query_tokens, indexed, self.index)
            ranked.append(
                RankedMatch(
                    record=indexed.record,
                    semantic_score=semantic,
                    lexical_score=lexical,
                    combined_score=semantic_weight * semantic + lexical_weight * lexical,
                )
            )
        LOGGER.debug(
            "Scored %d records for query with %d lexical tokens", len(ranked), len(query_tokens)
        )
        return ranked

    def top_matches(self, query: str, *, top_k: int | None = None) -> List[RankedMatch]:
        """Best ``top_k`` matches by combined score; ties keep corpus order."""
        limit = self.config.top_k if top_k is None else top_k
        if limit <= 0:
            return []
        # sorted() is stable, also with reverse=True
        ordered = sorted(self.rank(query), key=lambda match: match.combined_score, reverse=True)
        return ordered[:limit]
