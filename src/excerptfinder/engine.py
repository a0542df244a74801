"""Question answering over a loaded corpus index."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Dict

from excerptfinder.answer.extractive import answer_from_matches
from excerptfinder.config import RetrievalConfig
from excerptfinder.embedding.encoder import EmbeddingConfig, HashEmbeddingModel
from excerptfinder.index.corpus import CorpusIndex
from excerptfinder.index.search import HybridSearcher
from excerptfinder.index.storage import JsonIndexStore
from excerptfinder.models import MatchSummary, QueryResult

LOGGER = logging.getLogger(__name__)


def load_corpus_index(path: Path, config: RetrievalConfig | None = None) -> CorpusIndex:
    """Read a persisted index and build its in-memory statistics.

    Raises :class:`~excerptfinder.index.storage.IndexLoadError` when the file
    is missing, malformed or holds no records.
    """
    config = config or RetrievalConfig()
    index_file = JsonIndexStore(path, dimension=config.dimension).load()
    return CorpusIndex.from_file(index_file, config)


class QueryEngine:
    """Answers questions against one immutable :class:`CorpusIndex`.

    Queries only read the current searcher, so any number of threads may call
    :meth:`answer_query` at once. :meth:`reload` builds the replacement index
    completely before swapping it in, and rebuilds are serialized.
    """

    def __init__(
        self,
        index: CorpusIndex,
        *,
        embedder: HashEmbeddingModel | None = None,
        index_path: Path | None = None,
    ) -> None:
        self.config = index.config
        self.embedder = embedder or HashEmbeddingModel(EmbeddingConfig(dimension=self.config.dimension))
        self.index_path = index_path
        self._searcher = HybridSearcher(index, self.embedder)
        self._reload_lock = threading.Lock()

    @classmethod
    def from_path(cls, path: Path, config: RetrievalConfig | None = None) -> "QueryEngine":
        index = load_corpus_index(path, config)
        return cls(index, index_path=Path(path))

    @property
    def index(self) -> CorpusIndex:
        return self._searcher.index

    def answer_query(self, query: str, *, top_k: int | None = None) -> QueryResult:
        searcher = self._searcher
        matches = searcher.top_matches(query, top_k=top_k)
        answer = answer_from_matches(query, matches, self.config)
        LOGGER.debug("Answered query with %d matches", len(matches))
        return QueryResult(
            answer=answer,
            matches=[MatchSummary.from_match(match) for match in matches],
        )

    def reload(self, path: Path | None = None) -> CorpusIndex:
        with self._reload_lock:
            target = Path(path) if path is not None else self.index_path
            if target is None:
                raise ValueError("No index path to reload from")
            index = load_corpus_index(target, self.config)
            self._searcher = HybridSearcher(index, self.embedder)
            self.index_path = target
            LOGGER.info("Reloaded index from %s", target)
            return index

    def stats(self) -> Dict[str, Any]:
        stats = self.index.stats()
        stats["index_path"] = str(self.index_path) if self.index_path is not None else None
        return stats
