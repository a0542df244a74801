"""Build-time pipeline that chunks source documents, embeds them and writes
the JSON index."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Sequence

from excerptfinder.embedding.encoder import HashEmbeddingModel
from excerptfinder.index.storage import JsonIndexStore
from excerptfinder.ingestion.loaders import build_chunks
from excerptfinder.models import ChunkRecord, Record
from excerptfinder.utils.files import compute_sha256, iter_document_paths

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class IndexStats:
    indexed: int = 0
    skipped: int = 0
    failed: int = 0
    chunks: int = 0
    processed_files: list[Path] = field(default_factory=list)

    def increment(self, status: str, path: Path) -> None:
        if status == "indexed":
            self.indexed += 1
        elif status == "skipped":
            self.skipped += 1
        else:
            self.failed += 1
        self.processed_files.append(path)


class Indexer:
    """Builds a persisted index from source documents."""

    def __init__(
        self,
        embedder: HashEmbeddingModel,
        store: JsonIndexStore,
        *,
        chunk_chars: int = 500,
        overlap: int = 100,
    ) -> None:
        self.embedder = embedder
        self.store = store
        self.chunk_chars = chunk_chars
        self.overlap = overlap

    def index(self, paths: Sequence[Path]) -> IndexStats:
        """Chunk, embed and persist every supported document under ``paths``.

        The index file is rewritten from scratch; it is only written when at
        least one non-empty chunk was produced.
        """
        stats = IndexStats()
        chunks: List[ChunkRecord] = []

        for path in iter_document_paths(paths):
            try:
                LOGGER.info(f"Processing: {path}")
                document_chunks = self._chunks_for(path)
            except Exception as e:
                LOGGER.error(f"Failed to process {path}: {e}")
                stats.increment("failed", path)
                continue

            if not document_chunks:
                LOGGER.warning("No text extracted from %s", path)
                stats.increment("skipped", path)
                continue

            chunks.extend(document_chunks)
            stats.increment("indexed", path)

        if not chunks:
            raise ValueError("No non-empty chunks available to index.")

        records = self._embed(chunks)
        self.store.save(records)
        stats.chunks = len(records)
        return stats

    def _chunks_for(self, path: Path) -> List[ChunkRecord]:
        sha256 = compute_sha256(path)
        chunks = list(build_chunks(path, max_chars=self.chunk_chars, overlap=self.overlap))
        for chunk in chunks:
            chunk.metadata["sha256"] = sha256
            chunk.metadata["chunk_index"] = chunk.index
        return chunks

    def _embed(self, chunks: Sequence[ChunkRecord]) -> List[Record]:
        vectors = self.embedder.embed([chunk.text for chunk in chunks])
        if vectors.shape[0] != len(chunks):
            raise ValueError("Embeddings and chunks length mismatch")

        return [
            Record(
                id=str(uuid.uuid4()),
                values=tuple(float(value) for value in vector),
                metadata=dict(chunk.metadata),
                text=chunk.text,
            )
            for chunk, vector in zip(chunks, vectors)
        ]
