"""Shared fixtures for building small corpora."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Sequence

import pytest

from excerptfinder.embedding.encoder import hash_embed
from excerptfinder.index.storage import JsonIndexStore
from excerptfinder.models import Record

DUTY_CORPUS = [
    "Duty is central to dharma in the teaching.",
    "Arjuna feels despair before the great battle.",
]


def make_records(texts: Sequence[str], dimension: int = 1536) -> list[Record]:
    return [
        Record(
            id=f"rec-{position}",
            values=tuple(float(value) for value in hash_embed(text, dimension)),
            metadata={"position": position},
            text=text,
        )
        for position, text in enumerate(texts)
    ]


@pytest.fixture
def write_index(tmp_path: Path) -> Callable[..., Path]:
    """Persist records for the given texts and return the index path."""

    def _write(texts: Sequence[str] = DUTY_CORPUS, name: str = "local-index.json") -> Path:
        path = tmp_path / name
        JsonIndexStore(path).save(make_records(texts), created_at="2026-01-01T00:00:00Z")
        return path

    return _write
