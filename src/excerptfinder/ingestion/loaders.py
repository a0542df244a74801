"""Source document loading and chunking.

PDFs are read with PyMuPDF (fitz); ``.txt`` and ``.md`` files are read as
UTF-8 text. Both produce :class:`ChunkRecord` items lazily.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, Iterator

import fitz  # PyMuPDF

from excerptfinder.models import ChunkRecord
from excerptfinder.utils.text import chunk_text_stream, normalize_whitespace

LOGGER = logging.getLogger(__name__)


def iter_pdf_text_parts(path: Path) -> Iterator[str]:
    """Yield text content from a PDF file page by page."""
    try:
        doc = fitz.open(path)
    except Exception as exc:
        LOGGER.error("Failed to open PDF %s: %s", path, exc)
        return

    try:
        for index in range(len(doc)):
            try:
                page = doc[index]
                text = page.get_text() or ""
                # Pages are separated by a newline so sentences do not fuse
                normalized = normalize_whitespace(text.splitlines())
                if normalized:
                    yield normalized + "\n"
            except Exception as exc:  # pragma: no cover
                LOGGER.warning("Failed to read page %s in %s: %s", index, path, exc)
    finally:
        doc.close()


def get_pdf_metadata(path: Path) -> Dict[str, str]:
    """Extract metadata from a PDF file using PyMuPDF."""
    doc = fitz.open(path)
    try:
        metadata = doc.metadata or {}
        title = metadata.get("title") or path.stem
        return {
            "title": title,
            "page_count": str(len(doc)),
        }
    finally:
        doc.close()


def iter_plain_text_parts(path: Path) -> Iterator[str]:
    text = path.read_text(encoding="utf-8", errors="ignore")
    normalized = normalize_whitespace(text.splitlines())
    if normalized:
        yield normalized


def _iter_parts(path: Path) -> tuple[Dict[str, str], Iterable[str]]:
    if path.suffix.lower() == ".pdf":
        return get_pdf_metadata(path), iter_pdf_text_parts(path)
    return {"title": path.stem}, iter_plain_text_parts(path)


def build_chunks(path: Path, *, max_chars: int = 500, overlap: int = 100) -> Iterator[ChunkRecord]:
    """Produce non-empty, trimmed chunk records for a document lazily."""
    try:
        meta, text_stream = _iter_parts(path)
    except Exception as e:
        LOGGER.error(f"Failed to read metadata for {path}: {e}")
        return

    index = 0
    for chunk in chunk_text_stream(text_stream, max_chars=max_chars, overlap=overlap):
        text = chunk.strip()
        if not text:
            continue
        yield ChunkRecord(
            source_path=path,
            index=index,
            text=text,
            metadata={**meta, "source": str(path)},
        )
        index += 1
