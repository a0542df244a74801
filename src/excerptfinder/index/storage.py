"""JSON file persistence for the corpus index."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from numbers import Real
from pathlib import Path
from typing import Any, Sequence, Tuple

from excerptfinder.models import Record

LOGGER = logging.getLogger(__name__)


class IndexLoadError(RuntimeError):
    """Raised when a persisted index cannot be used to serve queries."""


@dataclass(frozen=True, slots=True)
class IndexFile:
    created_at: str
    records: Tuple[Record, ...]


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _parse_record(position: int, raw: Any, source: Path) -> Record:
    if not isinstance(raw, dict):
        raise IndexLoadError(f"Record #{position} in {source} is not an object.")

    values = raw.get("values") or []
    if not isinstance(values, list) or not all(
        isinstance(value, Real) and not isinstance(value, bool) for value in values
    ):
        raise IndexLoadError(f"Record #{position} in {source} has a non-numeric 'values' vector.")

    metadata = raw.get("metadata") or {}
    if not isinstance(metadata, dict):
        raise IndexLoadError(f"Record #{position} in {source} has non-object metadata.")

    try:
        vector = tuple(float(value) for value in values)
    except (OverflowError, ValueError) as exc:
        raise IndexLoadError(
            f"Record #{position} in {source} has a value outside the float range: {exc}"
        ) from exc

    text = raw.get("text")
    return Record(
        id=str(raw.get("id", position)),
        values=vector,
        metadata=metadata,
        text=text if isinstance(text, str) else "",
    )


class JsonIndexStore:
    """Reads and writes ``{"createdAt": ..., "records": [...]}`` index files."""

    def __init__(self, path: Path, *, dimension: int | None = None) -> None:
        self.path = Path(path)
        self.dimension = dimension

    def load(self) -> IndexFile:
        resolved = self.path.resolve()
        try:
            with resolved.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except FileNotFoundError as exc:
            raise IndexLoadError(
                f"Index file not found: {resolved}. Run `excerptfinder index` first."
            ) from exc
        except OSError as exc:
            raise IndexLoadError(f"Unable to read index file {resolved}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise IndexLoadError(f"Index file {resolved} is not valid JSON: {exc}") from exc
        except UnicodeDecodeError as exc:
            raise IndexLoadError(f"Index file {resolved} is not valid UTF-8: {exc}") from exc
        except ValueError as exc:
            raise IndexLoadError(f"Index file {resolved} could not be decoded: {exc}") from exc

        raw_records = payload.get("records") if isinstance(payload, dict) else None
        if not isinstance(raw_records, list) or not raw_records:
            raise IndexLoadError(
                f"No records found in {resolved}. Run `excerptfinder index` first."
            )

        records = tuple(
            _parse_record(position, raw, resolved) for position, raw in enumerate(raw_records)
        )
        self._warn_on_dimension_mismatch(records, resolved)

        created_at = payload.get("createdAt")
        LOGGER.info("Loaded %d records from %s", len(records), resolved)
        return IndexFile(created_at=str(created_at) if created_at else "", records=records)

    def save(self, records: Sequence[Record], *, created_at: str | None = None) -> IndexFile:
        resolved = self.path.resolve()
        resolved.parent.mkdir(parents=True, exist_ok=True)
        stamp = created_at or _utc_timestamp()
        payload = {
            "createdAt": stamp,
            "records": [
                {
                    "id": record.id,
                    "values": list(record.values),
                    "metadata": record.metadata,
                    "text": record.text,
                }
                for record in records
            ],
        }
        with resolved.open("w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2, ensure_ascii=False)
        LOGGER.info("Indexed %d chunks to local store: %s", len(records), resolved)
        return IndexFile(created_at=stamp, records=tuple(records))

    def _warn_on_dimension_mismatch(self, records: Sequence[Record], source: Path) -> None:
        if self.dimension is None:
            return
        mismatched = sum(1 for record in records if len(record.values) != self.dimension)
        if mismatched:
            LOGGER.warning(
                "%d of %d records in %s do not have dimension %d; "
                "similarity is computed over the shorter length",
                mismatched,
                len(records),
                source,
                self.dimension,
            )
