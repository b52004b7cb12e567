"""
RecordStore - persistence port for collected records and search history.

Storage model:
- Records: one list, unique by ``url``; records already stored win a merge
- History: SearchResult list, newest first, at most 50 entries

Implementations:
- InMemoryRecordStore: process-local, used by tests and one-shot runs
- JsonFileRecordStore: ``{data_dir}/records.json`` and
  ``{data_dir}/search_history.json``, directory created on first write
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections import Counter
from collections.abc import Iterable
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from research_collector.core.exceptions import StorageError, ValidationError
from research_collector.domain.entities import MAX_HISTORY, CanonicalRecord, SearchResult
from research_collector.shared.text import remove_duplicates

logger = logging.getLogger(__name__)

RECORDS_FILE = "records.json"
HISTORY_FILE = "search_history.json"


@runtime_checkable
class RecordStore(Protocol):
    """Operations the search service and the CLI rely on."""

    def save_records(self, records: Iterable[CanonicalRecord]) -> int: ...

    def load_all_records(self) -> list[CanonicalRecord]: ...

    def clear_all(self) -> None: ...

    def get_statistics(self) -> dict[str, Any]: ...

    def append_search_history(self, result: SearchResult) -> None: ...

    def get_search_history(self) -> list[SearchResult]: ...


class BaseRecordStore(ABC):
    """
    Shared record-store behaviour on top of four raw read/write hooks.

    Subclasses only decide where the two lists live.
    """

    # ── Raw storage hooks ────────────────────────────────────────────────

    @abstractmethod
    def _read_records(self) -> list[CanonicalRecord]: ...

    @abstractmethod
    def _write_records(self, records: list[CanonicalRecord]) -> None: ...

    @abstractmethod
    def _read_history(self) -> list[SearchResult]: ...

    @abstractmethod
    def _write_history(self, history: list[SearchResult]) -> None: ...

    # ── Records ──────────────────────────────────────────────────────────

    def save_records(self, records: Iterable[CanonicalRecord]) -> int:
        """
        Merge ``records`` into the store by ``url``.

        Records already stored are kept; new urls are appended in order.
        Saving the same records twice leaves the store unchanged.

        Returns:
            Number of records actually added
        """
        existing = self._read_records()
        merged = remove_duplicates([*existing, *records])
        added = len(merged) - len(existing)
        if added:
            self._write_records(merged)
        logger.debug(f"Stored {added} new records ({len(merged)} total)")
        return added

    def load_all_records(self) -> list[CanonicalRecord]:
        return self._read_records()

    def get_record(self, record_id: str) -> CanonicalRecord | None:
        return next((r for r in self._read_records() if r.id == record_id), None)

    def delete_record(self, record_id: str) -> bool:
        """Remove the record with ``record_id``. Returns False when absent."""
        records = self._read_records()
        remaining = [r for r in records if r.id != record_id]
        if len(remaining) == len(records):
            return False
        self._write_records(remaining)
        return True

    def search_records(
        self,
        query: str = "",
        *,
        source: str | None = None,
        language: str | None = None,
        date_from: str | None = None,
        date_to: str | None = None,
    ) -> list[CanonicalRecord]:
        """
        Filter stored records.

        ``query`` is a case-insensitive substring matched against title,
        abstract and author names; the keyword filters are exact matches
        (dates inclusive).
        """
        records = self._read_records()

        if query:
            needle = query.lower()
            records = [
                r for r in records
                if needle in r.title.lower()
                or needle in r.abstract.lower()
                or any(needle in a.lower() for a in r.authors)
            ]
        if source:
            records = [r for r in records if r.source == source]
        if language:
            records = [r for r in records if r.language == language]
        if date_from:
            records = [r for r in records if r.date >= date_from]
        if date_to:
            records = [r for r in records if r.date <= date_to]

        return records

    def clear_all(self) -> None:
        """Drop every stored record. History is kept."""
        self._write_records([])
        logger.info("Cleared all stored records")

    def get_statistics(self) -> dict[str, Any]:
        """Counts by source, language and publication year."""
        records = self._read_records()
        return {
            "total": len(records),
            "bySource": dict(Counter(r.source for r in records)),
            "byLanguage": dict(Counter(r.language for r in records)),
            "byYear": dict(Counter(r.year for r in records)),
        }

    # ── History ──────────────────────────────────────────────────────────

    def append_search_history(self, result: SearchResult) -> None:
        """Prepend ``result``; entries beyond the newest 50 are evicted."""
        history = [result, *self._read_history()][:MAX_HISTORY]
        self._write_history(history)

    def get_search_history(self) -> list[SearchResult]:
        """History entries, newest first."""
        return self._read_history()


class InMemoryRecordStore(BaseRecordStore):
    """Record store kept in process memory."""

    def __init__(self) -> None:
        self._records: list[CanonicalRecord] = []
        self._history: list[SearchResult] = []

    def _read_records(self) -> list[CanonicalRecord]:
        return list(self._records)

    def _write_records(self, records: list[CanonicalRecord]) -> None:
        self._records = list(records)

    def _read_history(self) -> list[SearchResult]:
        return list(self._history)

    def _write_history(self, history: list[SearchResult]) -> None:
        self._history = list(history)


class JsonFileRecordStore(BaseRecordStore):
    """Record store backed by two JSON files in ``data_dir``.

    Args:
        data_dir: Directory holding ``records.json`` and ``search_history.json``.
            Created on first write.

    Unreadable files are logged and treated as empty; failed writes raise
    StorageError.
    """

    def __init__(self, data_dir: str | Path) -> None:
        self._data_dir = Path(data_dir).expanduser()

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    @property
    def _records_path(self) -> Path:
        return self._data_dir / RECORDS_FILE

    @property
    def _history_path(self) -> Path:
        return self._data_dir / HISTORY_FILE

    def _load_json(self, path: Path) -> list[dict[str, Any]]:
        if not path.exists():
            return []
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load {path}: {e}, starting fresh")
            return []
        if not isinstance(data, list):
            logger.warning(f"Unexpected content in {path}, starting fresh")
            return []
        return data

    def _dump_json(self, path: Path, data: list[dict[str, Any]]) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}") from e

    def _read_records(self) -> list[CanonicalRecord]:
        records = []
        for item in self._load_json(self._records_path):
            try:
                records.append(CanonicalRecord.from_dict(item))
            except (KeyError, TypeError) as e:
                logger.warning(f"Skipping malformed stored record: {e}")
        return records

    def _write_records(self, records: list[CanonicalRecord]) -> None:
        self._dump_json(self._records_path, [r.to_dict() for r in records])

    def _read_history(self) -> list[SearchResult]:
        history = []
        for item in self._load_json(self._history_path):
            try:
                history.append(SearchResult.from_dict(item))
            except (KeyError, TypeError, ValueError, ValidationError) as e:
                logger.warning(f"Skipping malformed history entry: {e}")
        return history

    def _write_history(self, history: list[SearchResult]) -> None:
        self._dump_json(self._history_path, [h.to_dict() for h in history])
