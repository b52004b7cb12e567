"""
CanonicalRecord - the single normalized shape of a research record.

Every source adapter converts its provider payload into this structure.
Records are frozen: the pipeline and the storage layer never mutate a
record once it has been produced. Identity is carried by ``url`` only.

Example:
    >>> record = CanonicalRecord(
    ...     id="doc_1",
    ...     title="Climate Models",
    ...     url="https://doi.org/10.1000/example",
    ...     source="CrossRef",
    ...     date="2024-03-01",
    ... )
    >>> record.year
    '2024'
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class FileType(Enum):
    """Attachment kinds a record can point to."""
    PDF = "PDF"
    HTML = "HTML"
    TEXT = "TEXT"
    ABSTRACT = "Abstract"
    PREPRINT = "Preprint"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class RecordFile:
    """Attachment descriptor: a typed link to a resource about the record."""
    type: FileType
    url: str

    def to_dict(self) -> dict[str, str]:
        return {"type": self.type.value, "url": self.url}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RecordFile:
        try:
            file_type = FileType(data.get("type", "PDF"))
        except ValueError:
            file_type = FileType.TEXT
        return cls(type=file_type, url=data.get("url", ""))


@dataclass(frozen=True)
class CanonicalRecord:
    """
    A research record normalized from any source.

    Attributes:
        id: Opaque token generated at normalization time
        title: Cleaned title
        url: Canonical locator, the dedup key
        source: Name of the adapter that produced the record
        date: Publication date as ``YYYY-MM-DD`` (always present)
        language: Lowercase code, or ``"unknown"``
        abstract: Cleaned abstract, at most 500 characters
        authors: Display names in upstream order
        doi: Persistent identifier, when known
        full_text_chunks: Overlapping token windows of title and abstract
        files: Attachment descriptors
        page_url: Fetched page, for records built from literal URLs
        created_at: Ingestion timestamp (audit only)
    """
    id: str
    title: str
    url: str
    source: str
    date: str
    language: str = "en"
    abstract: str = ""
    authors: tuple[str, ...] = ()
    doi: str | None = None
    full_text_chunks: tuple[str, ...] = ()
    files: tuple[RecordFile, ...] = ()
    page_url: str | None = None
    created_at: str = field(default_factory=utc_now_iso)

    def __post_init__(self) -> None:
        # Accept lists from callers but store tuples to keep the record hashable
        for name in ("authors", "full_text_chunks", "files"):
            value = getattr(self, name)
            if not isinstance(value, tuple):
                object.__setattr__(self, name, tuple(value or ()))

    @property
    def year(self) -> str:
        return self.date.split("-")[0]

    def to_dict(self) -> dict[str, Any]:
        """Serialize with the interchange field names."""
        return {
            "id": self.id,
            "title": self.title,
            "authors": list(self.authors),
            "date": self.date,
            "doi": self.doi,
            "url": self.url,
            "language": self.language,
            "source": self.source,
            "abstract": self.abstract,
            "full_text_chunks": list(self.full_text_chunks),
            "files": [f.to_dict() for f in self.files],
            "page_url": self.page_url,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CanonicalRecord:
        """Rebuild a record from ``to_dict`` output (persisted or exported)."""
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            url=data["url"],
            source=data.get("source", ""),
            date=data.get("date", ""),
            language=data.get("language", "en"),
            abstract=data.get("abstract", ""),
            authors=tuple(data.get("authors") or ()),
            doi=data.get("doi"),
            full_text_chunks=tuple(data.get("full_text_chunks") or ()),
            files=tuple(RecordFile.from_dict(f) for f in data.get("files") or ()),
            page_url=data.get("page_url"),
            created_at=data.get("created_at") or utc_now_iso(),
        )
