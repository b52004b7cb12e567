"""Domain entities."""

from .record import CanonicalRecord, FileType, RecordFile
from .search import (
    DEFAULT_MAX_RESULTS,
    MAX_HISTORY,
    AdapterResponse,
    SearchRequest,
    SearchResult,
)

__all__ = [
    "CanonicalRecord",
    "FileType",
    "RecordFile",
    "AdapterResponse",
    "SearchRequest",
    "SearchResult",
    "DEFAULT_MAX_RESULTS",
    "MAX_HISTORY",
]
