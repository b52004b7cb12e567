"""Record persistence: the RecordStore port and its implementations."""

from .record_store import (
    BaseRecordStore,
    InMemoryRecordStore,
    JsonFileRecordStore,
    RecordStore,
)

__all__ = [
    "BaseRecordStore",
    "InMemoryRecordStore",
    "JsonFileRecordStore",
    "RecordStore",
]
