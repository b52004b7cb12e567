"""
Exports Module - Serialize stored records.

Provides JSON, CSV and NDJSON exporters and a format dispatcher.
"""

from .formats import (
    CSV_COLUMNS,
    FORMAT_EXTENSIONS,
    SUPPORTED_FORMATS,
    export_csv,
    export_json,
    export_ndjson,
    export_records,
)

__all__ = [
    "CSV_COLUMNS",
    "FORMAT_EXTENSIONS",
    "SUPPORTED_FORMATS",
    "export_csv",
    "export_json",
    "export_ndjson",
    "export_records",
]
