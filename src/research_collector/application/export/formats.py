"""
Export Formats - Serialize collected records for downstream tools.

Supported formats:
- JSON: Pretty-printed array of records (programmatic access)
- CSV: Spreadsheet columns, every field quoted (Excel, data analysis)
- NDJSON: One compact record per line (streaming, bulk indexing)
"""

from __future__ import annotations

import csv
import io
import json
import logging
from collections.abc import Sequence

from research_collector.core.exceptions import InvalidParameterError
from research_collector.domain.entities import CanonicalRecord

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = ["json", "csv", "ndjson"]

FORMAT_EXTENSIONS = {
    "json": ".json",
    "csv": ".csv",
    "ndjson": ".ndjson",
}

CSV_COLUMNS = ["ID", "Title", "Authors", "Date", "DOI", "URL", "Language", "Source", "Abstract"]


def export_json(records: Sequence[CanonicalRecord]) -> str:
    """Export records as a pretty-printed JSON array."""
    return json.dumps([r.to_dict() for r in records], indent=2, ensure_ascii=False)


def export_csv(records: Sequence[CanonicalRecord]) -> str:
    """
    Export records to CSV.

    The header row is plain; every data field is quoted with embedded
    quotes doubled. Authors are joined with ``"; "``. An empty record list
    exports as an empty string.

    Args:
        records: Records to export

    Returns:
        CSV text, rows separated by ``\\n``
    """
    if not records:
        return ""

    output = io.StringIO()
    output.write(",".join(CSV_COLUMNS) + "\n")

    writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for record in records:
        writer.writerow([
            record.id,
            record.title,
            "; ".join(record.authors),
            record.date,
            record.doi or "",
            record.url,
            record.language,
            record.source,
            record.abstract,
        ])

    return output.getvalue().rstrip("\n")


def export_ndjson(records: Sequence[CanonicalRecord]) -> str:
    """Export records as newline-delimited JSON (no trailing newline)."""
    return "\n".join(
        json.dumps(r.to_dict(), ensure_ascii=False, separators=(",", ":")) for r in records
    )


def export_records(records: Sequence[CanonicalRecord], fmt: str = "json") -> str:
    """
    Export records to the requested format.

    Args:
        records: Records to export
        fmt: One of ``SUPPORTED_FORMATS`` (case-insensitive)

    Raises:
        InvalidParameterError: If the format is not supported
    """
    fmt = (fmt or "").lower()

    if fmt == "json":
        return export_json(records)
    if fmt == "csv":
        return export_csv(records)
    if fmt == "ndjson":
        return export_ndjson(records)

    raise InvalidParameterError("format", fmt, f"one of {', '.join(SUPPORTED_FORMATS)}")
