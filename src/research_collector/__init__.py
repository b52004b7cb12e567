"""
Research Collector - Multi-Source Research Record Aggregator

Collects bibliographic records from open scholarly APIs, normalizes them
into one record shape, removes cross-source duplicates and chunks the text
for retrieval.

Usage:
    from research_collector import SearchRequest, SearchService, InMemoryRecordStore

    service = SearchService(store=InMemoryRecordStore())
    result = await service.search(SearchRequest(keywords="soil carbon", languages=("en",)))

    for record in result.records:
        print(f"[{record.source}] {record.title} - {record.url}")

Features:
    - OpenAlex, CrossRef, DOAJ, Europe PMC, BASE (default set)
    - arXiv, CORE, PubMed, Semantic Scholar on request
    - Literal page fetching with keyword relevance check
    - Deduplication by URL, language and date filtering
    - JSON / CSV / NDJSON export
"""

__version__ = "1.0.0"

from .application.export import export_records
from .application.search import SearchService
from .domain.entities import (
    AdapterResponse,
    CanonicalRecord,
    FileType,
    RecordFile,
    SearchRequest,
    SearchResult,
)
from .infrastructure.storage import InMemoryRecordStore, JsonFileRecordStore, RecordStore

__all__ = [
    "__version__",
    # Engine
    "SearchService",
    # Entities
    "AdapterResponse",
    "CanonicalRecord",
    "FileType",
    "RecordFile",
    "SearchRequest",
    "SearchResult",
    # Storage / export
    "InMemoryRecordStore",
    "JsonFileRecordStore",
    "RecordStore",
    "export_records",
]
