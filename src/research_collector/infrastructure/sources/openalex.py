"""
OpenAlex Integration

Searches scholarly works via the OpenAlex API.

API Documentation: https://docs.openalex.org/

Features:
- Completely free and open (no API key required)
- Native publication-date filters
- Abstracts delivered as an inverted index (word -> positions)
"""

from __future__ import annotations

import logging
import urllib.parse
from typing import Any

from research_collector.domain.entities import CanonicalRecord, FileType, RecordFile, SearchRequest
from research_collector.infrastructure.sources.adapter import SourceAdapter

logger = logging.getLogger(__name__)

OA_API_BASE = "https://api.openalex.org"
OA_WORKS_URL = f"{OA_API_BASE}/works"


def reconstruct_abstract(inverted_index: dict[str, list[int]] | None) -> str:
    """Rebuild abstract text from OpenAlex's ``abstract_inverted_index``."""
    if not inverted_index:
        return ""
    positions: list[tuple[int, str]] = []
    for word, indexes in inverted_index.items():
        for index in indexes or []:
            positions.append((index, word))
    positions.sort()
    return " ".join(word for _, word in positions)


class OpenAlexAdapter(SourceAdapter):
    """
    OpenAlex works search.

    Usage:
        async with OpenAlexAdapter(email="you@example.org") as adapter:
            response = await adapter.search(SearchRequest(keywords="climate"))
    """

    source_name = "OpenAlex"
    max_results_ceiling = 200

    async def _fetch(self, request: SearchRequest) -> list[dict[str, Any]]:
        params = {
            "search": request.keywords,
            "per-page": str(request.capped(self.max_results_ceiling)),
            "sort": "publication_date:desc",
            "mailto": self._email,
        }

        filters = []
        if request.date_from:
            filters.append(f"from_publication_date:{request.date_from}")
        if request.date_to:
            filters.append(f"to_publication_date:{request.date_to}")
        if filters:
            params["filter"] = ",".join(filters)

        url = f"{OA_WORKS_URL}?{urllib.parse.urlencode(params)}"
        data = await self._make_request(url)

        if not isinstance(data, dict):
            return []
        return data.get("results") or []

    def _normalize(self, item: dict[str, Any]) -> CanonicalRecord | None:
        doi_url = item.get("doi") or ""
        doi = doi_url.replace("https://doi.org/", "") if doi_url else None

        authors = [
            (a.get("author") or {}).get("display_name")
            for a in item.get("authorships") or []
        ]

        files = []
        best_location = item.get("best_oa_location") or {}
        if best_location.get("pdf_url"):
            files.append(RecordFile(type=FileType.PDF, url=best_location["pdf_url"]))

        return self._build_record(
            title=item.get("title") or item.get("display_name"),
            url=doi_url or item.get("id"),
            abstract=reconstruct_abstract(item.get("abstract_inverted_index")),
            authors=[a for a in authors if a],
            date=item.get("publication_date") or item.get("publication_year"),
            doi=doi,
            language=item.get("language"),
            files=files,
        )
