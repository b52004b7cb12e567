"""
Semantic Scholar Integration

Searches papers via the Semantic Scholar Graph API.

API Documentation: https://api.semanticscholar.org/api-docs/graph

The native ``year`` filter only has year granularity (``2020-2024``);
the exact day range is enforced locally.
"""

from __future__ import annotations

import logging
import urllib.parse
from datetime import date
from typing import Any

from research_collector.domain.entities import CanonicalRecord, FileType, RecordFile, SearchRequest
from research_collector.infrastructure.sources.adapter import SourceAdapter

logger = logging.getLogger(__name__)

S2_SEARCH_URL = "https://api.semanticscholar.org/graph/v1/paper/search"

S2_FIELDS = "paperId,title,abstract,authors,year,publicationDate,url,openAccessPdf,externalIds"


def year_range(date_from: str | None, date_to: str | None) -> str | None:
    """``year`` parameter for a date window, open upper end -> current year."""
    if not date_from and not date_to:
        return None
    start = date_from[:4] if date_from else ""
    end = date_to[:4] if date_to else str(date.today().year)
    return f"{start}-{end}"


class SemanticScholarAdapter(SourceAdapter):
    """Semantic Scholar paper search."""

    source_name = "SemanticScholar"
    max_results_ceiling = 100

    def __init__(self, email: str | None = None, api_key: str | None = None, timeout: float = 30.0) -> None:
        headers = {"x-api-key": api_key} if api_key else None
        # Unauthenticated clients share a low rate limit
        super().__init__(
            email=email,
            api_key=api_key,
            timeout=timeout,
            min_interval=0.1 if api_key else 1.0,
            headers=headers,
        )

    async def _fetch(self, request: SearchRequest) -> list[dict[str, Any]]:
        params = {
            "query": request.keywords,
            "limit": str(request.capped(self.max_results_ceiling)),
            "fields": S2_FIELDS,
        }
        years = year_range(request.date_from, request.date_to)
        if years:
            params["year"] = years

        url = f"{S2_SEARCH_URL}?{urllib.parse.urlencode(params)}"
        data = await self._make_request(url)

        if not isinstance(data, dict):
            return []
        return data.get("data") or []

    def _normalize(self, item: dict[str, Any]) -> CanonicalRecord | None:
        paper_id = item.get("paperId")
        url = item.get("url") or (f"https://www.semanticscholar.org/paper/{paper_id}" if paper_id else None)

        pdf = item.get("openAccessPdf") or {}
        files = [RecordFile(type=FileType.PDF, url=pdf["url"])] if pdf.get("url") else []

        return self._build_record(
            title=item.get("title"),
            url=url,
            abstract=item.get("abstract"),
            authors=[a.get("name") for a in item.get("authors") or [] if a.get("name")],
            date=item.get("publicationDate") or item.get("year"),
            doi=(item.get("externalIds") or {}).get("DOI"),
            files=files,
        )
