"""
CrossRef Integration

Searches DOI registration metadata via the CrossRef REST API.

API Documentation: https://api.crossref.org/swagger-ui/index.html

Features:
- Free, no API key required (polite pool with mailto)
- Native from-pub-date / until-pub-date filters
- Dates delivered as ``date-parts`` arrays with optional month and day
"""

from __future__ import annotations

import logging
import urllib.parse
from typing import Any

from research_collector.domain.entities import CanonicalRecord, SearchRequest
from research_collector.infrastructure.sources.adapter import SourceAdapter, first

logger = logging.getLogger(__name__)

CROSSREF_WORKS_URL = "https://api.crossref.org/works"

# Checked in order; the first one carrying date-parts wins
DATE_FIELDS = ("published", "published-print", "published-online", "created")


def extract_date_parts(item: dict[str, Any]) -> list[int] | None:
    for field in DATE_FIELDS:
        parts = (item.get(field) or {}).get("date-parts")
        if parts and parts[0] and parts[0][0] is not None:
            return parts[0]
    return None


class CrossRefAdapter(SourceAdapter):
    """CrossRef works search."""

    source_name = "CrossRef"
    max_results_ceiling = 1000

    async def _fetch(self, request: SearchRequest) -> list[dict[str, Any]]:
        params = {
            "query": request.keywords,
            "rows": str(request.capped(self.max_results_ceiling)),
            "mailto": self._email,
        }

        filters = []
        if request.date_from:
            filters.append(f"from-pub-date:{request.date_from}")
        if request.date_to:
            filters.append(f"until-pub-date:{request.date_to}")
        if filters:
            params["filter"] = ",".join(filters)

        url = f"{CROSSREF_WORKS_URL}?{urllib.parse.urlencode(params)}"
        data = await self._make_request(url)

        if not isinstance(data, dict):
            return []
        return (data.get("message") or {}).get("items") or []

    def _normalize(self, item: dict[str, Any]) -> CanonicalRecord | None:
        doi = item.get("DOI")
        url = item.get("URL") or (f"https://doi.org/{doi}" if doi else None)

        authors = [
            f"{a.get('given', '')} {a.get('family', '')}".strip() or a.get("name", "")
            for a in item.get("author") or []
        ]

        return self._build_record(
            title=first(item.get("title")),
            url=url,
            abstract=item.get("abstract"),
            authors=authors,
            date=extract_date_parts(item),
            doi=doi,
            language=item.get("language"),
        )
