"""
Europe PMC Integration

Searches life-science literature via the Europe PMC REST API.

API Documentation: https://europepmc.org/RestfulWebService

``resultType=core`` is requested so that ``abstractText`` and the
full-text link list are part of each hit. Hits without an abstract are
rejected.
"""

from __future__ import annotations

import logging
import urllib.parse
from typing import Any

from research_collector.domain.entities import CanonicalRecord, FileType, RecordFile, SearchRequest
from research_collector.infrastructure.sources.adapter import SourceAdapter

logger = logging.getLogger(__name__)

EUROPE_PMC_SEARCH_URL = "https://www.ebi.ac.uk/europepmc/webservices/rest/search"


class EuropePMCAdapter(SourceAdapter):
    """Europe PMC search."""

    source_name = "EuropePMC"
    max_results_ceiling = 100
    requires_abstract = True

    async def _fetch(self, request: SearchRequest) -> list[dict[str, Any]]:
        query = request.keywords
        if request.date_from or request.date_to:
            # FIRST_PDATE range syntax; open ends use the widest bounds
            start = request.date_from or "1000-01-01"
            end = request.date_to or "3000-12-31"
            query = f"({query}) AND (FIRST_PDATE:[{start} TO {end}])"

        params = {
            "query": query,
            "format": "json",
            "resultType": "core",
            "pageSize": str(request.capped(self.max_results_ceiling)),
        }
        url = f"{EUROPE_PMC_SEARCH_URL}?{urllib.parse.urlencode(params)}"
        data = await self._make_request(url)

        if not isinstance(data, dict):
            return []
        return (data.get("resultList") or {}).get("result") or []

    def _normalize(self, item: dict[str, Any]) -> CanonicalRecord | None:
        doi = item.get("doi")
        if doi:
            url = f"https://doi.org/{doi}"
        elif item.get("source") and item.get("id"):
            url = f"https://europepmc.org/article/{item['source']}/{item['id']}"
        else:
            url = None

        author_string = item.get("authorString") or ""
        authors = [a.strip() for a in author_string.rstrip(".").split(",")]

        full_text_urls = (item.get("fullTextUrlList") or {}).get("fullTextUrl") or []
        files = [
            RecordFile(type=FileType.PDF, url=f["url"])
            for f in full_text_urls
            if f.get("documentStyle") == "pdf" and f.get("url")
        ]

        return self._build_record(
            title=item.get("title"),
            url=url,
            abstract=item.get("abstractText"),
            authors=authors,
            date=item.get("firstPublicationDate") or item.get("pubYear"),
            doi=doi,
            language=item.get("language"),
            files=files,
        )
