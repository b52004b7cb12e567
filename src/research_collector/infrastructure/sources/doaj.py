"""
DOAJ Integration

Searches open access articles in the Directory of Open Access Journals.

API Documentation: https://doaj.org/api/docs

The query is part of the path; metadata lives under ``bibjson``.
"""

from __future__ import annotations

import logging
import urllib.parse
from typing import Any

from research_collector.domain.entities import CanonicalRecord, FileType, RecordFile, SearchRequest
from research_collector.infrastructure.sources.adapter import SourceAdapter

logger = logging.getLogger(__name__)

DOAJ_SEARCH_URL = "https://doaj.org/api/search/articles"


class DOAJAdapter(SourceAdapter):
    """DOAJ article search."""

    source_name = "DOAJ"
    max_results_ceiling = 100

    async def _fetch(self, request: SearchRequest) -> list[dict[str, Any]]:
        params = {
            "pageSize": str(request.capped(self.max_results_ceiling)),
            "sort": "created_date:desc",
        }
        query = urllib.parse.quote(request.keywords, safe="")
        url = f"{DOAJ_SEARCH_URL}/{query}?{urllib.parse.urlencode(params)}"
        data = await self._make_request(url)

        if not isinstance(data, dict):
            return []
        return data.get("results") or []

    def _normalize(self, item: dict[str, Any]) -> CanonicalRecord | None:
        bibjson = item.get("bibjson") or {}

        links = bibjson.get("link") or []
        fulltext_urls = [
            link["url"] for link in links
            if link.get("type") == "fulltext" and link.get("url")
        ]
        if fulltext_urls:
            url = fulltext_urls[0]
        elif (item.get("admin") or {}).get("url"):
            url = item["admin"]["url"]
        elif item.get("id"):
            url = f"https://doaj.org/article/{item['id']}"
        else:
            url = None

        doi = next(
            (
                ident.get("id") for ident in bibjson.get("identifier") or []
                if (ident.get("type") or "").lower() == "doi"
            ),
            None,
        )

        # A list of codes or English names; journal metadata as fallback
        language = bibjson.get("language") or (bibjson.get("journal") or {}).get("language")

        return self._build_record(
            title=bibjson.get("title"),
            url=url,
            abstract=bibjson.get("abstract"),
            authors=[a.get("name") for a in bibjson.get("author") or [] if a.get("name")],
            date=self._published_date(bibjson),
            doi=doi,
            language=language,
            files=[RecordFile(type=FileType.PDF, url=u) for u in fulltext_urls],
        )

    @staticmethod
    def _published_date(bibjson: dict[str, Any]) -> Any:
        if bibjson.get("published_date"):
            return bibjson["published_date"]
        year = bibjson.get("year")
        if not year:
            return None
        month = bibjson.get("month")
        return f"{year}-{int(month):02d}" if month and str(month).isdigit() else year
