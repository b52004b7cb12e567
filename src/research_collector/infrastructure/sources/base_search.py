"""
BASE Integration

Bielefeld Academic Search Engine (BASE) HTTP search interface.

API Documentation: https://www.base-search.net/about/download/base_interface.pdf

Documents use Dublin Core style ``dc*`` fields. Every field may arrive as
a list or as a scalar depending on the indexed repository.
"""

from __future__ import annotations

import logging
import urllib.parse
from typing import Any

from research_collector.domain.entities import CanonicalRecord, SearchRequest
from research_collector.infrastructure.sources.adapter import SourceAdapter, as_list, first

logger = logging.getLogger(__name__)

BASE_SEARCH_URL = "https://api.base-search.net/cgi-bin/BaseHttpSearchInterface.fcgi"


class BASEAdapter(SourceAdapter):
    """BASE search."""

    source_name = "BASE"
    max_results_ceiling = 50

    async def _fetch(self, request: SearchRequest) -> list[dict[str, Any]]:
        params = {
            "func": "PerformSearch",
            "query": request.keywords,
            "hits": str(request.capped(self.max_results_ceiling)),
            "format": "json",
        }
        url = f"{BASE_SEARCH_URL}?{urllib.parse.urlencode(params)}"
        data = await self._make_request(url)

        if not isinstance(data, dict):
            return []
        return (data.get("response") or {}).get("docs") or []

    def _normalize(self, item: dict[str, Any]) -> CanonicalRecord | None:
        url = first(item.get("dclink")) or first(item.get("dcidentifier"))

        return self._build_record(
            title=first(item.get("dctitle")),
            url=url,
            abstract=first(item.get("dcabstract")) or first(item.get("dcdescription")),
            authors=[str(a) for a in as_list(item.get("dccreator"))],
            date=first(item.get("dcdate")) or first(item.get("dcyear")),
            doi=first(item.get("dcdoi")),
            language=first(item.get("dclang")) or first(item.get("dclanguage")),
        )
