"""
CORE Integration

Searches open access research outputs aggregated by CORE.

API Documentation: https://api.core.ac.uk/docs/v3

Unauthenticated access is best-effort: 401, 403 and 429 answers are
treated as an empty successful search rather than a failure. An API key
(``CORE_API_KEY``) is sent as a bearer token when configured.
"""

from __future__ import annotations

import logging
import urllib.parse
from typing import Any

import httpx

from research_collector.domain.entities import CanonicalRecord, FileType, RecordFile, SearchRequest
from research_collector.infrastructure.sources.adapter import SourceAdapter
from research_collector.infrastructure.sources.base_client import _CONTINUE

logger = logging.getLogger(__name__)

CORE_SEARCH_URL = "https://api.core.ac.uk/v3/search/works"

# Status codes answered with an empty result set
SOFT_FAILURE_STATUSES = frozenset({401, 403, 429})


class COREAdapter(SourceAdapter):
    """CORE works search."""

    source_name = "CORE"
    max_results_ceiling = 100

    def __init__(self, email: str | None = None, api_key: str | None = None, timeout: float = 30.0) -> None:
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else None
        super().__init__(email=email, api_key=api_key, timeout=timeout, headers=headers)

    async def _fetch(self, request: SearchRequest) -> list[dict[str, Any]]:
        params = {
            "q": request.keywords,
            "limit": str(request.capped(self.max_results_ceiling)),
        }
        url = f"{CORE_SEARCH_URL}?{urllib.parse.urlencode(params)}"
        data = await self._make_request(url)

        if not isinstance(data, dict):
            return []
        return data.get("results") or []

    def _handle_expected_status(self, response: httpx.Response, url: str) -> Any:
        if response.status_code in SOFT_FAILURE_STATUSES:
            logger.warning(f"CORE: status {response.status_code}, returning no results")
            return {"results": []}
        return _CONTINUE

    def _normalize(self, item: dict[str, Any]) -> CanonicalRecord | None:
        url = (
            item.get("sourceUrl")
            or item.get("repositoryUrl")
            or (f"https://core.ac.uk/works/{item['id']}" if item.get("id") else None)
        )

        authors = [
            a if isinstance(a, str) else (a or {}).get("name")
            for a in item.get("authors") or []
        ]

        files = []
        if item.get("downloadUrl"):
            files.append(RecordFile(type=FileType.PDF, url=item["downloadUrl"]))

        return self._build_record(
            title=item.get("title"),
            url=url,
            abstract=item.get("abstract"),
            authors=[a for a in authors if a],
            date=item.get("publishedDate") or item.get("datePublished") or item.get("yearPublished"),
            doi=item.get("doi"),
            language=item.get("language"),
            files=files,
        )
