"""
arXiv Integration

Searches preprints via the arXiv Atom API.

API Documentation: https://info.arxiv.org/help/api/user-manual.html

The response is Atom XML, parsed with defusedxml. Entries need both a
title and an entry id; the id is the abstract page URL, and the PDF link
is derived from it.
"""

from __future__ import annotations

import logging
import urllib.parse
from typing import Any

import defusedxml.ElementTree as ET  # Security: prevent XML attacks

from research_collector.core.exceptions import ParseError
from research_collector.domain.entities import CanonicalRecord, FileType, RecordFile, SearchRequest
from research_collector.infrastructure.sources.adapter import SourceAdapter

logger = logging.getLogger(__name__)

ARXIV_API_URL = "https://export.arxiv.org/api/query"

ATOM_NS = {
    "atom": "http://www.w3.org/2005/Atom",
    "arxiv": "http://arxiv.org/schemas/atom",
}


def pdf_url_for(entry_id: str) -> str:
    """``.../abs/2401.00001v1`` -> ``.../pdf/2401.00001v1.pdf``"""
    return entry_id.replace("/abs/", "/pdf/") + ".pdf"


class ArXivAdapter(SourceAdapter):
    """arXiv preprint search."""

    source_name = "arXiv"
    max_results_ceiling = 100
    requires_title = True

    def __init__(self, email: str | None = None, api_key: str | None = None, timeout: float = 30.0) -> None:
        # arXiv asks clients to wait 3 seconds between calls
        super().__init__(
            email=email,
            api_key=api_key,
            timeout=timeout,
            min_interval=3.0,
            headers={"Accept": "application/atom+xml"},
        )

    async def _fetch(self, request: SearchRequest) -> list[dict[str, Any]]:
        params = {
            "search_query": f"all:{request.keywords}",
            "start": "0",
            "max_results": str(request.capped(self.max_results_ceiling)),
            "sortBy": "submittedDate",
            "sortOrder": "descending",
        }
        url = f"{ARXIV_API_URL}?{urllib.parse.urlencode(params)}"
        xml_text = await self._make_request(url, expect_json=False)
        if not xml_text:
            return []
        return self._parse_feed(xml_text)

    def _parse_feed(self, xml_text: str) -> list[dict[str, Any]]:
        try:
            root = ET.fromstring(xml_text)
        except ET.ParseError as e:
            raise ParseError(f"invalid Atom feed: {e}", source=self.source_name) from e

        entries = []
        for entry in root.findall("atom:entry", ATOM_NS):
            doi_elem = entry.find("arxiv:doi", ATOM_NS)
            entries.append({
                "id": (entry.findtext("atom:id", default="", namespaces=ATOM_NS)).strip(),
                "title": entry.findtext("atom:title", default="", namespaces=ATOM_NS),
                "summary": entry.findtext("atom:summary", default="", namespaces=ATOM_NS),
                "published": entry.findtext("atom:published", default="", namespaces=ATOM_NS),
                "authors": [
                    name.strip()
                    for name in (
                        a.findtext("atom:name", default="", namespaces=ATOM_NS)
                        for a in entry.findall("atom:author", ATOM_NS)
                    )
                    if name.strip()
                ],
                "doi": doi_elem.text.strip() if doi_elem is not None and doi_elem.text else None,
            })
        return entries

    def _normalize(self, item: dict[str, Any]) -> CanonicalRecord | None:
        entry_id = item["id"]
        if not entry_id:
            logger.debug(f"arXiv: rejected entry without id ('{item.get('title', '')[:60]}')")
            return None

        return self._build_record(
            title=item["title"],
            url=entry_id,
            abstract=item["summary"],
            authors=item["authors"],
            date=item["published"],
            doi=item.get("doi"),
            files=[RecordFile(type=FileType.PDF, url=pdf_url_for(entry_id))],
        )
