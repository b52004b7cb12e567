"""
PubMed Integration

Searches MEDLINE/PubMed via NCBI E-utilities.

API Documentation: https://www.ncbi.nlm.nih.gov/books/NBK25501/

Two sequential round trips per search:
1. ``esearch`` (JSON) resolves the query into PMIDs
2. ``efetch`` (XML) returns the article records, abstracts included

NCBI asks for no more than three requests per second without an API key,
so a fixed pacing delay separates the two calls.
"""

from __future__ import annotations

import logging
import re
import urllib.parse
from typing import Any

import defusedxml.ElementTree as ET  # Security: prevent XML attacks

from research_collector.core.async_utils import pace
from research_collector.core.exceptions import ParseError
from research_collector.domain.entities import CanonicalRecord, FileType, RecordFile, SearchRequest
from research_collector.infrastructure.sources.adapter import SourceAdapter

logger = logging.getLogger(__name__)

EUTILS_BASE = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils"
ESEARCH_URL = f"{EUTILS_BASE}/esearch.fcgi"
EFETCH_URL = f"{EUTILS_BASE}/efetch.fcgi"

TOOL_NAME = "research-collector"

# Seconds between esearch and efetch
FETCH_DELAY = 0.5


def _text(element: Any) -> str:
    """All text below an element (AbstractText may contain inline markup)."""
    if element is None:
        return ""
    return "".join(element.itertext()).strip()


def pubmed_url(pmid: str) -> str:
    return f"https://pubmed.ncbi.nlm.nih.gov/{pmid}/"


class PubMedAdapter(SourceAdapter):
    """PubMed search through esearch + efetch."""

    source_name = "PubMed"
    max_results_ceiling = 100
    requires_abstract = True

    def __init__(self, email: str | None = None, api_key: str | None = None, timeout: float = 30.0) -> None:
        super().__init__(email=email, api_key=api_key, timeout=timeout, min_interval=0.34)
        self._fetch_delay = FETCH_DELAY

    def _common_params(self) -> dict[str, str]:
        params = {"db": "pubmed", "tool": TOOL_NAME, "email": self._email}
        if self._api_key:
            params["api_key"] = self._api_key
        return params

    async def _fetch(self, request: SearchRequest) -> list[dict[str, Any]]:
        pmids = await self._search_ids(request)
        if not pmids:
            return []

        await pace(self._fetch_delay)

        params = {**self._common_params(), "id": ",".join(pmids), "retmode": "xml"}
        url = f"{EFETCH_URL}?{urllib.parse.urlencode(params)}"
        xml_text = await self._make_request(url, expect_json=False)
        if not xml_text:
            return []
        return self._parse_articles(xml_text)

    async def _search_ids(self, request: SearchRequest) -> list[str]:
        params = {
            **self._common_params(),
            "term": request.keywords,
            "retmax": str(request.capped(self.max_results_ceiling)),
            "retmode": "json",
        }
        if request.date_from or request.date_to:
            params["datetype"] = "pdat"
            params["mindate"] = (request.date_from or "1800-01-01").replace("-", "/")
            params["maxdate"] = (request.date_to or "3000-12-31").replace("-", "/")

        url = f"{ESEARCH_URL}?{urllib.parse.urlencode(params)}"
        data = await self._make_request(url)
        if not isinstance(data, dict):
            return []
        return list((data.get("esearchresult") or {}).get("idlist") or [])

    def _parse_articles(self, xml_text: str) -> list[dict[str, Any]]:
        try:
            root = ET.fromstring(xml_text)
        except ET.ParseError as e:
            raise ParseError(f"invalid efetch XML: {e}", source=self.source_name) from e

        return [self._parse_article(article) for article in root.findall("PubmedArticle")]

    def _parse_article(self, article: Any) -> dict[str, Any]:
        citation = article.find("MedlineCitation")
        article_data = citation.find("Article") if citation is not None else None
        if article_data is None:
            return {}

        abstract = " ".join(
            _text(part) for part in article_data.findall("Abstract/AbstractText")
        )

        authors = []
        for author in article_data.findall("AuthorList/Author"):
            last_name = author.findtext("LastName")
            if last_name:
                authors.append(f"{author.findtext('ForeName', '')} {last_name}".strip())
            elif author.findtext("CollectiveName"):
                authors.append(author.findtext("CollectiveName"))

        doi = None
        for article_id in article.findall("PubmedData/ArticleIdList/ArticleId"):
            if article_id.get("IdType") == "doi" and article_id.text:
                doi = article_id.text.strip()
                break

        return {
            "pmid": citation.findtext("PMID", "").strip(),
            "title": _text(article_data.find("ArticleTitle")),
            "abstract": abstract,
            "authors": authors,
            "date": self._publication_date(article_data),
            "doi": doi,
            "language": article_data.findtext("Language"),
        }

    @staticmethod
    def _publication_date(article_data: Any) -> str | None:
        pub_date = article_data.find("Journal/JournalIssue/PubDate")
        if pub_date is None:
            return None

        year = pub_date.findtext("Year")
        if not year:
            # e.g. <MedlineDate>1998 Dec-1999 Jan</MedlineDate>
            match = re.search(r"(\d{4})", pub_date.findtext("MedlineDate", ""))
            return match.group(1) if match else None

        month = pub_date.findtext("Month", "")
        day = pub_date.findtext("Day", "")
        if month.isdigit():
            return f"{year}-{month}-{day}" if day else f"{year}-{month}"
        return " ".join(part for part in (year, month, day) if part)

    def _normalize(self, item: dict[str, Any]) -> CanonicalRecord | None:
        pmid = item.get("pmid")
        if not pmid:
            return None

        url = pubmed_url(pmid)
        return self._build_record(
            title=item.get("title"),
            url=url,
            abstract=item.get("abstract"),
            authors=item.get("authors") or [],
            date=item.get("date"),
            doi=item.get("doi"),
            language=item.get("language"),
            files=[RecordFile(type=FileType.ABSTRACT, url=url)],
        )
