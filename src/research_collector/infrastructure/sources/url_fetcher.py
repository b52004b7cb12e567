"""
Custom URL Fetcher

Turns literal, user-supplied URLs into records. There is no query API
behind this adapter: each page is downloaded, reduced to readable text
and kept only when it mentions at least one keyword token.

Fetch order for each URL:
1. Direct GET (redirects followed)
2. Public retrieval proxies, in order

Outcomes per URL:
- fetched, text longer than 50 chars, keyword present -> one record
- fetched but too short or irrelevant -> nothing
- not fetchable at all -> one placeholder record pointing at the URL
- unexpected error while fetching or parsing -> logged, nothing
"""

from __future__ import annotations

import logging
import urllib.parse
from typing import NamedTuple

import httpx

from research_collector.core.async_utils import pace
from research_collector.core.exceptions import ResearchCollectorError
from research_collector.domain.entities import (
    CanonicalRecord,
    FileType,
    RecordFile,
    SearchRequest,
)
from research_collector.infrastructure.sources.adapter import SourceAdapter
from research_collector.shared.text import (
    chunk_text,
    clean_text,
    extract_page_text,
    extract_page_title,
    generate_id,
    matches_keywords,
    today,
    truncate_abstract,
)

logger = logging.getLogger(__name__)

CUSTOM_URL_SOURCE = "CustomURL"

RETRIEVAL_PROXIES = (
    "https://api.allorigins.win/raw?url={url}",
    "https://corsproxy.io/?{url}",
)

MIN_TEXT_LENGTH = 50

# Seconds between two page fetches
URL_DELAY = 1.5

UNKNOWN_LANGUAGE = "unknown"


def normalize_url(raw: str) -> str | None:
    """Strip the URL and add ``https://`` when no scheme is given; None for blanks."""
    url = (raw or "").strip()
    if not url:
        return None
    if not url.startswith(("http://", "https://")):
        url = f"https://{url}"
    return url


def hostname_of(url: str) -> str:
    return urllib.parse.urlparse(url).hostname or url


class FetchedPage(NamedTuple):
    """One requested URL and its markup (None when nothing could be fetched)."""
    url: str
    markup: str | None
    keywords: str


class CustomUrlFetcher(SourceAdapter):
    """
    Fetch literal URLs and keep the relevant pages.

    Records carry ``language="unknown"``, today's date and ``page_url``.
    They are not subject to date filtering: a page has no publication date.

    Every URL lives on its own host, so the circuit breaker is reset before
    each one; dead pages never block the pages after them.
    """

    source_name = CUSTOM_URL_SOURCE
    date_filtered = False

    def __init__(
        self,
        email: str | None = None,
        api_key: str | None = None,
        timeout: float = 30.0,
        url_delay: float = URL_DELAY,
    ) -> None:
        super().__init__(
            email=email,
            api_key=api_key,
            timeout=timeout,
            min_interval=0.0,
            headers={"Accept": "text/html,application/xhtml+xml;q=0.9,*/*;q=0.8"},
            follow_redirects=True,
        )
        self._url_delay = url_delay

    async def _fetch(self, request: SearchRequest) -> list[FetchedPage]:
        pages: list[FetchedPage] = []
        urls = [u for u in (normalize_url(raw) for raw in request.custom_urls) if u]

        for index, url in enumerate(urls):
            if index > 0:
                await pace(self._url_delay)

            self._circuit_breaker.reset()
            try:
                markup = await self._fetch_page(url)
            except Exception:
                logger.exception(f"CustomURL: unexpected error fetching {url}, skipping")
                continue

            if markup is None:
                logger.warning(f"Could not fetch content from {url}")
            pages.append(FetchedPage(url, markup, request.keywords))

        return pages

    def _normalize(self, item: FetchedPage) -> CanonicalRecord | None:
        if item.markup is None:
            return self._placeholder(item.url)
        try:
            return self._page_record(item.url, item.markup, item.keywords)
        except Exception:
            logger.exception(f"CustomURL: could not process {item.url}, skipping")
            return None

    async def _fetch_page(self, url: str) -> str | None:
        """Return page markup, trying the direct URL first, then each proxy."""
        candidates = [url] + [
            proxy.format(url=urllib.parse.quote(url, safe="")) for proxy in RETRIEVAL_PROXIES
        ]
        for candidate in candidates:
            try:
                markup = await self._make_request(candidate, expect_json=False)
            except (ResearchCollectorError, httpx.InvalidURL) as e:
                logger.debug(f"CustomURL: {candidate} failed ({e})")
                continue
            if markup:
                return markup
        return None

    def _page_record(self, url: str, markup: str, keywords: str) -> CanonicalRecord | None:
        text = extract_page_text(markup)
        if len(text) <= MIN_TEXT_LENGTH:
            logger.debug(f"CustomURL: {url} has too little text ({len(text)} chars)")
            return None
        if not matches_keywords(text, keywords):
            logger.debug(f"CustomURL: {url} does not mention '{keywords}'")
            return None

        cleaned = clean_text(text)
        return CanonicalRecord(
            id=generate_id(),
            title=extract_page_title(markup) or hostname_of(url),
            url=url,
            source=self.source_name,
            date=today(),
            language=UNKNOWN_LANGUAGE,
            abstract=truncate_abstract(cleaned),
            full_text_chunks=tuple(chunk_text(cleaned)),
            files=(RecordFile(type=FileType.HTML, url=url),),
            page_url=url,
        )

    def _placeholder(self, url: str) -> CanonicalRecord:
        return CanonicalRecord(
            id=generate_id(),
            title=f"Content from {hostname_of(url)}",
            url=url,
            source=self.source_name,
            date=today(),
            language=UNKNOWN_LANGUAGE,
            abstract=(
                "Unable to fetch content from this page (blocked, unreachable or "
                f"not HTML). Please access it directly: {url}"
            ),
            page_url=url,
        )
