"""
Source Adapter - the contract every provider integration satisfies.

``search(request) -> AdapterResponse`` never raises: upstream and parsing
failures are captured into a failed response. Subclasses implement two
hooks:

- ``_fetch(request)``: call the provider and return its raw items in payload order
- ``_normalize(item)``: map one raw item to a CanonicalRecord (or None to skip it)

The base class then applies the shared content policy and the
source-local date filter.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from typing import Any, ClassVar

from research_collector.core.exceptions import ResearchCollectorError
from research_collector.domain.entities import (
    AdapterResponse,
    CanonicalRecord,
    RecordFile,
    SearchRequest,
)
from research_collector.infrastructure.sources.base_client import USER_AGENT, BaseAPIClient
from research_collector.shared.text import (
    chunk_text,
    clean_text,
    detect_language,
    generate_id,
    in_date_range,
    normalize_date,
    normalize_language,
    truncate_abstract,
)

logger = logging.getLogger(__name__)

UNTITLED = "Untitled"

# Contact address sent to providers with a "polite pool"
DEFAULT_EMAIL = "research-collector@example.com"


def as_list(value: Any) -> list[Any]:
    """Providers alternate between scalars and lists; always get a list."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    if isinstance(value, tuple):
        return list(value)
    return [value]


def first(value: Any, default: Any = None) -> Any:
    """First element of a list-or-scalar field."""
    items = [v for v in as_list(value) if v not in (None, "")]
    return items[0] if items else default


class SourceAdapter(BaseAPIClient, ABC):
    """
    Base class for provider adapters.

    Class attributes:
        source_name: Tag written into ``CanonicalRecord.source``
        max_results_ceiling: Provider's documented page-size limit
        requires_title: Reject items without a real title (otherwise "Untitled")
        requires_abstract: Reject items with an empty abstract
        date_filtered: Drop records outside the request date range
    """

    source_name: ClassVar[str] = ""
    max_results_ceiling: ClassVar[int] = 100
    requires_title: ClassVar[bool] = False
    requires_abstract: ClassVar[bool] = False
    date_filtered: ClassVar[bool] = True

    def __init__(
        self,
        email: str | None = None,
        api_key: str | None = None,
        timeout: float = 30.0,
        min_interval: float = 0.1,
        headers: dict[str, str] | None = None,
        follow_redirects: bool = False,
    ) -> None:
        self._email = email or DEFAULT_EMAIL
        self._api_key = api_key
        default_headers = {
            "User-Agent": f"{USER_AGENT} (mailto:{self._email})",
            "Accept": "application/json",
        }
        default_headers.update(headers or {})
        super().__init__(
            timeout=timeout,
            min_interval=min_interval,
            headers=default_headers,
            follow_redirects=follow_redirects,
        )

    @property
    def _service_name(self) -> str:  # type: ignore[override]
        return self.source_name

    async def search(self, request: SearchRequest) -> AdapterResponse:
        """Run the provider search; failures come back as a failed response."""
        try:
            records = await self._search(request)
        except ResearchCollectorError as e:
            logger.error(f"{self.source_name} search failed: {e}")
            return AdapterResponse.failure(self.source_name, str(e))
        except Exception as e:
            logger.exception(f"{self.source_name} search failed unexpectedly")
            return AdapterResponse.failure(self.source_name, str(e))

        logger.info(f"{self.source_name}: {len(records)} records for '{request.keywords}'")
        return AdapterResponse.ok(self.source_name, records)

    async def _search(self, request: SearchRequest) -> list[CanonicalRecord]:
        items = await self._fetch(request)
        records: list[CanonicalRecord] = []

        for item in items:
            try:
                record = self._normalize(item)
            except (KeyError, TypeError, AttributeError, ValueError, IndexError) as e:
                logger.warning(f"{self.source_name}: skipping malformed item ({type(e).__name__}: {e})")
                continue
            if record is None:
                continue
            if self.date_filtered and not in_date_range(record.date, request.date_from, request.date_to):
                logger.debug(f"{self.source_name}: {record.url} dated {record.date} outside range")
                continue
            records.append(record)

        return records

    @abstractmethod
    async def _fetch(self, request: SearchRequest) -> Sequence[Any]:
        """Query the provider and return raw items in payload order."""

    @abstractmethod
    def _normalize(self, item: Any) -> CanonicalRecord | None:
        """Map one raw provider item to a record, or None when rejected."""

    def _build_record(
        self,
        *,
        title: Any,
        url: Any,
        abstract: Any = "",
        authors: Iterable[Any] = (),
        date: Any = None,
        doi: Any = None,
        language: Any = None,
        files: Iterable[RecordFile] = (),
    ) -> CanonicalRecord | None:
        """
        Apply the shared normalization and minimum-content policy.

        A record needs a resolvable ``url``. Title falls back to "Untitled"
        unless the adapter requires one; abstract text is mandatory only for
        adapters that set ``requires_abstract``.
        """
        url = str(url).strip() if url else ""
        title_text = clean_text(title)
        abstract_text = clean_text(abstract)

        if not url:
            logger.debug(f"{self.source_name}: rejected '{title_text[:60]}' (no identifier)")
            return None
        if not title_text:
            if self.requires_title:
                logger.debug(f"{self.source_name}: rejected {url} (no title)")
                return None
            title_text = UNTITLED
        if self.requires_abstract and not abstract_text:
            logger.debug(f"{self.source_name}: rejected {url} (no abstract)")
            return None

        body = f"{title_text}\n\n{abstract_text}" if abstract_text else title_text
        author_names = [clean_text(a) for a in authors]

        return CanonicalRecord(
            id=generate_id(),
            title=title_text,
            url=url,
            source=self.source_name,
            date=normalize_date(date),
            language=normalize_language(language) or detect_language(title_text),
            abstract=truncate_abstract(abstract_text),
            authors=tuple(a for a in author_names if a),
            doi=str(doi).strip() if doi else None,
            full_text_chunks=tuple(chunk_text(body)),
            files=tuple(files),
        )
