"""
Search request / result entities.

SearchRequest is validated on construction so adapters can rely on
non-empty keywords, well-formed ISO dates and a positive result cap.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from research_collector.core.exceptions import InvalidParameterError, InvalidQueryError
from research_collector.domain.entities.record import CanonicalRecord, utc_now_iso

DEFAULT_MAX_RESULTS = 20
MAX_HISTORY = 50

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _as_tuple(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,) if value.strip() else ()
    return tuple(str(v) for v in value if str(v).strip())


@dataclass(frozen=True)
class SearchRequest:
    """
    Parameters of one aggregation run.

    Attributes:
        keywords: Free-text query, must not be blank
        date_from: Inclusive lower bound ``YYYY-MM-DD``
        date_to: Inclusive upper bound ``YYYY-MM-DD``
        languages: Accepted language prefixes (empty accepts all)
        sources: Adapter names to invoke (empty means the default set)
        custom_urls: Literal URLs fetched without provider search
        max_results: Per-source cap, clamped by each provider's ceiling
    """
    keywords: str
    date_from: str | None = None
    date_to: str | None = None
    languages: tuple[str, ...] = ()
    sources: tuple[str, ...] = ()
    custom_urls: tuple[str, ...] = ()
    max_results: int = DEFAULT_MAX_RESULTS

    def __post_init__(self) -> None:
        if not self.keywords or not self.keywords.strip():
            raise InvalidQueryError(self.keywords)
        object.__setattr__(self, "keywords", self.keywords.strip())

        for name in ("languages", "sources", "custom_urls"):
            object.__setattr__(self, name, _as_tuple(getattr(self, name)))

        for name in ("date_from", "date_to"):
            value = getattr(self, name) or None
            if value is not None and not _ISO_DATE_RE.match(value):
                raise InvalidParameterError(name, value, "a date formatted YYYY-MM-DD")
            object.__setattr__(self, name, value)

        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise InvalidParameterError(
                "date_from", self.date_from, f"a date not after date_to ({self.date_to})"
            )

        if isinstance(self.max_results, bool) or not isinstance(self.max_results, int) or self.max_results < 1:
            raise InvalidParameterError("max_results", self.max_results, "a positive integer")

    def capped(self, ceiling: int) -> int:
        """Per-source result cap limited to a provider ceiling."""
        return min(self.max_results, ceiling)

    def to_dict(self) -> dict[str, Any]:
        return {
            "keywords": self.keywords,
            "date_from": self.date_from,
            "date_to": self.date_to,
            "languages": list(self.languages),
            "sources": list(self.sources),
            "custom_urls": list(self.custom_urls),
            "max_results": self.max_results,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SearchRequest:
        """
        Build a request from a mapping.

        Both snake_case and the camelCase keys of the interchange format
        (``dateFrom``, ``customUrls``, ``maxResults``) are accepted.
        """
        def pick(*keys: str, default: Any = None) -> Any:
            for key in keys:
                if key in data and data[key] is not None:
                    return data[key]
            return default

        max_results = pick("max_results", "maxResults", default=DEFAULT_MAX_RESULTS)
        try:
            max_results = int(max_results)
        except (TypeError, ValueError) as e:
            raise InvalidParameterError("max_results", max_results, "a positive integer") from e

        return cls(
            keywords=str(pick("keywords", default="")),
            date_from=pick("date_from", "dateFrom"),
            date_to=pick("date_to", "dateTo"),
            languages=pick("languages", default=()),
            sources=pick("sources", default=()),
            custom_urls=pick("custom_urls", "customUrls", default=()),
            max_results=max_results,
        )


@dataclass(frozen=True)
class AdapterResponse:
    """Outcome of one adapter invocation. Adapters never raise past it."""
    success: bool
    source: str
    records: tuple[CanonicalRecord, ...] = ()
    error: str | None = None

    @classmethod
    def ok(cls, source: str, records: list[CanonicalRecord]) -> AdapterResponse:
        return cls(success=True, source=source, records=tuple(records))

    @classmethod
    def failure(cls, source: str, error: str) -> AdapterResponse:
        return cls(success=False, source=source, error=error or "Unknown error")


@dataclass(frozen=True)
class SearchResult:
    """Deduplicated union of the records produced by one request."""
    records: tuple[CanonicalRecord, ...]
    request: SearchRequest
    timestamp: str = field(default_factory=utc_now_iso)
    errors: tuple[str, ...] = ()

    @property
    def total(self) -> int:
        return len(self.records)

    def to_dict(self) -> dict[str, Any]:
        return {
            "records": [r.to_dict() for r in self.records],
            "total": self.total,
            "query": self.request.to_dict(),
            "timestamp": self.timestamp,
            "errors": list(self.errors),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SearchResult:
        return cls(
            records=tuple(CanonicalRecord.from_dict(r) for r in data.get("records", [])),
            request=SearchRequest.from_dict(data["query"]),
            timestamp=data.get("timestamp") or utc_now_iso(),
            errors=tuple(data.get("errors", [])),
        )
