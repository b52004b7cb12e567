"""
Source adapters - one per upstream provider, selected by name.

Default set (in priority order): OpenAlex, CrossRef, DOAJ, EuropePMC, BASE.
Also selectable: arXiv, CORE, PubMed, SemanticScholar.
CustomURL runs whenever a request carries literal URLs.

Usage:
    adapter = create_adapter("crossref", email="you@example.org")
    response = await adapter.search(request)
"""

from __future__ import annotations

from typing import Any

from research_collector.core.exceptions import InvalidParameterError

from .adapter import SourceAdapter
from .arxiv import ArXivAdapter
from .base_client import BaseAPIClient
from .base_search import BASEAdapter
from .core import COREAdapter
from .crossref import CrossRefAdapter
from .doaj import DOAJAdapter
from .europe_pmc import EuropePMCAdapter
from .openalex import OpenAlexAdapter
from .pubmed import PubMedAdapter
from .semantic_scholar import SemanticScholarAdapter
from .url_fetcher import CUSTOM_URL_SOURCE, CustomUrlFetcher

ADAPTER_REGISTRY: dict[str, type[SourceAdapter]] = {
    cls.source_name: cls
    for cls in (
        OpenAlexAdapter,
        CrossRefAdapter,
        DOAJAdapter,
        EuropePMCAdapter,
        BASEAdapter,
        ArXivAdapter,
        COREAdapter,
        PubMedAdapter,
        SemanticScholarAdapter,
        CustomUrlFetcher,
    )
}

DEFAULT_SOURCES: tuple[str, ...] = ("OpenAlex", "CrossRef", "DOAJ", "EuropePMC", "BASE")

_REGISTRY_LOOKUP = {name.lower(): name for name in ADAPTER_REGISTRY}


def canonical_source_name(name: str) -> str | None:
    """Registered spelling of a source name (case-insensitive), or None."""
    return _REGISTRY_LOOKUP.get((name or "").strip().lower())


def get_adapter_class(name: str) -> type[SourceAdapter]:
    """
    Look up an adapter class by source name.

    Raises:
        InvalidParameterError: If no adapter is registered under that name
    """
    canonical = canonical_source_name(name)
    if canonical is None:
        raise InvalidParameterError("source", name, f"one of {', '.join(ADAPTER_REGISTRY)}")
    return ADAPTER_REGISTRY[canonical]


def create_adapter(name: str, **settings: Any) -> SourceAdapter:
    """Instantiate the adapter registered under ``name``."""
    return get_adapter_class(name)(**settings)


__all__ = [
    "ADAPTER_REGISTRY",
    "CUSTOM_URL_SOURCE",
    "DEFAULT_SOURCES",
    "ArXivAdapter",
    "BASEAdapter",
    "BaseAPIClient",
    "COREAdapter",
    "CrossRefAdapter",
    "CustomUrlFetcher",
    "DOAJAdapter",
    "EuropePMCAdapter",
    "OpenAlexAdapter",
    "PubMedAdapter",
    "SemanticScholarAdapter",
    "SourceAdapter",
    "canonical_source_name",
    "create_adapter",
    "get_adapter_class",
]
