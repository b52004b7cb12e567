"""Multi-source search orchestration."""

from .service import (
    SOURCE_DELAY,
    AdapterFactory,
    ProgressCallback,
    SearchService,
    SearchState,
    filter_by_language,
)

__all__ = [
    "SOURCE_DELAY",
    "AdapterFactory",
    "ProgressCallback",
    "SearchService",
    "SearchState",
    "filter_by_language",
]
