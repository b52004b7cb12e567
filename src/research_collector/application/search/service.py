"""
SearchService - Multi-Source Aggregation Engine

Runs one SearchRequest across the selected source adapters and merges the
results into a single deduplicated SearchResult.

Flow:
    IDLE → FETCHING → FILTERING → MERGING → DEDUPLICATING → PERSISTED → IDLE

Architecture Decision:
    Adapters run one at a time, in request order, with a fixed pacing delay
    between invocations.

    Adapter failures never abort the run: each one is recorded as
    ``"<source>: <message>"`` in ``SearchResult.errors``. Only a storage
    failure reaches the caller, and only after the final progress message.

Example:
    >>> service = SearchService(store=InMemoryRecordStore())
    >>> result = await service.search(SearchRequest(keywords="soil carbon"), print)
    Searching OpenAlex...
    Found 20 documents from OpenAlex
    ...
    Complete! Found 87 unique documents.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from enum import Enum

from research_collector.core.async_utils import pace
from research_collector.core.exceptions import StorageError
from research_collector.domain.entities import (
    AdapterResponse,
    CanonicalRecord,
    SearchRequest,
    SearchResult,
)
from research_collector.infrastructure.sources import (
    CUSTOM_URL_SOURCE,
    DEFAULT_SOURCES,
    SourceAdapter,
    canonical_source_name,
    create_adapter,
)
from research_collector.infrastructure.storage import RecordStore
from research_collector.shared.text import language_matches, remove_duplicates

logger = logging.getLogger(__name__)

# Seconds between two adapter invocations
SOURCE_DELAY = 1.0

ProgressCallback = Callable[[str], None]
AdapterFactory = Callable[[str], SourceAdapter]


class SearchState(Enum):
    """Engine lifecycle for one request."""

    IDLE = "idle"
    FETCHING = "fetching"
    FILTERING = "filtering"
    MERGING = "merging"
    DEDUPLICATING = "deduplicating"
    PERSISTED = "persisted"


def filter_by_language(
    records: Iterable[CanonicalRecord],
    languages: Sequence[str],
) -> list[CanonicalRecord]:
    """Keep records whose language starts with an accepted code; all when none given."""
    if not languages:
        return list(records)
    return [r for r in records if language_matches(r.language, languages)]


def _ignore_progress(message: str) -> None:
    return None


class SearchService:
    """
    Aggregation engine.

    Args:
        store: Where unique records and search history are persisted
        adapter_factory: Builds an adapter from its registered name.
            Defaults to the source registry with default settings.
        source_delay: Pacing delay between adapter invocations (seconds)
    """

    def __init__(
        self,
        store: RecordStore,
        adapter_factory: AdapterFactory | None = None,
        source_delay: float = SOURCE_DELAY,
    ) -> None:
        self._store = store
        self._adapter_factory = adapter_factory or create_adapter
        self._source_delay = source_delay
        self._state = SearchState.IDLE

    @property
    def state(self) -> SearchState:
        return self._state

    @property
    def store(self) -> RecordStore:
        return self._store

    def resolve_sources(self, request: SearchRequest) -> list[str]:
        """
        Adapter names to invoke for ``request``, in order.

        Unknown names are skipped with a warning; CustomURL is driven by
        ``custom_urls`` and never selected by name.
        """
        if not request.sources:
            return list(DEFAULT_SOURCES)

        names: list[str] = []
        for requested in request.sources:
            name = canonical_source_name(requested)
            if name is None:
                logger.warning(f"Unknown source '{requested}' skipped")
                continue
            if name == CUSTOM_URL_SOURCE or name in names:
                continue
            names.append(name)
        return names

    async def search(
        self,
        request: SearchRequest,
        on_progress: ProgressCallback | None = None,
    ) -> SearchResult:
        """
        Run ``request`` across the selected sources.

        Returns:
            SearchResult with the deduplicated records and collected errors

        Raises:
            StorageError: Persisting records or history failed. The final
                progress message has already been emitted.
        """
        notify = on_progress or _ignore_progress

        invocations = self.resolve_sources(request)
        if request.custom_urls:
            invocations.append(CUSTOM_URL_SOURCE)

        collected: list[CanonicalRecord] = []
        errors: list[str] = []

        try:
            for index, name in enumerate(invocations):
                if index > 0:
                    await pace(self._source_delay)

                self._state = SearchState.FETCHING
                if name == CUSTOM_URL_SOURCE:
                    notify("Fetching custom URLs...")
                else:
                    notify(f"Searching {name}...")

                response = await self._run_adapter(name, request)
                if not response.success:
                    errors.append(f"{name}: {response.error}")
                    continue

                self._state = SearchState.FILTERING
                records = list(response.records)
                if name != CUSTOM_URL_SOURCE:
                    # Page records carry language "unknown"; never filter them
                    records = filter_by_language(records, request.languages)

                self._state = SearchState.MERGING
                collected.extend(records)
                notify(f"Found {len(records)} documents from {name}")

            self._state = SearchState.DEDUPLICATING
            unique = remove_duplicates(collected)
            if len(unique) < len(collected):
                logger.info(f"Removed {len(collected) - len(unique)} duplicate records")

            result = SearchResult(
                records=tuple(unique),
                request=request,
                errors=tuple(errors),
            )

            storage_error: StorageError | None = None
            try:
                self._persist(result)
                self._state = SearchState.PERSISTED
            except StorageError as e:
                logger.error(f"Failed to persist search results: {e}")
                storage_error = e

            notify(f"Complete! Found {result.total} unique documents.")
            if storage_error is not None:
                raise storage_error
            return result
        finally:
            self._state = SearchState.IDLE

    async def _run_adapter(self, name: str, request: SearchRequest) -> AdapterResponse:
        """Invoke one adapter, converting anything it lets escape into a failed response."""
        try:
            adapter = self._adapter_factory(name)
        except Exception as e:
            logger.exception(f"Could not create adapter {name}: {e}")
            return AdapterResponse.failure(name, str(e))

        try:
            return await adapter.search(request)
        except Exception as e:
            logger.exception(f"{name} adapter raised: {e}")
            return AdapterResponse.failure(name, str(e))
        finally:
            await adapter.close()

    def _persist(self, result: SearchResult) -> None:
        if result.records:
            added = self._store.save_records(result.records)
            logger.info(f"Persisted {added} new records")
        self._store.append_search_history(result)
