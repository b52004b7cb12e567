"""
Application DI Container (dependency-injector).

Centralizes service creation for the CLI and library users.

Usage::

    from research_collector.container import create_container

    container = create_container(Settings.from_env())
    service = container.search_service()
    result = await service.search(SearchRequest(keywords="peatland"))

    # In tests, override any provider:
    container.record_store.override(providers.Object(InMemoryRecordStore()))
"""

from __future__ import annotations

import logging
from typing import Any

from dependency_injector import containers, providers

from research_collector.config import Settings

logger = logging.getLogger(__name__)


def _create_record_store(data_dir: str) -> object:
    """Lazy factory for the JSON-file record store."""
    from research_collector.infrastructure.storage import JsonFileRecordStore

    return JsonFileRecordStore(data_dir)


def _create_adapter_factory(
    email: str | None,
    timeout: float,
    core_api_key: str | None,
    semantic_scholar_api_key: str | None,
    url_delay: float,
) -> object:
    """Build the name -> adapter callable used by the search service."""
    from research_collector.infrastructure.sources import (
        CUSTOM_URL_SOURCE,
        create_adapter,
        get_adapter_class,
    )

    api_keys = {
        "CORE": core_api_key,
        "SemanticScholar": semantic_scholar_api_key,
    }

    def factory(name: str) -> Any:
        source_name = get_adapter_class(name).source_name
        settings: dict[str, Any] = {
            "email": email,
            "api_key": api_keys.get(source_name),
            "timeout": timeout,
        }
        if source_name == CUSTOM_URL_SOURCE:
            settings["url_delay"] = url_delay
        return create_adapter(source_name, **settings)

    return factory


def _create_search_service(store: Any, adapter_factory: Any, source_delay: float) -> object:
    """Lazy factory for SearchService."""
    from research_collector.application.search import SearchService

    return SearchService(store=store, adapter_factory=adapter_factory, source_delay=source_delay)


class ApplicationContainer(containers.DeclarativeContainer):
    """Central DI container for Research Collector.

    Manages creation of the core services:
    - ``record_store``: persistence for records and search history
    - ``adapter_factory``: builds source adapters with the configured keys
    - ``search_service``: the aggregation engine
    """

    config = providers.Configuration()

    record_store = providers.Singleton(
        _create_record_store,
        data_dir=config.data_dir,
    )

    adapter_factory = providers.Singleton(
        _create_adapter_factory,
        email=config.email,
        timeout=config.timeout,
        core_api_key=config.core_api_key,
        semantic_scholar_api_key=config.semantic_scholar_api_key,
        url_delay=config.url_delay,
    )

    search_service = providers.Factory(
        _create_search_service,
        store=record_store,
        adapter_factory=adapter_factory,
        source_delay=config.source_delay,
    )


def create_container(settings: Settings | None = None) -> ApplicationContainer:
    """Container configured from ``settings`` (environment when omitted)."""
    settings = settings or Settings.from_env()
    container = ApplicationContainer()
    container.config.from_dict(settings.to_dict())
    logger.debug(f"Container configured with data_dir={settings.data_dir}")
    return container


__all__ = ["ApplicationContainer", "create_container"]
