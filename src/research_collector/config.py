"""
Runtime configuration.

Settings come from environment variables (CLI flags override them):

    RESEARCH_COLLECTOR_DATA_DIR      Record store directory (default: ~/.research-collector)
    RESEARCH_COLLECTOR_EMAIL         Contact address for polite API pools
    CORE_API_KEY                     Optional CORE API key
    SEMANTIC_SCHOLAR_API_KEY         Optional Semantic Scholar API key
    RESEARCH_COLLECTOR_SOURCE_DELAY  Seconds between adapters (default: 1.0)
    RESEARCH_COLLECTOR_URL_DELAY     Seconds between custom URL fetches (default: 1.5)
    RESEARCH_COLLECTOR_TIMEOUT       HTTP timeout in seconds (default: 30)
    RESEARCH_COLLECTOR_LOG_LEVEL     Logging level for the CLI (default: INFO)

Search requests can also be described in a YAML or JSON file::

    keywords: soil carbon sequestration
    date_from: 2020-01-01
    languages: [en, de]
    sources: [OpenAlex, CrossRef]
    max_results: 50
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from dataclasses import asdict, dataclass
from datetime import date
from pathlib import Path
from typing import Any

import yaml

from research_collector.core.exceptions import ConfigurationError
from research_collector.domain.entities import SearchRequest

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = "~/.research-collector"


def _float_env(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e
    if value < 0:
        raise ConfigurationError(f"{name} must not be negative, got {raw!r}")
    return value


@dataclass(frozen=True)
class Settings:
    """Resolved runtime settings."""

    data_dir: str = DEFAULT_DATA_DIR
    email: str | None = None
    core_api_key: str | None = None
    semantic_scholar_api_key: str | None = None
    source_delay: float = 1.0
    url_delay: float = 1.5
    timeout: float = 30.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> Settings:
        """
        Build settings from environment variables.

        Raises:
            ConfigurationError: If a numeric variable cannot be parsed
        """
        env = os.environ if env is None else env
        return cls(
            data_dir=env.get("RESEARCH_COLLECTOR_DATA_DIR") or DEFAULT_DATA_DIR,
            email=env.get("RESEARCH_COLLECTOR_EMAIL") or None,
            core_api_key=env.get("CORE_API_KEY") or None,
            semantic_scholar_api_key=env.get("SEMANTIC_SCHOLAR_API_KEY") or None,
            source_delay=_float_env(env, "RESEARCH_COLLECTOR_SOURCE_DELAY", 1.0),
            url_delay=_float_env(env, "RESEARCH_COLLECTOR_URL_DELAY", 1.5),
            timeout=_float_env(env, "RESEARCH_COLLECTOR_TIMEOUT", 30.0),
            log_level=(env.get("RESEARCH_COLLECTOR_LOG_LEVEL") or "INFO").upper(),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _stringify_dates(data: dict[str, Any]) -> dict[str, Any]:
    # YAML turns unquoted 2020-01-01 into a date object
    return {
        key: value.isoformat() if isinstance(value, date) else value
        for key, value in data.items()
    }


def load_request_file(path: str | Path) -> SearchRequest:
    """
    Read a SearchRequest from a ``.yaml``/``.yml`` or ``.json`` file.

    Raises:
        ConfigurationError: If the file is missing, unparsable or not a mapping
        ValidationError: If the described request is invalid
    """
    file_path = Path(path)
    try:
        text = file_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read request file {file_path}: {e}") from e

    try:
        if file_path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (ValueError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Cannot parse request file {file_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Request file {file_path} must contain a mapping")

    logger.debug(f"Loaded search request from {file_path}")
    return SearchRequest.from_dict(_stringify_dates(data))
