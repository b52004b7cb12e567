"""
Pytest configuration and shared fixtures.
"""

from __future__ import annotations

import tempfile
from pathlib import Path

import httpx
import pytest

from research_collector.domain.entities import CanonicalRecord, SearchRequest
from research_collector.infrastructure.storage import InMemoryRecordStore

# ============================================================
# Environment Fixtures
# ============================================================


@pytest.fixture
def temp_dir():
    """Provide a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def mock_email():
    """Provide a contact email for polite API pools."""
    return "test@example.com"


# ============================================================
# Domain Fixtures
# ============================================================


def build_record(index: int = 1, **overrides) -> CanonicalRecord:
    """Record with predictable fields; ``url`` derives from ``index``."""
    fields = {
        "id": f"doc_{index}",
        "title": f"Record {index}",
        "url": f"https://example.org/record/{index}",
        "source": "OpenAlex",
        "date": "2024-03-01",
        "language": "en",
        "abstract": f"Abstract of record {index}",
        "authors": ("Ada Lovelace",),
    }
    fields.update(overrides)
    return CanonicalRecord(**fields)


@pytest.fixture
def make_record():
    """Factory fixture: ``make_record(3, source="CrossRef")``."""
    return build_record


@pytest.fixture
def search_request():
    """A plain request without date, language or source restrictions."""
    return SearchRequest(keywords="climate change")


@pytest.fixture
def memory_store():
    """Fresh in-memory record store."""
    return InMemoryRecordStore()


# ============================================================
# HTTP Helpers
# ============================================================


def make_response(
    status_code: int = 200,
    *,
    json_data=None,
    text: str | None = None,
    headers: dict[str, str] | None = None,
    url: str = "https://api.example.org/test",
) -> httpx.Response:
    """Build an httpx.Response bound to a request (needed by raise_for_status)."""
    kwargs = {"headers": headers or {}}
    if json_data is not None:
        kwargs["json"] = json_data
    elif text is not None:
        kwargs["text"] = text
    return httpx.Response(status_code, request=httpx.Request("GET", url), **kwargs)


def without_delays(adapter):
    """Disable rate limiting, retries and pacing on an adapter instance."""
    adapter._min_interval = 0
    adapter._MAX_RETRIES = 0
    if hasattr(adapter, "_fetch_delay"):
        adapter._fetch_delay = 0
    if hasattr(adapter, "_url_delay"):
        adapter._url_delay = 0
    return adapter
