"""
Text Utilities - pure helpers shared by every source adapter.

Provides:
- HTML/entity stripping for provider abstracts and fetched pages
- Fixed-size sliding-window chunking over whitespace tokens
- Date normalization to ``YYYY-MM-DD``
- Record ID generation
- Language normalization and script-based language detection
- Duplicate removal keyed by ``url``
- Keyword helpers (token matching, frequency extraction)
"""

from __future__ import annotations

import html
import re
import time
import uuid
from collections import Counter
from collections.abc import Iterable, Sequence
from datetime import date, datetime
from typing import Any, Protocol, TypeVar

from bs4 import BeautifulSoup

ABSTRACT_MAX_LENGTH = 500
DEFAULT_CHUNK_SIZE = 1000
DEFAULT_CHUNK_OVERLAP = 200

# Tags whose content never belongs to the readable body of a page
BOILERPLATE_TAGS = ("script", "style", "nav", "header", "footer")

_TAG_RE = re.compile(r"<[^>]*>")
_WHITESPACE_RE = re.compile(r"\s+")


# =============================================================================
# Cleaning
# =============================================================================

def clean_text(text: Any) -> str:
    """
    Strip markup and entities from a provider string.

    Tags are removed first, then entities are decoded and whitespace is
    collapsed, so ``"<p>A&amp;B</p>"`` becomes ``"A&B"``.
    """
    if not text:
        return ""
    if not isinstance(text, str):
        text = str(text)
    text = _TAG_RE.sub("", text)
    text = html.unescape(text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def truncate_abstract(text: str, limit: int = ABSTRACT_MAX_LENGTH) -> str:
    """Cut an already cleaned abstract to ``limit`` characters."""
    return text[:limit]


def extract_page_text(markup: str) -> str:
    """
    Extract readable text from an HTML page.

    Boilerplate elements (script, style, nav, header, footer) are dropped
    with their content; remaining markup is removed and entities decoded.
    """
    if not markup:
        return ""
    soup = BeautifulSoup(markup, "html.parser")
    for tag in soup.find_all(BOILERPLATE_TAGS):
        tag.decompose()
    text = soup.get_text(separator=" ")
    return _WHITESPACE_RE.sub(" ", text).strip()


def extract_page_title(markup: str) -> str:
    """Return the page ``<title>`` text, or an empty string."""
    if not markup:
        return ""
    soup = BeautifulSoup(markup, "html.parser")
    if soup.title and soup.title.string:
        return _WHITESPACE_RE.sub(" ", soup.title.string).strip()
    return ""


# =============================================================================
# Chunking
# =============================================================================

def chunk_text(
    text: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_CHUNK_OVERLAP,
) -> list[str]:
    """
    Split text into overlapping windows of whitespace-delimited tokens.

    Each window holds at most ``chunk_size`` tokens joined by single spaces.
    The next window starts ``overlap`` tokens before the previous one ended,
    and the window that reaches the last token is the final one.

    Args:
        text: Input text (any whitespace is treated as a separator)
        chunk_size: Tokens per window
        overlap: Tokens shared by consecutive windows

    Returns:
        List of windows; empty for empty or whitespace-only input

    Raises:
        ValueError: If chunk_size is not positive or overlap is outside
            ``[0, chunk_size)``.

    Example:
        >>> chunk_text("a b c d e", chunk_size=3, overlap=1)
        ['a b c', 'c d e']
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    if overlap < 0 or overlap >= chunk_size:
        raise ValueError(f"overlap must be in [0, {chunk_size}), got {overlap}")

    words = text.split() if text else []
    if not words:
        return []

    chunks: list[str] = []
    start = 0
    while start < len(words):
        end = min(start + chunk_size, len(words))
        chunks.append(" ".join(words[start:end]))
        if end >= len(words):
            break
        start = end - overlap

    return chunks


# =============================================================================
# Dates
# =============================================================================

_MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}

_ISO_RE = re.compile(r"^(\d{4})-(\d{1,2})(?:-(\d{1,2}))?")
_SLASH_RE = re.compile(r"^(\d{4})/(\d{1,2})(?:/(\d{1,2}))?")
# PubMed style: "2024 Mar 5", "2024 Mar", "2024 Spring"
_TEXT_MONTH_RE = re.compile(r"^(\d{4})\s+([A-Za-z]{3})[A-Za-z]*\.?(?:\s+(\d{1,2}))?")
_YEAR_RE = re.compile(r"^(\d{4})\b")


def today() -> str:
    """Current local date as ``YYYY-MM-DD``."""
    return date.today().isoformat()


def _safe_date(year: int, month: int | None = None, day: int | None = None) -> str | None:
    """Build an ISO date, degrading to the first of month / year when invalid."""
    for candidate in ((year, month or 1, day or 1), (year, month or 1, 1), (year, 1, 1)):
        try:
            return date(*candidate).isoformat()
        except ValueError:
            continue
    return None


def normalize_date(value: Any) -> str:
    """
    Normalize a provider date to ``YYYY-MM-DD``.

    Accepts ISO strings and timestamps, ``YYYY/MM/DD``, PubMed-style
    ``"2024 Mar 5"``, bare years, CrossRef ``date-parts`` lists,
    ``date``/``datetime`` objects and integer years. Missing month or day
    default to ``01``. Anything unusable falls back to today's date so every
    record stays sortable.
    """
    if value is None or value == "":
        return today()

    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, bool):
        return today()
    if isinstance(value, int):
        if 1000 <= value <= 9999:
            return _safe_date(value) or today()
        return today()

    if isinstance(value, (list, tuple)):
        # CrossRef date-parts: [[2024, 3, 5]] or [2024, 3]
        parts = value[0] if value and isinstance(value[0], (list, tuple)) else value
        try:
            numbers = [int(p) for p in parts if p is not None]
        except (TypeError, ValueError):
            return today()
        if not numbers or not 1000 <= numbers[0] <= 9999:
            return today()
        month = numbers[1] if len(numbers) > 1 else None
        day = numbers[2] if len(numbers) > 2 else None
        return _safe_date(numbers[0], month, day) or today()

    text = str(value).strip()

    for pattern in (_ISO_RE, _SLASH_RE):
        match = pattern.match(text)
        if match:
            year, month, day = match.groups()
            return _safe_date(int(year), int(month), int(day) if day else None) or today()

    match = _TEXT_MONTH_RE.match(text)
    if match:
        year, month_name, day = match.groups()
        month = _MONTHS.get(month_name.lower())
        return _safe_date(int(year), month, int(day) if day and month else None) or today()

    match = _YEAR_RE.match(text)
    if match:
        return _safe_date(int(match.group(1))) or today()

    return today()


def in_date_range(value: str, date_from: str | None, date_to: str | None) -> bool:
    """Inclusive ``[date_from, date_to]`` check on ISO date strings."""
    if date_from and value < date_from:
        return False
    if date_to and value > date_to:
        return False
    return True


# =============================================================================
# Identity
# =============================================================================

def generate_id() -> str:
    """Opaque record ID, unrelated to record content."""
    return f"doc_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


class _HasUrl(Protocol):
    url: str


T = TypeVar("T", bound=_HasUrl)


def dedup_key(item: _HasUrl) -> str:
    """The identity of a record: its ``url``."""
    return item.url


def remove_duplicates(items: Iterable[T]) -> list[T]:
    """
    Drop items whose ``url`` was already seen.

    The first occurrence wins and the original order is kept. No fuzzy,
    title or DOI matching is attempted.
    """
    seen: set[str] = set()
    unique: list[T] = []
    for item in items:
        key = dedup_key(item)
        if key in seen:
            continue
        seen.add(key)
        unique.append(item)
    return unique


# =============================================================================
# Language
# =============================================================================

# ISO 639-2 and English names seen in provider payloads
_LANGUAGE_ALIASES = {
    "eng": "en", "english": "en",
    "rus": "ru", "russian": "ru",
    "chi": "zh", "zho": "zh", "chinese": "zh",
    "jpn": "ja", "japanese": "ja",
    "kor": "ko", "korean": "ko",
    "heb": "he", "hebrew": "he",
    "ara": "ar", "arabic": "ar",
    "fre": "fr", "fra": "fr", "french": "fr",
    "ger": "de", "deu": "de", "german": "de",
    "spa": "es", "spanish": "es",
    "ita": "it", "italian": "it",
    "por": "pt", "portuguese": "pt",
}

_SCRIPT_PATTERNS = [
    ("ru", re.compile(r"[\u0400-\u04ff]")),
    ("zh", re.compile(r"[\u4e00-\u9fff]")),
    ("ja", re.compile(r"[\u3040-\u309f\u30a0-\u30ff]")),
    ("ko", re.compile(r"[\uac00-\ud7af]")),
    ("he", re.compile(r"[\u0590-\u05ff]")),
    ("ar", re.compile(r"[\u0600-\u06ff]")),
]


def normalize_language(value: Any) -> str | None:
    """
    Normalize a provider-declared language to a lowercase code.

    Lists use their first entry; ``{"code": ...}`` objects use the code.
    Returns None when nothing usable is declared.
    """
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if isinstance(value, dict):
        value = value.get("code") or value.get("name")
    if not value or not isinstance(value, str):
        return None
    code = value.strip().lower()
    if not code:
        return None
    return _LANGUAGE_ALIASES.get(code, code)


def detect_language(text: str) -> str:
    """
    Best-effort language guess from the script used in ``text``.

    Not authoritative: mixed-script titles resolve to the first matching
    script in the order ru, zh, ja, ko, he, ar; everything else is ``en``.
    """
    if not text:
        return "en"
    for code, pattern in _SCRIPT_PATTERNS:
        if pattern.search(text):
            return code
    return "en"


def language_matches(language: str, accepted: Sequence[str]) -> bool:
    """True when ``language`` starts with any accepted code (case-insensitive)."""
    if not accepted:
        return True
    lowered = (language or "").lower()
    return any(lowered.startswith(code.lower()) for code in accepted)


# =============================================================================
# Keywords
# =============================================================================

STOP_WORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
    "of", "with", "by", "from", "as", "is", "was", "are", "were", "been",
    "be", "have", "has", "had", "do", "does", "did", "will", "would", "should",
    "и", "в", "на", "с", "по", "для", "от", "к", "из", "о", "об", "это", "как",
})


def keyword_tokens(keywords: str) -> list[str]:
    """Lowercased whitespace-split keyword tokens."""
    return keywords.lower().split()


def matches_keywords(text: str, keywords: str) -> bool:
    """True when at least one keyword token occurs in ``text`` (case-insensitive)."""
    lowered = text.lower()
    return any(token in lowered for token in keyword_tokens(keywords))


def extract_keywords(text: str, max_keywords: int = 10) -> list[str]:
    """Most frequent non-stop-words longer than three characters."""
    words = re.sub(r"[^\w\s]", " ", text.lower()).split()
    counts = Counter(w for w in words if len(w) > 3 and w not in STOP_WORDS)
    return [word for word, _ in counts.most_common(max_keywords)]
