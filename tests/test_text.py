"""
Tests for shared text utilities: cleaning, chunking, dates, languages, dedup.
"""

from __future__ import annotations

from datetime import date

import pytest
from conftest import build_record

from research_collector.shared.text import (
    chunk_text,
    clean_text,
    detect_language,
    extract_keywords,
    extract_page_text,
    extract_page_title,
    generate_id,
    in_date_range,
    language_matches,
    matches_keywords,
    normalize_date,
    normalize_language,
    remove_duplicates,
    truncate_abstract,
)

# =============================================================================
# Cleaning
# =============================================================================


class TestCleanText:
    def test_strips_tags_and_decodes_entities(self):
        assert clean_text("<p>Heat &amp; <i>drought</i></p>") == "Heat & drought"

    def test_collapses_whitespace(self):
        assert clean_text("  a\n\n b\t c  ") == "a b c"

    def test_jats_markup(self):
        raw = "<jats:p>Soil <jats:italic>carbon</jats:italic> stocks</jats:p>"
        assert clean_text(raw) == "Soil carbon stocks"

    def test_empty_and_none(self):
        assert clean_text("") == ""
        assert clean_text(None) == ""

    def test_truncate_abstract(self):
        assert len(truncate_abstract("x" * 800)) == 500
        assert truncate_abstract("short") == "short"


class TestPageExtraction:
    def test_boilerplate_removed(self):
        html = (
            "<html><head><title> Report </title><style>p {color: red}</style></head>"
            "<body><header>Site header</header><nav>Menu</nav>"
            "<script>var x = 1;</script><p>Glacier retreat &amp; sea level</p>"
            "<footer>Copyright</footer></body></html>"
        )
        text = extract_page_text(html)
        assert text == "Report Glacier retreat & sea level"
        assert "Menu" not in text
        assert "var x" not in text

    def test_title(self):
        assert extract_page_title("<title>\n  A   Page </title>") == "A Page"
        assert extract_page_title("<p>no title</p>") == ""


# =============================================================================
# Chunking
# =============================================================================


class TestChunkText:
    def test_empty_input(self):
        assert chunk_text("") == []
        assert chunk_text("   \n\t ") == []

    def test_single_window(self):
        assert chunk_text("one two three") == ["one two three"]

    def test_overlapping_windows(self):
        assert chunk_text("a b c d e", chunk_size=3, overlap=1) == ["a b c", "c d e"]

    def test_window_count_and_coverage(self):
        words = [f"w{i}" for i in range(2500)]
        chunks = chunk_text(" ".join(words))

        # starts at 0, 800, 1600; the third window reaches the end
        assert len(chunks) == 3
        assert chunks[0].split() == words[0:1000]
        assert chunks[1].split() == words[800:1800]
        assert chunks[2].split() == words[1600:2500]

        covered = {w for chunk in chunks for w in chunk.split()}
        assert covered == set(words)

    def test_every_window_within_size(self):
        chunks = chunk_text(" ".join(["x"] * 4321), chunk_size=100, overlap=30)
        assert all(len(c.split()) <= 100 for c in chunks)

    def test_exact_multiple_has_no_empty_tail(self):
        chunks = chunk_text(" ".join(["x"] * 10), chunk_size=5, overlap=0)
        assert chunks == ["x x x x x", "x x x x x"]

    def test_whitespace_normalized(self):
        assert chunk_text("a\n\nb\t c") == ["a b c"]

    @pytest.mark.parametrize("size, overlap", [(0, 0), (-5, 0), (10, 10), (10, 15), (10, -1)])
    def test_invalid_parameters(self, size, overlap):
        with pytest.raises(ValueError):
            chunk_text("a b c", chunk_size=size, overlap=overlap)


# =============================================================================
# Dates
# =============================================================================


class TestNormalizeDate:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("2024-03-05", "2024-03-05"),
            ("2024-03-05T10:20:30Z", "2024-03-05"),
            ("2024-03", "2024-03-01"),
            ("2024/3/5", "2024-03-05"),
            ("2024 Mar 5", "2024-03-05"),
            ("2024 Mar", "2024-03-01"),
            ("2024 Spring", "2024-01-01"),
            ("2024", "2024-01-01"),
            (2019, "2019-01-01"),
            ([[2021, 7]], "2021-07-01"),
            ([[2021]], "2021-01-01"),
            ([2020, 2, 30], "2020-02-01"),
            (date(2022, 12, 24), "2022-12-24"),
        ],
    )
    def test_formats(self, value, expected):
        assert normalize_date(value) == expected

    @pytest.mark.parametrize("value", [None, "", "not a date", [[None]], True])
    def test_fallback_today(self, value):
        assert normalize_date(value) == date.today().isoformat()

    def test_in_date_range_inclusive(self):
        assert in_date_range("2024-01-01", "2024-01-01", "2024-12-31")
        assert in_date_range("2024-12-31", "2024-01-01", "2024-12-31")
        assert not in_date_range("2023-12-31", "2024-01-01", None)
        assert not in_date_range("2025-01-01", None, "2024-12-31")
        assert in_date_range("1900-01-01", None, None)


# =============================================================================
# Identity / Dedup
# =============================================================================


class TestIdentity:
    def test_generate_id_shape_and_uniqueness(self):
        ids = {generate_id() for _ in range(200)}
        assert len(ids) == 200
        assert all(i.startswith("doc_") for i in ids)

    def test_remove_duplicates_first_wins(self):
        first = build_record(1, title="first copy")
        second = build_record(2)
        duplicate = build_record(3, url=first.url, title="second copy", source="CrossRef")

        unique = remove_duplicates([first, second, duplicate])

        assert unique == [first, second]
        assert unique[0].title == "first copy"

    def test_remove_duplicates_exact_url_only(self):
        a = build_record(1, url="https://doi.org/10.1/x")
        b = build_record(2, url="https://doi.org/10.1/X")
        assert len(remove_duplicates([a, b])) == 2


# =============================================================================
# Language
# =============================================================================


class TestLanguage:
    @pytest.mark.parametrize(
        "title, expected",
        [
            ("Изменение климата", "ru"),
            ("气候变化研究", "zh"),
            ("きこうへんどう", "ja"),
            ("기후 변화", "ko"),
            ("שינוי אקלים", "he"),
            ("تغير المناخ", "ar"),
            ("Climate change", "en"),
            ("", "en"),
        ],
    )
    def test_detect_language(self, title, expected):
        assert detect_language(title) == expected

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("EN", "en"),
            ("eng", "en"),
            ("English", "en"),
            (["German", "English"], "de"),
            ({"code": "fr"}, "fr"),
            ("", None),
            (None, None),
            ([], None),
        ],
    )
    def test_normalize_language(self, value, expected):
        assert normalize_language(value) == expected

    def test_language_prefix_match(self):
        assert language_matches("en-US", ["en"])
        assert language_matches("EN", ["en"])
        assert not language_matches("de", ["en", "fr"])
        assert language_matches("anything", [])


# =============================================================================
# Keywords
# =============================================================================


class TestKeywords:
    def test_matches_any_token(self):
        assert matches_keywords("A study of Permafrost thaw", "glacier permafrost")
        assert not matches_keywords("A study of oceans", "glacier permafrost")

    def test_extract_keywords_skips_stop_words_and_short_words(self):
        text = "Carbon carbon CARBON soil soil with from the and peat"
        assert extract_keywords(text, max_keywords=2) == ["carbon", "soil"]
        assert "with" not in extract_keywords(text)
