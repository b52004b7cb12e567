"""
Tests for the provider adapters: query construction and payload mapping.

Upstream calls are replaced by AsyncMock on ``_make_request``.
"""

from __future__ import annotations

import urllib.parse
from datetime import date
from unittest.mock import AsyncMock, patch

import pytest
from conftest import make_response, without_delays

from research_collector.domain.entities import FileType, SearchRequest
from research_collector.infrastructure.sources import (
    ArXivAdapter,
    BASEAdapter,
    COREAdapter,
    CrossRefAdapter,
    DOAJAdapter,
    EuropePMCAdapter,
    OpenAlexAdapter,
    PubMedAdapter,
    SemanticScholarAdapter,
)
from research_collector.infrastructure.sources.openalex import reconstruct_abstract
from research_collector.infrastructure.sources.pubmed import FETCH_DELAY
from research_collector.infrastructure.sources.semantic_scholar import year_range


def query_params(url: str) -> dict[str, str]:
    return dict(urllib.parse.parse_qsl(urllib.parse.urlsplit(url).query))


# =============================================================================
# OpenAlex
# =============================================================================


class TestOpenAlexAdapter:
    WORK = {
        "id": "https://openalex.org/W1",
        "doi": "https://doi.org/10.1000/oa1",
        "title": "Permafrost carbon feedback",
        "publication_date": "2023-05-17",
        "language": "en",
        "authorships": [
            {"author": {"display_name": "Ana Silva"}},
            {"author": {}},
        ],
        "abstract_inverted_index": {"Thawing": [0], "releases": [2], "permafrost": [1], "carbon": [3]},
        "best_oa_location": {"pdf_url": "https://example.org/oa1.pdf"},
    }

    async def test_query_parameters(self):
        adapter = without_delays(OpenAlexAdapter(email="me@example.org"))
        adapter._make_request = AsyncMock(return_value={"results": []})

        request = SearchRequest(keywords="permafrost", date_from="2020-01-01", date_to="2023-12-31", max_results=500)
        await adapter.search(request)

        params = query_params(adapter._make_request.call_args[0][0])
        assert params["search"] == "permafrost"
        assert params["per-page"] == "200"
        assert params["sort"] == "publication_date:desc"
        assert params["filter"] == "from_publication_date:2020-01-01,to_publication_date:2023-12-31"
        assert params["mailto"] == "me@example.org"

    async def test_normalize_work(self):
        adapter = without_delays(OpenAlexAdapter())
        adapter._make_request = AsyncMock(return_value={"results": [self.WORK]})

        response = await adapter.search(SearchRequest(keywords="permafrost"))

        (record,) = response.records
        assert record.source == "OpenAlex"
        assert record.url == "https://doi.org/10.1000/oa1"
        assert record.doi == "10.1000/oa1"
        assert record.authors == ("Ana Silva",)
        assert record.abstract == "Thawing permafrost releases carbon"
        assert record.date == "2023-05-17"
        assert record.files[0].type is FileType.PDF

    async def test_falls_back_to_openalex_id(self):
        work = {**self.WORK, "doi": None}
        adapter = without_delays(OpenAlexAdapter())
        adapter._make_request = AsyncMock(return_value={"results": [work]})

        (record,) = (await adapter.search(SearchRequest(keywords="x"))).records
        assert record.url == "https://openalex.org/W1"
        assert record.doi is None

    def test_reconstruct_abstract_empty(self):
        assert reconstruct_abstract(None) == ""
        assert reconstruct_abstract({}) == ""


# =============================================================================
# CrossRef
# =============================================================================


class TestCrossRefAdapter:
    async def test_query_and_filters(self):
        adapter = without_delays(CrossRefAdapter())
        adapter._make_request = AsyncMock(return_value={"message": {"items": []}})

        await adapter.search(SearchRequest(keywords="ocean acidification", date_from="2021-01-01", max_results=5))

        params = query_params(adapter._make_request.call_args[0][0])
        assert params["query"] == "ocean acidification"
        assert params["rows"] == "5"
        assert params["filter"] == "from-pub-date:2021-01-01"

    async def test_date_parts_and_authors(self):
        item = {
            "DOI": "10.1000/cr1",
            "title": ["Coral <i>bleaching</i>"],
            "abstract": "<jats:p>Reef decline.</jats:p>",
            "author": [{"given": "Li", "family": "Wei"}, {"family": "Moreau"}, {"name": "Reef Consortium"}],
            "published": {"date-parts": [[2022, 4]]},
        }
        adapter = without_delays(CrossRefAdapter())
        adapter._make_request = AsyncMock(return_value={"message": {"items": [item]}})

        (record,) = (await adapter.search(SearchRequest(keywords="coral"))).records

        assert record.title == "Coral bleaching"
        assert record.url == "https://doi.org/10.1000/cr1"
        assert record.date == "2022-04-01"
        assert record.authors == ("Li Wei", "Moreau", "Reef Consortium")
        assert record.abstract == "Reef decline."

    async def test_date_fallback_to_created(self):
        item = {
            "URL": "http://dx.doi.org/10.1000/cr2",
            "title": ["T"],
            "published": {"date-parts": [[None]]},
            "created": {"date-parts": [[2020, 11, 3]]},
        }
        adapter = without_delays(CrossRefAdapter())
        adapter._make_request = AsyncMock(return_value={"message": {"items": [item]}})

        (record,) = (await adapter.search(SearchRequest(keywords="x"))).records
        assert record.url == "http://dx.doi.org/10.1000/cr2"
        assert record.date == "2020-11-03"


# =============================================================================
# DOAJ
# =============================================================================


class TestDOAJAdapter:
    ITEM = {
        "id": "abc123",
        "bibjson": {
            "title": "Mangrove restoration",
            "abstract": "Coastal protection.",
            "author": [{"name": "J. Doe"}, {}],
            "year": "2021",
            "month": "9",
            "language": ["EN"],
            "identifier": [{"type": "eissn", "id": "1234-5678"}, {"type": "doi", "id": "10.1000/doaj1"}],
            "link": [{"type": "fulltext", "url": "https://journal.example.org/article/1"}],
        },
    }

    async def test_query_in_path(self):
        adapter = without_delays(DOAJAdapter())
        adapter._make_request = AsyncMock(return_value={"results": []})

        await adapter.search(SearchRequest(keywords="mangrove restoration", max_results=300))

        url = adapter._make_request.call_args[0][0]
        assert "/api/search/articles/mangrove%20restoration?" in url
        assert query_params(url)["pageSize"] == "100"

    async def test_normalize(self):
        adapter = without_delays(DOAJAdapter())
        adapter._make_request = AsyncMock(return_value={"results": [self.ITEM]})

        (record,) = (await adapter.search(SearchRequest(keywords="mangrove"))).records

        assert record.url == "https://journal.example.org/article/1"
        assert record.doi == "10.1000/doaj1"
        assert record.language == "en"
        assert record.date == "2021-09-01"
        assert record.authors == ("J. Doe",)
        assert [f.type for f in record.files] == [FileType.PDF]

    async def test_url_fallback_to_article_page(self):
        item = {"id": "xyz", "bibjson": {"title": "T"}}
        adapter = without_delays(DOAJAdapter())
        adapter._make_request = AsyncMock(return_value={"results": [item]})

        (record,) = (await adapter.search(SearchRequest(keywords="x"))).records
        assert record.url == "https://doaj.org/article/xyz"
        assert record.files == ()


# =============================================================================
# Europe PMC
# =============================================================================


class TestEuropePMCAdapter:
    async def test_date_range_in_query(self):
        adapter = without_delays(EuropePMCAdapter())
        adapter._make_request = AsyncMock(return_value={"resultList": {"result": []}})

        await adapter.search(SearchRequest(keywords="malaria", date_from="2022-01-01"))

        params = query_params(adapter._make_request.call_args[0][0])
        assert params["query"] == "(malaria) AND (FIRST_PDATE:[2022-01-01 TO 3000-12-31])"
        assert params["resultType"] == "core"
        assert params["format"] == "json"

    async def test_abstract_required(self):
        results = [
            {"id": "1", "source": "MED", "title": "With abstract", "abstractText": "Text.",
             "authorString": "Smith J, Doe A.", "firstPublicationDate": "2023-02-01"},
            {"id": "2", "source": "MED", "title": "Without abstract"},
        ]
        adapter = without_delays(EuropePMCAdapter())
        adapter._make_request = AsyncMock(return_value={"resultList": {"result": results}})

        (record,) = (await adapter.search(SearchRequest(keywords="x"))).records

        assert record.url == "https://europepmc.org/article/MED/1"
        assert record.authors == ("Smith J", "Doe A")
        assert record.date == "2023-02-01"

    async def test_doi_url_and_pdf_files(self):
        result = {
            "id": "3", "source": "PMC", "doi": "10.1000/epmc", "title": "T", "abstractText": "A",
            "fullTextUrlList": {"fullTextUrl": [
                {"documentStyle": "pdf", "url": "https://europepmc.org/x.pdf"},
                {"documentStyle": "html", "url": "https://europepmc.org/x"},
            ]},
        }
        adapter = without_delays(EuropePMCAdapter())
        adapter._make_request = AsyncMock(return_value={"resultList": {"result": [result]}})

        (record,) = (await adapter.search(SearchRequest(keywords="x"))).records
        assert record.url == "https://doi.org/10.1000/epmc"
        assert [f.url for f in record.files] == ["https://europepmc.org/x.pdf"]


# =============================================================================
# BASE
# =============================================================================


class TestBASEAdapter:
    async def test_list_and_scalar_fields(self):
        docs = [
            {
                "dctitle": ["List title"],
                "dclink": ["https://repo.example.org/1"],
                "dccreator": ["A", "B"],
                "dcdate": ["2020-05-06"],
                "dclang": ["eng"],
                "dcdescription": ["Description"],
            },
            {
                "dctitle": "Scalar title",
                "dcidentifier": "https://repo.example.org/2",
                "dccreator": "Solo",
                "dcyear": 2019,
                "dcdoi": "10.1000/base2",
            },
        ]
        adapter = without_delays(BASEAdapter())
        adapter._make_request = AsyncMock(return_value={"response": {"docs": docs}})

        first, second = (await adapter.search(SearchRequest(keywords="x", max_results=80))).records

        params = query_params(adapter._make_request.call_args[0][0])
        assert params["hits"] == "50"
        assert params["func"] == "PerformSearch"

        assert first.title == "List title"
        assert first.authors == ("A", "B")
        assert first.language == "en"
        assert first.abstract == "Description"
        assert second.url == "https://repo.example.org/2"
        assert second.authors == ("Solo",)
        assert second.date == "2019-01-01"
        assert second.doi == "10.1000/base2"


# =============================================================================
# arXiv
# =============================================================================

ARXIV_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom" xmlns:arxiv="http://arxiv.org/schemas/atom">
  <entry>
    <id>http://arxiv.org/abs/2401.00001v1</id>
    <published>2024-01-02T18:00:00Z</published>
    <title>Neural
      climate emulators</title>
    <summary>  We train emulators.  </summary>
    <author><name>Grace Hopper</name></author>
    <author><name>Alan Turing</name></author>
    <arxiv:doi>10.1000/arx</arxiv:doi>
  </entry>
  <entry>
    <id>http://arxiv.org/abs/2401.00002v1</id>
    <published>2024-01-03T18:00:00Z</published>
    <title>   </title>
    <summary>No title here.</summary>
  </entry>
</feed>"""


class TestArXivAdapter:
    async def test_parse_feed(self):
        adapter = without_delays(ArXivAdapter())
        adapter._make_request = AsyncMock(return_value=ARXIV_FEED)

        response = await adapter.search(SearchRequest(keywords="emulator"))

        assert adapter._make_request.call_args.kwargs["expect_json"] is False
        params = query_params(adapter._make_request.call_args[0][0])
        assert params["search_query"] == "all:emulator"

        (record,) = response.records
        assert record.title == "Neural climate emulators"
        assert record.url == "http://arxiv.org/abs/2401.00001v1"
        assert record.abstract == "We train emulators."
        assert record.date == "2024-01-02"
        assert record.authors == ("Grace Hopper", "Alan Turing")
        assert record.doi == "10.1000/arx"
        assert record.files[0].url == "http://arxiv.org/pdf/2401.00001v1.pdf"

    async def test_invalid_xml_is_failure(self):
        adapter = without_delays(ArXivAdapter())
        adapter._make_request = AsyncMock(return_value="<feed><entry>")

        response = await adapter.search(SearchRequest(keywords="x"))
        assert not response.success
        assert "Parse error (arXiv)" in response.error


# =============================================================================
# CORE
# =============================================================================


class TestCOREAdapter:
    @pytest.mark.parametrize("status", [401, 403, 429])
    async def test_soft_failures_are_empty_success(self, status):
        adapter = without_delays(COREAdapter())
        adapter._execute_request = AsyncMock(return_value=make_response(status))

        response = await adapter.search(SearchRequest(keywords="x"))

        assert response.success
        assert response.records == ()

    async def test_server_error_is_failure(self):
        adapter = without_delays(COREAdapter())
        adapter._execute_request = AsyncMock(return_value=make_response(500))

        response = await adapter.search(SearchRequest(keywords="x"))
        assert not response.success
        assert response.error == "CORE API error: 500"

    async def test_normalize(self):
        item = {
            "id": 42,
            "title": "Open repository paper",
            "authors": [{"name": "R. Smith"}, "J. Jones"],
            "publishedDate": "2021-10-10T00:00:00",
            "downloadUrl": "https://core.ac.uk/download/42.pdf",
        }
        adapter = without_delays(COREAdapter(api_key="secret"))
        adapter._make_request = AsyncMock(return_value={"results": [item]})

        (record,) = (await adapter.search(SearchRequest(keywords="x"))).records

        assert adapter._client.headers["Authorization"] == "Bearer secret"
        assert record.url == "https://core.ac.uk/works/42"
        assert record.authors == ("R. Smith", "J. Jones")
        assert record.date == "2021-10-10"
        assert record.files[0].url == "https://core.ac.uk/download/42.pdf"


# =============================================================================
# PubMed
# =============================================================================

EFETCH_XML = """<?xml version="1.0"?>
<PubmedArticleSet>
  <PubmedArticle>
    <MedlineCitation>
      <PMID>12345678</PMID>
      <Article>
        <Journal><JournalIssue><PubDate><Year>2024</Year><Month>Mar</Month><Day>5</Day></PubDate></JournalIssue></Journal>
        <ArticleTitle>Heat stress in <i>urban</i> areas</ArticleTitle>
        <Abstract>
          <AbstractText Label="BACKGROUND">Cities warm faster.</AbstractText>
          <AbstractText Label="RESULTS">Trees help.</AbstractText>
        </Abstract>
        <AuthorList>
          <Author><LastName>Kim</LastName><ForeName>Min</ForeName></Author>
          <Author><CollectiveName>Urban Heat Group</CollectiveName></Author>
        </AuthorList>
        <Language>eng</Language>
      </Article>
    </MedlineCitation>
    <PubmedData>
      <ArticleIdList>
        <ArticleId IdType="pubmed">12345678</ArticleId>
        <ArticleId IdType="doi">10.1000/pm1</ArticleId>
      </ArticleIdList>
    </PubmedData>
  </PubmedArticle>
  <PubmedArticle>
    <MedlineCitation>
      <PMID>87654321</PMID>
      <Article>
        <Journal><JournalIssue><PubDate><MedlineDate>1998 Dec-1999 Jan</MedlineDate></PubDate></JournalIssue></Journal>
        <ArticleTitle>No abstract</ArticleTitle>
      </Article>
    </MedlineCitation>
  </PubmedArticle>
</PubmedArticleSet>"""


class TestPubMedAdapter:
    async def test_esearch_then_efetch(self):
        adapter = without_delays(PubMedAdapter(api_key="k"))
        adapter._make_request = AsyncMock(
            side_effect=[{"esearchresult": {"idlist": ["12345678", "87654321"]}}, EFETCH_XML]
        )

        request = SearchRequest(keywords="urban heat", date_from="2020-01-01")
        response = await adapter.search(request)

        search_url, fetch_url = (c[0][0] for c in adapter._make_request.call_args_list)
        search_params = query_params(search_url)
        assert search_params["term"] == "urban heat"
        assert search_params["mindate"] == "2020/01/01"
        assert search_params["datetype"] == "pdat"
        assert search_params["api_key"] == "k"
        assert query_params(fetch_url)["id"] == "12345678,87654321"

        # second article has no abstract
        (record,) = response.records
        assert record.url == "https://pubmed.ncbi.nlm.nih.gov/12345678/"
        assert record.title == "Heat stress in urban areas"
        assert record.abstract == "Cities warm faster. Trees help."
        assert record.authors == ("Min Kim", "Urban Heat Group")
        assert record.date == "2024-03-05"
        assert record.doi == "10.1000/pm1"
        assert record.language == "en"
        assert record.files[0].type is FileType.ABSTRACT

    async def test_no_ids_skips_fetch(self):
        adapter = without_delays(PubMedAdapter())
        adapter._make_request = AsyncMock(return_value={"esearchresult": {"idlist": []}})

        response = await adapter.search(SearchRequest(keywords="x"))

        assert response.success and response.records == ()
        assert adapter._make_request.await_count == 1

    async def test_waits_between_esearch_and_efetch(self):
        adapter = PubMedAdapter()
        adapter._min_interval = 0
        adapter._MAX_RETRIES = 0
        adapter._make_request = AsyncMock(
            side_effect=[{"esearchresult": {"idlist": ["12345678"]}}, EFETCH_XML]
        )

        with patch("research_collector.infrastructure.sources.pubmed.pace", new=AsyncMock()) as pace:
            await adapter.search(SearchRequest(keywords="urban heat"))

        pace.assert_awaited_once_with(FETCH_DELAY)
        assert FETCH_DELAY == 0.5

    async def test_no_wait_without_ids(self):
        adapter = PubMedAdapter()
        adapter._min_interval = 0
        adapter._make_request = AsyncMock(return_value={"esearchresult": {"idlist": []}})

        with patch("research_collector.infrastructure.sources.pubmed.pace", new=AsyncMock()) as pace:
            await adapter.search(SearchRequest(keywords="x"))

        pace.assert_not_awaited()

    def test_medline_date(self):
        adapter = PubMedAdapter()
        articles = adapter._parse_articles(EFETCH_XML)
        assert articles[1]["date"] == "1998"


# =============================================================================
# Semantic Scholar
# =============================================================================


class TestSemanticScholarAdapter:
    def test_year_range(self):
        assert year_range(None, None) is None
        assert year_range("2019-05-01", "2021-02-01") == "2019-2021"
        assert year_range("2019-05-01", None) == f"2019-{date.today().year}"
        assert year_range(None, "2010-01-01") == "-2010"

    async def test_normalize(self):
        papers = [
            {
                "paperId": "p1",
                "title": "Wildfire smoke",
                "abstract": None,
                "authors": [{"name": "N. Ito"}],
                "year": 2020,
                "openAccessPdf": {"url": "https://example.org/p1.pdf"},
                "externalIds": {"DOI": "10.1000/s2"},
            },
        ]
        adapter = without_delays(SemanticScholarAdapter())
        adapter._make_request = AsyncMock(return_value={"data": papers})

        (record,) = (await adapter.search(SearchRequest(keywords="wildfire", date_from="2020-01-01"))).records

        assert query_params(adapter._make_request.call_args[0][0])["year"].startswith("2020-")
        assert record.url == "https://www.semanticscholar.org/paper/p1"
        assert record.date == "2020-01-01"
        assert record.doi == "10.1000/s2"
        assert record.abstract == ""
        assert record.files[0].type is FileType.PDF

    async def test_missing_data_key(self):
        adapter = without_delays(SemanticScholarAdapter())
        adapter._make_request = AsyncMock(return_value={"total": 0})

        response = await adapter.search(SearchRequest(keywords="x"))
        assert response.success and response.records == ()
