"""Tests for the XML provider adapters (PubMed E-utilities, arXiv Atom)."""

import logging
import xml.etree.ElementTree as ET
from unittest.mock import AsyncMock, patch

import pytest

from paper_retrieval.exceptions import ProviderError
from paper_retrieval.providers.arxiv import ArxivProvider, extract_arxiv_id
from paper_retrieval.providers.pubmed import (
    PubMedProvider,
    extract_year,
    format_author_name,
)
from tests.conftest import text_response

ESEARCH_XML = """<?xml version="1.0" ?>
<eSearchResult>
  <Count>2</Count>
  <IdList><Id>31452104</Id><Id>29998877</Id></IdList>
</eSearchResult>
"""

EFETCH_XML = """<?xml version="1.0" ?>
<PubmedArticleSet>
  <PubmedArticle>
    <MedlineCitation>
      <PMID Version="1">31452104</PMID>
      <Article>
        <Journal>
          <JournalIssue><PubDate><Year>2019</Year><Month>Aug</Month></PubDate></JournalIssue>
          <Title>Nature methods</Title>
          <ISOAbbreviation>Nat Methods</ISOAbbreviation>
        </Journal>
        <ArticleTitle>Single-cell <i>RNA</i> sequencing   at scale.</ArticleTitle>
        <Abstract>
          <AbstractText Label="BACKGROUND">Cells differ.</AbstractText>
          <AbstractText Label="RESULTS">We measured <sup>many</sup> cells.</AbstractText>
        </Abstract>
        <AuthorList>
          <Author><LastName>Smith</LastName><ForeName>Jane</ForeName></Author>
          <Author><LastName>Doe</LastName><Initials>J</Initials></Author>
          <Author><CollectiveName>Human Cell Atlas Consortium</CollectiveName></Author>
        </AuthorList>
        <ELocationID EIdType="doi">10.9999/eloc.fallback</ELocationID>
      </Article>
    </MedlineCitation>
    <PubmedData>
      <ArticleIdList>
        <ArticleId IdType="pubmed">31452104</ArticleId>
        <ArticleId IdType="doi">10.1038/s41592-019-0537-1</ArticleId>
        <ArticleId IdType="pmc">PMC6789</ArticleId>
      </ArticleIdList>
    </PubmedData>
  </PubmedArticle>
  <PubmedArticle>
    <MedlineCitation>
      <PMID Version="1">29998877</PMID>
      <Article>
        <Journal>
          <JournalIssue><PubDate><MedlineDate>2018 Jan-Feb</MedlineDate></PubDate></JournalIssue>
          <ISOAbbreviation>J Biol</ISOAbbreviation>
        </Journal>
        <ArticleTitle>Second article</ArticleTitle>
        <ELocationID EIdType="doi">10.5555/second</ELocationID>
      </Article>
    </MedlineCitation>
  </PubmedArticle>
</PubmedArticleSet>
"""

ARXIV_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom"
      xmlns:arxiv="http://arxiv.org/schemas/atom"
      xmlns:opensearch="http://a9.com/-/spec/opensearch/1.1/">
  <opensearch:totalResults>2</opensearch:totalResults>
  <entry>
    <id>http://arxiv.org/abs/1706.03762v7</id>
    <updated>2023-08-02T00:41:18Z</updated>
    <published>2017-06-12T17:57:34Z</published>
    <title>Attention Is All
      You Need</title>
    <summary>  The dominant sequence transduction models
      are based on recurrent networks.  </summary>
    <author><name>Ashish Vaswani</name></author>
    <author><name>Noam Shazeer</name></author>
    <arxiv:doi>10.48550/arXiv.1706.03762</arxiv:doi>
    <link href="http://arxiv.org/abs/1706.03762v7" rel="alternate" type="text/html"/>
    <link title="pdf" href="http://arxiv.org/pdf/1706.03762v7" rel="related" type="application/pdf"/>
    <arxiv:primary_category term="cs.CL" scheme="http://arxiv.org/schemas/atom"/>
    <category term="cs.CL" scheme="http://arxiv.org/schemas/atom"/>
    <category term="cs.LG" scheme="http://arxiv.org/schemas/atom"/>
  </entry>
  <entry>
    <id>http://arxiv.org/api/errors#incorrect_id_format</id>
    <title></title>
  </entry>
</feed>
"""


def _client_returning(*responses):
    client = AsyncMock()
    client.get = AsyncMock(side_effect=list(responses))
    return client


# ============================================
# PubMed
# ============================================

class TestPubMedHelpers:
    def test_format_author_name(self):
        assert format_author_name(ET.fromstring(
            "<Author><LastName>Smith</LastName><ForeName>Jane</ForeName></Author>"
        )) == "Jane Smith"
        assert format_author_name(ET.fromstring(
            "<Author><LastName>Solo</LastName></Author>"
        )) == "Solo"

    def test_extract_year_medline_date(self):
        assert extract_year(ET.fromstring("<PubDate><MedlineDate>2023 Spring</MedlineDate></PubDate>")) == 2023
        assert extract_year(None) is None


class TestPubMed:
    def test_missing_api_key_is_logged_as_degradation(self, caplog):
        with caplog.at_level(logging.WARNING, logger="paper_retrieval.providers.pubmed"):
            PubMedProvider()

        assert any(
            r.levelno == logging.WARNING and "without API key" in r.message for r in caplog.records
        )

    def test_rate_budget_depends_on_api_key(self, monkeypatch):
        assert PubMedProvider().concurrency_config.requests_per_second == 3.0

        monkeypatch.setenv("PUBMED_API_KEY", "ncbi-key")
        provider = PubMedProvider()
        assert provider.concurrency_config.requests_per_second == 10.0
        assert provider._default_params()["api_key"] == "ncbi-key"

    @pytest.mark.asyncio
    async def test_search_runs_esearch_then_efetch(self):
        provider = PubMedProvider()
        client = _client_returning(text_response(ESEARCH_XML), text_response(EFETCH_XML))

        with patch.object(provider, "_get_client", return_value=client):
            papers = await provider.search("single cell", 2)

        first_call, second_call = client.get.call_args_list
        assert first_call.args[0].endswith("/esearch.fcgi")
        assert first_call.kwargs["params"]["term"] == "single cell"
        assert first_call.kwargs["params"]["db"] == "pubmed"
        assert second_call.args[0].endswith("/efetch.fcgi")
        assert second_call.kwargs["params"]["id"] == "31452104,29998877"

        paper, second = papers
        assert paper.external_id == "31452104"
        assert paper.title == "Single-cell RNA sequencing at scale."
        assert paper.abstract == "Cells differ. We measured many cells."
        assert paper.author_names == ["Jane Smith", "J Doe", "Human Cell Atlas Consortium"]
        assert paper.doi == "10.1038/s41592-019-0537-1"
        assert paper.year == 2019
        assert paper.venue == "Nature methods"
        assert paper.url == "https://pubmed.ncbi.nlm.nih.gov/31452104/"
        assert paper.metadata == {"pmid": "31452104", "pmcid": "PMC6789"}

        assert second.doi == "10.5555/second"
        assert second.year == 2018
        assert second.venue == "J Biol"
        assert second.abstract == ""

    @pytest.mark.asyncio
    async def test_search_with_no_hits_skips_efetch(self):
        provider = PubMedProvider()
        client = _client_returning(text_response("<eSearchResult><Count>0</Count><IdList/></eSearchResult>"))

        with patch.object(provider, "_get_client", return_value=client):
            assert await provider.search("nothing", 5) == []

        assert client.get.await_count == 1

    @pytest.mark.asyncio
    async def test_malformed_xml(self):
        provider = PubMedProvider()
        client = _client_returning(text_response("<eSearchResult><IdList>"))

        with patch.object(provider, "_get_client", return_value=client):
            with pytest.raises(ProviderError, match="malformed XML"):
                await provider.search("broken", 5)

    @pytest.mark.asyncio
    async def test_lookup_by_doi_uses_doi_field(self):
        provider = PubMedProvider()
        client = _client_returning(text_response(ESEARCH_XML), text_response(EFETCH_XML))

        with patch.object(provider, "_get_client", return_value=client):
            paper = await provider.lookup_by_doi("https://doi.org/10.1038/s41592-019-0537-1")

        assert paper.external_id == "31452104"
        assert client.get.call_args_list[0].kwargs["params"]["term"] == "10.1038/s41592-019-0537-1[doi]"
        assert client.get.call_args_list[1].kwargs["params"]["id"] == "31452104"

    @pytest.mark.asyncio
    async def test_lookup_by_pmid_fetches_directly(self):
        provider = PubMedProvider()
        client = _client_returning(text_response(EFETCH_XML))

        with patch.object(provider, "_get_client", return_value=client):
            paper = await provider.lookup_by_pmid("31452104")

        assert paper.external_id == "31452104"
        assert client.get.await_count == 1
        assert client.get.call_args.args[0].endswith("/efetch.fcgi")


# ============================================
# arXiv
# ============================================

class TestArxiv:
    def test_extract_arxiv_id(self):
        assert extract_arxiv_id("http://arxiv.org/abs/2301.00001v2") == "2301.00001"
        assert extract_arxiv_id("http://arxiv.org/abs/hep-th/9901001v1") == "hep-th/9901001"

    def test_single_request_every_three_seconds(self):
        config = ArxivProvider().concurrency_config
        assert config.max_concurrent == 1
        assert config.min_interval == pytest.approx(3.0, rel=0.02)

    @pytest.mark.asyncio
    async def test_search_parses_feed_and_skips_untitled_entries(self):
        provider = ArxivProvider()
        client = _client_returning(text_response(ARXIV_FEED))

        with patch.object(provider, "_get_client", return_value=client):
            papers = await provider.search("attention", 5)

        assert client.get.call_args.kwargs["params"]["search_query"] == "all:attention"
        assert len(papers) == 1

        paper = papers[0]
        assert paper.external_id == "1706.03762"
        assert paper.title == "Attention Is All You Need"
        assert paper.abstract == "The dominant sequence transduction models are based on recurrent networks."
        assert paper.author_names == ["Ashish Vaswani", "Noam Shazeer"]
        assert paper.doi == "10.48550/arXiv.1706.03762"
        assert paper.url == "http://arxiv.org/pdf/1706.03762v7"
        assert paper.year == 2017
        assert paper.venue == "arXiv:cs.CL"
        assert paper.metadata["categories"] == ["cs.CL", "cs.LG"]
        assert paper.metadata["arxivId"] == "1706.03762"

    @pytest.mark.asyncio
    async def test_lookup_by_doi(self):
        provider = ArxivProvider()
        client = _client_returning(text_response(ARXIV_FEED))

        with patch.object(provider, "_get_client", return_value=client):
            paper = await provider.lookup_by_doi("10.48550/arXiv.1706.03762")

        assert paper.external_id == "1706.03762"
        assert client.get.call_args.kwargs["params"]["search_query"] == "doi:10.48550/arXiv.1706.03762"

    @pytest.mark.asyncio
    async def test_lookup_by_arxiv_id_drops_version(self):
        provider = ArxivProvider()
        client = _client_returning(text_response(ARXIV_FEED))

        with patch.object(provider, "_get_client", return_value=client):
            paper = await provider.lookup_by_arxiv_id("1706.03762v7")

        assert paper.title == "Attention Is All You Need"
        assert client.get.call_args.kwargs["params"]["id_list"] == "1706.03762"

    @pytest.mark.asyncio
    async def test_service_error(self):
        provider = ArxivProvider()
        client = _client_returning(text_response("unavailable", status=503))

        with patch.object(provider, "_get_client", return_value=client):
            with pytest.raises(ProviderError) as exc_info:
                await provider.search("attention", 5)

        assert exc_info.value.status == 503
