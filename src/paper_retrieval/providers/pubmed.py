"""
PubMed provider (NCBI E-utilities).

Two-step search: esearch returns PMIDs, efetch returns the article XML.
NCBI allows 3 req/s anonymously and 10 req/s with an API key.
"""

import logging
import os
import xml.etree.ElementTree as ET
from typing import Any, Dict, List, Optional

from paper_retrieval.exceptions import ProviderError
from paper_retrieval.models.paper import Author, Paper
from paper_retrieval.providers.base import HttpProvider, ProviderCapabilities
from paper_retrieval.utils.concurrency import ConcurrencyConfig
from paper_retrieval.utils.text import clean_whitespace, leading_year, strip_doi_prefix

logger = logging.getLogger(__name__)


def _text(element: Optional[ET.Element]) -> str:
    """All text under *element*, inline markup (<i>, <sup>) flattened."""
    if element is None:
        return ""
    return clean_whitespace("".join(element.itertext()))


def format_author_name(author: ET.Element) -> str:
    collective = author.findtext("CollectiveName")
    if collective:
        return collective.strip()
    last = (author.findtext("LastName") or "").strip()
    fore = (author.findtext("ForeName") or author.findtext("Initials") or "").strip()
    return f"{fore} {last}".strip() if fore else last


def extract_abstract(article: ET.Element) -> str:
    """Join every AbstractText section (structured abstracts have several)."""
    parts = [_text(t) for t in article.findall("Abstract/AbstractText")]
    return " ".join(p for p in parts if p).strip()


def extract_year(pub_date: Optional[ET.Element]) -> Optional[int]:
    if pub_date is None:
        return None
    year = pub_date.findtext("Year")
    if year and year.strip().isdigit():
        return int(year.strip())
    # MedlineDate format: "2023 Jan-Feb" or "2023 Spring"
    return leading_year(pub_date.findtext("MedlineDate"))


class PubMedProvider(HttpProvider):
    name = "pubmed"
    capabilities = ProviderCapabilities(search=True, lookup_by_doi=True, enrichment=True)

    BASE_URL = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils"
    TIMEOUT = 30.0
    API_KEY_ENV = "PUBMED_API_KEY"

    def __init__(self, config: Optional[dict] = None, api_key: Optional[str] = None):
        super().__init__(config)
        self.api_key = api_key or os.environ.get(self.config.get("api_key_env", self.API_KEY_ENV))

        if self.api_key:
            logger.info("PubMed configured with API key - using higher rate limits")
            rps = 10.0
        else:
            logger.warning("PubMed initialized without API key - limited to 3 requests/s")
            rps = 3.0
        self.concurrency_config = ConcurrencyConfig(max_concurrent=3, requests_per_second=rps)

    def _default_params(self) -> dict:
        params = {"db": "pubmed", "retmode": "xml"}
        if self.api_key:
            params["api_key"] = self.api_key
        return params

    async def _get_xml(self, path: str, params: Dict[str, Any]) -> ET.Element:
        response = await self._get(path, params)
        try:
            return ET.fromstring(response.text)
        except ET.ParseError as e:
            raise ProviderError(f"{path} returned malformed XML: {e}", provider=self.name) from e

    def normalize_article(self, article: ET.Element) -> Paper:
        citation = article.find("MedlineCitation")
        if citation is None:
            citation = ET.Element("MedlineCitation")
        data = citation.find("Article")
        if data is None:
            data = ET.Element("Article")

        pmid = (citation.findtext("PMID") or "").strip()

        doi = None
        pmcid = None
        for article_id in article.findall("PubmedData/ArticleIdList/ArticleId"):
            id_type = article_id.get("IdType")
            if id_type == "doi" and not doi:
                doi = (article_id.text or "").strip()
            elif id_type == "pmc" and not pmcid:
                pmcid = (article_id.text or "").strip()
        if not doi:
            for location in data.findall("ELocationID"):
                if location.get("EIdType") == "doi":
                    doi = (location.text or "").strip()
                    break

        journal = data.find("Journal")
        venue = None
        year = None
        if journal is not None:
            venue = journal.findtext("Title") or journal.findtext("ISOAbbreviation")
            year = extract_year(journal.find("JournalIssue/PubDate"))

        authors = [
            Author(name=name)
            for name in (format_author_name(a) for a in data.findall("AuthorList/Author"))
            if name
        ]

        return Paper(
            external_id=pmid,
            title=_text(data.find("ArticleTitle")) or "Untitled",
            authors=authors,
            abstract=extract_abstract(data),
            url=f"https://pubmed.ncbi.nlm.nih.gov/{pmid}/",
            doi=strip_doi_prefix(doi),
            year=year,
            venue=venue,
            source=self.name,
            metadata={"pmid": pmid, "pmcid": pmcid},
        )

    async def _search_ids(self, term: str, retmax: int) -> List[str]:
        root = await self._get_xml("/esearch.fcgi", {
            "term": term,
            "retmax": retmax,
            "sort": "relevance",
        })
        ids = [(el.text or "").strip() for el in root.findall("IdList/Id")]
        logger.debug(f"PubMed esearch matched {root.findtext('Count')} for: {term}")
        return [i for i in ids if i]

    async def fetch_articles(self, pmids: List[str]) -> List[Paper]:
        """efetch full records for a list of PMIDs."""
        if not pmids:
            return []
        root = await self._get_xml("/efetch.fcgi", {"id": ",".join(pmids), "rettype": "abstract"})
        return [self.normalize_article(a) for a in root.findall("PubmedArticle")]

    async def search(self, query: str, limit: int) -> List[Paper]:
        try:
            ids = await self._search_ids(query, min(limit, 100))
            return await self.fetch_articles(ids)
        except ProviderError as e:
            logger.error(f"PubMed search failed for '{query}': {e}")
            raise

    async def lookup_by_doi(self, doi: str) -> Optional[Paper]:
        clean_doi = strip_doi_prefix(doi)
        if not clean_doi:
            return None
        try:
            ids = await self._search_ids(f"{clean_doi}[doi]", 1)
            results = await self.fetch_articles(ids[:1])
        except ProviderError as e:
            if e.status == 404:
                return None
            logger.error(f"PubMed DOI lookup failed for {clean_doi}: {e}")
            raise
        return results[0] if results else None

    async def lookup_by_pmid(self, pmid: str) -> Optional[Paper]:
        results = await self.fetch_articles([pmid])
        return results[0] if results else None

    async def enrich(self, paper: Paper) -> Optional[Dict[str, Any]]:
        """Fill missing abstract, venue or year from PubMed."""
        if not paper.doi:
            return None

        result = await self.lookup_by_doi(paper.doi)
        if not result:
            return None

        enrichment: Dict[str, Any] = {}
        if not paper.abstract and result.abstract:
            enrichment["abstract"] = result.abstract
        if not paper.venue and result.venue:
            enrichment["venue"] = result.venue
        if not paper.year and result.year:
            enrichment["year"] = result.year
        if enrichment:
            enrichment["metadata"] = {**paper.metadata, **result.metadata}

        return enrichment or None
