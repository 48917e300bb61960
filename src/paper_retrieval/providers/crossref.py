"""
Crossref provider.

DOI metadata for nearly everything with a DOI. Abstracts, when present, are
JATS/HTML fragments and get their markup stripped.
"""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from paper_retrieval.exceptions import ProviderError
from paper_retrieval.models.paper import Author, Paper
from paper_retrieval.providers.base import HttpProvider, ProviderCapabilities
from paper_retrieval.utils.concurrency import ConcurrencyConfig
from paper_retrieval.utils.text import strip_doi_prefix, strip_markup, year_from_date_parts

logger = logging.getLogger(__name__)

ORCID_PREFIXES = ("https://orcid.org/", "http://orcid.org/")


def _first(values: Any) -> Optional[str]:
    if isinstance(values, list) and values:
        return values[0]
    if isinstance(values, str):
        return values
    return None


class CrossrefProvider(HttpProvider):
    name = "crossref"
    capabilities = ProviderCapabilities(search=True, lookup_by_doi=True, enrichment=True)

    BASE_URL = "https://api.crossref.org"
    TIMEOUT = 15.0

    def __init__(self, config: Optional[dict] = None, email: Optional[str] = None):
        super().__init__(config)
        self.email = email or self.config.get("email")
        self.concurrency_config = ConcurrencyConfig(max_concurrent=3, requests_per_second=5.0)

    def _default_headers(self) -> Dict[str, str]:
        headers = super()._default_headers()
        if self.email:
            headers["User-Agent"] = f"PaperRetrieval/1.0 (mailto:{self.email})"
        return headers

    def _default_params(self) -> dict:
        return {"mailto": self.email} if self.email else {}

    @staticmethod
    def extract_year(work: dict) -> Optional[int]:
        for key in ("published-print", "published-online", "issued"):
            year = year_from_date_parts(work.get(key))
            if year:
                return year
        return None

    @staticmethod
    def normalize_author(author: dict) -> Author:
        if author.get("name"):
            name = author["name"]
        elif author.get("given") and author.get("family"):
            name = f"{author['given']} {author['family']}"
        else:
            name = author.get("family") or author.get("given") or "Unknown"

        orcid = author.get("ORCID")
        if orcid:
            for prefix in ORCID_PREFIXES:
                orcid = orcid.replace(prefix, "")
        return Author(name=name, author_id=orcid or None)

    def normalize_work(self, work: dict) -> Paper:
        doi = strip_doi_prefix(work.get("DOI"))

        url = work.get("URL")
        links = work.get("link") or []
        if not url and links:
            pdf_link = next((l for l in links if l.get("content-type") == "application/pdf"), None)
            url = (pdf_link or links[0]).get("URL")

        return Paper(
            external_id=doi or "",
            title=_first(work.get("title")) or "Untitled",
            authors=[self.normalize_author(a) for a in (work.get("author") or []) if a],
            abstract=strip_markup(work.get("abstract")),
            url=url or (f"https://doi.org/{doi}" if doi else ""),
            doi=doi,
            year=self.extract_year(work),
            venue=_first(work.get("container-title")),
            citation_count=work.get("is-referenced-by-count"),
            source=self.name,
            metadata={"type": work["type"]} if work.get("type") else {},
        )

    async def search(self, query: str, limit: int) -> List[Paper]:
        try:
            data = await self._get_json("/works", params={
                "query": query,
                "rows": min(limit, 100),
                "sort": "relevance",
                "order": "desc",
            })
        except ProviderError as e:
            logger.error(f"Crossref search failed for '{query}': {e}")
            raise

        message = data.get("message") or {}
        items = message.get("items") or []
        logger.debug(
            f"Crossref found {len(items)} works (of {message.get('total-results')}) for: {query}"
        )
        return [self.normalize_work(item) for item in items if item]

    async def lookup_by_doi(self, doi: str) -> Optional[Paper]:
        clean_doi = strip_doi_prefix(doi)
        if not clean_doi:
            return None
        try:
            data = await self._get_json(f"/works/{quote(clean_doi, safe='')}")
        except ProviderError as e:
            if e.status == 404:
                return None
            logger.error(f"Crossref DOI lookup failed for {clean_doi}: {e}")
            raise
        work = data.get("message")
        return self.normalize_work(work) if work else None

    async def enrich(self, paper: Paper) -> Optional[Dict[str, Any]]:
        """Fill missing year, venue, citation count or abstract from Crossref."""
        if not paper.doi:
            return None

        result = await self.lookup_by_doi(paper.doi)
        if not result:
            return None

        enrichment: Dict[str, Any] = {}
        if not paper.year and result.year:
            enrichment["year"] = result.year
        if not paper.venue and result.venue:
            enrichment["venue"] = result.venue
        if not paper.citation_count and result.citation_count:
            enrichment["citation_count"] = result.citation_count
        if not paper.abstract and result.abstract:
            enrichment["abstract"] = result.abstract

        return enrichment or None
