"""
OpenAlex provider.

Fully open, no API key needed. A contact email puts requests in the polite
pool (10 req/s); without one the provider throttles itself to 1 req/s.
"""

import logging
from typing import List, Optional

from paper_retrieval.exceptions import ProviderError
from paper_retrieval.models.paper import Author, Paper
from paper_retrieval.providers.base import HttpProvider, ProviderCapabilities
from paper_retrieval.utils.concurrency import ConcurrencyConfig
from paper_retrieval.utils.text import reconstruct_abstract, strip_doi_prefix

logger = logging.getLogger(__name__)

OPENALEX_PREFIX = "https://openalex.org/"


def normalize_openalex_id(paper_id: Optional[str]) -> str:
    """Strip the OpenAlex URL prefix from an ID, returning just the key (e.g. 'W12345')."""
    if not paper_id:
        return ""
    if paper_id.startswith(OPENALEX_PREFIX):
        return paper_id[len(OPENALEX_PREFIX):]
    return paper_id


class OpenAlexProvider(HttpProvider):
    name = "openalex"
    capabilities = ProviderCapabilities(search=True, lookup_by_doi=True, enrichment=False)

    BASE_URL = "https://api.openalex.org"
    TIMEOUT = 15.0
    MAX_CONCURRENT = 5
    POLITE_RPS = 10.0
    ANONYMOUS_RPS = 1.0

    def __init__(self, config: Optional[dict] = None, email: Optional[str] = None):
        super().__init__(config)
        self.email = email or self.config.get("email")

        if self.email:
            logger.info("OpenAlex configured with polite pool email")
            rps = self.POLITE_RPS
        else:
            logger.warning(
                f"No OpenAlex email configured - throttling to {self.ANONYMOUS_RPS:g} req/s"
            )
            rps = self.ANONYMOUS_RPS

        self.concurrency_config = ConcurrencyConfig(
            max_concurrent=self.MAX_CONCURRENT, requests_per_second=rps
        )

    def _default_params(self) -> dict:
        return {"mailto": self.email} if self.email else {}

    def normalize_work(self, work: dict) -> Paper:
        """Convert one OpenAlex work into a Paper."""
        oa_id = normalize_openalex_id(work.get("id"))

        authors = []
        for authorship in work.get("authorships") or []:
            author = (authorship or {}).get("author") or {}
            if author.get("display_name"):
                authors.append(Author(
                    name=author["display_name"],
                    author_id=normalize_openalex_id(author.get("id")) or None,
                ))

        primary_location = work.get("primary_location") or {}
        source = primary_location.get("source") or {}
        open_access = work.get("open_access") or {}
        oa_url = open_access.get("oa_url")

        url = (
            primary_location.get("landing_page_url")
            or oa_url
            or f"{OPENALEX_PREFIX}{oa_id}"
        )

        return Paper(
            external_id=oa_id,
            title=work.get("title") or work.get("display_name") or "Untitled",
            authors=authors,
            abstract=reconstruct_abstract(work.get("abstract_inverted_index")),
            url=url,
            doi=strip_doi_prefix(work.get("doi")),
            year=work.get("publication_year"),
            venue=source.get("display_name"),
            citation_count=work.get("cited_by_count"),
            source=self.name,
            metadata={"openAccessUrl": oa_url},
        )

    async def search(self, query: str, limit: int) -> List[Paper]:
        """
        Search OpenAlex works.

        Args:
            query: Search query
            limit: Maximum number of results (API max per page is 200)

        Returns:
            List of Paper objects
        """
        try:
            data = await self._get_json("/works", params={
                "search": query,
                "per_page": min(limit, 200),
                "filter": "has_abstract:true",
                "sort": "relevance_score:desc",
            })
        except ProviderError as e:
            logger.error(f"OpenAlex search failed for '{query}': {e}")
            raise

        results = data.get("results") or []
        total = (data.get("meta") or {}).get("count")
        logger.debug(f"OpenAlex found {len(results)} works (of {total}) for: {query}")
        return [self.normalize_work(work) for work in results if work]

    async def lookup_by_doi(self, doi: str) -> Optional[Paper]:
        clean_doi = strip_doi_prefix(doi)
        if not clean_doi:
            return None
        try:
            work = await self._get_json(f"/works/https://doi.org/{clean_doi}")
        except ProviderError as e:
            if e.status == 404:
                return None
            logger.error(f"OpenAlex DOI lookup failed for {clean_doi}: {e}")
            raise
        return self.normalize_work(work) if work else None
