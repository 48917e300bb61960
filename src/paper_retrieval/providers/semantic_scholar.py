"""
Semantic Scholar provider.

Public tier is strict (roughly one request every two seconds) and answers
bursts with 429, so every call goes through retry_with_backoff.
"""

import logging
import os
import re
from typing import Any, Dict, List, Optional

from paper_retrieval.exceptions import ProviderError
from paper_retrieval.models.paper import Author, Paper
from paper_retrieval.providers.base import HttpProvider, ProviderCapabilities
from paper_retrieval.utils.concurrency import ConcurrencyConfig
from paper_retrieval.utils.retry import retry_with_backoff
from paper_retrieval.utils.text import clean_whitespace, strip_doi_prefix

logger = logging.getLogger(__name__)

_DISALLOWED_CHARS = re.compile(r"[^\w\s-]")


class SemanticScholarProvider(HttpProvider):
    name = "semantic_scholar"
    capabilities = ProviderCapabilities(search=True, lookup_by_doi=True, enrichment=True)

    BASE_URL = "https://api.semanticscholar.org/graph/v1"
    TIMEOUT = 10.0
    FIELDS = "paperId,title,authors,abstract,url,externalIds,year,venue,citationCount,openAccessPdf"
    MAX_QUERY_LENGTH = 200
    MAX_RETRIES = 2  # three attempts in total
    BASE_DELAY = 2.0
    API_KEY_ENV = ("SEMANTIC_SCHOLAR_API_KEY", "SEMANTICSCHOLAR_API_KEY")

    def __init__(self, config: Optional[dict] = None, api_key: Optional[str] = None):
        super().__init__(config)
        key_env = self.config.get("api_key_env")
        env_names = (key_env,) if key_env else self.API_KEY_ENV
        self.api_key = api_key or next(
            (os.environ[n] for n in env_names if os.environ.get(n)), None
        )

        if self.api_key:
            logger.info("Semantic Scholar API key configured")
            self.concurrency_config = ConcurrencyConfig(max_concurrent=1, requests_per_second=1.0)
        else:
            logger.warning("No Semantic Scholar API key found - using public rate limits")
            self.concurrency_config = ConcurrencyConfig(max_concurrent=1, requests_per_second=0.5)

    def _default_headers(self) -> Dict[str, str]:
        headers = super()._default_headers()
        if self.api_key:
            headers["x-api-key"] = self.api_key
        return headers

    def sanitize_query(self, query: str) -> str:
        """S2 rejects most punctuation and very long queries."""
        cleaned = clean_whitespace(_DISALLOWED_CHARS.sub(" ", query))
        return cleaned[: self.MAX_QUERY_LENGTH].strip()

    async def _get_with_retry(self, path: str, params: Dict[str, Any], context: str) -> Any:
        return await retry_with_backoff(
            lambda: self._get_json(path, params=params),
            max_retries=self.MAX_RETRIES,
            base_delay=self.BASE_DELAY,
            context=context,
        )

    def normalize_paper(self, item: dict) -> Paper:
        paper_id = item.get("paperId") or ""
        external_ids = item.get("externalIds") or {}
        oa_pdf = item.get("openAccessPdf") or {}

        return Paper(
            external_id=paper_id,
            title=item.get("title") or "Untitled",
            authors=[
                Author(name=a["name"], author_id=a.get("authorId"))
                for a in (item.get("authors") or [])
                if a and a.get("name")
            ],
            abstract=item.get("abstract") or "",
            url=(
                item.get("url")
                or oa_pdf.get("url")
                or f"https://www.semanticscholar.org/paper/{paper_id}"
            ),
            doi=strip_doi_prefix(external_ids.get("DOI")),
            year=item.get("year"),
            venue=item.get("venue") or None,
            citation_count=item.get("citationCount"),
            source=self.name,
            metadata={"openAccessUrl": oa_pdf.get("url")} if oa_pdf.get("url") else {},
        )

    async def search(self, query: str, limit: int) -> List[Paper]:
        data = await self._get_with_retry(
            "/paper/search",
            {"query": query, "limit": min(limit, 100), "fields": self.FIELDS},
            "Semantic Scholar search",
        )
        items = data.get("data") or []
        logger.debug(
            f"Semantic Scholar found {len(items)} papers (of {data.get('total')}) for: {query}"
        )
        return [self.normalize_paper(item) for item in items if item]

    async def _lookup(self, paper_ref: str, context: str) -> Optional[Paper]:
        try:
            item = await self._get_with_retry(
                f"/paper/{paper_ref}", {"fields": self.FIELDS}, context
            )
        except ProviderError as e:
            if e.status == 404:
                return None
            raise
        return self.normalize_paper(item) if item else None

    async def lookup_by_doi(self, doi: str) -> Optional[Paper]:
        clean_doi = strip_doi_prefix(doi)
        if not clean_doi:
            return None
        return await self._lookup(f"DOI:{clean_doi}", "Semantic Scholar DOI lookup")

    async def get_paper_by_id(self, paper_id: str) -> Optional[Paper]:
        """Fetch a paper by its Semantic Scholar ID."""
        return await self._lookup(paper_id, "Semantic Scholar paper details")

    async def enrich(self, paper: Paper) -> Optional[Dict[str, Any]]:
        """Fill a missing abstract or citation count from S2."""
        if not paper.doi:
            return None

        result = await self.lookup_by_doi(paper.doi)
        if not result:
            return None

        enrichment: Dict[str, Any] = {}
        if not paper.abstract and result.abstract:
            enrichment["abstract"] = result.abstract
        if not paper.citation_count and result.citation_count:
            enrichment["citation_count"] = result.citation_count

        return enrichment or None
