"""
arXiv provider (Atom query API).

arXiv asks for no more than one request every three seconds.
"""

import logging
import re
import xml.etree.ElementTree as ET
from typing import Any, Dict, List, Optional

from paper_retrieval.exceptions import ProviderError
from paper_retrieval.models.paper import Author, Paper
from paper_retrieval.providers.base import HttpProvider, ProviderCapabilities
from paper_retrieval.utils.concurrency import ConcurrencyConfig
from paper_retrieval.utils.text import clean_whitespace, leading_year, strip_doi_prefix

logger = logging.getLogger(__name__)

NAMESPACES = {
    "atom": "http://www.w3.org/2005/Atom",
    "arxiv": "http://arxiv.org/schemas/atom",
    "opensearch": "http://a9.com/-/spec/opensearch/1.1/",
}

_ABS_ID_RE = re.compile(r"arxiv\.org/abs/([^\s]+)")
_VERSION_RE = re.compile(r"v\d+$")


def extract_arxiv_id(url: str) -> str:
    """``http://arxiv.org/abs/2301.00001v1`` -> ``2301.00001``."""
    match = _ABS_ID_RE.search(url or "")
    if match:
        return _VERSION_RE.sub("", match.group(1))
    return url or ""


class ArxivProvider(HttpProvider):
    name = "arxiv"
    capabilities = ProviderCapabilities(search=True, lookup_by_doi=True, enrichment=False)

    BASE_URL = "http://export.arxiv.org/api"
    TIMEOUT = 30.0  # arXiv can be slow

    def __init__(self, config: Optional[dict] = None):
        super().__init__(config)
        self.concurrency_config = ConcurrencyConfig(max_concurrent=1, requests_per_second=0.33)

    def normalize_entry(self, entry: ET.Element) -> Paper:
        arxiv_url = (entry.findtext("atom:id", default="", namespaces=NAMESPACES) or "").strip()
        arxiv_id = extract_arxiv_id(arxiv_url)

        pdf_url = None
        for link in entry.findall("atom:link", NAMESPACES):
            if link.get("title") == "pdf":
                pdf_url = link.get("href")
                break

        primary = entry.find("arxiv:primary_category", NAMESPACES)
        primary_category = primary.get("term") if primary is not None else None
        categories = [
            c.get("term") for c in entry.findall("atom:category", NAMESPACES) if c.get("term")
        ]
        published = entry.findtext("atom:published", default="", namespaces=NAMESPACES)

        return Paper(
            external_id=arxiv_id,
            title=clean_whitespace(entry.findtext("atom:title", namespaces=NAMESPACES)) or "Untitled",
            authors=[
                Author(name=clean_whitespace(a.findtext("atom:name", namespaces=NAMESPACES)) or "Unknown Author")
                for a in entry.findall("atom:author", NAMESPACES)
            ],
            abstract=clean_whitespace(entry.findtext("atom:summary", namespaces=NAMESPACES)),
            url=pdf_url or arxiv_url,
            doi=strip_doi_prefix(entry.findtext("arxiv:doi", namespaces=NAMESPACES)),
            year=leading_year(published),
            venue=f"arXiv:{primary_category}" if primary_category else "arXiv",
            source=self.name,
            metadata={
                "arxivId": arxiv_id,
                "arxivUrl": arxiv_url,
                "pdfUrl": pdf_url,
                "categories": categories,
                "publishedDate": published or None,
                "updatedDate": entry.findtext("atom:updated", namespaces=NAMESPACES),
            },
        )

    async def _query(self, params: Dict[str, Any]) -> List[Paper]:
        response = await self._get("/query", params)
        try:
            root = ET.fromstring(response.text)
        except ET.ParseError as e:
            raise ProviderError(f"arXiv returned malformed XML: {e}", provider=self.name) from e

        entries = [
            e for e in root.findall("atom:entry", NAMESPACES)
            if (e.findtext("atom:title", namespaces=NAMESPACES) or "").strip()
        ]
        logger.debug(
            f"arXiv returned {len(entries)} entries "
            f"(of {root.findtext('opensearch:totalResults', namespaces=NAMESPACES)})"
        )
        return [self.normalize_entry(e) for e in entries]

    async def search(self, query: str, limit: int) -> List[Paper]:
        try:
            return await self._query({
                "search_query": f"all:{query}",
                "start": 0,
                "max_results": min(limit, 100),
                "sortBy": "relevance",
                "sortOrder": "descending",
            })
        except ProviderError as e:
            logger.error(f"arXiv search failed for '{query}': {e}")
            raise

    async def lookup_by_doi(self, doi: str) -> Optional[Paper]:
        # No direct DOI endpoint, the query API searches the doi field
        clean_doi = strip_doi_prefix(doi)
        if not clean_doi:
            return None
        try:
            results = await self._query({"search_query": f"doi:{clean_doi}", "max_results": 1})
        except ProviderError as e:
            if e.status == 404:
                return None
            logger.error(f"arXiv DOI lookup failed for {clean_doi}: {e}")
            raise
        return results[0] if results else None

    async def lookup_by_arxiv_id(self, arxiv_id: str) -> Optional[Paper]:
        results = await self._query({"id_list": _VERSION_RE.sub("", arxiv_id), "max_results": 1})
        return results[0] if results else None
