"""
Baseline single-provider search.

Serves three purposes: the "basic" side of search comparisons, the fallback
when the enhanced pipeline fails outright, and DOI lookup / enrichment across
providers.
"""

import logging
from typing import Any, Dict, List, Optional

from paper_retrieval.exceptions import ValidationError
from paper_retrieval.models.paper import Paper
from paper_retrieval.providers.base import PaperProvider
from paper_retrieval.search.interfaces import PaperStore
from paper_retrieval.utils.concurrency import LimiterRegistry
from paper_retrieval.utils.observability import timed

logger = logging.getLogger(__name__)

DEFAULT_PRIMARY = "openalex"
DOI_FALLBACK_PROVIDER = "crossref"

# Which provider fills which missing fields, in order of preference
ENRICHMENT_PLAN = (
    ("semantic_scholar", ("abstract", "citation_count")),
    ("crossref", ("venue", "year")),
)


class BaselineSearch:
    """Search through one primary provider, under that provider's limiter."""

    def __init__(
        self,
        providers: Dict[str, PaperProvider],
        registry: LimiterRegistry,
        primary: Optional[str] = None,
        paper_store: Optional[PaperStore] = None,
    ):
        if not providers:
            raise ValidationError("BaselineSearch needs at least one provider")

        self.providers = providers
        self.registry = registry
        self.paper_store = paper_store

        primary = primary or DEFAULT_PRIMARY
        if primary not in providers:
            fallback = DEFAULT_PRIMARY if DEFAULT_PRIMARY in providers else next(iter(providers))
            logger.warning(f"Unknown primary provider '{primary}', falling back to {fallback}")
            primary = fallback
        self.primary = providers[primary]
        logger.info(f"Baseline search using primary provider: {self.primary.name}")

    @property
    def primary_name(self) -> str:
        return self.primary.name

    async def call_provider(self, provider: PaperProvider, operation):
        """Run ``operation()`` through *provider*'s limiter."""
        limiter = self.registry.get(provider.name, provider.concurrency_config)
        return await limiter.execute(operation)

    async def store_papers(self, papers: List[Paper]) -> List[Paper]:
        """Hand papers to the external store, if one is configured, recording their ids."""
        if self.paper_store is None:
            return papers
        for paper in papers:
            paper.id = await self.paper_store.save_paper_if_not_exists(paper)
        return papers

    @timed
    async def search_papers(self, query: str, limit: int = 10) -> List[Paper]:
        """Search the primary provider; errors are logged and re-raised."""
        if not query or not query.strip():
            raise ValidationError("query must not be empty")

        provider = self.primary
        logger.info(f"Searching papers via {provider.name}: '{query}' (limit={limit})")
        try:
            papers = await self.call_provider(
                provider, lambda: provider.search(provider.sanitize_query(query), limit)
            )
            papers = await self.store_papers(papers[:limit])
        except Exception as e:
            logger.error(f"Paper search failed via {provider.name} for '{query}': {e}")
            raise

        logger.info(f"Search completed with {len(papers)} results")
        return papers

    @timed
    async def lookup_by_doi(self, doi: str) -> Optional[Paper]:
        """Primary provider first, then Crossref. None when nobody knows the DOI."""
        candidates = [self.primary]
        crossref = self.providers.get(DOI_FALLBACK_PROVIDER)
        if crossref is not None and crossref is not self.primary:
            candidates.append(crossref)

        for provider in candidates:
            if not provider.capabilities.lookup_by_doi:
                continue
            try:
                paper = await self.call_provider(provider, lambda p=provider: p.lookup_by_doi(doi))
            except Exception as e:
                logger.debug(f"{provider.name} DOI lookup failed for {doi}: {e}")
                continue
            if paper is not None:
                await self.store_papers([paper])
                return paper

        return None

    async def enrich_paper(self, paper: Paper) -> Optional[Dict[str, Any]]:
        """Collect values for missing fields from providers that declare enrichment.

        Returns the merged field dict (not applied to *paper*) or None.
        """
        if not paper.doi:
            return None

        enrichment: Dict[str, Any] = {}
        for name, fields in ENRICHMENT_PLAN:
            provider = self.providers.get(name)
            if provider is None or not provider.capabilities.enrichment:
                continue
            if all(getattr(paper, f) for f in fields):
                continue
            try:
                result = await self.call_provider(provider, lambda p=provider: p.enrich(paper))
            except Exception as e:
                logger.debug(f"{name} enrichment failed for {paper.doi}: {e}")
                continue
            for field_name in fields:
                if result and result.get(field_name) and not getattr(paper, field_name):
                    enrichment.setdefault(field_name, result[field_name])

        return enrichment or None

    async def close(self) -> None:
        for provider in self.providers.values():
            await provider.close()
