"""
Enhanced multi-provider search pipeline.

Flow for one query:
    1. expand: expanded query string (reported) + up to N phrasing variants
    2. fan out every (variant x provider) pair through the provider's limiter
    3. merge and deduplicate
    4. rerank
    5. truncate to limit

A failing pair only costs its own results, and a failing expansion service
only costs the extra variants. When no provider answers at all, or anything
else escapes steps 1-5, the whole call drops to the baseline search. A
baseline failure reaches the caller, except after a total provider outage,
where an empty degraded result is returned instead.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from paper_retrieval.exceptions import PipelineError, ProvidersUnavailableError, ValidationError
from paper_retrieval.models.paper import Paper, RankedPaper
from paper_retrieval.models.results import (
    BasicSearchResult,
    ComparisonReport,
    ComparisonStats,
    EnhancedSearchResult,
    SearchMetadata,
)
from paper_retrieval.providers.base import PaperProvider
from paper_retrieval.search.baseline import BaselineSearch
from paper_retrieval.search.dedup import deduplicate_papers
from paper_retrieval.search.interfaces import PaperStore, QueryExpansion, Reranker
from paper_retrieval.utils.concurrency import LimiterRegistry
from paper_retrieval.utils.observability import elapsed_ms, log_prefix, new_request_id

logger = logging.getLogger(__name__)

DEFAULT_ENHANCED_PROVIDERS = ("openalex", "semantic_scholar")


@dataclass
class SearchOptions:
    limit: int = 20
    use_expansion: bool = True
    use_reranking: bool = True
    parallel_queries: int = 3
    deduplicate_by_doi: bool = True
    multi_provider: bool = True

    def __post_init__(self):
        if self.limit < 1:
            raise ValidationError(f"limit must be >= 1, got {self.limit}")
        if self.parallel_queries < 1:
            raise ValidationError(f"parallel_queries must be >= 1, got {self.parallel_queries}")

    @classmethod
    def from_config(cls, config: Optional[dict] = None, **overrides) -> "SearchOptions":
        """Build options from the ``search`` config section, then apply overrides."""
        section = (config or {}).get("search") or {}
        values = {
            name: section[name]
            for name in cls.__dataclass_fields__
            if name in section
        }
        values.update(overrides)
        return cls(**values)


def compute_comparison(basic: List[Paper], enhanced: List[Paper]) -> ComparisonStats:
    """Overlap of DOI sets and position-wise rank changes between two result lists."""
    basic_dois = {p.normalized_doi for p in basic if p.doi}
    enhanced_dois = {p.normalized_doi for p in enhanced if p.doi}
    overlap = basic_dois & enhanced_dois

    rank_changes = 0
    for b, e in zip(basic, enhanced):
        if b.normalized_doi != e.normalized_doi:
            rank_changes += 1

    return ComparisonStats(
        overlap_count=len(overlap),
        overlap_percent=(len(overlap) / len(basic_dois) * 100) if basic_dois else 0.0,
        unique_to_enhanced=len(enhanced_dois - basic_dois),
        rank_changes=rank_changes,
    )


class EnhancedSearchPipeline:
    """Query expansion + multi-provider fan-out + dedup + reranking."""

    def __init__(
        self,
        providers: Dict[str, PaperProvider],
        registry: LimiterRegistry,
        baseline: BaselineSearch,
        query_expansion: Optional[QueryExpansion] = None,
        reranker: Optional[Reranker] = None,
        paper_store: Optional[PaperStore] = None,
        enhanced_providers: Sequence[str] = DEFAULT_ENHANCED_PROVIDERS,
    ):
        self.providers = providers
        self.registry = registry
        self.baseline = baseline
        self.query_expansion = query_expansion
        self.reranker = reranker
        self.paper_store = paper_store

        self.enhanced_providers = [
            providers[name] for name in enhanced_providers
            if name in providers and providers[name].capabilities.search
        ]
        unknown = [name for name in enhanced_providers if name not in providers]
        if unknown:
            logger.warning(f"Enhanced search providers not enabled: {', '.join(unknown)}")

    async def search(
        self, query: str, options: Optional[SearchOptions] = None
    ) -> EnhancedSearchResult:
        """Run the full pipeline, falling back to the baseline search on failure."""
        if not query or not query.strip():
            raise ValidationError("query must not be empty")
        options = options or SearchOptions()

        request_id = new_request_id()
        start = time.perf_counter()
        logger.info(f"{log_prefix()}Enhanced search: '{query}'")

        try:
            return await self._run(query, options, request_id, start)
        except ProvidersUnavailableError as e:
            logger.error(f"{log_prefix()}{e}, falling back to basic search")
            return await self._fallback(query, options, request_id, start, absorb_errors=True)
        except Exception as e:
            logger.error(f"{log_prefix()}Enhanced search failed, falling back to basic search: {e}")
            return await self._fallback(query, options, request_id, start)

    async def _run(
        self, query: str, options: SearchOptions, request_id: str, start: float
    ) -> EnhancedSearchResult:
        expanded_query, variants = await self._expand(query, options)
        logger.info(f"{log_prefix()}Searching with {len(variants)} query variants")

        providers = self._select_providers(options)
        pair_results = await asyncio.gather(*[
            self._search_pair(provider, variant, options.limit)
            for variant in variants
            for provider in providers
        ])

        answered = [papers for papers in pair_results if papers is not None]
        if not answered:
            raise ProvidersUnavailableError(
                f"No provider answered any of {len(pair_results)} searches"
            )

        all_papers: List[Paper] = [paper for papers in answered for paper in papers]
        total_found = len(all_papers)
        logger.info(f"{log_prefix()}Found {total_found} total papers before deduplication")

        deduplicated = 0
        papers = all_papers
        if options.deduplicate_by_doi:
            dedup = deduplicate_papers(all_papers)
            papers = dedup.papers
            deduplicated = dedup.removed
            logger.info(f"{log_prefix()}After deduplication: {len(papers)} unique papers")

        ranked_papers: Optional[List[RankedPaper]] = None
        reranked = False
        if options.use_reranking and self.reranker is not None and papers:
            ranked_papers = await self.reranker.rerank_papers(query, papers)
            if len(ranked_papers) != len(papers):
                raise PipelineError(
                    f"Reranker returned {len(ranked_papers)} papers for {len(papers)} inputs"
                )
            papers = [r.paper for r in ranked_papers]
            reranked = True
            logger.info(f"{log_prefix()}Reranked {len(papers)} papers")

        papers = papers[:options.limit]
        if ranked_papers is not None:
            ranked_papers = ranked_papers[:options.limit]

        latency = elapsed_ms(start)
        logger.info(f"{log_prefix()}Enhanced search completed in {latency}ms")

        return EnhancedSearchResult(
            papers=papers,
            ranked_papers=ranked_papers,
            metadata=SearchMetadata(
                original_query=query,
                expanded_query=expanded_query,
                query_variants=variants,
                total_found=total_found,
                deduplicated=deduplicated,
                reranked=reranked,
                latency_ms=latency,
                request_id=request_id,
            ),
        )

    async def _expand(self, query: str, options: SearchOptions) -> Tuple[Optional[str], List[str]]:
        """Expanded query (or None) and the variants to search, original first."""
        if not options.use_expansion or self.query_expansion is None:
            return None, [query]

        try:
            expansion = await self.query_expansion.expand_query(query)
            generated = await self.query_expansion.generate_query_variants(
                query, options.parallel_queries
            )
        except Exception as e:
            logger.warning(f"{log_prefix()}Query expansion failed, searching original query only: {e}")
            return None, [query]

        variants = [query] + [v for v in generated if v and v != query]
        variants = variants[:options.parallel_queries]
        logger.debug(f"{log_prefix()}Expanded query: {expansion.expanded}")
        return expansion.expanded, variants

    def _select_providers(self, options: SearchOptions) -> List[PaperProvider]:
        if options.multi_provider and self.enhanced_providers:
            return self.enhanced_providers
        return [self.baseline.primary]

    async def _search_pair(
        self, provider: PaperProvider, variant: str, limit: int
    ) -> Optional[List[Paper]]:
        """One (provider, variant) search; None when the provider did not answer."""
        try:
            limiter = self.registry.get(provider.name, provider.concurrency_config)
            papers = await limiter.execute(
                lambda: provider.search(provider.sanitize_query(variant), limit)
            )
            if self.paper_store is not None:
                for paper in papers:
                    paper.id = await self.paper_store.save_paper_if_not_exists(paper)
            return papers
        except Exception as e:
            logger.error(f"{log_prefix()}{provider.name} search failed for '{variant}': {e}")
            return None

    async def _fallback(
        self,
        query: str,
        options: SearchOptions,
        request_id: str,
        start: float,
        absorb_errors: bool = False,
    ) -> EnhancedSearchResult:
        """Baseline search on the primary provider.

        With *absorb_errors* a failing baseline yields an empty result instead
        of raising.
        """
        try:
            papers = await self.baseline.search_papers(query, options.limit)
        except Exception as e:
            if not absorb_errors:
                raise
            logger.error(f"{log_prefix()}Basic search fallback failed, returning no results: {e}")
            papers = []
        return EnhancedSearchResult(
            papers=papers,
            metadata=SearchMetadata(
                original_query=query,
                total_found=len(papers),
                deduplicated=0,
                reranked=False,
                latency_ms=elapsed_ms(start),
                fallback=True,
                request_id=request_id,
            ),
        )

    async def compare_search(self, query: str, limit: int = 10) -> ComparisonReport:
        """Baseline vs enhanced search on the same query."""
        basic_start = time.perf_counter()
        basic_papers = await self.baseline.search_papers(query, limit)
        basic_latency = elapsed_ms(basic_start)

        enhanced = await self.search(query, SearchOptions(limit=limit))

        return ComparisonReport(
            basic=BasicSearchResult(papers=basic_papers, latency_ms=basic_latency),
            enhanced=enhanced,
            comparison=compute_comparison(basic_papers, enhanced.papers),
        )

    async def close(self) -> None:
        await self.baseline.close()


def create_search_pipeline(
    config: Optional[dict] = None,
    query_expansion: Optional[QueryExpansion] = None,
    reranker: Optional[Reranker] = None,
    paper_store: Optional[PaperStore] = None,
    registry: Optional[LimiterRegistry] = None,
) -> EnhancedSearchPipeline:
    """Factory: providers, limiter registry, baseline and pipeline from one config dict.

    Args:
        config: Parsed config (see ``load_config``); missing sections use defaults
        reranker: Overrides the reranker described by the ``reranker`` section
    """
    from paper_retrieval.models.reranker import load_reranker_from_config
    from paper_retrieval.providers import build_providers

    config = config or {}
    search_config = config.get("search") or {}

    providers = build_providers(config)
    registry = registry or LimiterRegistry()
    baseline = BaselineSearch(
        providers,
        registry,
        primary=search_config.get("primary_provider"),
        paper_store=paper_store,
    )
    return EnhancedSearchPipeline(
        providers,
        registry,
        baseline,
        query_expansion=query_expansion,
        reranker=reranker if reranker is not None else load_reranker_from_config(config),
        paper_store=paper_store,
        enhanced_providers=search_config.get("enhanced_providers") or DEFAULT_ENHANCED_PROVIDERS,
    )
