from .baseline import BaselineSearch
from .dedup import DedupResult, deduplicate_papers, dedup_key, richness_score
from .interfaces import ExpandedQuery, PaperStore, QueryExpansion, Reranker
from .pipeline import (
    EnhancedSearchPipeline,
    SearchOptions,
    compute_comparison,
    create_search_pipeline,
)

__all__ = [
    "BaselineSearch",
    "DedupResult",
    "deduplicate_papers",
    "dedup_key",
    "richness_score",
    "ExpandedQuery",
    "PaperStore",
    "QueryExpansion",
    "Reranker",
    "EnhancedSearchPipeline",
    "SearchOptions",
    "compute_comparison",
    "create_search_pipeline",
]
