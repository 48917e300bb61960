# Canonical records and result containers
from .paper import Author, Paper, RankedPaper
from .results import (
    BasicSearchResult,
    ComparisonReport,
    ComparisonStats,
    EnhancedSearchResult,
    SearchMetadata,
)
from .reranker import CrossEncoderReranker, load_reranker_from_config

__all__ = [
    "Author",
    "Paper",
    "RankedPaper",
    "BasicSearchResult",
    "ComparisonReport",
    "ComparisonStats",
    "EnhancedSearchResult",
    "SearchMetadata",
    "CrossEncoderReranker",
    "load_reranker_from_config",
]
