"""Paper Retrieval package.

Multi-provider academic paper search with rate limiting, deduplication and
retrieval-quality benchmarks. Symbols are loaded lazily via ``__getattr__`` so
that importing the package does not pull in the HTTP or reranker stacks.
"""

from importlib import import_module
from typing import Any

__all__ = [
    "Paper",
    "Author",
    "RankedPaper",
    "EnhancedSearchPipeline",
    "SearchOptions",
    "BaselineSearch",
    "create_search_pipeline",
    "LimiterRegistry",
    "ConcurrencyConfig",
    "build_providers",
    "aggregate_metrics",
    "compute_retrieval_metrics",
    "load_config",
]

_EXPORT_MAP = {
    "Paper": ("paper_retrieval.models", "Paper"),
    "Author": ("paper_retrieval.models", "Author"),
    "RankedPaper": ("paper_retrieval.models", "RankedPaper"),
    "EnhancedSearchPipeline": ("paper_retrieval.search", "EnhancedSearchPipeline"),
    "SearchOptions": ("paper_retrieval.search", "SearchOptions"),
    "BaselineSearch": ("paper_retrieval.search", "BaselineSearch"),
    "create_search_pipeline": ("paper_retrieval.search", "create_search_pipeline"),
    "LimiterRegistry": ("paper_retrieval.utils.concurrency", "LimiterRegistry"),
    "ConcurrencyConfig": ("paper_retrieval.utils.concurrency", "ConcurrencyConfig"),
    "build_providers": ("paper_retrieval.providers", "build_providers"),
    "aggregate_metrics": ("paper_retrieval.benchmark", "aggregate_metrics"),
    "compute_retrieval_metrics": ("paper_retrieval.benchmark", "compute_retrieval_metrics"),
    "load_config": ("paper_retrieval.utils.config", "load_config"),
}


def __getattr__(name: str) -> Any:
    """Lazy-load exported package symbols on first access."""
    if name not in _EXPORT_MAP:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    module_name, attr_name = _EXPORT_MAP[name]
    module = import_module(module_name)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value
