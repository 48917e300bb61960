"""Result containers returned by the search pipeline."""

from dataclasses import dataclass, asdict, field
from typing import List, Optional

from paper_retrieval.models.paper import Paper, RankedPaper


@dataclass
class SearchMetadata:
    """Provenance and timing for one enhanced search call."""

    original_query: str
    expanded_query: Optional[str] = None
    query_variants: Optional[List[str]] = None
    total_found: int = 0
    deduplicated: int = 0
    reranked: bool = False
    latency_ms: int = 0
    fallback: bool = False
    request_id: str = ""


@dataclass
class EnhancedSearchResult:
    """Ordered papers (after dedup and rerank) plus search metadata."""

    papers: List[Paper]
    metadata: SearchMetadata
    ranked_papers: Optional[List[RankedPaper]] = None

    @property
    def dois(self) -> List[str]:
        return [p.doi for p in self.papers if p.doi]

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class BasicSearchResult:
    """Single-provider search output used as the comparison baseline."""

    papers: List[Paper] = field(default_factory=list)
    latency_ms: int = 0


@dataclass
class ComparisonStats:
    overlap_count: int = 0
    overlap_percent: float = 0.0
    unique_to_enhanced: int = 0
    rank_changes: int = 0


@dataclass
class ComparisonReport:
    """Side-by-side baseline vs. enhanced output for one query."""

    basic: BasicSearchResult
    enhanced: EnhancedSearchResult
    comparison: ComparisonStats

    def to_dict(self) -> dict:
        return asdict(self)
