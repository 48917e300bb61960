"""Collaborators the search pipeline consumes but does not implement."""

from dataclasses import dataclass, field
from typing import Any, List, Protocol, runtime_checkable

from paper_retrieval.models.paper import Paper, RankedPaper


@dataclass
class ExpandedQuery:
    original: str
    expanded: str
    terms: List[str] = field(default_factory=list)
    variants: List[str] = field(default_factory=list)


@runtime_checkable
class QueryExpansion(Protocol):
    """Produces an expanded query and alternative phrasings of a query."""

    async def expand_query(self, query: str) -> ExpandedQuery: ...

    async def generate_query_variants(self, query: str, count: int) -> List[str]: ...


@runtime_checkable
class Reranker(Protocol):
    """Reorders papers by relevance; returns the same papers, scored."""

    async def rerank_papers(self, query: str, papers: List[Paper]) -> List[RankedPaper]: ...


@runtime_checkable
class PaperStore(Protocol):
    """External persistence, idempotent by (source, external_id)."""

    async def save_paper_if_not_exists(self, paper: Paper) -> Any: ...
