"""Canonical paper dataclasses shared by every provider and the search pipeline.

Each provider normalizes its own response schema into ``Paper``. Everything
downstream (deduplication, reranking, metrics) only ever sees this shape.
"""

from dataclasses import dataclass, asdict, field
from typing import Any, Dict, List, Optional


@dataclass
class Author:
    """One author entry, in the order the provider listed them."""

    name: str
    author_id: Optional[str] = None


@dataclass
class Paper:
    """Standardized paper representation across sources.

    ``external_id`` is only unique within ``source``. ``doi`` is stored without
    the ``https://doi.org/`` prefix and compared case-insensitively.
    """

    external_id: str
    title: str
    authors: List[Author] = field(default_factory=list)
    abstract: str = ""
    url: str = ""
    doi: Optional[str] = None
    year: Optional[int] = None
    venue: Optional[str] = None
    citation_count: Optional[int] = None
    source: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)
    id: Optional[Any] = None  # assigned by an external paper store

    @property
    def normalized_doi(self) -> Optional[str]:
        """Lower-cased DOI, or None when the paper has none."""
        return self.doi.lower() if self.doi else None

    @property
    def author_names(self) -> List[str]:
        return [a.name for a in self.authors]

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return asdict(self)

    def __str__(self) -> str:
        return f"{self.title} ({self.year}) - {self.citation_count or 0} citations"


@dataclass
class RankedPaper:
    """A paper with the score an external reranker assigned to it."""

    paper: Paper
    score: float
    rationale: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)
