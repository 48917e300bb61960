"""
Merge results from every (provider, variant) pair into unique works.

Key: lower-cased DOI when present, else the normalized title. On a key
collision the paper already kept wins unless the newcomer is strictly richer.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List

from paper_retrieval.models.paper import Paper
from paper_retrieval.utils.text import normalize_title

logger = logging.getLogger(__name__)


@dataclass
class DedupResult:
    papers: List[Paper]
    before: int
    removed: int


def dedup_key(paper: Paper) -> str:
    """DOI (case-insensitive) if the paper has one, otherwise its normalized title."""
    return paper.normalized_doi or normalize_title(paper.title)


def richness_score(paper: Paper) -> int:
    """Number of non-empty fields among abstract, DOI, citation count and venue."""
    return sum(1 for value in (paper.abstract, paper.doi, paper.citation_count, paper.venue) if value)


def deduplicate_papers(papers: List[Paper]) -> DedupResult:
    """Remove duplicate papers, keeping first-seen order of keys.

    Pure: the input list and its papers are not modified.
    """
    seen: Dict[str, Paper] = {}

    for paper in papers:
        key = dedup_key(paper)
        existing = seen.get(key)
        if existing is None:
            seen[key] = paper
        elif richness_score(paper) > richness_score(existing):
            seen[key] = paper

    unique = list(seen.values())
    removed = len(papers) - len(unique)
    logger.debug(f"Deduplicated {len(papers)} papers to {len(unique)} ({removed} removed)")
    return DedupResult(papers=unique, before=len(papers), removed=removed)
