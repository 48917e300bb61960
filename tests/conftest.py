"""
Pytest configuration and fixtures for Paper Retrieval tests.
"""

import asyncio
from typing import Dict, List, Optional

import httpx
import pytest

from paper_retrieval.exceptions import ProviderError
from paper_retrieval.models.paper import Paper, RankedPaper
from paper_retrieval.providers.base import PaperProvider, ProviderCapabilities
from paper_retrieval.search.interfaces import ExpandedQuery
from paper_retrieval.utils.concurrency import ConcurrencyConfig, LimiterRegistry
from paper_retrieval.utils.config import clear_config_cache

from tests.fixtures.data import build_paper


# ============================================
# Fake collaborators
# ============================================

# Fast enough that the rate gate never matters in unit tests
FAST_BUDGET = ConcurrencyConfig(max_concurrent=10, requests_per_second=10_000)


class FakeProvider(PaperProvider):
    """In-memory provider returning canned papers per query."""

    def __init__(
        self,
        name: str,
        papers: Optional[List[Paper]] = None,
        error: Optional[Exception] = None,
        by_query: Optional[Dict[str, List[Paper]]] = None,
        capabilities: ProviderCapabilities = ProviderCapabilities(
            search=True, lookup_by_doi=True, enrichment=True
        ),
        doi_index: Optional[Dict[str, Paper]] = None,
        enrichment: Optional[dict] = None,
    ):
        self.name = name
        self.capabilities = capabilities
        self.concurrency_config = FAST_BUDGET
        self.papers = papers or []
        self.error = error
        self.by_query = by_query or {}
        self.doi_index = doi_index or {}
        self.enrichment = enrichment
        self.calls: List[tuple] = []
        self.closed = False

    async def search(self, query: str, limit: int) -> List[Paper]:
        self.calls.append(("search", query, limit))
        if self.error:
            raise self.error
        return list(self.by_query.get(query, self.papers))[:limit]

    async def lookup_by_doi(self, doi: str) -> Optional[Paper]:
        self.calls.append(("lookup_by_doi", doi))
        if self.error:
            raise self.error
        return self.doi_index.get(doi.lower())

    async def enrich(self, paper: Paper) -> Optional[dict]:
        self.calls.append(("enrich", paper.doi))
        if self.error:
            raise self.error
        return self.enrichment

    async def close(self) -> None:
        self.closed = True


class FakeExpansion:
    """QueryExpansion returning fixed variants."""

    def __init__(self, variants: List[str], expanded: str = "expanded query", error=None):
        self.variants = variants
        self.expanded = expanded
        self.error = error

    async def expand_query(self, query: str) -> ExpandedQuery:
        if self.error:
            raise self.error
        return ExpandedQuery(original=query, expanded=self.expanded, variants=self.variants)

    async def generate_query_variants(self, query: str, count: int) -> List[str]:
        if self.error:
            raise self.error
        return self.variants[:count]


class ReverseReranker:
    """Reranker that reverses the input order, scoring by new position."""

    def __init__(self):
        self.calls = 0

    async def rerank_papers(self, query: str, papers: List[Paper]) -> List[RankedPaper]:
        self.calls += 1
        ordered = list(reversed(papers))
        return [RankedPaper(paper=p, score=1.0 - i / len(ordered)) for i, p in enumerate(ordered)]


class CountingStore:
    """PaperStore handing out sequential ids, idempotent by (source, external_id)."""

    def __init__(self):
        self.ids: Dict[tuple, int] = {}

    async def save_paper_if_not_exists(self, paper: Paper) -> int:
        key = (paper.source, paper.external_id)
        if key not in self.ids:
            self.ids[key] = len(self.ids) + 1
        return self.ids[key]


def make_papers(prefix: str, count: int, source: str = "openalex") -> List[Paper]:
    return [
        build_paper(
            external_id=f"{prefix}{i}",
            title=f"{prefix} paper number {i}",
            doi=f"10.1000/{prefix}.{i}",
            source=source,
        )
        for i in range(count)
    ]


def json_response(data, status: int = 200, url: str = "https://api.example.org/test") -> httpx.Response:
    return httpx.Response(status, json=data, request=httpx.Request("GET", url))


def text_response(text: str, status: int = 200, url: str = "https://api.example.org/test") -> httpx.Response:
    return httpx.Response(status, text=text, request=httpx.Request("GET", url))


# ============================================
# Fixtures
# ============================================

@pytest.fixture
def registry():
    return LimiterRegistry()


@pytest.fixture
def transport_error():
    return ProviderError("connection reset", provider="fake")


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch):
    """Keep host environment and cached config out of every test."""
    for name in (
        "OPENALEX_EMAIL",
        "CROSSREF_EMAIL",
        "PRIMARY_PAPER_PROVIDER",
        "SEMANTIC_SCHOLAR_API_KEY",
        "SEMANTICSCHOLAR_API_KEY",
        "PUBMED_API_KEY",
    ):
        monkeypatch.delenv(name, raising=False)
    clear_config_cache()
    yield
    clear_config_cache()


@pytest.fixture
def no_sleep(monkeypatch):
    """Make asyncio.sleep return immediately, recording the requested delays."""
    delays = []
    real_sleep = asyncio.sleep

    async def fake_sleep(delay, *args, **kwargs):
        delays.append(delay)
        await real_sleep(0)

    monkeypatch.setattr(asyncio, "sleep", fake_sleep)
    return delays


# ============================================
# Integration Test Markers
# ============================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test (hits real APIs)"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
