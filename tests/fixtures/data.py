"""Reusable test data factories for paper retrieval tests.

Factory functions return plain dicts so callers can use them either as:
    Paper(**make_paper())          # dataclass construction
    make_paper(title="Custom")    # dict-based usage or direct assertions

``build_paper`` is the shortcut for the first form. The ``make_*_work`` /
``make_*_paper`` helpers produce raw API payloads in each provider's schema.
"""

from typing import Any

from paper_retrieval.models.paper import Author, Paper


def make_paper(**overrides: Any) -> dict:
    """Create a Paper-compatible dict with sensible defaults.

    Matches the Paper dataclass in models/paper.py:
        external_id, title, authors, abstract, url, doi, year, venue,
        citation_count, source, metadata, id
    """
    defaults = {
        "external_id": "W0000001",
        "title": "Test Paper Title",
        "authors": [Author(name="Author One"), Author(name="Author Two")],
        "abstract": "This is a test abstract about research.",
        "url": "https://example.com/paper",
        "doi": "10.1234/test.2024",
        "year": 2024,
        "venue": "Test Conference",
        "citation_count": 42,
        "source": "openalex",
        "metadata": {},
    }
    defaults.update(overrides)
    return defaults


def build_paper(**overrides: Any) -> Paper:
    return Paper(**make_paper(**overrides))


def make_openalex_work(**overrides: Any) -> dict:
    """Raw OpenAlex /works result."""
    defaults = {
        "id": "https://openalex.org/W2741809807",
        "title": "Attention Is All You Need",
        "display_name": "Attention Is All You Need",
        "doi": "https://doi.org/10.48550/arXiv.1706.03762",
        "publication_year": 2017,
        "cited_by_count": 90000,
        "abstract_inverted_index": {"The": [0], "dominant": [1], "models": [2]},
        "authorships": [
            {"author": {"id": "https://openalex.org/A5001", "display_name": "Ashish Vaswani"}},
            {"author": {"id": "https://openalex.org/A5002", "display_name": "Noam Shazeer"}},
        ],
        "primary_location": {
            "landing_page_url": "https://arxiv.org/abs/1706.03762",
            "source": {"display_name": "Neural Information Processing Systems"},
        },
        "open_access": {"oa_url": "https://arxiv.org/pdf/1706.03762"},
    }
    defaults.update(overrides)
    return defaults


def make_s2_paper(**overrides: Any) -> dict:
    """Raw Semantic Scholar /paper record."""
    defaults = {
        "paperId": "204e3073870fae3d05bcbc2f6a8e263d9b72e776",
        "title": "Attention is All you Need",
        "authors": [{"authorId": "40348417", "name": "Ashish Vaswani"}],
        "abstract": "The dominant sequence transduction models...",
        "url": "https://www.semanticscholar.org/paper/204e3073870fae3d05bcbc2f6a8e263d9b72e776",
        "externalIds": {"DOI": "10.48550/arXiv.1706.03762", "ArXiv": "1706.03762"},
        "year": 2017,
        "venue": "NeurIPS",
        "citationCount": 120000,
        "openAccessPdf": {"url": "https://arxiv.org/pdf/1706.03762"},
    }
    defaults.update(overrides)
    return defaults
