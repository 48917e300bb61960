"""Shared test fixtures and factory functions for paper retrieval tests."""

from tests.fixtures.data import (
    build_paper,
    make_openalex_work,
    make_paper,
    make_s2_paper,
)

__all__ = [
    "build_paper",
    "make_openalex_work",
    "make_paper",
    "make_s2_paper",
]
