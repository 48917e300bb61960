"""Tests for paper deduplication."""

from paper_retrieval.search.dedup import dedup_key, deduplicate_papers, richness_score
from tests.fixtures.data import build_paper


def _sparse(**overrides):
    base = dict(abstract="", doi=None, citation_count=None, venue=None)
    base.update(overrides)
    return build_paper(**base)


class TestDedupKey:
    def test_doi_is_case_insensitive(self):
        a = build_paper(doi="10.1000/ABC")
        b = build_paper(doi="10.1000/abc", title="Completely different title")
        assert dedup_key(a) == dedup_key(b) == "10.1000/abc"

    def test_falls_back_to_normalized_title(self):
        paper = _sparse(title="  Deep Learning: A Review!  ")
        assert dedup_key(paper) == "deep learning a review"


class TestRichness:
    def test_counts_non_empty_fields(self):
        assert richness_score(_sparse()) == 0
        assert richness_score(_sparse(abstract="x", venue="Nature")) == 2
        assert richness_score(build_paper()) == 4


class TestDeduplicatePapers:
    def test_merges_same_doi_and_reports_counts(self):
        papers = [
            build_paper(external_id="a", doi="10.1/x"),
            build_paper(external_id="b", doi="10.1/X"),
            build_paper(external_id="c", doi="10.1/y"),
        ]
        result = deduplicate_papers(papers)

        assert [p.external_id for p in result.papers] == ["a", "c"]
        assert result.before == 3
        assert result.removed == 1

    def test_richer_duplicate_replaces_but_keeps_position(self):
        first = _sparse(external_id="poor", doi="10.1/x")
        other = build_paper(external_id="other", doi="10.1/y")
        richer = build_paper(external_id="rich", doi="10.1/x")

        result = deduplicate_papers([first, other, richer])

        assert [p.external_id for p in result.papers] == ["rich", "other"]

    def test_equal_richness_keeps_existing(self):
        first = build_paper(external_id="first", doi="10.1/x")
        second = build_paper(external_id="second", doi="10.1/x")

        result = deduplicate_papers([first, second])

        assert [p.external_id for p in result.papers] == ["first"]

    def test_title_key_merges_papers_without_doi(self):
        papers = [
            _sparse(external_id="a", title="Graph Neural Networks."),
            _sparse(external_id="b", title="graph   neural networks", abstract="An abstract"),
        ]
        result = deduplicate_papers(papers)

        assert len(result.papers) == 1
        assert result.papers[0].external_id == "b"

    def test_idempotent(self):
        papers = [
            build_paper(external_id="a", doi="10.1/x"),
            _sparse(external_id="b", doi="10.1/x"),
            _sparse(external_id="c", title="Untitled work"),
            _sparse(external_id="d", title="untitled WORK"),
            build_paper(external_id="e", doi="10.1/z"),
        ]
        once = deduplicate_papers(papers)
        twice = deduplicate_papers(once.papers)

        assert twice.papers == once.papers
        assert twice.removed == 0

    def test_never_drops_a_distinct_key(self):
        papers = [build_paper(doi=f"10.1/{i % 4}") for i in range(10)]
        result = deduplicate_papers(papers)

        assert {dedup_key(p) for p in result.papers} == {dedup_key(p) for p in papers}
        assert len(result.papers) <= len(papers)

    def test_input_is_not_modified(self):
        papers = [build_paper(doi="10.1/x"), build_paper(doi="10.1/x")]
        snapshot = list(papers)
        deduplicate_papers(papers)
        assert papers == snapshot

    def test_empty(self):
        result = deduplicate_papers([])
        assert result.papers == []
        assert result.before == 0
        assert result.removed == 0
