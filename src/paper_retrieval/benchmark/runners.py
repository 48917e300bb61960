"""
Benchmark runners.

- run_retrieval_benchmark: baseline search against labeled queries
- run_search_improvement_benchmark: baseline vs enhanced pipeline per query

Both run queries one at a time, optionally pausing between them to stay
friendly with the upstream APIs.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Sequence

from paper_retrieval.benchmark.ground_truth import BenchmarkQuery
from paper_retrieval.benchmark.metrics import (
    AggregatedMetrics,
    RetrievalMetrics,
    aggregate_metrics,
    calculate_keyword_coverage,
    compute_retrieval_metrics,
)
from paper_retrieval.models.paper import Paper
from paper_retrieval.search.baseline import BaselineSearch
from paper_retrieval.search.pipeline import EnhancedSearchPipeline
from paper_retrieval.utils.observability import elapsed_ms

logger = logging.getLogger(__name__)

# Keyword-coverage change (percentage points) that counts as improved/degraded
IMPROVEMENT_THRESHOLD_PP = 1.0

EMPTY_METRICS = RetrievalMetrics(
    precision=0.0, recall=0.0, f1=0.0, mrr=0.0, hit_rate=0.0, avg_latency_ms=0.0
)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _dois(papers: List[Paper]) -> List[str]:
    return [p.doi for p in papers if p.doi]


async def _pause(delay: float, index: int, total: int) -> None:
    if delay > 0 and index < total - 1:
        await asyncio.sleep(delay)


# -----------------------------------------------------------------------------
# Retrieval benchmark
# -----------------------------------------------------------------------------


@dataclass
class QueryResult:
    query_id: str
    query: str
    metrics: RetrievalMetrics
    keyword_coverage: float
    result_count: int
    latency_ms: int
    top_papers: List[Dict[str, str]] = field(default_factory=list)
    error: str = ""


@dataclass
class RetrievalBenchmarkReport:
    timestamp: str
    provider: str
    total_queries: int
    failed_queries: int
    aggregated_metrics: AggregatedMetrics
    avg_keyword_coverage: float
    avg_result_count: float
    query_results: List[QueryResult]


async def run_retrieval_benchmark(
    baseline: BaselineSearch,
    queries: Sequence[BenchmarkQuery],
    limit: int = 10,
    delay_between_queries: float = 0.0,
) -> RetrievalBenchmarkReport:
    """Score the baseline search on every labeled query.

    A query whose search raises is recorded with zero metrics but left out
    of the aggregated metrics.
    """
    logger.info(
        f"Retrieval benchmark: {len(queries)} queries via {baseline.primary_name}, "
        f"{limit} results each"
    )
    query_results: List[QueryResult] = []
    successful: List[RetrievalMetrics] = []

    for index, q in enumerate(queries):
        start = time.perf_counter()
        try:
            papers = await baseline.search_papers(q.query, limit)
        except Exception as e:
            logger.error(f"[{q.id}] search failed: {e}")
            query_results.append(QueryResult(
                query_id=q.id,
                query=q.query,
                metrics=EMPTY_METRICS,
                keyword_coverage=0.0,
                result_count=0,
                latency_ms=0,
                error=str(e),
            ))
            await _pause(delay_between_queries, index, len(queries))
            continue

        latency = elapsed_ms(start)
        metrics = compute_retrieval_metrics(_dois(papers), q.relevant_dois, latency)
        coverage = calculate_keyword_coverage(
            [p.title for p in papers], [p.abstract or "" for p in papers], q.expected_keywords
        )
        successful.append(metrics)
        query_results.append(QueryResult(
            query_id=q.id,
            query=q.query,
            metrics=metrics,
            keyword_coverage=coverage,
            result_count=len(papers),
            latency_ms=latency,
            top_papers=[{"title": p.title, "doi": p.doi or ""} for p in papers[:3]],
        ))
        logger.info(
            f"[{q.id}] {len(papers)} results in {latency}ms, "
            f"keyword coverage {coverage * 100:.1f}%"
        )
        if len(papers) < q.min_expected_results:
            logger.warning(
                f"[{q.id}] expected at least {q.min_expected_results} results, got {len(papers)}"
            )

        await _pause(delay_between_queries, index, len(queries))

    return RetrievalBenchmarkReport(
        timestamp=_utc_now(),
        provider=baseline.primary_name,
        total_queries=len(queries),
        failed_queries=len(query_results) - len(successful),
        aggregated_metrics=aggregate_metrics(successful),
        avg_keyword_coverage=_mean([r.keyword_coverage for r in query_results]),
        avg_result_count=_mean([r.result_count for r in query_results]),
        query_results=query_results,
    )


# -----------------------------------------------------------------------------
# Search improvement benchmark
# -----------------------------------------------------------------------------


@dataclass
class SideMetrics:
    """Scores for one side (basic or enhanced) of a comparison."""

    result_count: int
    keyword_coverage: float
    precision: float
    recall: float
    mrr: float
    latency_ms: int
    top_titles: List[str] = field(default_factory=list)


@dataclass
class Improvement:
    keyword_coverage: float  # percentage points
    precision: float  # percentage points
    recall: float  # percentage points
    mrr: float  # raw difference
    latency_change: float  # percent, positive means slower
    new_papers_found: int


@dataclass
class SearchComparisonResult:
    query_id: str
    query: str
    basic: SideMetrics
    enhanced: SideMetrics
    improvement: Improvement
    query_variants: List[str] = field(default_factory=list)
    rank_changes: int = 0


@dataclass
class ImprovementSummary:
    avg_keyword_coverage_improvement: float = 0.0
    avg_precision_improvement: float = 0.0
    avg_recall_improvement: float = 0.0
    avg_mrr_improvement: float = 0.0
    avg_latency_change: float = 0.0
    avg_new_papers_found: float = 0.0
    queries_improved: int = 0
    queries_unchanged: int = 0
    queries_degraded: int = 0


@dataclass
class SearchImprovementReport:
    timestamp: str
    total_queries: int
    summary: ImprovementSummary
    basic_metrics: AggregatedMetrics
    enhanced_metrics: AggregatedMetrics
    results: List[SearchComparisonResult]


def _side_metrics(papers: List[Paper], q: BenchmarkQuery, latency_ms: int) -> RetrievalMetrics:
    return compute_retrieval_metrics(_dois(papers), q.relevant_dois, latency_ms)


def _side(papers: List[Paper], q: BenchmarkQuery, metrics: RetrievalMetrics, latency_ms: int) -> SideMetrics:
    titles = [p.title for p in papers]
    return SideMetrics(
        result_count=len(papers),
        keyword_coverage=calculate_keyword_coverage(
            titles, [p.abstract or "" for p in papers], q.expected_keywords
        ),
        precision=metrics.precision,
        recall=metrics.recall,
        mrr=metrics.mrr,
        latency_ms=latency_ms,
        top_titles=titles[:3],
    )


def summarize_improvements(results: Sequence[SearchComparisonResult]) -> ImprovementSummary:
    """Average the per-query deltas and count improved/unchanged/degraded queries."""
    if not results:
        return ImprovementSummary()

    improved = sum(
        1 for r in results if r.improvement.keyword_coverage > IMPROVEMENT_THRESHOLD_PP
    )
    degraded = sum(
        1 for r in results if r.improvement.keyword_coverage < -IMPROVEMENT_THRESHOLD_PP
    )
    return ImprovementSummary(
        avg_keyword_coverage_improvement=_mean([r.improvement.keyword_coverage for r in results]),
        avg_precision_improvement=_mean([r.improvement.precision for r in results]),
        avg_recall_improvement=_mean([r.improvement.recall for r in results]),
        avg_mrr_improvement=_mean([r.improvement.mrr for r in results]),
        avg_latency_change=_mean([r.improvement.latency_change for r in results]),
        avg_new_papers_found=_mean([r.improvement.new_papers_found for r in results]),
        queries_improved=improved,
        queries_unchanged=len(results) - improved - degraded,
        queries_degraded=degraded,
    )


async def run_search_improvement_benchmark(
    pipeline: EnhancedSearchPipeline,
    queries: Sequence[BenchmarkQuery],
    limit: int = 10,
    delay_between_queries: float = 0.0,
) -> SearchImprovementReport:
    """Compare baseline and enhanced search on every labeled query.

    Queries whose comparison raises are logged and skipped.
    """
    logger.info(f"Search improvement benchmark: {len(queries)} queries, {limit} results each")
    results: List[SearchComparisonResult] = []
    basic_all: List[RetrievalMetrics] = []
    enhanced_all: List[RetrievalMetrics] = []

    for index, q in enumerate(queries):
        try:
            report = await pipeline.compare_search(q.query, limit)
        except Exception as e:
            logger.error(f"[{q.id}] comparison failed: {e}")
            await _pause(delay_between_queries, index, len(queries))
            continue

        basic_papers = report.basic.papers
        enhanced_papers = report.enhanced.papers
        basic_latency = report.basic.latency_ms
        enhanced_latency = report.enhanced.metadata.latency_ms

        basic_metrics = _side_metrics(basic_papers, q, basic_latency)
        enhanced_metrics = _side_metrics(enhanced_papers, q, enhanced_latency)
        basic_all.append(basic_metrics)
        enhanced_all.append(enhanced_metrics)

        basic = _side(basic_papers, q, basic_metrics, basic_latency)
        enhanced = _side(enhanced_papers, q, enhanced_metrics, enhanced_latency)

        basic_dois = {d.lower() for d in _dois(basic_papers)}
        new_papers = sum(1 for d in _dois(enhanced_papers) if d.lower() not in basic_dois)

        improvement = Improvement(
            keyword_coverage=(enhanced.keyword_coverage - basic.keyword_coverage) * 100,
            precision=(enhanced.precision - basic.precision) * 100,
            recall=(enhanced.recall - basic.recall) * 100,
            mrr=enhanced.mrr - basic.mrr,
            latency_change=(
                (enhanced_latency - basic_latency) / basic_latency * 100
                if basic_latency > 0 else 0.0
            ),
            new_papers_found=new_papers,
        )
        results.append(SearchComparisonResult(
            query_id=q.id,
            query=q.query,
            basic=basic,
            enhanced=enhanced,
            improvement=improvement,
            query_variants=report.enhanced.metadata.query_variants or [],
            rank_changes=report.comparison.rank_changes,
        ))
        logger.info(
            f"[{q.id}] basic {basic.result_count} papers / {basic_latency}ms, "
            f"enhanced {enhanced.result_count} papers / {enhanced_latency}ms, "
            f"keyword coverage {improvement.keyword_coverage:+.1f}pp, {new_papers} new"
        )

        await _pause(delay_between_queries, index, len(queries))

    return SearchImprovementReport(
        timestamp=_utc_now(),
        total_queries=len(queries),
        summary=summarize_improvements(results),
        basic_metrics=aggregate_metrics(basic_all),
        enhanced_metrics=aggregate_metrics(enhanced_all),
        results=results,
    )
