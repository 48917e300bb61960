"""Retrieval-quality metrics and benchmark runners."""

from .ground_truth import BenchmarkQuery, load_ground_truth, parse_ground_truth
from .metrics import (
    AggregatedMetrics,
    MetricStdDev,
    RetrievalMetrics,
    aggregate_metrics,
    calculate_f1,
    calculate_hit_rate,
    calculate_keyword_coverage,
    calculate_mrr,
    calculate_precision,
    calculate_recall,
    compute_retrieval_metrics,
)
from .report import save_json_report, timestamped_filename
from .runners import (
    RetrievalBenchmarkReport,
    SearchImprovementReport,
    run_retrieval_benchmark,
    run_search_improvement_benchmark,
)

__all__ = [
    "BenchmarkQuery",
    "load_ground_truth",
    "parse_ground_truth",
    "AggregatedMetrics",
    "MetricStdDev",
    "RetrievalMetrics",
    "aggregate_metrics",
    "calculate_f1",
    "calculate_hit_rate",
    "calculate_keyword_coverage",
    "calculate_mrr",
    "calculate_precision",
    "calculate_recall",
    "compute_retrieval_metrics",
    "save_json_report",
    "timestamped_filename",
    "RetrievalBenchmarkReport",
    "SearchImprovementReport",
    "run_retrieval_benchmark",
    "run_search_improvement_benchmark",
]
