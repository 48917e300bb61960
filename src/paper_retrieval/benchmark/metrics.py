"""Retrieval-quality metrics.

Pure functions over an ordered list of retrieved identifiers (DOIs) and the
set of identifiers judged relevant. Comparisons are case-insensitive.

Degenerate inputs return fixed sentinels instead of raising: an empty
relevant set counts as a perfect recall / MRR / hit rate, an empty retrieved
list as zero precision. Aggregation depends on these values.
"""

import math
from dataclasses import dataclass, field
from typing import Iterable, List, Sequence, Set


@dataclass(frozen=True)
class RetrievalMetrics:
    precision: float
    recall: float
    f1: float
    mrr: float
    hit_rate: float
    avg_latency_ms: float


@dataclass(frozen=True)
class MetricStdDev:
    precision: float = 0.0
    recall: float = 0.0
    latency: float = 0.0


@dataclass(frozen=True)
class AggregatedMetrics:
    """Means over a batch of per-query metrics, plus population std-devs."""

    precision: float = 0.0
    recall: float = 0.0
    f1: float = 0.0
    mrr: float = 0.0
    hit_rate: float = 0.0
    avg_latency_ms: float = 0.0
    count: int = 0
    std_dev: MetricStdDev = field(default_factory=MetricStdDev)


def _lower_set(ids: Iterable[str]) -> Set[str]:
    return {i.lower() for i in ids if i}


def calculate_precision(retrieved: Sequence[str], relevant: Iterable[str]) -> float:
    """Share of retrieved entries that are relevant; 0 when nothing was retrieved."""
    if not retrieved:
        return 0.0
    relevant_set = _lower_set(relevant)
    hits = sum(1 for doc in retrieved if doc and doc.lower() in relevant_set)
    return hits / len(retrieved)


def calculate_recall(retrieved: Sequence[str], relevant: Iterable[str]) -> float:
    """Share of relevant ids that were retrieved; 1 when nothing is relevant."""
    relevant_set = _lower_set(relevant)
    if not relevant_set:
        return 1.0
    return len(_lower_set(retrieved) & relevant_set) / len(relevant_set)


def calculate_f1(precision: float, recall: float) -> float:
    if precision + recall == 0:
        return 0.0
    return 2 * precision * recall / (precision + recall)


def calculate_mrr(retrieved: Sequence[str], relevant: Iterable[str]) -> float:
    """1/rank of the first relevant result; 0 if none found, 1 if nothing is relevant."""
    relevant_set = _lower_set(relevant)
    if not relevant_set:
        return 1.0
    for rank, doc in enumerate(retrieved, 1):
        if doc and doc.lower() in relevant_set:
            return 1.0 / rank
    return 0.0


def calculate_hit_rate(retrieved: Sequence[str], relevant: Iterable[str]) -> float:
    relevant_set = _lower_set(relevant)
    if not relevant_set:
        return 1.0
    return 1.0 if any(doc and doc.lower() in relevant_set for doc in retrieved) else 0.0


def calculate_keyword_coverage(
    titles: Sequence[str], abstracts: Sequence[str], keywords: Sequence[str]
) -> float:
    """Fraction of keywords appearing (as substrings) anywhere in titles + abstracts."""
    if not keywords:
        return 1.0
    text = " ".join([*titles, *abstracts]).lower()
    found = [kw for kw in keywords if kw.lower() in text]
    return len(found) / len(keywords)


def compute_retrieval_metrics(
    retrieved: Sequence[str], relevant: Iterable[str], latency_ms: float = 0.0
) -> RetrievalMetrics:
    """All per-query metrics for one retrieved list."""
    relevant = list(relevant)
    precision = calculate_precision(retrieved, relevant)
    recall = calculate_recall(retrieved, relevant)
    return RetrievalMetrics(
        precision=precision,
        recall=recall,
        f1=calculate_f1(precision, recall),
        mrr=calculate_mrr(retrieved, relevant),
        hit_rate=calculate_hit_rate(retrieved, relevant),
        avg_latency_ms=latency_ms,
    )


def _mean(values: List[float]) -> float:
    return sum(values) / len(values)


def _population_std(values: List[float], mean: float) -> float:
    return math.sqrt(sum((v - mean) ** 2 for v in values) / len(values))


def aggregate_metrics(results: Sequence[RetrievalMetrics]) -> AggregatedMetrics:
    """Average a batch of per-query metrics.

    F1 is recomputed from the averaged precision and recall rather than
    averaged per query.
    """
    if not results:
        return AggregatedMetrics()

    precisions = [r.precision for r in results]
    recalls = [r.recall for r in results]
    latencies = [r.avg_latency_ms for r in results]

    avg_precision = _mean(precisions)
    avg_recall = _mean(recalls)
    avg_latency = _mean(latencies)

    return AggregatedMetrics(
        precision=avg_precision,
        recall=avg_recall,
        f1=calculate_f1(avg_precision, avg_recall),
        mrr=_mean([r.mrr for r in results]),
        hit_rate=_mean([r.hit_rate for r in results]),
        avg_latency_ms=avg_latency,
        count=len(results),
        std_dev=MetricStdDev(
            precision=_population_std(precisions, avg_precision),
            recall=_population_std(recalls, avg_recall),
            latency=_population_std(latencies, avg_latency),
        ),
    )
