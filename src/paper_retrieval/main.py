"""
Paper Retrieval - command line entry point

Run with: paper-retrieval search "graph neural networks"
      or: python -m paper_retrieval.main bench retrieval
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from paper_retrieval.benchmark import (
    load_ground_truth,
    run_retrieval_benchmark,
    run_search_improvement_benchmark,
    save_json_report,
    timestamped_filename,
)
from paper_retrieval.exceptions import PaperRetrievalError
from paper_retrieval.providers import build_providers
from paper_retrieval.search import SearchOptions, create_search_pipeline
from paper_retrieval.utils.config import find_project_root, get_section, load_config
from paper_retrieval.utils.observability import configure_logging

DEFAULT_GROUND_TRUTH = "configs/ground_truth.yaml"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="paper-retrieval", description="Multi-provider academic paper search"
    )
    parser.add_argument("--config", type=str, default=None, help="Path to config file")
    parser.add_argument("--log-level", type=str, default="WARNING", help="Logging level")

    sub = parser.add_subparsers(dest="command", required=True)

    search = sub.add_parser("search", help="Run the enhanced search pipeline")
    search.add_argument("query", type=str)
    search.add_argument("--limit", type=int, default=None)
    search.add_argument("--no-expansion", action="store_true", help="Search the query as given")
    search.add_argument("--no-rerank", action="store_true", help="Skip reranking")
    search.add_argument(
        "--single-provider", action="store_true", help="Only query the primary provider"
    )

    compare = sub.add_parser("compare", help="Compare basic and enhanced search")
    compare.add_argument("query", type=str)
    compare.add_argument("--limit", type=int, default=10)

    bench = sub.add_parser("bench", help="Run a benchmark against labeled queries")
    bench.add_argument("kind", choices=["retrieval", "improvement"])
    bench.add_argument("--ground-truth", type=str, default=None, help="YAML or JSON query file")
    bench.add_argument("--limit", type=int, default=None)
    bench.add_argument("--output", type=str, default=None, help="Directory for the JSON report")

    sub.add_parser("check", help="Show configured providers and their rate budgets")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    config = load_config(args.config)

    if args.command == "check":
        run_checks(config)
        return 0

    try:
        if args.command == "search":
            asyncio.run(run_search(config, args))
        elif args.command == "compare":
            asyncio.run(run_compare(config, args))
        elif args.command == "bench":
            asyncio.run(run_bench(config, args))
    except PaperRetrievalError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


def _print_json(data: dict) -> None:
    print(json.dumps(data, indent=2, default=str))


async def run_search(config: dict, args: argparse.Namespace) -> None:
    overrides = {}
    if args.limit is not None:
        overrides["limit"] = args.limit
    if args.no_expansion:
        overrides["use_expansion"] = False
    if args.no_rerank:
        overrides["use_reranking"] = False
    if args.single_provider:
        overrides["multi_provider"] = False
    options = SearchOptions.from_config(config, **overrides)

    pipeline = create_search_pipeline(config)
    try:
        result = await pipeline.search(args.query, options)
    finally:
        await pipeline.close()
    _print_json(result.to_dict())


async def run_compare(config: dict, args: argparse.Namespace) -> None:
    pipeline = create_search_pipeline(config)
    try:
        report = await pipeline.compare_search(args.query, args.limit)
    finally:
        await pipeline.close()
    _print_json(report.to_dict())


async def run_bench(config: dict, args: argparse.Namespace) -> None:
    bench_config = get_section(config, "benchmark", default={})
    ground_truth = args.ground_truth or bench_config.get("ground_truth") or DEFAULT_GROUND_TRUTH
    path = Path(ground_truth)
    if not path.is_absolute() and not path.exists():
        path = find_project_root() / ground_truth
    queries = load_ground_truth(path)

    limit = args.limit or bench_config.get("results_per_query", 10)
    delay = float(bench_config.get("delay_between_queries", 0.5))
    output_dir = args.output or bench_config.get("output_dir")

    pipeline = create_search_pipeline(config)
    try:
        if args.kind == "retrieval":
            report = await run_retrieval_benchmark(
                pipeline.baseline, queries, limit=limit, delay_between_queries=delay
            )
            aggregated = report.aggregated_metrics
            print(f"Queries: {report.total_queries} ({report.failed_queries} failed)")
            print(f"Provider: {report.provider}")
            print(f"Avg results/query: {report.avg_result_count:.1f}")
            print(f"Avg latency: {aggregated.avg_latency_ms:.0f}ms (±{aggregated.std_dev.latency:.0f}ms)")
            print(f"Keyword coverage: {report.avg_keyword_coverage * 100:.1f}%")
            print(f"Hit rate: {aggregated.hit_rate * 100:.1f}%  MRR: {aggregated.mrr:.3f}")
            print(
                f"Precision: {aggregated.precision * 100:.1f}%  "
                f"Recall: {aggregated.recall * 100:.1f}%  F1: {aggregated.f1 * 100:.1f}%"
            )
            base_name = "retrieval-benchmark"
        else:
            report = await run_search_improvement_benchmark(
                pipeline, queries, limit=limit, delay_between_queries=delay
            )
            summary = report.summary
            compared = len(report.results)
            print(f"Queries compared: {compared}/{report.total_queries}")
            print(f"Keyword coverage change: {summary.avg_keyword_coverage_improvement:+.1f}pp")
            print(f"Precision change: {summary.avg_precision_improvement:+.1f}pp")
            print(f"Recall change: {summary.avg_recall_improvement:+.1f}pp")
            print(f"MRR change: {summary.avg_mrr_improvement:+.3f}")
            print(f"Latency change: {summary.avg_latency_change:+.1f}%")
            print(f"New papers/query: {summary.avg_new_papers_found:.1f}")
            print(
                f"Improved: {summary.queries_improved}  Unchanged: {summary.queries_unchanged}  "
                f"Degraded: {summary.queries_degraded}"
            )
            base_name = "search-improvement"
    finally:
        await pipeline.close()

    path = save_json_report(timestamped_filename(base_name), report, output_dir)
    print(f"\nReport saved to: {path}")


def run_checks(config: dict) -> None:
    """Print enabled providers, their capabilities and request budgets."""
    print("=" * 50)
    print("Paper Retrieval - Setup Check")
    print("=" * 50)

    providers = build_providers(config)
    if not providers:
        print("\n⚠️  No providers enabled")
    for name, provider in providers.items():
        caps = provider.capabilities
        budget = provider.concurrency_config
        print(f"\n{name}")
        print(
            f"   search={caps.search} lookup_by_doi={caps.lookup_by_doi} "
            f"enrichment={caps.enrichment}"
        )
        print(
            f"   max_concurrent={budget.max_concurrent} "
            f"requests_per_second={budget.requests_per_second}"
        )

    primary = get_section(config, "search", "primary_provider", default="openalex")
    print(f"\nPrimary provider: {primary}")

    reranker = get_section(config, "reranker", default={})
    if reranker.get("enabled"):
        print(f"Reranker: {reranker.get('model', 'BAAI/bge-reranker-base')}")
    else:
        print("Reranker: disabled")
    print("=" * 50)


if __name__ == "__main__":
    sys.exit(main())
