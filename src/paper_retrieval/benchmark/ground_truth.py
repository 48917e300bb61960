"""Labeled benchmark queries.

A ground-truth file is YAML or JSON holding either a bare list of queries or a
mapping with a ``queries`` key::

    queries:
      - id: q1
        query: "transformer attention mechanisms"
        category: ml
        expected_keywords: [attention, transformer]
        relevant_dois: ["10.48550/arXiv.1706.03762"]
        min_expected_results: 5
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Union

import yaml

from paper_retrieval.exceptions import ValidationError

logger = logging.getLogger(__name__)


@dataclass
class BenchmarkQuery:
    """A labeled query with the DOIs and keywords a good result set should contain."""

    id: str
    query: str
    category: str = ""
    expected_keywords: List[str] = field(default_factory=list)
    relevant_dois: List[str] = field(default_factory=list)
    min_expected_results: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> "BenchmarkQuery":
        if not isinstance(data, dict):
            raise ValidationError(f"Benchmark query must be a mapping, got {type(data).__name__}")
        missing = [key for key in ("id", "query") if not data.get(key)]
        if missing:
            raise ValidationError(f"Benchmark query missing {', '.join(missing)}: {data!r}")
        return cls(
            id=str(data["id"]),
            query=str(data["query"]),
            category=data.get("category") or "",
            expected_keywords=list(data.get("expected_keywords") or []),
            relevant_dois=list(data.get("relevant_dois") or []),
            min_expected_results=int(data.get("min_expected_results") or 0),
        )


def parse_ground_truth(data: Union[dict, list, None]) -> List[BenchmarkQuery]:
    """Turn an already-parsed ground-truth document into queries."""
    if isinstance(data, dict):
        data = data.get("queries")
    if data is None:
        return []
    if not isinstance(data, list):
        raise ValidationError("Ground truth must be a list of queries")
    return [BenchmarkQuery.from_dict(item) for item in data]


def load_ground_truth(path: Union[str, Path]) -> List[BenchmarkQuery]:
    """Load benchmark queries from a ``.yaml``/``.yml`` or ``.json`` file."""
    path = Path(path)
    if not path.exists():
        raise ValidationError(f"Ground truth file not found: {path}")

    try:
        with path.open("r", encoding="utf-8") as f:
            if path.suffix.lower() == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ValidationError(f"Invalid ground truth file {path}: {e}") from e

    queries = parse_ground_truth(data)
    logger.info(f"Loaded {len(queries)} benchmark queries from {path}")
    return queries
