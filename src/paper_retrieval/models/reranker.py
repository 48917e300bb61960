"""Cross-encoder reranker adapter for retrieved papers."""

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Dict, Any

from paper_retrieval.models.paper import Paper, RankedPaper
from paper_retrieval.utils.observability import timed

logger = logging.getLogger(__name__)


@dataclass
class RerankResult:
    """Represents a reranked item."""

    index: int
    score: float


class CrossEncoderReranker:
    """Scores (query, title + abstract) pairs with a sentence-transformers cross-encoder.

    Implements the ``Reranker`` interface consumed by the enhanced search
    pipeline. Model weights are loaded on first use.
    """

    def __init__(
        self, model_name: str = "BAAI/bge-reranker-base", device: Optional[str] = None
    ):
        self.model_name = model_name
        self.device = device
        self._model = None

    def _load_model(self) -> None:
        if self._model is None:
            try:
                from sentence_transformers import CrossEncoder
            except ImportError as exc:
                raise ImportError(
                    "sentence-transformers required for reranking. "
                    "Install with: pip install paper-retrieval[rerank]"
                ) from exc

            logger.info(f"Loading cross-encoder {self.model_name}")
            self._model = CrossEncoder(self.model_name, device=self.device)

    @timed(level=logging.INFO)
    def rerank(self, query: str, documents: List[str]) -> List[RerankResult]:
        """Return every document index with its score, best first."""
        if not documents:
            return []

        self._load_model()

        pairs = [[query, doc] for doc in documents]
        scores = self._model.predict(pairs)

        indices = list(range(len(scores)))
        indices.sort(key=lambda i: float(scores[i]), reverse=True)

        return [RerankResult(index=i, score=float(scores[i])) for i in indices]

    async def rerank_papers(self, query: str, papers: List[Paper]) -> List[RankedPaper]:
        """Reorder *papers* by cross-encoder relevance to *query*.

        Inference runs in a worker thread so the event loop keeps serving
        other searches.
        """
        documents = [f"{p.title}\n{p.abstract or ''}" for p in papers]
        results = await asyncio.to_thread(self.rerank, query, documents)
        return [RankedPaper(paper=papers[r.index], score=r.score) for r in results]


def load_reranker_from_config(config: Dict[str, Any]) -> Optional[CrossEncoderReranker]:
    """Load reranker based on config dict."""
    reranker_config = config.get("reranker", {}) or {}

    if not reranker_config.get("enabled", False):
        return None

    model_name = reranker_config.get("model", "BAAI/bge-reranker-base")
    device = reranker_config.get("device")

    return CrossEncoderReranker(model_name=model_name, device=device)
