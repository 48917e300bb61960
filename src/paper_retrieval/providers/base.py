"""
Provider abstraction.

A provider adapts one external academic search API to the canonical Paper
record. It declares what it can do (ProviderCapabilities) and how hard it may
be called (ConcurrencyConfig); callers branch on those declarations and never
probe for methods at runtime.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from paper_retrieval.exceptions import ProviderError
from paper_retrieval.models.paper import Paper
from paper_retrieval.utils.concurrency import ConcurrencyConfig

logger = logging.getLogger(__name__)

USER_AGENT = "PaperRetrieval/1.0 (Academic Research Tool)"


@dataclass(frozen=True)
class ProviderCapabilities:
    """Operations a provider supports, declared up front."""

    search: bool = True
    lookup_by_doi: bool = False
    enrichment: bool = False


class PaperProvider(ABC):
    """Interface every search API adapter implements."""

    name: str = ""
    capabilities: ProviderCapabilities = ProviderCapabilities()
    concurrency_config: ConcurrencyConfig

    @abstractmethod
    async def search(self, query: str, limit: int) -> List[Paper]:
        """Search the API; raises ProviderError on any transport failure."""

    async def lookup_by_doi(self, doi: str) -> Optional[Paper]:
        """Return the paper for *doi*, or None when the API does not know it.

        Adapters declaring ``capabilities.lookup_by_doi`` override this; the
        default is only reached when that capability is False.
        """
        raise NotImplementedError(f"{self.name} does not support DOI lookup")

    async def enrich(self, paper: Paper) -> Optional[Dict[str, Any]]:
        """Return field values that would fill gaps in *paper*, or None.

        Only reached without an override when ``capabilities.enrichment`` is False.
        """
        raise NotImplementedError(f"{self.name} does not support enrichment")

    def sanitize_query(self, query: str) -> str:
        """Adapt a query string to the API's accepted syntax."""
        return query

    async def close(self) -> None:
        """Release network resources."""

    def __repr__(self) -> str:
        cfg = self.concurrency_config
        return (
            f"<{type(self).__name__} {self.name} "
            f"max_concurrent={cfg.max_concurrent} rps={cfg.requests_per_second}>"
        )


class HttpProvider(PaperProvider):
    """Base for providers speaking HTTP through a shared httpx.AsyncClient.

    Every request carries the provider's fixed network timeout; timeouts,
    connection failures and non-2xx responses all surface as ProviderError.
    """

    BASE_URL = ""
    TIMEOUT = 15.0

    def __init__(self, config: Optional[dict] = None):
        self.config = config or {}
        self.timeout = float(self.config.get("timeout", self.TIMEOUT))
        self._client: Optional[httpx.AsyncClient] = None

    def _default_headers(self) -> Dict[str, str]:
        return {"User-Agent": USER_AGENT}

    def _default_params(self) -> Dict[str, Any]:
        return {}

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers=self._default_headers(),
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        client = await self._get_client()
        merged = {**self._default_params(), **(params or {})}
        try:
            response = await client.get(f"{self.BASE_URL}{path}", params=merged)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ProviderError(
                f"GET {path} failed",
                status=e.response.status_code,
                provider=self.name,
            ) from e
        except httpx.HTTPError as e:
            raise ProviderError(f"GET {path} failed: {e!r}", provider=self.name) from e
        return response

    async def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        response = await self._get(path, params)
        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(
                f"GET {path} returned invalid JSON", status=response.status_code, provider=self.name
            ) from e
