"""Search API adapters and the factory that builds them from config."""

import logging
from typing import Dict, Optional, Type

from .base import HttpProvider, PaperProvider, ProviderCapabilities
from .arxiv import ArxivProvider
from .crossref import CrossrefProvider
from .openalex import OpenAlexProvider
from .pubmed import PubMedProvider
from .semantic_scholar import SemanticScholarProvider

logger = logging.getLogger(__name__)

PROVIDER_CLASSES: Dict[str, Type[PaperProvider]] = {
    "openalex": OpenAlexProvider,
    "semantic_scholar": SemanticScholarProvider,
    "crossref": CrossrefProvider,
    "pubmed": PubMedProvider,
    "arxiv": ArxivProvider,
}

# Providers switched on when the config says nothing about them
DEFAULT_ENABLED = ("openalex", "semantic_scholar", "crossref")


def build_providers(config: Optional[dict] = None) -> Dict[str, PaperProvider]:
    """Instantiate every enabled provider, keyed by provider name.

    Meant to run once at startup: providers are process-wide singletons.
    """
    provider_config = (config or {}).get("providers") or {}
    providers: Dict[str, PaperProvider] = {}

    for name, cls in PROVIDER_CLASSES.items():
        section = provider_config.get(name) or {}
        if not section.get("enabled", name in DEFAULT_ENABLED):
            continue
        providers[name] = cls(config=section)

    logger.info(f"Providers enabled: {', '.join(providers) or 'none'}")
    return providers


__all__ = [
    "PaperProvider",
    "HttpProvider",
    "ProviderCapabilities",
    "OpenAlexProvider",
    "SemanticScholarProvider",
    "CrossrefProvider",
    "PubMedProvider",
    "ArxivProvider",
    "PROVIDER_CLASSES",
    "build_providers",
]
