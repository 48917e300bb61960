"""Utility modules for paper retrieval."""

from paper_retrieval.utils.concurrency import (
    ConcurrencyConfig,
    ConcurrencyLimiter,
    LimiterRegistry,
)
from paper_retrieval.utils.config import load_config, clear_config_cache, get_section
from paper_retrieval.utils.retry import retry_with_backoff, is_retryable_status
from paper_retrieval.utils.observability import (
    new_request_id,
    get_request_id,
    timed,
    configure_logging,
)

__all__ = [
    "ConcurrencyConfig",
    "ConcurrencyLimiter",
    "LimiterRegistry",
    "load_config",
    "clear_config_cache",
    "get_section",
    "retry_with_backoff",
    "is_retryable_status",
    "new_request_id",
    "get_request_id",
    "timed",
    "configure_logging",
]
