"""
Exception hierarchy for paper retrieval.

    PaperRetrievalError (base)
    ├── ProviderError      transport / HTTP failure talking to a search API
    ├── ValidationError    bad caller input or configuration
    └── PipelineError      internal invariant violation
        └── ProvidersUnavailableError   no provider answered a fanned-out search

A DOI that no provider knows is not an error: lookups return None.
"""

from typing import Optional

RETRYABLE_STATUS = (429,)


class PaperRetrievalError(Exception):
    """Base exception for all paper retrieval errors."""


class ProviderError(PaperRetrievalError):
    """A provider call failed at the network or HTTP level."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        provider: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.provider = provider

    @property
    def retryable(self) -> bool:
        """True for rate limiting (429) and server-side (5xx) failures."""
        if self.status is None:
            return False
        return self.status in RETRYABLE_STATUS or self.status >= 500

    def __str__(self) -> str:
        prefix = f"[{self.provider}] " if self.provider else ""
        suffix = f" (HTTP {self.status})" if self.status is not None else ""
        return f"{prefix}{self.message}{suffix}"


class ValidationError(PaperRetrievalError, ValueError):
    """Caller supplied an invalid argument."""


class PipelineError(PaperRetrievalError):
    """An internal invariant of the search pipeline was violated."""


class ProvidersUnavailableError(PipelineError):
    """No provider answered any of the searches a pipeline call fanned out."""
