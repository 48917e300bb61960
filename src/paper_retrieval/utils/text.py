"""Text normalization helpers shared by the provider adapters and deduplication."""

import html
import logging
import re
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")
_PUNCT_RE = re.compile(r"[^\w\s]")
_YEAR_RE = re.compile(r"^(\d{4})")

DOI_PREFIXES = ("https://doi.org/", "http://doi.org/", "https://dx.doi.org/", "doi:")


def reconstruct_abstract(inverted_index: Optional[Dict[str, List[int]]]) -> str:
    """Reconstruct abstract from OpenAlex inverted index format.

    OpenAlex stores abstracts as ``{word: [positions]}`` for compression.
    (word, position) pairs are ordered by position and joined with spaces.
    Returns an empty string when the index is missing or malformed.
    """
    if not inverted_index:
        return ""

    try:
        word_positions = []
        for word, positions in inverted_index.items():
            for pos in positions or []:
                word_positions.append((int(pos), word))
    except (AttributeError, TypeError, ValueError):
        logger.debug("Failed to reconstruct abstract from inverted index")
        return ""

    word_positions.sort(key=lambda wp: wp[0])
    return " ".join(word for _, word in word_positions)


def clean_whitespace(text: Optional[str]) -> str:
    """Collapse runs of whitespace (including newlines) into single spaces."""
    if not text:
        return ""
    return _WS_RE.sub(" ", text).strip()


def strip_markup(text: Optional[str]) -> str:
    """Remove HTML/JATS tags and entities, e.g. from Crossref abstracts."""
    if not text:
        return ""
    return clean_whitespace(html.unescape(_TAG_RE.sub(" ", text)))


def normalize_title(title: Optional[str]) -> str:
    """Lower-case, strip punctuation, collapse whitespace, trim."""
    if not title:
        return ""
    return clean_whitespace(_PUNCT_RE.sub("", title.lower()))


def strip_doi_prefix(doi: Optional[str]) -> Optional[str]:
    """Return the bare DOI (``10.x/y``) or None for empty input."""
    if not doi:
        return None
    doi = doi.strip()
    lowered = doi.lower()
    for prefix in DOI_PREFIXES:
        if lowered.startswith(prefix):
            doi = doi[len(prefix):]
            break
    return doi or None


def year_from_date_parts(date_obj: Optional[dict]) -> Optional[int]:
    """Extract the year from a ``{"date-parts": [[2021, 5, 3]]}`` structure."""
    if not isinstance(date_obj, dict):
        return None
    parts = date_obj.get("date-parts") or []
    try:
        year = parts[0][0]
    except (IndexError, TypeError):
        return None
    try:
        return int(year) if year is not None else None
    except (TypeError, ValueError):
        return None


def leading_year(text: Optional[str]) -> Optional[int]:
    """Year from strings like ``2023 Jan-Feb`` or ``2017-06-12T17:57:55Z``."""
    if not text:
        return None
    match = _YEAR_RE.match(text.strip())
    return int(match.group(1)) if match else None
