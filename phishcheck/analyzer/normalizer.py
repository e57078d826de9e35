"""Input normalization: derive and parse the candidate URL."""

from __future__ import annotations

import re
from typing import Union
from urllib.parse import urlsplit

from ..utils.domains import extract_first_url
from .models import AnalysisInput, AnalysisResult, ParsedUrl

NO_URL_REASON = "No URL found"
INVALID_URL_REASON = "Invalid URL format"

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*$")


def no_url_result() -> AnalysisResult:
    return AnalysisResult(is_phishing=False, risk_score=0, reasons=[NO_URL_REASON])


def invalid_url_result() -> AnalysisResult:
    return AnalysisResult(is_phishing=True, risk_score=100, reasons=[INVALID_URL_REASON])


def candidate_url(data: AnalysisInput) -> str | None:
    """Pick the URL to analyze: ``url`` verbatim, else the first link in ``message``."""
    if data.url:
        return data.url
    if data.message:
        return extract_first_url(data.message)
    return None


def parse_url(raw: str) -> ParsedUrl | None:
    """Parse ``raw`` into a :class:`ParsedUrl`; None when it is not a usable URL."""
    candidate = (raw or "").strip()
    if not candidate or any(ch.isspace() for ch in candidate):
        return None

    try:
        parts = urlsplit(candidate)
        # Accessing the port validates it (raises ValueError when malformed).
        parts.port
    except ValueError:
        return None

    if not parts.scheme or not _SCHEME_RE.match(parts.scheme):
        return None
    hostname = (parts.hostname or "").strip(".")
    if not hostname:
        return None

    return ParsedUrl(
        raw=raw,
        scheme=parts.scheme.lower(),
        hostname=hostname.lower(),
        path=parts.path or "",
        query=f"?{parts.query}" if parts.query else "",
    )


def normalize(data: AnalysisInput) -> Union[ParsedUrl, AnalysisResult]:
    """Return the parsed URL, or the terminal result that short-circuits analysis."""
    raw = candidate_url(data)
    if not raw:
        return no_url_result()

    parsed = parse_url(raw)
    if parsed is None:
        return invalid_url_result()
    return parsed
