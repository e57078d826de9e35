"""URL and domain normalization utilities."""

from __future__ import annotations

import re
from urllib.parse import urlparse

import tldextract

# Offline extractor: use the public suffix snapshot bundled with tldextract so
# that parsing never touches the network.
_EXTRACT = tldextract.TLDExtract(suffix_list_urls=())

_URL_TOKEN_RE = re.compile(r"https?://[^\s]+", re.IGNORECASE)
_TRAILING_PUNCTUATION = ".,;:!?)]}'\">"


def extract_first_url(text: str) -> str | None:
    """Return the first http(s) URL token in free text, or None."""
    match = _URL_TOKEN_RE.search(text or "")
    if not match:
        return None
    url = match.group(0).rstrip(_TRAILING_PUNCTUATION)
    return url or None


def split_host(hostname: str) -> tuple[str, str, str]:
    """Split a hostname into (subdomain, registered domain, tld label).

    Hosts without a public suffix (IP literals, ``localhost``) use the
    whole host as the registered domain.
    """
    host = (hostname or "").strip().strip(".").lower()
    if not host:
        return "", "", ""

    tld = host.rsplit(".", 1)[-1]
    extracted = _EXTRACT(host)
    if extracted.domain and extracted.suffix:
        return extracted.subdomain, f"{extracted.domain}.{extracted.suffix}", tld
    return "", host, tld


def normalize_url_for_compare(url: str) -> str:
    """Normalize a URL so that cosmetic differences do not count as a redirect."""
    if not url:
        return ""
    try:
        parsed = urlparse(url)
    except ValueError:
        return url
    scheme = (parsed.scheme or "").lower()
    netloc = (parsed.netloc or "").lower()
    path = parsed.path or "/"
    if path != "/" and path.endswith("/"):
        path = path.rstrip("/")
    query = f"?{parsed.query}" if parsed.query else ""
    return f"{scheme}://{netloc}{path}{query}"
