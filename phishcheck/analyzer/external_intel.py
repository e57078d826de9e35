"""
External threat intelligence adapters.

Queries third-party URL reputation services:
- Google Safe Browsing: threat matches for the exact URL (API key)
- VirusTotal: URL analysis stats from 70+ vendors (API key)
- PhishTank: community-verified phishing database (app key)

Each adapter is only enabled when its credential is configured. Adapters
raise IntelLookupError on any failure; the verifier wrapping them absorbs it
so a provider outage never affects the rest of an analysis.
"""

from __future__ import annotations

import asyncio
import base64
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import aiohttp
import httpx

from ..config import Credentials

logger = logging.getLogger(__name__)

USER_AGENT = "PhishCheck/1.0"


class IntelLookupError(Exception):
    """A threat-intelligence lookup could not be completed."""


@dataclass(frozen=True)
class IntelVerdict:
    """Minimal provider answer: whether the URL is flagged, and why."""

    flagged: bool
    detail: str = ""


class ThreatIntelProvider(Protocol):
    """Interface for threat-intelligence adapters."""

    name: str
    weight_key: str

    def format_reason(self, verdict: IntelVerdict) -> str:  # pragma: no cover - interface
        ...

    async def check(self, url: str, credential: str) -> IntelVerdict:  # pragma: no cover - interface
        ...


class GoogleSafeBrowsingProvider:
    """Google Safe Browsing v4 Lookup API (threatMatches:find)."""

    name = "google_safe_browsing"
    weight_key = "google_safe_browsing"

    API_URL = "https://safebrowsing.googleapis.com/v4/threatMatches:find"
    THREAT_TYPES = [
        "MALWARE",
        "SOCIAL_ENGINEERING",
        "UNWANTED_SOFTWARE",
        "POTENTIALLY_HARMFUL_APPLICATION",
    ]

    def __init__(self, timeout: float = 3.0, client_id: str = "phishcheck"):
        self.timeout = timeout
        self.client_id = client_id

    def format_reason(self, verdict: IntelVerdict) -> str:
        return f"Flagged by Google Safe Browsing: {verdict.detail}"

    async def check(self, url: str, credential: str) -> IntelVerdict:
        payload = {
            "client": {"clientId": self.client_id, "clientVersion": "1.0"},
            "threatInfo": {
                "threatTypes": self.THREAT_TYPES,
                "platformTypes": ["ANY_PLATFORM"],
                "threatEntryTypes": ["URL"],
                "threatEntries": [{"url": url}],
            },
        }

        try:
            async with aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as session:
                async with session.post(
                    f"{self.API_URL}?key={credential}", json=payload
                ) as resp:
                    if resp.status != 200:
                        raise IntelLookupError(f"Safe Browsing returned HTTP {resp.status}")
                    data = await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise IntelLookupError(f"Safe Browsing request failed: {e}") from e

        matches = (data or {}).get("matches") or []
        if not matches:
            return IntelVerdict(flagged=False)
        threat = matches[0].get("threatType") or "UNKNOWN"
        return IntelVerdict(flagged=True, detail=str(threat))


class VirusTotalProvider:
    """VirusTotal v3 URL report lookup."""

    name = "virustotal"
    weight_key = "virustotal"

    API_URL = "https://www.virustotal.com/api/v3/urls"

    def __init__(self, timeout: float = 3.0):
        self.timeout = timeout

    @staticmethod
    def url_id(url: str) -> str:
        """VirusTotal URL identifier: unpadded URL-safe base64 of the URL."""
        return base64.urlsafe_b64encode(url.encode()).decode().rstrip("=")

    def format_reason(self, verdict: IntelVerdict) -> str:
        return f"VirusTotal: {verdict.detail}"

    async def check(self, url: str, credential: str) -> IntelVerdict:
        headers = {"x-apikey": credential}

        try:
            async with aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as session:
                async with session.get(f"{self.API_URL}/{self.url_id(url)}", headers=headers) as resp:
                    if resp.status == 404:
                        # Never analyzed by VirusTotal
                        return IntelVerdict(flagged=False)
                    if resp.status == 429:
                        logger.warning("VirusTotal rate limit exceeded")
                    if resp.status != 200:
                        raise IntelLookupError(f"VirusTotal returned HTTP {resp.status}")
                    data = await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise IntelLookupError(f"VirusTotal request failed: {e}") from e

        attrs = ((data or {}).get("data") or {}).get("attributes") or {}
        stats = attrs.get("last_analysis_stats") or {}
        malicious = int(stats.get("malicious", 0) or 0)
        suspicious = int(stats.get("suspicious", 0) or 0)

        logger.debug(f"VirusTotal: {url} = {malicious} malicious, {suspicious} suspicious")
        if malicious + suspicious <= 0:
            return IntelVerdict(flagged=False)
        return IntelVerdict(flagged=True, detail=f"{malicious} malicious, {suspicious} suspicious")


class PhishTankProvider:
    """PhishTank checkurl API (form-encoded POST)."""

    name = "phishtank"
    weight_key = "phishtank"

    CHECK_URL = "https://checkurl.phishtank.com/checkurl/"

    def __init__(self, timeout: float = 3.0):
        self.timeout = timeout

    def format_reason(self, verdict: IntelVerdict) -> str:
        return "Confirmed phishing by PhishTank"

    async def check(self, url: str, credential: str) -> IntelVerdict:
        data = {
            "url": url,
            "format": "json",
            "app_key": credential,
        }

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                resp = await client.post(
                    self.CHECK_URL,
                    data=data,
                    headers={"User-Agent": USER_AGENT},
                )
            except httpx.HTTPError as e:
                raise IntelLookupError(f"PhishTank request failed: {e}") from e

        if resp.status_code != 200:
            raise IntelLookupError(f"PhishTank returned HTTP {resp.status_code}")
        try:
            results = (resp.json() or {}).get("results") or {}
        except ValueError as e:
            raise IntelLookupError(f"PhishTank returned invalid JSON: {e}") from e

        confirmed = bool(
            results.get("in_database") and results.get("verified") and results.get("valid")
        )
        if confirmed:
            return IntelVerdict(flagged=True, detail=str(results.get("phish_id") or ""))
        return IntelVerdict(flagged=False)


def enabled_providers(
    credentials: Credentials,
    timeout: float = 3.0,
) -> list[tuple[ThreatIntelProvider, str]]:
    """Providers whose credential is configured, paired with that credential."""
    candidates: list[tuple[ThreatIntelProvider, Optional[str]]] = [
        (GoogleSafeBrowsingProvider(timeout=timeout), credentials.safe_browsing_api_key),
        (VirusTotalProvider(timeout=timeout), credentials.virustotal_api_key),
        (PhishTankProvider(timeout=timeout), credentials.phishtank_api_key),
    ]
    return [(provider, key) for provider, key in candidates if key]
