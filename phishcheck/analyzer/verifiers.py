"""Asynchronous network verifiers.

Each verifier settles to exactly one :class:`VerifierOutcome` and never
raises: failures are converted into either a fixed penalty (DNS) or a no-op.
Every external call is bounded by its own timeout.
"""

from __future__ import annotations

import asyncio
import logging
import socket
from typing import Optional, Protocol

import aiohttp

from ..config import DetectorConfig
from ..utils.domains import normalize_url_for_compare
from .external_intel import IntelLookupError, ThreatIntelProvider
from .models import ParsedUrl, SignalContribution, VerifierOutcome

logger = logging.getLogger(__name__)


class Resolver(Protocol):
    """DNS collaborator: raise on lookup failure, else return addresses."""

    async def resolve(self, hostname: str) -> list[str]:  # pragma: no cover - interface
        ...


class SystemResolver:
    """Single-shot lookups through the event loop's ``getaddrinfo``."""

    def __init__(self, timeout: float = 3.0):
        self.timeout = timeout

    async def resolve(self, hostname: str) -> list[str]:
        loop = asyncio.get_running_loop()
        infos = await asyncio.wait_for(
            loop.getaddrinfo(hostname.strip("[]"), None, type=socket.SOCK_STREAM),
            timeout=self.timeout,
        )
        addresses: list[str] = []
        for info in infos:
            address = info[4][0]
            if address not in addresses:
                addresses.append(address)
        return addresses


class Verifier(Protocol):
    """Interface for asynchronous verifiers."""

    name: str

    async def verify(self, parsed: ParsedUrl, config: DetectorConfig) -> VerifierOutcome:  # pragma: no cover - interface
        ...


class DnsVerifier:
    name = "dns"

    def __init__(self, resolver: Optional[Resolver] = None, timeout: float = 3.0):
        self.resolver = resolver or SystemResolver(timeout=timeout)

    def _penalty(self, config: DetectorConfig, reason: str) -> SignalContribution:
        return SignalContribution(
            weight=config.weight("dns_failure"),
            reason=reason,
            feature=1.0,
            source="dns_failure",
        )

    async def verify(self, parsed: ParsedUrl, config: DetectorConfig) -> VerifierOutcome:
        try:
            addresses = await self.resolver.resolve(parsed.hostname)
        except Exception as e:
            logger.debug(f"DNS lookup failed for {parsed.hostname}: {e!r}")
            return VerifierOutcome.absorbed(
                self.name,
                error=repr(e),
                contribution=self._penalty(config, "DNS resolution failed"),
            )

        if not addresses:
            return VerifierOutcome.contributed(self.name, self._penalty(config, "No DNS resolution"))
        return VerifierOutcome.clean(self.name)


class RedirectVerifier:
    """Follows redirects with a HEAD request and flags a changed destination."""

    name = "redirect"

    def __init__(self, timeout: float = 3.0, max_redirects: int = 5):
        self.timeout = timeout
        self.max_redirects = max_redirects

    async def verify(self, parsed: ParsedUrl, config: DetectorConfig) -> VerifierOutcome:
        try:
            async with aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as session:
                async with session.head(
                    parsed.raw,
                    allow_redirects=True,
                    max_redirects=self.max_redirects,
                ) as resp:
                    final_url = str(resp.url)
        except Exception as e:
            logger.debug(f"Redirect check failed for {parsed.raw}: {e!r}")
            return VerifierOutcome.absorbed(self.name, error=repr(e))

        if final_url and normalize_url_for_compare(final_url) != normalize_url_for_compare(parsed.raw):
            logger.debug(f"{parsed.raw} redirects to {final_url}")
            return VerifierOutcome.contributed(
                self.name,
                SignalContribution(
                    weight=config.weight("redirect"),
                    reason="URL redirects",
                    source="redirect",
                ),
            )
        return VerifierOutcome.clean(self.name)


class ThreatIntelVerifier:
    """Wraps a provider adapter; any lookup failure is a silent no-op."""

    def __init__(self, provider: ThreatIntelProvider, credential: str):
        self.provider = provider
        self.credential = credential
        self.name = provider.name

    async def verify(self, parsed: ParsedUrl, config: DetectorConfig) -> VerifierOutcome:
        try:
            verdict = await self.provider.check(parsed.raw, self.credential)
        except IntelLookupError as e:
            logger.debug(f"{self.name} lookup failed for {parsed.raw}: {e}")
            return VerifierOutcome.absorbed(self.name, error=str(e))
        except Exception as e:
            logger.debug(f"{self.name} error for {parsed.raw}: {e!r}")
            return VerifierOutcome.absorbed(self.name, error=repr(e))

        if not verdict.flagged:
            return VerifierOutcome.clean(self.name)
        return VerifierOutcome.contributed(
            self.name,
            SignalContribution(
                weight=config.weight(self.provider.weight_key),
                reason=self.provider.format_reason(verdict),
                source=self.provider.weight_key,
            ),
        )


async def settle(verifier: Verifier, parsed: ParsedUrl, config: DetectorConfig) -> VerifierOutcome:
    """Run one verifier, absorbing anything that escapes its own handling."""
    try:
        return await verifier.verify(parsed, config)
    except Exception as e:
        name = getattr(verifier, "name", type(verifier).__name__)
        logger.warning(f"Verifier {name} raised unexpectedly: {e!r}")
        return VerifierOutcome.absorbed(name, error=repr(e))


def merge_outcomes(outcomes: list[VerifierOutcome]) -> list[SignalContribution]:
    """Reduce settled outcomes to their contributions, preserving launch order."""
    return [outcome.contribution for outcome in outcomes if outcome.contribution is not None]
