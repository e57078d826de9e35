"""Synchronous URL heuristics.

Each rule is a pure function of the evaluation context and returns zero or
more :class:`SignalContribution` objects. ``DEFAULT_RULES`` fixes the order in
which rules run, which is also the order their reasons are reported in.
"""

from __future__ import annotations

import ipaddress
import logging
import re
import unicodedata
from dataclasses import dataclass
from typing import Optional, Protocol

import idna

from ..config import DetectorConfig
from ..utils.similarity import DEFAULT_METRIC, SimilarityFn, best_match, get_metric
from .models import ParsedUrl, SignalContribution

logger = logging.getLogger(__name__)

_PERCENT_ENCODED_RE = re.compile(r"%[0-9A-Fa-f]{2}")
_HEX_ESCAPE_RE = re.compile(r"\\x[0-9A-Fa-f]{2}")


@dataclass(frozen=True)
class EvaluationContext:
    """Shared, read-only input passed to each heuristic rule."""

    parsed: ParsedUrl
    raw_url: str
    config: DetectorConfig
    message: Optional[str] = None


class HeuristicRule(Protocol):
    """Interface for heuristic rules."""

    name: str

    def evaluate(self, context: EvaluationContext) -> list[SignalContribution]:  # pragma: no cover - interface
        ...


def _contribution(
    context: EvaluationContext,
    key: str,
    reason: str,
    feature: Optional[float] = 1.0,
) -> SignalContribution:
    return SignalContribution(
        weight=context.config.weight(key),
        reason=reason,
        feature=feature,
        source=key,
    )


def _similarity(config: DetectorConfig) -> SimilarityFn:
    try:
        return get_metric(config.similarity_metric)
    except ValueError as exc:
        logger.warning("%s; using %s", exc, DEFAULT_METRIC)
        return get_metric(DEFAULT_METRIC)


def is_ip_address(hostname: str) -> bool:
    """True for IPv4/IPv6 literals (brackets tolerated)."""
    host = (hostname or "").strip("[]")
    try:
        ipaddress.ip_address(host)
    except ValueError:
        return False
    return True


def has_encoded_chars(url: str) -> bool:
    return bool(_PERCENT_ENCODED_RE.search(url) or _HEX_ESCAPE_RE.search(url))


class IpAddressRule:
    name = "ip_address"

    def evaluate(self, context: EvaluationContext) -> list[SignalContribution]:
        if is_ip_address(context.parsed.hostname):
            return [_contribution(context, "ip_address", "URL uses IP address (potential obfuscation)")]
        return []


class ShortenerRule:
    name = "shortener"

    def evaluate(self, context: EvaluationContext) -> list[SignalContribution]:
        if context.parsed.registered_domain in context.config.url_shorteners:
            return [_contribution(context, "shortener", "URL shortener detected (often hides phishing)")]
        return []


class TyposquattingRule:
    name = "typosquatting"

    def evaluate(self, context: EvaluationContext) -> list[SignalContribution]:
        cfg = context.config
        domain = context.parsed.registered_domain
        if not domain or is_ip_address(context.parsed.hostname):
            return []

        match = best_match(
            domain,
            cfg.legit_domains,
            cfg.typosquat_threshold,
            metric=_similarity(cfg),
        )
        if not match:
            return []

        legit, score = match
        return [
            _contribution(
                context,
                "typosquatting",
                f"Domain similar to {legit} (score {score:.2f})",
                feature=score,
            )
        ]


class IdnHomographRule:
    """Flags internationalized hostnames, and lookalikes of legitimate brands."""

    name = "idn_homograph"

    # Characters from other scripts that render like Latin letters
    HOMOGLYPHS = {
        "а": "a",  # Cyrillic а
        "е": "e",  # Cyrillic е
        "о": "o",  # Cyrillic о
        "р": "p",  # Cyrillic р
        "с": "c",  # Cyrillic с
        "у": "y",  # Cyrillic у
        "х": "x",  # Cyrillic х
        "ѕ": "s",  # Cyrillic ѕ
        "і": "i",  # Cyrillic і
        "ј": "j",  # Cyrillic ј
        "ԁ": "d",  # Cyrillic ԁ
        "ɡ": "g",  # Latin script g
        "ո": "n",  # Armenian ո
        "ս": "u",  # Armenian ս
        "ο": "o",  # Greek omicron
        "α": "a",  # Greek alpha
    }

    @staticmethod
    def unicode_form(hostname: str) -> str:
        """Decode punycode labels (``xn--``) to Unicode when possible."""
        if "xn--" not in hostname:
            return hostname
        try:
            return idna.decode(hostname)
        except (idna.IDNAError, UnicodeError):
            labels = []
            for label in hostname.split("."):
                try:
                    labels.append(idna.decode(label) if label.startswith("xn--") else label)
                except (idna.IDNAError, UnicodeError):
                    labels.append(label)
            return ".".join(labels)

    @staticmethod
    def ascii_form(hostname: str) -> str:
        """ASCII-compatible encoding of ``hostname``."""
        if hostname.isascii():
            return hostname
        try:
            return idna.encode(hostname, uts46=True).decode("ascii")
        except (idna.IDNAError, UnicodeError):
            # Not IDNA-encodable (mixed scripts etc.); fall back to raw punycode.
            return hostname.encode("punycode").decode("ascii")

    def normalize_homoglyphs(self, text: str) -> str:
        result = []
        for char in text:
            if char in self.HOMOGLYPHS:
                result.append(self.HOMOGLYPHS[char])
            else:
                result.append(unicodedata.normalize("NFKC", char))
        return "".join(result)

    def evaluate(self, context: EvaluationContext) -> list[SignalContribution]:
        hostname = context.parsed.hostname
        display = self.unicode_form(hostname)
        if self.ascii_form(display) == display:
            return []

        contributions = [
            _contribution(context, "idn_homograph", "Internationalized Domain Name (IDN) detected")
        ]

        cfg = context.config
        lookalike = self.normalize_homoglyphs(display).lower()
        match = best_match(
            lookalike,
            cfg.legit_domains,
            cfg.homograph_threshold,
            metric=_similarity(cfg),
            skip_identical=False,
        )
        if match:
            legit, score = match
            contributions.append(
                _contribution(
                    context,
                    "idn_similarity",
                    f"Punycode similarity to {legit} ({score:.2f})",
                    feature=None,
                )
            )
        return contributions


class SuspiciousTldRule:
    name = "suspicious_tld"

    def evaluate(self, context: EvaluationContext) -> list[SignalContribution]:
        parsed = context.parsed
        cfg = context.config
        if is_ip_address(parsed.hostname):
            return []

        depth = len(parsed.subdomain.split(".")) if parsed.subdomain else 0
        if parsed.tld in cfg.suspicious_tlds or depth > cfg.max_subdomain_depth:
            return [_contribution(context, "suspicious_tld", "Suspicious TLD or deep subdomain")]
        return []


class KeywordRule:
    name = "keyword"

    def evaluate(self, context: EvaluationContext) -> list[SignalContribution]:
        haystack = (context.parsed.path + context.parsed.query).lower()
        return [
            _contribution(context, "keyword", f"Phishing keyword '{keyword}' in URL")
            for keyword in context.config.phishing_keywords
            if keyword in haystack
        ]


class LongUrlRule:
    name = "long_url"

    def evaluate(self, context: EvaluationContext) -> list[SignalContribution]:
        length = len(context.raw_url)
        if length > context.config.long_url_length:
            return [_contribution(context, "long_url", "Excessively long URL", feature=length / 100)]
        return []


class NonHttpsRule:
    name = "non_https"

    def evaluate(self, context: EvaluationContext) -> list[SignalContribution]:
        if context.parsed.scheme != "https":
            return [_contribution(context, "non_https", "Non-secure HTTP")]
        return []


class AtSymbolRule:
    name = "at_symbol"

    def evaluate(self, context: EvaluationContext) -> list[SignalContribution]:
        if "@" in context.raw_url:
            return [_contribution(context, "at_symbol", "URL contains @")]
        return []


class EncodedCharsRule:
    name = "encoded_chars"

    def evaluate(self, context: EvaluationContext) -> list[SignalContribution]:
        if has_encoded_chars(context.raw_url):
            return [_contribution(context, "encoded_chars", "Encoded characters in URL")]
        return []


class CustomPatternRule:
    """Caller-supplied regular expressions, matched against the URL or message."""

    name = "custom_pattern"

    def evaluate(self, context: EvaluationContext) -> list[SignalContribution]:
        contributions: list[SignalContribution] = []
        for pattern in context.config.custom_patterns:
            try:
                compiled = re.compile(pattern, re.IGNORECASE)
            except re.error as exc:
                logger.warning("Invalid custom regex %r: %s", pattern, exc)
                continue

            if compiled.search(context.raw_url) or (
                context.message and compiled.search(context.message)
            ):
                contributions.append(
                    _contribution(context, "custom_pattern", f"Custom pattern '{pattern}' matched")
                )
        return contributions


class UrgencyRule:
    """Pressure phrases in the surrounding message (message input only)."""

    name = "urgency"

    def evaluate(self, context: EvaluationContext) -> list[SignalContribution]:
        if not context.message:
            return []
        text = context.message.lower()
        return [
            _contribution(context, "urgency", f"Urgency keyword '{phrase}' in message", feature=None)
            for phrase in context.config.urgency_phrases
            if phrase in text
        ]


DEFAULT_RULES: tuple[HeuristicRule, ...] = (
    IpAddressRule(),
    ShortenerRule(),
    TyposquattingRule(),
    IdnHomographRule(),
    SuspiciousTldRule(),
    KeywordRule(),
    LongUrlRule(),
    NonHttpsRule(),
    AtSymbolRule(),
    EncodedCharsRule(),
    CustomPatternRule(),
    UrgencyRule(),
)


def run_heuristics(
    context: EvaluationContext,
    rules: tuple[HeuristicRule, ...] = DEFAULT_RULES,
) -> list[SignalContribution]:
    """Run every rule in order and collect their contributions."""
    contributions: list[SignalContribution] = []
    for rule in rules:
        contributions.extend(rule.evaluate(context))
    return contributions
