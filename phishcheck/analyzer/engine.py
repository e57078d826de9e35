"""Risk-scoring orchestrator.

Normalizes the input, runs the heuristic rules, fans out the network
verifiers, feeds the collected features to the scorer and folds everything
into a clamped 0-100 risk score with ordered reasons.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping, Optional, Sequence, Union

from ..config import Config, Credentials, DetectorConfig
from .external_intel import enabled_providers
from .heuristics import DEFAULT_RULES, EvaluationContext, HeuristicRule, run_heuristics
from .ml import LogisticFallbackScorer, Scorer
from .models import AnalysisInput, AnalysisResult, ParsedUrl, SignalContribution
from .normalizer import normalize
from .verifiers import (
    DnsVerifier,
    RedirectVerifier,
    Resolver,
    ThreatIntelVerifier,
    Verifier,
    merge_outcomes,
    settle,
)

logger = logging.getLogger(__name__)

# The model probability is scaled by this fixed multiplier before it is added
# to the weighted sum, whichever scorer is plugged in.
ML_MULTIPLIER = 50.0
MIN_SCORE = 0.0
MAX_SCORE = 100.0


def collect_features(contributions: Sequence[SignalContribution]) -> list[float]:
    """Feature vector: the feature value of every contribution that has one."""
    return [c.feature for c in contributions if c.feature is not None]


def aggregate(
    contributions: Sequence[SignalContribution],
    probability: float,
    threshold: float,
) -> AnalysisResult:
    """Sum weights plus the scaled probability, clamp, then classify."""
    total = sum(c.weight for c in contributions) + ML_MULTIPLIER * probability
    risk_score = round(min(max(total, MIN_SCORE), MAX_SCORE), 2)
    return AnalysisResult(
        is_phishing=risk_score > threshold,
        risk_score=risk_score,
        reasons=[c.reason for c in contributions],
    )


class PhishingAnalyzer:
    """Combines heuristics, network verifiers and a scorer into one verdict."""

    def __init__(
        self,
        config: Optional[DetectorConfig] = None,
        credentials: Optional[Credentials] = None,
        scorer: Optional[Scorer] = None,
        resolver: Optional[Resolver] = None,
        verifiers: Optional[Sequence[Verifier]] = None,
        extra_verifiers: Sequence[Verifier] = (),
        rules: Sequence[HeuristicRule] = DEFAULT_RULES,
        dns_timeout: float = 3.0,
        http_timeout: float = 3.0,
        max_redirects: int = 5,
    ):
        self.config = config or DetectorConfig()
        self.credentials = credentials or Credentials()
        self.scorer = scorer or LogisticFallbackScorer()
        self.rules = tuple(rules)

        if verifiers is None:
            verifiers = self._default_verifiers(resolver, dns_timeout, http_timeout, max_redirects)
        self.verifiers: tuple[Verifier, ...] = tuple(verifiers) + tuple(extra_verifiers)

    @classmethod
    def from_config(cls, config: Config, scorer: Optional[Scorer] = None) -> "PhishingAnalyzer":
        return cls(
            config=config.detector,
            credentials=config.credentials,
            scorer=scorer,
            dns_timeout=config.dns_timeout,
            http_timeout=config.http_timeout,
            max_redirects=config.max_redirects,
        )

    def _default_verifiers(
        self,
        resolver: Optional[Resolver],
        dns_timeout: float,
        http_timeout: float,
        max_redirects: int,
    ) -> list[Verifier]:
        verifiers: list[Verifier] = [
            DnsVerifier(resolver=resolver, timeout=dns_timeout),
            RedirectVerifier(timeout=http_timeout, max_redirects=max_redirects),
        ]
        for provider, credential in enabled_providers(self.credentials, timeout=http_timeout):
            verifiers.append(ThreatIntelVerifier(provider, credential))
        return verifiers

    async def _run_verifiers(
        self,
        parsed: ParsedUrl,
        config: DetectorConfig,
    ) -> list[SignalContribution]:
        # Join-all: gather keeps launch order, so reasons do not depend on
        # which lookup finishes first.
        outcomes = await asyncio.gather(
            *(settle(verifier, parsed, config) for verifier in self.verifiers)
        )
        for outcome in outcomes:
            logger.debug(f"Verifier {outcome.verifier}: {outcome.status.value}")
        return merge_outcomes(list(outcomes))

    async def analyze(
        self,
        data: Union[AnalysisInput, Mapping[str, Any]],
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> AnalysisResult:
        """Analyze a URL or message and return the verdict."""
        if not isinstance(data, AnalysisInput):
            data = AnalysisInput.from_dict(data)

        # Snapshot for this call only; concurrent calls never share overrides.
        config = self.config.merge(overrides)

        normalized = normalize(data)
        if isinstance(normalized, AnalysisResult):
            return normalized
        parsed = normalized

        context = EvaluationContext(
            parsed=parsed,
            raw_url=parsed.raw,
            config=config,
            message=data.message,
        )
        contributions = run_heuristics(context, self.rules)
        contributions.extend(await self._run_verifiers(parsed, config))

        for contribution in contributions:
            logger.debug(
                f"Signal {contribution.source or 'unknown'}: +{contribution.weight:g} {contribution.reason}"
            )

        features = collect_features(contributions)
        probability = self.scorer.predict(features)

        result = aggregate(contributions, probability, config.phishing_threshold)
        logger.debug(
            f"Analyzed {parsed.raw}: score={result.risk_score} phishing={result.is_phishing} "
            f"({len(contributions)} signals, p={probability:.3f})"
        )
        return result


async def check_phishing(
    data: Union[AnalysisInput, Mapping[str, Any]],
    *,
    config: Optional[DetectorConfig] = None,
    overrides: Optional[Mapping[str, Any]] = None,
    credentials: Optional[Credentials] = None,
    scorer: Optional[Scorer] = None,
) -> AnalysisResult:
    """Convenience wrapper: analyze one input with a throwaway analyzer."""
    analyzer = PhishingAnalyzer(config=config, credentials=credentials, scorer=scorer)
    return await analyzer.analyze(data, overrides=overrides)
