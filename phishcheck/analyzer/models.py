"""Analyzer data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional

from ..utils.domains import split_host


@dataclass(frozen=True)
class AnalysisInput:
    """A submitted URL or a free-text message that may contain one."""

    url: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AnalysisInput":
        url = data.get("url")
        message = data.get("message")
        return cls(
            url=str(url) if url else None,
            message=str(message) if message else None,
        )

    @property
    def is_empty(self) -> bool:
        return not self.url and not self.message


@dataclass(frozen=True)
class ParsedUrl:
    """Components of a syntactically valid candidate URL."""

    raw: str
    scheme: str
    hostname: str
    path: str = ""
    query: str = ""

    @property
    def subdomain(self) -> str:
        return split_host(self.hostname)[0]

    @property
    def registered_domain(self) -> str:
        return split_host(self.hostname)[1]

    @property
    def tld(self) -> str:
        return split_host(self.hostname)[2]


@dataclass(frozen=True)
class SignalContribution:
    """Weighted score delta emitted by one evaluator or verifier."""

    weight: float
    reason: str
    feature: Optional[float] = None
    source: str = ""


class OutcomeStatus(str, Enum):
    CONTRIBUTED = "contributed"
    CLEAN = "clean"
    ABSORBED = "absorbed"


@dataclass(frozen=True)
class VerifierOutcome:
    """Settled result of one asynchronous verifier.

    ``ABSORBED`` outcomes record an internal failure; they may still carry a
    contribution (the DNS penalty) but never propagate the error.
    """

    verifier: str
    status: OutcomeStatus
    contribution: Optional[SignalContribution] = None
    error: Optional[str] = None

    @classmethod
    def contributed(cls, verifier: str, contribution: SignalContribution) -> "VerifierOutcome":
        return cls(verifier, OutcomeStatus.CONTRIBUTED, contribution)

    @classmethod
    def clean(cls, verifier: str) -> "VerifierOutcome":
        return cls(verifier, OutcomeStatus.CLEAN)

    @classmethod
    def absorbed(
        cls,
        verifier: str,
        error: str,
        contribution: Optional[SignalContribution] = None,
    ) -> "VerifierOutcome":
        return cls(verifier, OutcomeStatus.ABSORBED, contribution, error)


@dataclass
class AnalysisResult:
    """Final verdict for one analysis."""

    is_phishing: bool
    risk_score: float
    reasons: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "isPhishing": self.is_phishing,
            "riskScore": self.risk_score,
            "reasons": list(self.reasons),
        }
