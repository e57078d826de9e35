"""Analyzer modules for PhishCheck."""

from .engine import PhishingAnalyzer, aggregate, check_phishing, collect_features
from .external_intel import IntelLookupError, IntelVerdict
from .ml import JoblibModelScorer, LogisticFallbackScorer, ModelLoadError, build_scorer
from .models import AnalysisInput, AnalysisResult, ParsedUrl, SignalContribution, VerifierOutcome

__all__ = [
    "PhishingAnalyzer",
    "aggregate",
    "check_phishing",
    "collect_features",
    "IntelLookupError",
    "IntelVerdict",
    "JoblibModelScorer",
    "LogisticFallbackScorer",
    "ModelLoadError",
    "build_scorer",
    "AnalysisInput",
    "AnalysisResult",
    "ParsedUrl",
    "SignalContribution",
    "VerifierOutcome",
]
