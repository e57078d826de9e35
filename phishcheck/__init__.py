"""PhishCheck: explainable phishing risk scoring for URLs and messages."""

from .analyzer import AnalysisInput, AnalysisResult, PhishingAnalyzer, check_phishing
from .config import Config, Credentials, DetectorConfig, load_config

__version__ = "1.0.0"

__all__ = [
    "AnalysisInput",
    "AnalysisResult",
    "PhishingAnalyzer",
    "check_phishing",
    "Config",
    "Credentials",
    "DetectorConfig",
    "load_config",
]
