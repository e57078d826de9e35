"""HTTP API for PhishCheck."""

from .app import AnalysisServer, create_app

__all__ = ["AnalysisServer", "create_app"]
