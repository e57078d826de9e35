"""Probability scorers for the collected feature vector.

Two variants share the ``predict(features) -> probability`` contract:

- ``LogisticFallbackScorer``: sigmoid of the mean feature value
- ``JoblibModelScorer``: a scikit-learn style estimator loaded with joblib

``build_scorer`` picks one from explicit configuration at startup.
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Any, Optional, Protocol, Sequence

import joblib

logger = logging.getLogger(__name__)


class ModelLoadError(Exception):
    """A configured model could not be loaded."""


class Scorer(Protocol):
    """Maps a feature vector to a probability in [0, 1]."""

    def predict(self, features: Sequence[float]) -> float:  # pragma: no cover - interface
        ...


def _sigmoid(value: float) -> float:
    # Split on sign to avoid overflow in exp() for large magnitudes.
    if value >= 0:
        return 1.0 / (1.0 + math.exp(-value))
    exp = math.exp(value)
    return exp / (1.0 + exp)


def _clamp_probability(value: float) -> float:
    if math.isnan(value):
        return 0.5
    return min(max(value, 0.0), 1.0)


class LogisticFallbackScorer:
    """Deterministic scorer: ``1 / (1 + e^-mean(features))``; empty → 0.5."""

    def predict(self, features: Sequence[float]) -> float:
        values = [float(f) for f in features]
        mean = sum(values) / len(values) if values else 0.0
        return _sigmoid(mean)


def summarize_features(features: Sequence[float]) -> list[float]:
    """Fixed-width summary ``[count, sum, mean, max]`` of a variable-length vector."""
    values = [float(f) for f in features]
    if not values:
        return [0.0, 0.0, 0.0, 0.0]
    total = sum(values)
    return [float(len(values)), total, total / len(values), max(values)]


class JoblibModelScorer:
    """Wraps an estimator exposing ``predict_proba`` (class 1 = phishing)."""

    def __init__(self, model: Any, fallback: Optional[Scorer] = None):
        if not hasattr(model, "predict_proba"):
            raise ModelLoadError(f"Model {type(model).__name__} has no predict_proba()")
        self.model = model
        self.fallback = fallback or LogisticFallbackScorer()

    @classmethod
    def load(cls, model_path: str | Path) -> "JoblibModelScorer":
        path = Path(model_path)
        if not path.exists():
            raise ModelLoadError(f"Model file not found: {path}")
        try:
            model = joblib.load(path)
        except Exception as exc:
            raise ModelLoadError(f"Unable to load model {path}: {exc}") from exc
        logger.info("Loaded phishing model from %s", path)
        return cls(model)

    def predict(self, features: Sequence[float]) -> float:
        try:
            proba = self.model.predict_proba([summarize_features(features)])
            value = float(proba[0][1])
        except Exception as exc:
            logger.warning("Model prediction failed, using fallback: %s", exc)
            return self.fallback.predict(features)
        return _clamp_probability(value)


def build_scorer(model_path: Optional[str] = None) -> Scorer:
    """Select the scorer once: a loaded model when configured, else the fallback."""
    if model_path:
        return JoblibModelScorer.load(model_path)
    logger.debug("No model configured; using logistic fallback scorer")
    return LogisticFallbackScorer()
