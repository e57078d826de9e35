import logging
import math

import joblib
import pytest

from phishcheck.analyzer.ml import (
    JoblibModelScorer,
    LogisticFallbackScorer,
    ModelLoadError,
    build_scorer,
    summarize_features,
)


class _ConstantModel:
    """Stand-in for a fitted classifier."""

    def __init__(self, probability: float):
        self.probability = probability
        self.seen = []

    def predict_proba(self, rows):
        self.seen.extend(rows)
        return [[1.0 - self.probability, self.probability] for _ in rows]


class _BrokenModel:
    def predict_proba(self, rows):
        raise RuntimeError("feature mismatch")


class _NoProbaModel:
    def predict(self, rows):
        return [1 for _ in rows]


class TestLogisticFallback:
    def test_empty_vector_is_even_odds(self):
        assert LogisticFallbackScorer().predict([]) == 0.5

    def test_sigmoid_of_mean(self):
        p = LogisticFallbackScorer().predict([1.0, 1.0, 1.0])
        assert p == pytest.approx(1 / (1 + math.exp(-1)))

    def test_mean_is_used(self):
        scorer = LogisticFallbackScorer()
        assert scorer.predict([0.0, 2.0]) == scorer.predict([1.0])

    def test_large_values_do_not_overflow(self):
        scorer = LogisticFallbackScorer()
        assert scorer.predict([1e6]) == pytest.approx(1.0)
        assert scorer.predict([-1e6]) == pytest.approx(0.0)

    def test_deterministic(self):
        scorer = LogisticFallbackScorer()
        assert scorer.predict([0.3, 0.9]) == scorer.predict([0.3, 0.9])


def test_summarize_features():
    assert summarize_features([]) == [0.0, 0.0, 0.0, 0.0]
    assert summarize_features([1, 3]) == [2.0, 4.0, 2.0, 3.0]


class TestJoblibModelScorer:
    def test_uses_predict_proba_on_summary(self):
        model = _ConstantModel(0.9)
        scorer = JoblibModelScorer(model)
        assert scorer.predict([1.0, 0.5]) == pytest.approx(0.9)
        assert model.seen == [[2.0, 1.5, 0.75, 1.0]]

    def test_probability_is_clamped(self):
        assert JoblibModelScorer(_ConstantModel(1.7)).predict([1.0]) == 1.0
        assert JoblibModelScorer(_ConstantModel(-0.2)).predict([1.0]) == 0.0

    def test_prediction_error_falls_back(self, caplog):
        scorer = JoblibModelScorer(_BrokenModel())
        with caplog.at_level(logging.WARNING):
            p = scorer.predict([1.0])
        assert p == LogisticFallbackScorer().predict([1.0])
        assert "feature mismatch" in caplog.text

    def test_rejects_model_without_predict_proba(self):
        with pytest.raises(ModelLoadError):
            JoblibModelScorer(_NoProbaModel())

    def test_load_from_disk(self, tmp_path):
        path = tmp_path / "model.joblib"
        joblib.dump(_ConstantModel(0.25), path)
        scorer = JoblibModelScorer.load(path)
        assert scorer.predict([]) == pytest.approx(0.25)

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(ModelLoadError, match="not found"):
            JoblibModelScorer.load(tmp_path / "missing.joblib")

    def test_load_corrupt_file(self, tmp_path):
        path = tmp_path / "model.joblib"
        path.write_bytes(b"not a pickle")
        with pytest.raises(ModelLoadError):
            JoblibModelScorer.load(path)


def test_build_scorer_selects_variant(tmp_path):
    assert isinstance(build_scorer(None), LogisticFallbackScorer)
    assert isinstance(build_scorer(""), LogisticFallbackScorer)

    path = tmp_path / "model.joblib"
    joblib.dump(_ConstantModel(0.6), path)
    assert isinstance(build_scorer(str(path)), JoblibModelScorer)
