"""String similarity metrics used for lookalike-domain detection.

Every metric is symmetric and returns 1.0 for identical strings, so they can
be swapped without changing how scores are consumed.
"""

from __future__ import annotations

from collections import Counter
from typing import Callable

from rapidfuzz import fuzz

SimilarityFn = Callable[[str, str], float]

DEFAULT_METRIC = "dice"


def _bigrams(value: str) -> Counter:
    compact = value.replace(" ", "")
    return Counter(compact[i : i + 2] for i in range(len(compact) - 1))


def dice_coefficient(a: str, b: str) -> float:
    """Sørensen-Dice coefficient over character bigrams."""
    a = a or ""
    b = b or ""
    if a.replace(" ", "") == b.replace(" ", ""):
        return 1.0
    if len(a) < 2 or len(b) < 2:
        return 0.0

    left = _bigrams(a)
    right = _bigrams(b)
    overlap = sum((left & right).values())
    return (2.0 * overlap) / (sum(left.values()) + sum(right.values()))


def indel_ratio(a: str, b: str) -> float:
    """Normalized Indel similarity (rapidfuzz ``ratio``) scaled to [0, 1]."""
    return fuzz.ratio(a or "", b or "") / 100.0


METRICS: dict[str, SimilarityFn] = {
    "dice": dice_coefficient,
    "ratio": indel_ratio,
}


def get_metric(name: str | None) -> SimilarityFn:
    """Look up a similarity metric by name."""
    key = (name or DEFAULT_METRIC).strip().lower()
    try:
        return METRICS[key]
    except KeyError:
        raise ValueError(
            f"Unknown similarity metric '{name}' (expected one of: {', '.join(sorted(METRICS))})"
        ) from None


def best_match(
    candidate: str,
    references: tuple[str, ...] | list[str],
    threshold: float,
    metric: SimilarityFn = dice_coefficient,
    skip_identical: bool = True,
) -> tuple[str, float] | None:
    """Return the first reference scoring above ``threshold``.

    With ``skip_identical`` a reference equal to ``candidate`` never matches.
    """
    for reference in references:
        if skip_identical and reference == candidate:
            continue
        score = metric(candidate, reference)
        if score > threshold:
            return reference, score
    return None
