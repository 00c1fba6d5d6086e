"""Feature engineering — fixed-length statistics over a window of samples.

This module turns a window of :class:`Sample` objects into the 6-element
feature vector the linear classifier was trained on::

    [mean_hr, std_hr, min_hr, max_hr, sdnn, rmssd]

The HRV features are simplified proxies computed from an already
aggregated HRV value stream, not from raw inter-beat intervals:

- ``sdnn`` is the plain arithmetic mean of the HRV values.
- ``rmssd`` is the root mean square of successive differences of those
  HRV values.

The classifier weights were calibrated against exactly these
definitions, so they must not be "corrected" to the textbook ones.
"""

from __future__ import annotations

import math
import statistics
from typing import Callable, Sequence

from swip.affect.models import Sample

FEATURE_ORDER: tuple[str, ...] = (
    "mean_hr",
    "std_hr",
    "min_hr",
    "max_hr",
    "sdnn",
    "rmssd",
)
FEATURE_COUNT = len(FEATURE_ORDER)


def _guarded(stat: Callable[[Sequence[float]], float], values: Sequence[float]) -> float:
    """Apply *stat*, mapping arithmetic overflow to NaN."""
    try:
        return stat(values)
    except (OverflowError, ValueError):
        # fsum overflows on huge finite sums and rejects inf + -inf
        return math.nan


def _rmssd(values: Sequence[float]) -> float:
    """Root mean square of successive differences (N-1 terms)."""
    if len(values) < 2:
        return 0.0
    diffs = [b - a for a, b in zip(values, values[1:])]
    mean_square = _guarded(statistics.fmean, [d * d for d in diffs])
    return math.sqrt(mean_square) if mean_square >= 0.0 else math.nan


def extract_features(window: Sequence[Sample]) -> list[float]:
    """Compute the feature vector for *window*.

    An empty window yields an all-zero vector.  The result always has
    :data:`FEATURE_COUNT` elements and computing it never raises: a
    statistic that overflows comes back as NaN, which the classifier
    treats as an inactive feature.
    """
    if not window:
        return [0.0] * FEATURE_COUNT

    hrs = [s.hr for s in window]
    hrvs = [s.hrv for s in window]

    std_hr = _guarded(statistics.pstdev, hrs) if all(map(math.isfinite, hrs)) else math.nan

    return [
        _guarded(statistics.fmean, hrs),
        std_hr,  # population std (divide by N)
        min(hrs),
        max(hrs),
        _guarded(statistics.fmean, hrvs),
        _rmssd(hrvs),
    ]


class FeatureExtractor:
    """Stateless extractor; a thin object wrapper around :func:`extract_features`."""

    feature_order = FEATURE_ORDER

    def extract(self, window: Sequence[Sample]) -> list[float]:
        return extract_features(window)
