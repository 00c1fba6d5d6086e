"""Wellness-impact score — fuse HRV and emotion probabilities into 0-100.

Score composition
-----------------
=================  ===============================================  =======
Component          Formula                                          Weight
=================  ===============================================  =======
HRV                clamp((hrv - 20) / 80 * 100, 0, 100)             0.5
Coherence          clamp((1.0 A + 0.9 C - 0.2 S) * 100, 0, 100)     0.3
Recovery           not computed                                     (0.2)
=================  ===============================================  =======

A, C and S are the Amused, Calm and Stressed probabilities.  The final
score is ``clamp(w_hrv * hrv + w_coh * coherence, 0, 100)``, so with the
default weights the ceiling is 80.

``motion`` is accepted by :meth:`ScoreEngine.compute_score` but does not
enter the formula.
"""

from __future__ import annotations

import math
from datetime import UTC, datetime
from typing import Mapping

import structlog

from swip.affect.models import EmotionLabel, ScoreResult
from swip.config import ScoreConfig

logger = structlog.get_logger(__name__)


def _clamp(value: float, lo: float, hi: float) -> float:
    if not math.isfinite(value):
        # NaN carries no information; infinities saturate
        if math.isnan(value):
            return lo
        return hi if value > 0 else lo
    return min(max(value, lo), hi)


def _coerce_probabilities(
    probabilities: Mapping[EmotionLabel | str, float],
) -> dict[EmotionLabel, float]:
    """Key *probabilities* by :class:`EmotionLabel`, dropping unknown names."""
    coerced: dict[EmotionLabel, float] = {}
    for key, value in probabilities.items():
        try:
            label = EmotionLabel(key)
        except ValueError:
            logger.warning("score_engine.unknown_emotion", emotion=str(key))
            continue
        coerced[label] = float(value)
    return coerced


def dominant_emotion(probabilities: Mapping[EmotionLabel, float]) -> tuple[EmotionLabel, float]:
    """Return the arg-max label and its probability (``Unknown``/0.0 if empty)."""
    if not probabilities:
        return EmotionLabel.UNKNOWN, 0.0
    label = max(probabilities, key=lambda k: probabilities[k])
    return label, probabilities[label]


class ScoreEngine:
    """Compute wellness-impact scores.

    Parameters
    ----------
    config : ScoreConfig | None
        Weights and plausibility bands.  Defaults to :class:`ScoreConfig`.
    """

    def __init__(self, config: ScoreConfig | None = None) -> None:
        self._config = config or ScoreConfig()

    @property
    def config(self) -> ScoreConfig:
        return self._config

    def normalize_hrv(self, hrv: float) -> float:
        """Map HRV linearly from ``[hrv_min, hrv_max]`` onto 0-100."""
        cfg = self._config
        span = cfg.hrv_max - cfg.hrv_min
        if span <= 0:
            return 0.0
        return _clamp((hrv - cfg.hrv_min) / span * 100.0, 0.0, 100.0)

    def coherence(self, probabilities: Mapping[EmotionLabel, float]) -> float:
        """Positive emotions raise coherence, stress lowers it."""
        cfg = self._config
        positive = (
            probabilities.get(EmotionLabel.AMUSED, 0.0) * cfg.coherence_amused
            + probabilities.get(EmotionLabel.CALM, 0.0) * cfg.coherence_calm
        )
        negative = probabilities.get(EmotionLabel.STRESSED, 0.0) * cfg.coherence_stressed
        return _clamp((positive - negative) * 100.0, 0.0, 100.0)

    def data_quality(self, hr: float) -> float:
        """1.0 for a plausible heart rate, 0.5 otherwise."""
        return 1.0 if self._config.hr_min <= hr <= self._config.hr_max else 0.5

    def compute_score(
        self,
        hr: float,
        hrv: float,
        motion: float,
        emotion_probabilities: Mapping[EmotionLabel | str, float],
    ) -> ScoreResult:
        """Fuse HRV and emotion probabilities into a :class:`ScoreResult`.

        Parameters
        ----------
        hr : float
            Heart rate (BPM); only used for the data-quality flag.
        hrv : float
            Heart-rate variability (SDNN, ms).
        motion : float
            Motion magnitude.  Accepted for interface stability; unused.
        emotion_probabilities : Mapping
            Emotion → probability, keyed by :class:`EmotionLabel` or its
            string value.
        """
        probabilities = _coerce_probabilities(emotion_probabilities)
        dominant, confidence = dominant_emotion(probabilities)

        hrv_score = self.normalize_hrv(hrv)
        coherence_score = self.coherence(probabilities)
        score = _clamp(
            self._config.weight_hrv * hrv_score + self._config.weight_coherence * coherence_score,
            0.0,
            100.0,
        )

        return ScoreResult(
            score=score,
            dominant_emotion=dominant,
            emotion_probabilities=probabilities,
            hr=hr,
            hrv=hrv,
            timestamp=datetime.now(UTC),
            confidence=confidence,
            data_quality=self.data_quality(hr),
        )
