"""Pydantic models for the emotion-inference and scoring subsystem.

These models represent:
- Raw physiological samples pushed by a producer
- Discrete emotion predictions with softmax-calibrated probabilities
- Wellness-impact score results and their interpretation bands
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


# ── Enums ─────────────────────────────────────────────────────


class EmotionLabel(str, Enum):
    """Emotion classes recognised by the engine.

    The reference classifier emits ``Amused``, ``Calm`` and ``Stressed``.
    ``Focused`` and ``Neutral`` are accepted from alternative artifacts;
    ``Unknown`` is only produced when no probabilities are available.
    """

    AMUSED = "Amused"
    CALM = "Calm"
    FOCUSED = "Focused"
    NEUTRAL = "Neutral"
    STRESSED = "Stressed"
    UNKNOWN = "Unknown"

    @property
    def utility(self) -> float:
        """Wellness utility of the emotion in [0, 1]."""
        return _EMOTION_UTILITY[self]


_EMOTION_UTILITY = {
    EmotionLabel.AMUSED: 0.95,
    EmotionLabel.CALM: 0.85,
    EmotionLabel.FOCUSED: 0.80,
    EmotionLabel.NEUTRAL: 0.70,
    EmotionLabel.STRESSED: 0.15,
    EmotionLabel.UNKNOWN: 0.0,
}


class ScoreRange(str, Enum):
    """Interpretation band for a 0-100 wellness-impact score."""

    POSITIVE = "positive"
    NEUTRAL = "neutral"
    MILD_STRESS = "mild_stress"
    NEGATIVE = "negative"

    @property
    def bounds(self) -> tuple[int, int]:
        return _SCORE_RANGE_BOUNDS[self]

    @property
    def description(self) -> str:
        return _SCORE_RANGE_DESCRIPTIONS[self]

    def contains(self, score: float) -> bool:
        """Whether *score*, truncated to an integer, falls in this band."""
        lo, hi = self.bounds
        return lo <= int(score) <= hi

    @classmethod
    def for_score(cls, score: float) -> ScoreRange:
        for band in (cls.POSITIVE, cls.NEUTRAL, cls.MILD_STRESS):
            if band.contains(score):
                return band
        return cls.NEGATIVE


_SCORE_RANGE_BOUNDS = {
    ScoreRange.POSITIVE: (80, 100),
    ScoreRange.NEUTRAL: (60, 79),
    ScoreRange.MILD_STRESS: (40, 59),
    ScoreRange.NEGATIVE: (0, 39),
}

_SCORE_RANGE_DESCRIPTIONS = {
    ScoreRange.POSITIVE: "Relaxed/Engaged - app supports wellness",
    ScoreRange.NEUTRAL: "Emotionally stable",
    ScoreRange.MILD_STRESS: "Cognitive or emotional fatigue",
    ScoreRange.NEGATIVE: "Stress/emotional load detected",
}


class DataQualityLevel(str, Enum):
    """Coarse tier for a 0-1 data-quality value."""

    HIGH = "high"  # [0.7, 1.0]
    MEDIUM = "medium"  # [0.4, 0.7)
    LOW = "low"  # [0.0, 0.4)

    @property
    def is_acceptable(self) -> bool:
        return self is not DataQualityLevel.LOW

    @classmethod
    def for_score(cls, quality: float) -> DataQualityLevel:
        if quality >= 0.7:
            return cls.HIGH
        if quality >= 0.4:
            return cls.MEDIUM
        return cls.LOW


# ── Samples ───────────────────────────────────────────────────


class Sample(BaseModel):
    """A single physiological sample as pushed by a producer."""

    model_config = ConfigDict(frozen=True)

    hr: float  # BPM
    hrv: float  # ms, pre-aggregated SDNN-like value
    timestamp: datetime
    motion: float = 0.0


# ── Predictions & results ────────────────────────────────────


class EmotionPrediction(BaseModel):
    """Classifier output: arg-max label plus the full softmax distribution."""

    label: EmotionLabel
    confidence: float = Field(ge=0.0, le=1.0)
    probabilities: dict[EmotionLabel, float] = Field(default_factory=dict)


class EmotionResult(EmotionPrediction):
    """A prediction that passed the confidence gate, stamped with its time."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ScoreResult(BaseModel):
    """Wellness-impact score fused from HRV and emotion probabilities."""

    score: float = Field(ge=0.0, le=100.0)
    dominant_emotion: EmotionLabel = EmotionLabel.UNKNOWN
    emotion_probabilities: dict[EmotionLabel, float] = Field(default_factory=dict)
    hr: float
    hrv: float
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    confidence: float = 0.0
    data_quality: float = 1.0

    @property
    def score_range(self) -> ScoreRange:
        return ScoreRange.for_score(self.score)

    @property
    def quality_level(self) -> DataQualityLevel:
        return DataQualityLevel.for_score(self.data_quality)
