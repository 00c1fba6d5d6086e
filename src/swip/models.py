"""Shared Pydantic models used across the framework."""

from __future__ import annotations

from collections import Counter
from datetime import UTC, datetime
from enum import Enum, IntEnum
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from swip.affect.models import EmotionLabel, EmotionResult, ScoreRange, ScoreResult

# ── Enums ─────────────────────────────────────────────────────


class ConsentLevel(IntEnum):
    """Hierarchical data-sharing permission; a higher level implies the lower ones."""

    ON_DEVICE = 0
    LOCAL_EXPORT = 1
    DASHBOARD_SHARE = 2

    def allows(self, required: ConsentLevel) -> bool:
        return self >= required

    @property
    def description(self) -> str:
        return _CONSENT_DESCRIPTIONS[self]


_CONSENT_DESCRIPTIONS = {
    ConsentLevel.ON_DEVICE: "On-device only - no data sharing",
    ConsentLevel.LOCAL_EXPORT: "Local export - manual data export allowed",
    ConsentLevel.DASHBOARD_SHARE: "Dashboard sharing - aggregated data can be uploaded",
}


class ConsentStatus(str, Enum):
    GRANTED = "granted"
    DENIED = "denied"
    EXPIRED = "expired"


class SessionState(str, Enum):
    """Lifecycle of a measurement session."""

    IDLE = "idle"
    STARTING = "starting"
    ACTIVE = "active"
    STOPPING = "stopping"
    ENDED = "ended"
    ERROR = "error"

    @property
    def is_active(self) -> bool:
        return self is SessionState.ACTIVE

    @property
    def can_start(self) -> bool:
        return self in (SessionState.IDLE, SessionState.ENDED)

    @property
    def can_stop(self) -> bool:
        return self in (SessionState.ACTIVE, SessionState.STARTING)


# ── Consent ───────────────────────────────────────────────────


class ConsentContext(BaseModel):
    """Why an application is asking for a consent level."""

    app_id: str
    reason: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class ConsentRecord(BaseModel):
    """Audit-trail entry for a consent grant."""

    level: ConsentLevel
    granted_at: datetime
    reason: str

    def to_json(self) -> dict[str, Any]:
        return {
            "level": int(self.level),
            "level_name": self.level.name.lower(),
            "granted_at": self.granted_at.isoformat(),
            "reason": self.reason,
        }

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> ConsentRecord | None:
        """Parse :meth:`to_json` output; ``None`` if anything is missing or malformed."""
        try:
            return cls(
                level=ConsentLevel(data["level"]),
                granted_at=datetime.fromisoformat(data["granted_at"]),
                reason=data["reason"],
            )
        except (KeyError, TypeError, ValueError, ValidationError):
            return None


# ── Sessions ──────────────────────────────────────────────────


class Session(BaseModel):
    """A measurement session opened by a host application."""

    id: str
    app_id: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    start_time: datetime = Field(default_factory=lambda: datetime.now(UTC))
    end_time: datetime | None = None
    state: SessionState = SessionState.IDLE


class SessionResults(BaseModel):
    """Everything a session produced, returned when it stops."""

    session_id: str
    scores: list[ScoreResult] = Field(default_factory=list)
    emotions: list[EmotionResult] = Field(default_factory=list)
    start_time: datetime
    end_time: datetime

    @property
    def duration_seconds(self) -> float:
        return (self.end_time - self.start_time).total_seconds()

    @property
    def average_score(self) -> float:
        if not self.scores:
            return 0.0
        return sum(s.score for s in self.scores) / len(self.scores)

    def most_frequent_emotion(self) -> EmotionLabel:
        """Dominant emotion that occurred most often across the scores."""
        if not self.scores:
            return EmotionLabel.UNKNOWN
        counts = Counter(s.dominant_emotion for s in self.scores)
        return counts.most_common(1)[0][0]

    def summary(self) -> dict[str, Any]:
        """Aggregate statistics for display or export."""
        if not self.scores:
            return {
                "duration_seconds": 0,
                "average_score": 0.0,
                "dominant_emotion": EmotionLabel.UNKNOWN.value,
            }

        average = self.average_score
        return {
            "session_id": self.session_id,
            "duration_seconds": self.duration_seconds,
            "average_score": average,
            "score_range": ScoreRange.for_score(average).value,
            "dominant_emotion": self.most_frequent_emotion().value,
            "score_count": len(self.scores),
            "emotion_count": len(self.emotions),
        }
