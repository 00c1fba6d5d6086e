"""Tests for shared models: consent levels, session state and session results."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from swip.affect.models import EmotionLabel, EmotionResult, ScoreResult
from swip.errors import ConsentError, SessionNotFoundError, SwipError
from swip.models import ConsentLevel, ConsentRecord, SessionResults, SessionState

T0 = datetime(2025, 1, 1, 12, 0, tzinfo=UTC)


def _score(value: float, emotion: EmotionLabel) -> ScoreResult:
    return ScoreResult(score=value, dominant_emotion=emotion, hr=70, hrv=60, timestamp=T0)


class TestConsentLevel:
    def test_hierarchy(self):
        assert ConsentLevel.DASHBOARD_SHARE.allows(ConsentLevel.LOCAL_EXPORT)
        assert ConsentLevel.LOCAL_EXPORT.allows(ConsentLevel.LOCAL_EXPORT)
        assert not ConsentLevel.ON_DEVICE.allows(ConsentLevel.LOCAL_EXPORT)

    def test_descriptions(self):
        assert "no data sharing" in ConsentLevel.ON_DEVICE.description


class TestConsentRecord:
    def test_json_round_trip(self):
        record = ConsentRecord(level=ConsentLevel.LOCAL_EXPORT, granted_at=T0, reason="export")
        data = record.to_json()
        assert data["level"] == 1
        assert data["level_name"] == "local_export"
        assert ConsentRecord.from_json(data) == record

    @pytest.mark.parametrize(
        "data",
        [
            {},
            {"level": 9, "granted_at": "2025-01-01T00:00:00+00:00", "reason": "x"},
            {"level": 1, "granted_at": "yesterday", "reason": "x"},
            {"level": 1, "granted_at": "2025-01-01T00:00:00+00:00"},
        ],
    )
    def test_malformed_json(self, data):
        assert ConsentRecord.from_json(data) is None


class TestSessionState:
    def test_flags(self):
        assert SessionState.ACTIVE.is_active
        assert SessionState.IDLE.can_start and SessionState.ENDED.can_start
        assert SessionState.ACTIVE.can_stop and not SessionState.ENDED.can_stop


class TestSessionResults:
    def test_empty_summary(self):
        results = SessionResults(session_id="s", start_time=T0, end_time=T0 + timedelta(seconds=30))
        assert results.summary() == {
            "duration_seconds": 0,
            "average_score": 0.0,
            "dominant_emotion": "Unknown",
        }
        assert results.most_frequent_emotion() == EmotionLabel.UNKNOWN

    def test_summary(self):
        results = SessionResults(
            session_id="s",
            start_time=T0,
            end_time=T0 + timedelta(seconds=90),
            scores=[
                _score(70, EmotionLabel.CALM),
                _score(50, EmotionLabel.STRESSED),
                _score(60, EmotionLabel.CALM),
            ],
            emotions=[EmotionResult(label=EmotionLabel.CALM, confidence=0.7)],
        )
        summary = results.summary()
        assert summary["duration_seconds"] == 90
        assert summary["average_score"] == pytest.approx(60.0)
        assert summary["score_range"] == "neutral"
        assert summary["dominant_emotion"] == "Calm"
        assert summary["score_count"] == 3
        assert summary["emotion_count"] == 1


class TestErrors:
    def test_message_prefix(self):
        assert str(ConsentError("not allowed")) == "Consent Error: not allowed"
        assert str(SessionNotFoundError("abc")) == "Session Not Found: abc"

    def test_hierarchy(self):
        assert issubclass(SessionNotFoundError, SwipError)
