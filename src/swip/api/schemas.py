"""Request / response models for the HTTP API."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from swip.models import ConsentLevel


class StartSessionRequest(BaseModel):
    app_id: str = Field(min_length=1, max_length=64)
    metadata: dict[str, Any] = {}


class SampleRequest(BaseModel):
    """One HR/HRV reading for the manual source."""

    hr: float
    hrv: float
    motion: float = 0.0
    timestamp: datetime | None = None
    process: bool = False  # run a processing tick immediately


class PredictRequest(BaseModel):
    """Raw feature vector in model feature order."""

    features: list[float]


class ScoreRequest(BaseModel):
    hr: float
    hrv: float
    motion: float = 0.0
    emotion_probabilities: dict[str, float] = {}


class ConsentRequest(BaseModel):
    level: ConsentLevel
    reason: str = ""
