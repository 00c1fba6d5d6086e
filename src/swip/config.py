"""Centralised settings loaded from environment / .env, plus runtime config models.

:class:`Settings` is the process-level view (env vars, ``.env``).  The
plain pydantic models :class:`ScoreConfig`, :class:`EmotionConfig` and
:class:`SdkConfig` are what the engines actually consume, so they can be
built directly in code and tests without touching the environment.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_DEFAULT_DB_URL = f"sqlite+aiosqlite:///{_PROJECT_ROOT / 'data' / 'swip.db'}"


# ── Runtime configuration ─────────────────────────────────────


class ScoreConfig(BaseModel):
    """Weights and plausibility bands for wellness-impact scoring.

    ``weight_hrv`` and ``weight_coherence`` are independent and need not
    sum to 1.  ``weight_recovery`` and the beneficial/harmful thresholds
    are carried for artifact compatibility but are not part of the score.
    """

    weight_hrv: float = 0.5
    weight_coherence: float = 0.3
    weight_recovery: float = 0.2
    beneficial_threshold: float = 0.2
    harmful_threshold: float = -0.2

    # HRV (ms) mapped linearly onto 0-100
    hrv_min: float = 20.0
    hrv_max: float = 100.0

    # Physiologically plausible heart-rate band (BPM) for data quality
    hr_min: float = 40.0
    hr_max: float = 200.0

    # Coherence weights per emotion
    coherence_amused: float = 1.0
    coherence_calm: float = 0.9
    coherence_stressed: float = 0.2


class EmotionConfig(BaseModel):
    """Streaming emotion-engine configuration.

    ``min_buffer_size`` may not exceed ``max_buffer_size``: the buffer is
    trimmed to the cap after each pass, so a larger minimum would stop
    processing after the first result.
    """

    model_config = ConfigDict(protected_namespaces=())

    model_path: str | None = None
    confidence_threshold: float = Field(0.6, ge=0.0, le=1.0)
    min_buffer_size: int = Field(10, ge=1)
    window_size: int = Field(60, ge=1)
    max_buffer_size: int = Field(300, ge=1)

    @model_validator(mode="after")
    def _check_buffer_sizes(self) -> EmotionConfig:
        if self.min_buffer_size > self.max_buffer_size:
            raise ValueError(
                f"min_buffer_size ({self.min_buffer_size}) exceeds "
                f"max_buffer_size ({self.max_buffer_size})"
            )
        return self


class SdkConfig(BaseModel):
    """Top-level configuration for :class:`swip.sdk.SwipSdkManager`."""

    score: ScoreConfig = Field(default_factory=ScoreConfig)
    emotion: EmotionConfig = Field(default_factory=EmotionConfig)
    enable_logging: bool = True
    enable_local_storage: bool = True
    processing_interval_seconds: float = Field(1.0, gt=0.0)
    sample_lookback_seconds: float = Field(5.0, gt=0.0)


# ── Environment settings ──────────────────────────────────────


class Settings(BaseSettings):
    """All runtime configuration for the SWIP service.

    Values are read from environment variables first, then from a *.env*
    file at the project root.  Every variable lives in the flat ``SWIP_``
    namespace, e.g. ``SWIP_CONFIDENCE_THRESHOLD=0.5``.
    """

    model_config = SettingsConfigDict(
        env_prefix="SWIP_",
        env_file=str(_PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
        protected_namespaces=(),
    )

    # ── Scoring ───────────────────────────────────────────────
    weight_hrv: float = 0.5
    weight_coherence: float = 0.3
    weight_recovery: float = 0.2
    hrv_min: float = 20.0
    hrv_max: float = 100.0
    hr_min: float = 40.0
    hr_max: float = 200.0

    # ── Emotion engine ────────────────────────────────────────
    model_path: str | None = None  # None → packaged svm_linear_v1_0.json
    confidence_threshold: float = 0.6
    min_buffer_size: int = 10
    window_size: int = 60
    max_buffer_size: int = 300

    # ── Orchestration ─────────────────────────────────────────
    processing_interval_seconds: float = 1.0
    sample_lookback_seconds: float = 5.0
    source_type: Literal["manual", "simulated"] = "manual"
    simulated_seed: int | None = None

    # ── Storage ───────────────────────────────────────────────
    database_url: str = _DEFAULT_DB_URL
    enable_local_storage: bool = True

    # ── API server ────────────────────────────────────────────
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_secret_key: str = "change-me-to-a-random-secret"
    cors_origins: str = "*"  # comma-separated origins, or "*" for all

    # ── Logging ───────────────────────────────────────────────
    enable_logging: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    def to_sdk_config(self) -> SdkConfig:
        """Build the engine-facing :class:`SdkConfig` from these settings."""
        return SdkConfig(
            score=ScoreConfig(
                weight_hrv=self.weight_hrv,
                weight_coherence=self.weight_coherence,
                weight_recovery=self.weight_recovery,
                hrv_min=self.hrv_min,
                hrv_max=self.hrv_max,
                hr_min=self.hr_min,
                hr_max=self.hr_max,
            ),
            emotion=EmotionConfig(
                model_path=self.model_path,
                confidence_threshold=self.confidence_threshold,
                min_buffer_size=self.min_buffer_size,
                window_size=self.window_size,
                max_buffer_size=self.max_buffer_size,
            ),
            enable_logging=self.enable_logging,
            enable_local_storage=self.enable_local_storage,
            processing_interval_seconds=self.processing_interval_seconds,
            sample_lookback_seconds=self.sample_lookback_seconds,
        )


@lru_cache
def get_settings() -> Settings:
    """Return a cached :class:`Settings` singleton."""
    return Settings()
