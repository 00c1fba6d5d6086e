"""Shared pytest fixtures."""

from __future__ import annotations

import os
import tempfile
from datetime import UTC, datetime, timedelta
from pathlib import Path

# Settings are cached on first use, so the environment must be ready
# before any ``swip`` module is imported.
_TMP_DIR = Path(tempfile.mkdtemp(prefix="swip-tests-"))
os.environ["SWIP_DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP_DIR / 'swip.db'}"
os.environ["SWIP_CONFIDENCE_THRESHOLD"] = "0"
os.environ["SWIP_PROCESSING_INTERVAL_SECONDS"] = "3600"
os.environ["SWIP_SOURCE_TYPE"] = "manual"
os.environ["SWIP_API_SECRET_KEY"] = ""

import pytest  # noqa: E402

from swip.affect.models import Sample  # noqa: E402
from swip.config import EmotionConfig, SdkConfig  # noqa: E402
from swip.storage.database import dispose_engine, init_db  # noqa: E402


def make_samples(
    n: int,
    hr: float = 70.0,
    hrv: float = 60.0,
    *,
    start: datetime | None = None,
) -> list[Sample]:
    start = start or datetime(2025, 1, 1, tzinfo=UTC)
    return [
        Sample(hr=hr, hrv=hrv, timestamp=start + timedelta(seconds=i))
        for i in range(n)
    ]


@pytest.fixture
def ungated_config() -> EmotionConfig:
    """Engine config that lets every prediction through."""
    return EmotionConfig(confidence_threshold=0.0)


@pytest.fixture
def memory_sdk_config() -> SdkConfig:
    """SDK config without persistence and with a loop that only ticks once."""
    return SdkConfig(
        emotion=EmotionConfig(confidence_threshold=0.0),
        enable_local_storage=False,
        processing_interval_seconds=3600,
    )


@pytest.fixture
async def database():
    """Fresh tables on the current event loop; the engine is released afterwards."""
    await init_db()
    yield
    await dispose_engine()
