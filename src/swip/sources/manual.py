"""Source fed by the host application (or the HTTP API) one reading at a time."""

from __future__ import annotations

import math
import threading
from datetime import UTC, datetime

import structlog

from swip.errors import DataQualityError
from swip.sources.base import BiosignalReading, BiosignalSource, SourceType

logger = structlog.get_logger(__name__)


class ManualSource(BiosignalSource):
    """Holds the most recently submitted reading."""

    source_type = SourceType.MANUAL

    def __init__(self) -> None:
        self._latest: BiosignalReading | None = None
        self._lock = threading.Lock()

    def submit(
        self,
        hr: float,
        hrv: float,
        motion: float = 0.0,
        timestamp: datetime | None = None,
    ) -> BiosignalReading:
        """Record a reading.  Non-finite values raise :class:`DataQualityError`."""
        if not (math.isfinite(hr) and math.isfinite(hrv) and math.isfinite(motion)):
            raise DataQualityError(f"Non-finite reading rejected: hr={hr}, hrv={hrv}")
        reading = BiosignalReading(
            hr=hr,
            hrv=hrv,
            motion=motion,
            timestamp=_as_utc(timestamp) if timestamp else datetime.now(UTC),
        )
        with self._lock:
            self._latest = reading
        logger.debug("manual_source.submitted", hr=hr, hrv=hrv)
        return reading

    async def read_latest(
        self,
        start: datetime,
        end: datetime,
    ) -> BiosignalReading | None:
        with self._lock:
            reading = self._latest
        if reading is None or not start <= reading.timestamp <= end:
            return None
        return reading

    def clear(self) -> None:
        with self._lock:
            self._latest = None


def _as_utc(value: datetime) -> datetime:
    """Naive timestamps are taken to be UTC."""
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value
