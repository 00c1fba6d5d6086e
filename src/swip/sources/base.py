"""Abstract base class for all biosignal sources."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field


class SourceType(str, Enum):
    MANUAL = "manual"
    SIMULATED = "simulated"


class BiosignalReading(BaseModel):
    """Latest heart-rate / HRV pair reported by a source."""

    hr: float
    hrv: float
    motion: float = 0.0
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class BiosignalSource(ABC):
    """Contract that every biosignal source must implement.

    A source is the SDK's only view of the outside world: it is asked,
    once per processing tick, for the most recent heart-rate and HRV
    values recorded inside a lookback window.
    """

    source_type: SourceType

    def is_available(self) -> bool:
        """Whether the source can deliver data on this host."""
        return True

    async def request_authorization(self) -> None:
        """Ask the platform for read access.  Raise on refusal.

        The default implementation needs no authorisation.
        """

    @abstractmethod
    async def read_latest(
        self,
        start: datetime,
        end: datetime,
    ) -> BiosignalReading | None:
        """Return the newest reading inside ``[start, end]``.

        Parameters
        ----------
        start:
            Beginning of the lookback window (UTC).
        end:
            End of the lookback window, normally *now*.

        Returns ``None`` when no reading falls inside the window.
        """

    async def close(self) -> None:
        """Release any resources held by the source."""
