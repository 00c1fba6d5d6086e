"""Synthetic source for demos, the ``simulate`` command and tests."""

from __future__ import annotations

import random
from datetime import datetime

from swip.sources.base import BiosignalReading, BiosignalSource, SourceType

# Plausible ranges the random walk is clamped to
HR_RANGE = (45.0, 180.0)
HRV_RANGE = (10.0, 120.0)


class SimulatedSource(BiosignalSource):
    """Bounded random walk around an HR/HRV baseline.

    Parameters
    ----------
    seed:
        Seed for the private :class:`random.Random`; the same seed yields
        the same sequence.
    hr_baseline, hrv_baseline:
        Centre of the walk.  Each step is pulled back toward it.
    hr_step, hrv_step:
        Standard deviation of the per-reading Gaussian step.
    """

    source_type = SourceType.SIMULATED

    def __init__(
        self,
        seed: int | None = None,
        *,
        hr_baseline: float = 72.0,
        hrv_baseline: float = 45.0,
        hr_step: float = 2.0,
        hrv_step: float = 3.0,
        reversion: float = 0.1,
    ) -> None:
        self._rng = random.Random(seed)
        self._hr_baseline = hr_baseline
        self._hrv_baseline = hrv_baseline
        self._hr_step = hr_step
        self._hrv_step = hrv_step
        self._reversion = reversion
        self._hr = hr_baseline
        self._hrv = hrv_baseline

    def _step(self) -> tuple[float, float]:
        self._hr += self._reversion * (self._hr_baseline - self._hr)
        self._hr += self._rng.gauss(0.0, self._hr_step)
        self._hrv += self._reversion * (self._hrv_baseline - self._hrv)
        self._hrv += self._rng.gauss(0.0, self._hrv_step)
        self._hr = min(max(self._hr, HR_RANGE[0]), HR_RANGE[1])
        self._hrv = min(max(self._hrv, HRV_RANGE[0]), HRV_RANGE[1])
        return round(self._hr, 1), round(self._hrv, 1)

    async def read_latest(
        self,
        start: datetime,
        end: datetime,
    ) -> BiosignalReading:
        hr, hrv = self._step()
        return BiosignalReading(hr=hr, hrv=hrv, timestamp=end)
