"""Biosignal sources sub-package."""

from swip.sources.base import BiosignalReading, BiosignalSource, SourceType
from swip.sources.manual import ManualSource
from swip.sources.registry import available_sources, get_source, register_source
from swip.sources.simulated import SimulatedSource

__all__ = [
    "BiosignalReading",
    "BiosignalSource",
    "ManualSource",
    "SimulatedSource",
    "SourceType",
    "available_sources",
    "get_source",
    "register_source",
]
