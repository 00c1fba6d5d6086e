"""Source registry — discover and instantiate biosignal sources by type."""

from __future__ import annotations

from typing import Any, Type

from swip.sources.base import BiosignalSource, SourceType
from swip.sources.manual import ManualSource
from swip.sources.simulated import SimulatedSource

# ── Registry ──────────────────────────────────────────────────

_REGISTRY: dict[SourceType, Type[BiosignalSource]] = {
    SourceType.MANUAL: ManualSource,
    SourceType.SIMULATED: SimulatedSource,
}


def register_source(source_type: SourceType, cls: Type[BiosignalSource]) -> None:
    """Register a new source class for a source type."""
    _REGISTRY[source_type] = cls


def get_source(source_type: SourceType | str, **kwargs: Any) -> BiosignalSource:
    """Instantiate and return a source for the given type.

    Keyword arguments are passed to the source constructor.
    Raises :class:`ValueError` if no source is registered.
    """
    try:
        key = SourceType(source_type)
    except ValueError:
        key = None
    cls = _REGISTRY.get(key) if key is not None else None
    if cls is None:
        name = getattr(source_type, "value", source_type)
        raise ValueError(
            f"No source registered for {name}. "
            f"Available: {[s.value for s in _REGISTRY]}"
        )
    return cls(**kwargs)


def available_sources() -> list[SourceType]:
    """Return source types that have a registered implementation."""
    return list(_REGISTRY.keys())
