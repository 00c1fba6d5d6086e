"""Persistence contract for consent state."""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel, Field

from swip.models import ConsentLevel, ConsentRecord


class ConsentSnapshot(BaseModel):
    """Current consent level plus the latest grant per level."""

    level: ConsentLevel = ConsentLevel.ON_DEVICE
    history: dict[ConsentLevel, ConsentRecord] = Field(default_factory=dict)


class ConsentStore(ABC):
    """Where a :class:`~swip.consent.manager.ConsentManager` keeps its state."""

    @abstractmethod
    async def load(self) -> ConsentSnapshot | None:
        """Return the persisted snapshot, or ``None`` if nothing was saved."""

    @abstractmethod
    async def save(self, snapshot: ConsentSnapshot) -> None:
        """Persist *snapshot*, replacing whatever was stored."""

    @abstractmethod
    async def clear(self) -> None:
        """Delete all persisted consent data."""


class InMemoryConsentStore(ConsentStore):
    """Process-local store, used in tests and when local storage is disabled."""

    def __init__(self) -> None:
        self._snapshot: ConsentSnapshot | None = None

    async def load(self) -> ConsentSnapshot | None:
        return self._snapshot.model_copy(deep=True) if self._snapshot else None

    async def save(self, snapshot: ConsentSnapshot) -> None:
        self._snapshot = snapshot.model_copy(deep=True)

    async def clear(self) -> None:
        self._snapshot = None
