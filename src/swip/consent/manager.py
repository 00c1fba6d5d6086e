"""Consent gating — explicit, hierarchical permission for any data sharing.

Levels are ordered: ``ON_DEVICE`` < ``LOCAL_EXPORT`` < ``DASHBOARD_SHARE``.
Holding a level permits every action that requires that level or a lower
one.  Grants are recorded per level for the audit trail and expire after
:data:`CONSENT_VALIDITY`.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Awaitable, Callable

import structlog

from swip.consent.store import ConsentSnapshot, ConsentStore, InMemoryConsentStore
from swip.errors import ConsentError
from swip.models import ConsentContext, ConsentLevel, ConsentRecord, ConsentStatus

logger = structlog.get_logger(__name__)

CONSENT_VALIDITY = timedelta(days=365)

ConsentPrompt = Callable[[ConsentLevel, str], Awaitable[bool]]

_DEFAULT_MESSAGES = {
    ConsentLevel.ON_DEVICE: (
        "SWIP will process your data locally on your device. No data will be shared."
    ),
    ConsentLevel.LOCAL_EXPORT: (
        "You can export your SWIP data locally. No automatic sharing will occur."
    ),
    ConsentLevel.DASHBOARD_SHARE: (
        "Aggregated SWIP data may be shared with the SWIP Dashboard for research. "
        "Raw biosignals will never be transmitted."
    ),
}


def default_consent_message(level: ConsentLevel) -> str:
    return _DEFAULT_MESSAGES[level]


def validate_consent(
    required: ConsentLevel,
    current: ConsentLevel,
    operation: str | None = None,
) -> None:
    """Raise :class:`ConsentError` unless *current* permits *required*."""
    if not current.allows(required):
        raise ConsentError(
            f'Operation "{operation or "unknown"}" requires consent level '
            f"{required.name}, but current level is {current.name}"
        )


class ConsentManager:
    """Track the user's consent level and its grant history.

    Parameters
    ----------
    store : ConsentStore | None
        Persistence backend.  Defaults to an in-memory store.
    """

    def __init__(self, store: ConsentStore | None = None) -> None:
        self._store = store or InMemoryConsentStore()
        self._level = ConsentLevel.ON_DEVICE
        self._history: dict[ConsentLevel, ConsentRecord] = {}

    @property
    def current_level(self) -> ConsentLevel:
        return self._level

    async def load(self) -> None:
        """Restore level and history from the store."""
        snapshot = await self._store.load()
        if snapshot is None:
            return
        self._level = snapshot.level
        self._history = dict(snapshot.history)
        logger.debug("consent.loaded", level=self._level.name, grants=len(self._history))

    # ── Checks ────────────────────────────────────────────────

    def can_perform_action(self, required: ConsentLevel) -> bool:
        return self._level.allows(required)

    def is_consent_valid(self, level: ConsentLevel) -> bool:
        """Whether *level* was granted within :data:`CONSENT_VALIDITY`."""
        record = self._history.get(level)
        if record is None:
            return False
        return datetime.now(UTC) < record.granted_at + CONSENT_VALIDITY

    def get_consent_status(self) -> dict[ConsentLevel, ConsentStatus]:
        status: dict[ConsentLevel, ConsentStatus] = {}
        for level in ConsentLevel:
            if level > self._level:
                status[level] = ConsentStatus.DENIED
            elif level in self._history and not self.is_consent_valid(level):
                status[level] = ConsentStatus.EXPIRED
            else:
                status[level] = ConsentStatus.GRANTED
        return status

    def get_consent_history(self) -> dict[ConsentLevel, ConsentRecord]:
        return {level: self._history[level] for level in ConsentLevel if level in self._history}

    # ── Mutations ─────────────────────────────────────────────

    async def request_consent(
        self,
        requested: ConsentLevel,
        context: ConsentContext,
        custom_message: str | None = None,
        prompt: ConsentPrompt | None = None,
    ) -> bool:
        """Ask the user for *requested* unless it is already held.

        *prompt* receives the level and the message to show and returns the
        user's decision.  Without a prompt the request is denied.
        """
        if self._level.allows(requested):
            return True

        message = custom_message or default_consent_message(requested)
        logger.info(
            "consent.requested",
            level=requested.name,
            app_id=context.app_id,
            reason=context.reason,
        )
        granted = await prompt(requested, message) if prompt is not None else False

        if granted:
            await self.grant_consent(requested, context.reason)
        else:
            logger.info("consent.denied", level=requested.name, app_id=context.app_id)
        return granted

    async def grant_consent(self, level: ConsentLevel, reason: str) -> None:
        self._level = level
        self._history[level] = ConsentRecord(
            level=level, granted_at=datetime.now(UTC), reason=reason
        )
        await self._persist()
        logger.info("consent.granted", level=level.name, reason=reason)

    async def revoke_consent(self) -> None:
        """Downgrade to ``ON_DEVICE``; the grant history is kept."""
        self._level = ConsentLevel.ON_DEVICE
        await self._persist()
        logger.info("consent.revoked")

    async def purge_all_data(self) -> None:
        await self._store.clear()
        self._level = ConsentLevel.ON_DEVICE
        self._history.clear()
        await self._persist()
        logger.info("consent.purged")

    async def _persist(self) -> None:
        await self._store.save(
            ConsentSnapshot(level=self._level, history=dict(self._history))
        )
