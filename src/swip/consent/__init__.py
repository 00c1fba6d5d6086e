"""Consent sub-package — privacy gating with audit history."""

from swip.consent.manager import (
    CONSENT_VALIDITY,
    ConsentManager,
    default_consent_message,
    validate_consent,
)
from swip.consent.store import ConsentSnapshot, ConsentStore, InMemoryConsentStore

__all__ = [
    "CONSENT_VALIDITY",
    "ConsentManager",
    "ConsentSnapshot",
    "ConsentStore",
    "InMemoryConsentStore",
    "default_consent_message",
    "validate_consent",
]
