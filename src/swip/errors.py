"""Exception hierarchy for the orchestration layer.

The inference core (feature extraction, classification, scoring, the
streaming engine) never raises to callers; it degrades to safe defaults.
These errors belong to session, consent, source and storage handling.
"""

from __future__ import annotations


class SwipError(Exception):
    """Base class for all SWIP errors."""

    prefix = "SWIP Error"

    def __str__(self) -> str:
        msg = super().__str__()
        return f"{self.prefix}: {msg}" if msg else self.prefix


class InitializationError(SwipError):
    prefix = "Initialization Error"


class InvalidConfigurationError(SwipError):
    prefix = "Invalid Configuration"


class SessionError(SwipError):
    prefix = "Session Error"


class SessionNotFoundError(SessionError):
    prefix = "Session Not Found"


class DataQualityError(SwipError):
    prefix = "Data Quality Error"


class SensorError(SwipError):
    prefix = "Sensor Error"


class ModelError(SwipError):
    prefix = "Model Error"


class ConsentError(SwipError):
    prefix = "Consent Error"


class StorageError(SwipError):
    prefix = "Storage Error"


class PermissionDeniedError(SwipError):
    prefix = "Permission Denied"
