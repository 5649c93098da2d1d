"""
Exception hierarchy for cryjournal.

Every error carries a machine-readable ``code`` so a front end can branch
on it without parsing English messages.
"""
from __future__ import annotations

from typing import Any


class CryJournalError(Exception):
    """Base class for all library errors."""
    code: str = "CRYJOURNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class InvalidIntensityError(CryJournalError, ValueError):
    code = "INVALID_INTENSITY"

    def __init__(self, intensity: Any):
        super().__init__(
            message=f"Intensity must be one of 1, 2, 3, 4 (got {intensity!r}).",
            details={"intensity": intensity},
        )


class PersistenceError(CryJournalError):
    code = "PERSISTENCE_FAILED"

    def __init__(self, key: str, reason: str):
        super().__init__(
            message=f"Could not persist {key!r}: {reason}",
            details={"key": key, "reason": reason},
        )
