"""Exceptions raised by the synchronizer and its backends.

Validation failures are deliberately absent: they are recorded and fed to
the rollback loop rather than raised.
"""

from __future__ import annotations

from mlsync.models import ValidationFailure


class SyncError(Exception):
    """Base class for every fatal synchronization error."""


class ConfigError(SyncError):
    """The configuration file could not be read or is malformed."""


class TransportSetupError(SyncError):
    """A backend could not be started: process spawn or repository open/init failed."""


class TransportError(SyncError):
    """A backend operation failed (checkout, update, rollback, relocate, ...)."""

    def __init__(self, step: str, details: str = ""):
        self.step = step
        self.details = details
        message = f"Could not {step} the masterlist."
        if details:
            message += f" Details: {details}"
        super().__init__(message)


class RollbackError(SyncError):
    """The rollback loop stopped without finding a revision that validates."""

    def __init__(self, message: str, failures: list[ValidationFailure] | None = None):
        super().__init__(message)
        self.failures = list(failures or [])


class HistoryExhaustedError(RollbackError):
    """There is no earlier revision of the masterlist to roll back to."""


class RollbackLimitError(RollbackError):
    """The configured maximum number of rollbacks was reached."""


class SyncCancelled(SyncError):
    """The caller asked for the synchronization to stop."""
