# errors.py — error taxonomy shared by the store, gateway and coordinator
from __future__ import annotations


class PokerTrackerError(Exception):
    """Base for every error the app surfaces to the user."""


class ValidationError(PokerTrackerError):
    """Form input rejected before any I/O. No state was touched."""


class GatewayError(PokerTrackerError):
    """An auth or table call against Supabase failed."""


class DataLoadError(GatewayError):
    pass


class MigrationError(GatewayError):
    """
    Guest -> account migration stopped part way.
    Rows already inserted stay remote; the guest copies stay local.
    """

    def __init__(self, message: str, migrated: int = 0, total: int = 0, state=None):
        super().__init__(message)
        self.migrated = migrated
        self.total = total
        # signed-in state to continue from (retry or abandon)
        self.state = state


class NotConfiguredError(PokerTrackerError):
    """No bankroll on the profile yet. First-run condition, not a failure."""


class InvalidTransitionError(PokerTrackerError):
    pass


class StorageError(PokerTrackerError):
    """The on-device guest store could not be read or written."""
