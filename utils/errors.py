"""
Error taxonomy for SQL object synchronization.

Configuration errors abort a sync call before any statement is issued.
Per-resource parse and execution failures are never raised; they are counted
in the SyncResult instead.
"""


class SyncError(Exception):
    """Base class for synchronizer errors."""


class ConfigurationError(SyncError):
    """Missing or invalid input: fatal for the whole sync call."""


class UnsupportedBackendError(ConfigurationError):
    """The target database is not SQL Server."""


class SyncCancelledError(SyncError):
    """Cancellation was requested between two statements."""


class SyncFailedError(SyncError):
    """A completed run reported errors and the caller treats that as failure."""

    def __init__(self, message: str, result=None) -> None:
        super().__init__(message)
        self.result = result
