"""
remotestage exception hierarchy.

All domain-specific exceptions inherit from RemoteStageError, so a host
framework can catch any staging failure with a single base class while still
deciding per type whether to abort the run or skip the affected record.

Hierarchy::

    RemoteStageError
    ├── ConfigurationError        - missing field, unknown settings key, bad value
    ├── ConnectionError_          - connect / authenticate failures
    ├── TransferError             - listing, download, missing remote file, timeout
    └── StorageError              - local cache directory or file operations
"""

from __future__ import annotations


class RemoteStageError(Exception):
    """Base exception for all remotestage errors."""

    def __init__(self, message: str, *, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


# --- Configuration -----------------------------------------------------------


class ConfigurationError(RemoteStageError):
    """Raised when a required option is missing or a settings lookup fails."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message, details={"field": field})
        self.field = field


# --- Connections -------------------------------------------------------------


class ConnectionError_(RemoteStageError):
    """Raised when a transfer session cannot be established or authenticated.

    Named with trailing underscore to avoid shadowing the builtin
    ``ConnectionError``; the public alias ``StageConnectionError``
    is preferred for external use.
    """

    def __init__(self, message: str, *, server: str | None = None) -> None:
        super().__init__(message, details={"server": server})
        self.server = server


# Public alias so callers don't need the underscore
StageConnectionError = ConnectionError_


# --- Transfers ---------------------------------------------------------------


class TransferError(RemoteStageError):
    """Raised when a directory listing or download fails."""

    def __init__(self, message: str, *, remote_path: str | None = None) -> None:
        super().__init__(message, details={"remote_path": remote_path})
        self.remote_path = remote_path


# --- Local storage -----------------------------------------------------------


class StorageError(RemoteStageError):
    """Raised when the local cache directory or a cached file cannot be managed."""

    def __init__(self, message: str, *, local_path: str | None = None) -> None:
        super().__init__(message, details={"local_path": local_path})
        self.local_path = local_path
