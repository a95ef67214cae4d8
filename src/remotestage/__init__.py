"""
remotestage - Stage remote CSV files into a local, freshness-checked cache.

Fetches a file over SFTP or FTP, reuses sessions and directory listings for
the lifetime of a staging context, and hands back a local path for a CSV
reader to consume.
"""

__version__ = "0.1.0"

from remotestage.api import (
    StagingContext,
    get_default_context,
    reset_default_context,
    resolve_local_path,
    set_default_context,
)
from remotestage.config.loader import Settings, load_settings
from remotestage.connections.base import ConnectionDescriptor, RemoteStat, TransferClient

# Exceptions
from remotestage.exceptions import (
    ConfigurationError,
    ConnectionError_,
    RemoteStageError,
    StageConnectionError,
    StorageError,
    TransferError,
)
from remotestage.staging.types import CachePolicy, StagePolicy

# Logging utilities
from remotestage.utils.logging import get_logger, setup_logging, setup_logging_from_config

__all__ = [
    # Staging
    "resolve_local_path",
    "StagingContext",
    "get_default_context",
    "set_default_context",
    "reset_default_context",
    "StagePolicy",
    "CachePolicy",
    # Settings
    "Settings",
    "load_settings",
    # Transfer
    "ConnectionDescriptor",
    "RemoteStat",
    "TransferClient",
    # Logging
    "setup_logging",
    "setup_logging_from_config",
    "get_logger",
    # Exceptions
    "RemoteStageError",
    "ConfigurationError",
    "ConnectionError_",
    "StageConnectionError",
    "TransferError",
    "StorageError",
]
