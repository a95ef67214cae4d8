"""
Transfer clients and the connection registry.
"""

from remotestage.connections.base import ConnectionDescriptor, RemoteStat, TransferClient
from remotestage.connections.ftp import FTPTransferClient
from remotestage.connections.registry import ConnectionRegistry, default_client_factory
from remotestage.connections.sftp import SFTPTransferClient

__all__ = [
    "ConnectionDescriptor",
    "RemoteStat",
    "TransferClient",
    "ConnectionRegistry",
    "default_client_factory",
    "SFTPTransferClient",
    "FTPTransferClient",
]
