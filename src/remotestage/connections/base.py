"""
Transfer client capability shared by the SFTP and FTP adapters.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

DEFAULT_PORTS = {
    "sftp": 22,
    "ftp": 21,
}

DEFAULT_TIMEOUT_S = 15.0


@dataclass(frozen=True)
class RemoteStat:
    filename: str
    mtime: int
    size: int | None = None


@dataclass(frozen=True)
class ConnectionDescriptor:
    """
    Fully resolved connection parameters for one remote server.

    Built by the configuration resolver; immutable afterwards.
    """

    server: str
    username: str
    password: str = field(repr=False)
    port: int
    protocol: str = "sftp"
    timeout: float = DEFAULT_TIMEOUT_S

    @property
    def credential_fingerprint(self) -> str:
        return hashlib.sha256(self.password.encode("utf-8")).hexdigest()[:16]

    @property
    def identity(self) -> tuple[str, str, int, str, str]:
        """Registry key: sessions are never shared across differing credentials."""
        return (self.protocol, self.server, self.port, self.username, self.credential_fingerprint)


@runtime_checkable
class TransferClient(Protocol):
    """
    Transfer client protocol.

    Adapters translate library exceptions into remotestage errors:
    ``connect`` raises ConnectionError_, ``list_directory`` and ``download``
    raise TransferError.
    """

    def connect(self, host: str, port: int) -> None: ...

    def authenticate(self, username: str, password: str) -> bool: ...

    def list_directory(self, path: str) -> dict[str, RemoteStat]: ...

    def download(self, remote_path: str, local_path: str) -> bool: ...

    def close(self) -> None: ...
