"""
SFTP transfer client backed by paramiko.
"""

from __future__ import annotations

import socket
from typing import Any

import paramiko

from remotestage.connections.base import DEFAULT_TIMEOUT_S, RemoteStat
from remotestage.exceptions import ConnectionError_, StorageError, TransferError
from remotestage.utils.logging import get_logger

logger = get_logger("remotestage.connections.sftp")


class SFTPTransferClient:
    """
    Minimal SFTP session wrapper for listing and downloading remote files.

    The session is opened in two steps so the registry can tell a network
    failure (``connect`` raises) from rejected credentials (``authenticate``
    returns False).
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT_S):
        self.timeout = timeout
        self.host: str | None = None
        self._transport: paramiko.Transport | None = None
        self._client: paramiko.SFTPClient | None = None

    def connect(self, host: str, port: int) -> None:
        """Open the TCP socket and SSH transport (no authentication yet)."""
        self.host = host
        try:
            sock = socket.create_connection((host, port), timeout=self.timeout)
        except OSError as e:
            raise ConnectionError_(f"Cannot reach SFTP server {host}:{port}: {e}", server=host) from e

        transport = paramiko.Transport(sock)
        transport.banner_timeout = self.timeout
        transport.auth_timeout = self.timeout
        self._transport = transport

    def authenticate(self, username: str, password: str) -> bool:
        """Run the SSH handshake and password auth; False when credentials are rejected."""
        if self._transport is None:
            raise ConnectionError_("SFTP transport not connected", server=self.host)

        try:
            self._transport.connect(username=username, password=password)
        except paramiko.AuthenticationException:
            logger.debug(f"SFTP authentication rejected for {username}@{self.host}")
            return False
        except (paramiko.SSHException, OSError) as e:
            raise ConnectionError_(f"SSH negotiation with {self.host} failed: {e}", server=self.host) from e

        if not self._transport.is_authenticated():
            return False

        self._client = paramiko.SFTPClient.from_transport(self._transport)
        if self._client is None:
            return False
        self._client.get_channel().settimeout(self.timeout)
        return True

    def _sftp(self, remote_path: str) -> paramiko.SFTPClient:
        if self._client is None:
            raise TransferError(f"SFTP session to {self.host} is not authenticated", remote_path=remote_path)
        return self._client

    def list_directory(self, path: str) -> dict[str, RemoteStat]:
        """List ``path`` as basename -> RemoteStat, without '.' and '..'."""
        client = self._sftp(path)
        try:
            attrs = client.listdir_attr(path)
        except socket.timeout as e:
            raise TransferError(f"Timed out listing remote directory {path}", remote_path=path) from e
        except (OSError, paramiko.SSHException) as e:
            raise TransferError(f"Cannot list remote directory {path}: {e}", remote_path=path) from e

        listing: dict[str, RemoteStat] = {}
        for attr in attrs:
            if attr.filename in (".", ".."):
                continue
            listing[attr.filename] = RemoteStat(
                filename=attr.filename,
                mtime=int(getattr(attr, "st_mtime", 0) or 0),
                size=getattr(attr, "st_size", None),
            )
        return listing

    def download(self, remote_path: str, local_path: str) -> bool:
        """Copy ``remote_path`` to ``local_path``, replacing any existing file."""
        client = self._sftp(remote_path)
        try:
            f = open(local_path, "wb")
        except OSError as e:
            raise StorageError(f"Cannot write local file {local_path}: {e}", local_path=local_path) from e
        with f:
            try:
                client.getfo(remote_path, f)
            except socket.timeout as e:
                raise TransferError(f"Timed out downloading {remote_path}", remote_path=remote_path) from e
            except (OSError, paramiko.SSHException) as e:
                raise TransferError(
                    f"Cannot download remote file {remote_path}: {e}", remote_path=remote_path
                ) from e
        return True

    def close(self) -> None:
        """Close SFTP client + underlying transport."""
        try:
            if self._client is not None:
                self._client.close()
        finally:
            self._client = None
        try:
            if self._transport is not None:
                self._transport.close()
        finally:
            self._transport = None

    def __enter__(self) -> SFTPTransferClient:
        return self

    def __exit__(self, exc_type: type[BaseException] | None, exc: BaseException | None, tb: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(host='{self.host}')"
