"""
FTP transfer client backed by ftplib.

Modification times come from MLSD ``modify`` facts (RFC 3659), which are UTC.
"""

from __future__ import annotations

import ftplib
import socket
from datetime import datetime, timezone
from typing import Any

from remotestage.connections.base import DEFAULT_TIMEOUT_S, RemoteStat
from remotestage.exceptions import ConnectionError_, StorageError, TransferError
from remotestage.utils.logging import get_logger

logger = get_logger("remotestage.connections.ftp")

_FTP_ERRORS = (OSError, EOFError, ftplib.Error)


def parse_mlsd_timestamp(value: str | None) -> int:
    """
    Convert an MLSD ``modify`` fact (YYYYMMDDHHMMSS[.sss]) to epoch seconds.

    Returns 0 when the fact is missing or malformed.
    """
    if not value:
        return 0
    try:
        parsed = datetime.strptime(value[:14], "%Y%m%d%H%M%S")
    except ValueError:
        return 0
    return int(parsed.replace(tzinfo=timezone.utc).timestamp())


class FTPTransferClient:
    """FTP session wrapper with the same surface as SFTPTransferClient."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT_S):
        self.timeout = timeout
        self.host: str | None = None
        self._ftp = ftplib.FTP(timeout=timeout)
        self._connected = False
        self._authenticated = False

    def connect(self, host: str, port: int) -> None:
        self.host = host
        try:
            self._ftp.connect(host, port, timeout=self.timeout)
        except _FTP_ERRORS as e:
            raise ConnectionError_(f"Cannot reach FTP server {host}:{port}: {e}", server=host) from e
        self._connected = True

    def authenticate(self, username: str, password: str) -> bool:
        if not self._connected:
            raise ConnectionError_("FTP control connection not open", server=self.host)
        try:
            response = self._ftp.login(user=username, passwd=password)
        except ftplib.error_perm:
            logger.debug(f"FTP login rejected for {username}@{self.host}")
            return False
        except _FTP_ERRORS as e:
            raise ConnectionError_(f"FTP login to {self.host} failed: {e}", server=self.host) from e
        self._authenticated = response.startswith("230")
        return self._authenticated

    def _require_session(self, remote_path: str) -> None:
        if not self._authenticated:
            raise TransferError(f"FTP session to {self.host} is not authenticated", remote_path=remote_path)

    def list_directory(self, path: str) -> dict[str, RemoteStat]:
        self._require_session(path)
        try:
            entries = list(self._ftp.mlsd(path, facts=["type", "size", "modify"]))
        except socket.timeout as e:
            raise TransferError(f"Timed out listing remote directory {path}", remote_path=path) from e
        except _FTP_ERRORS as e:
            raise TransferError(f"Cannot list remote directory {path}: {e}", remote_path=path) from e

        listing: dict[str, RemoteStat] = {}
        for name, facts in entries:
            if name in (".", "..") or facts.get("type") in ("cdir", "pdir"):
                continue
            size = facts.get("size")
            listing[name] = RemoteStat(
                filename=name,
                mtime=parse_mlsd_timestamp(facts.get("modify")),
                size=int(size) if size and size.isdigit() else None,
            )
        return listing

    def download(self, remote_path: str, local_path: str) -> bool:
        self._require_session(remote_path)
        try:
            f = open(local_path, "wb")
        except OSError as e:
            raise StorageError(f"Cannot write local file {local_path}: {e}", local_path=local_path) from e
        with f:
            try:
                response = self._ftp.retrbinary(f"RETR {remote_path}", f.write)
            except socket.timeout as e:
                raise TransferError(f"Timed out downloading {remote_path}", remote_path=remote_path) from e
            except _FTP_ERRORS as e:
                raise TransferError(
                    f"Cannot download remote file {remote_path}: {e}", remote_path=remote_path
                ) from e
        return response.startswith("226") or response.startswith("250")

    def close(self) -> None:
        if not self._connected:
            return
        try:
            self._ftp.quit()
        except _FTP_ERRORS:
            self._ftp.close()
        finally:
            self._connected = False
            self._authenticated = False

    def __enter__(self) -> FTPTransferClient:
        return self

    def __exit__(self, exc_type: type[BaseException] | None, exc: BaseException | None, tb: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(host='{self.host}')"
