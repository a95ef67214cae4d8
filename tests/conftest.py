"""
Shared fixtures: an in-memory transfer client and staging wiring around it.
"""

from pathlib import Path

import pytest

from remotestage.config.loader import Settings
from remotestage.connections.base import ConnectionDescriptor, RemoteStat
from remotestage.connections.registry import ConnectionRegistry
from remotestage.exceptions import TransferError
from remotestage.staging.cache import StagingCache
from remotestage.staging.metadata import RemoteMetadataCache


class FakeRemote:
    """Remote filesystem shared by every FakeTransferClient of a test."""

    def __init__(self):
        self.files: dict[str, tuple[bytes, int]] = {}
        self.passwords: dict[str, str] = {}
        self.clients: list["FakeTransferClient"] = []
        self.connects = 0
        self.listings: list[str] = []
        self.downloads: list[tuple[str, str]] = []
        self.on_download = None

    def add_file(self, path: str, content: bytes = b"id,name\n1,a\n", mtime: int = 100) -> None:
        self.files[path] = (content, mtime)


class FakeTransferClient:
    def __init__(self, remote: FakeRemote, descriptor: ConnectionDescriptor):
        self.remote = remote
        self.descriptor = descriptor
        self.closed = False
        self.authenticated = False
        remote.clients.append(self)

    def connect(self, host, port):
        self.remote.connects += 1

    def authenticate(self, username, password):
        expected = self.remote.passwords.get(username)
        self.authenticated = expected is None or expected == password
        return self.authenticated

    def list_directory(self, path):
        self.remote.listings.append(path)
        prefix = path.rstrip("/") + "/"
        listing = {
            ".": RemoteStat(filename=".", mtime=0),
            "..": RemoteStat(filename="..", mtime=0),
        }
        for full, (content, mtime) in self.remote.files.items():
            if full.startswith(prefix) and "/" not in full[len(prefix):]:
                name = full[len(prefix):]
                listing[name] = RemoteStat(filename=name, mtime=mtime, size=len(content))
        return listing

    def download(self, remote_path, local_path):
        self.remote.downloads.append((remote_path, local_path))
        if self.remote.on_download is not None:
            self.remote.on_download(remote_path, local_path)
        if remote_path not in self.remote.files:
            raise TransferError(f"No such file {remote_path}", remote_path=remote_path)
        Path(local_path).write_bytes(self.remote.files[remote_path][0])
        return True

    def close(self):
        self.closed = True


@pytest.fixture
def remote():
    return FakeRemote()


@pytest.fixture
def client_factory(remote):
    return lambda descriptor: FakeTransferClient(remote, descriptor)


@pytest.fixture
def descriptor():
    return ConnectionDescriptor(server="sftp.example.com", username="migrate", password="secret", port=22)


@pytest.fixture
def registry(client_factory):
    reg = ConnectionRegistry(client_factory)
    yield reg
    reg.close()


@pytest.fixture
def metadata(registry):
    return RemoteMetadataCache(registry)


@pytest.fixture
def staging(registry, metadata, tmp_path):
    cache = StagingCache(registry, metadata, storage_root=tmp_path / "storage")
    yield cache
    cache.close()


@pytest.fixture
def settings():
    return Settings.from_dict(
        {
            "transfer-credentials": {
                "default": {
                    "server": "sftp.example.com",
                    "username": "migrate",
                    "password": "secret",
                    "port": "22",
                },
            },
        }
    )
