"""
Connection registry.

Keeps at most one authenticated session per connection identity and hands it
out under a per-identity lock so a session is never driven by two threads at
once.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from remotestage.connections.base import ConnectionDescriptor, TransferClient
from remotestage.connections.ftp import FTPTransferClient
from remotestage.connections.sftp import SFTPTransferClient
from remotestage.exceptions import ConfigurationError, ConnectionError_, TransferError
from remotestage.utils.logging import get_logger

logger = get_logger("remotestage.connections.registry")

ClientFactory = Callable[[ConnectionDescriptor], TransferClient]

CLIENT_TYPES: dict[str, type] = {
    "sftp": SFTPTransferClient,
    "ftp": FTPTransferClient,
}


def default_client_factory(descriptor: ConnectionDescriptor) -> TransferClient:
    """Build an unconnected client for the descriptor's protocol."""
    client_type = CLIENT_TYPES.get(descriptor.protocol)
    if client_type is None:
        raise ConfigurationError(
            f"Unsupported transfer protocol '{descriptor.protocol}'. " f"Available: {sorted(CLIENT_TYPES)}",
            field="protocol",
        )
    return client_type(timeout=descriptor.timeout)


class ConnectionRegistry:
    """
    Get-or-create store of live transfer sessions.

    Keyed by ``ConnectionDescriptor.identity``: the same server reached with
    different credentials gets its own session. There is no liveness probe;
    a session dropped by the remote side fails on its next operation.
    """

    def __init__(self, client_factory: ClientFactory | None = None):
        self._client_factory = client_factory or default_client_factory
        self._connections: dict[tuple, TransferClient] = {}
        self._locks: dict[tuple, threading.RLock] = {}
        self._lock = threading.Lock()

    def lock_for(self, descriptor: ConnectionDescriptor) -> threading.RLock:
        """Per-identity lock guarding session creation and use."""
        with self._lock:
            return self._locks.setdefault(descriptor.identity, threading.RLock())

    def get_connection(self, descriptor: ConnectionDescriptor) -> TransferClient:
        """Return the cached session for the descriptor, opening it on first use."""
        key = descriptor.identity
        with self.lock_for(descriptor):
            with self._lock:
                client = self._connections.get(key)
            if client is not None:
                return client

            client = self._open(descriptor)
            with self._lock:
                self._connections[key] = client
            return client

    @contextmanager
    def session(self, descriptor: ConnectionDescriptor) -> Iterator[TransferClient]:
        """Hold the identity lock while using the session."""
        with self.lock_for(descriptor):
            yield self.get_connection(descriptor)

    def _open(self, descriptor: ConnectionDescriptor) -> TransferClient:
        client = self._client_factory(descriptor)
        target = f"{descriptor.protocol}://{descriptor.username}@{descriptor.server}:{descriptor.port}"
        try:
            client.connect(descriptor.server, descriptor.port)
            authenticated = client.authenticate(descriptor.username, descriptor.password)
        except ConnectionError_:
            self._close_client(client, target)
            raise
        except (OSError, TransferError) as e:
            self._close_client(client, target)
            raise ConnectionError_(f"Cannot connect to {target}: {e}", server=descriptor.server) from e

        # Only an explicit True counts; a None from a lax client is a failure
        if authenticated is not True:
            self._close_client(client, target)
            raise ConnectionError_(
                f"Cannot connect to {descriptor.protocol.upper()} server {descriptor.server} "
                f"with the given credentials (user '{descriptor.username}')",
                server=descriptor.server,
            )

        logger.info(f"Opened connection {target}")
        return client

    @staticmethod
    def _close_client(client: TransferClient, target: str) -> None:
        try:
            client.close()
        except Exception as e:
            logger.warning(f"Error closing connection {target}: {e}")

    def close(self) -> None:
        """Close every cached session and forget it, waiting for sessions in use."""
        with self._lock:
            keys = list(self._connections)
        for key in keys:
            with self._lock:
                key_lock = self._locks.setdefault(key, threading.RLock())
            with key_lock:
                with self._lock:
                    client = self._connections.pop(key, None)
                if client is None:
                    continue
                protocol, server, port, username, _ = key
                self._close_client(client, f"{protocol}://{username}@{server}:{port}")

    def __contains__(self, descriptor: ConnectionDescriptor) -> bool:
        with self._lock:
            return descriptor.identity in self._connections

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(connections={len(self)})"
