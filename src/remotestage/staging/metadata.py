"""
Directory-listing cache for remote file metadata.

One listing per (connection identity, directory) is fetched and then reused:
looking up several files in the same remote directory costs one round-trip.
"""

from __future__ import annotations

import posixpath
import socket
import threading

from remotestage.connections.base import ConnectionDescriptor, RemoteStat
from remotestage.connections.registry import ConnectionRegistry
from remotestage.exceptions import TransferError
from remotestage.utils.logging import get_logger

logger = get_logger("remotestage.staging.metadata")

ListingKey = tuple[tuple, str]


def split_remote_path(remote_path: str) -> tuple[str, str]:
    """Split a POSIX remote path into (directory, basename)."""
    directory, basename = posixpath.split(remote_path)
    return directory or ".", basename


class RemoteMetadataCache:
    """Point-in-time directory listings; never refreshed unless invalidated."""

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry
        self._listings: dict[ListingKey, dict[str, RemoteStat]] = {}
        self._locks: dict[ListingKey, threading.Lock] = {}
        self._lock = threading.Lock()

    def stat(self, remote_path: str, descriptor: ConnectionDescriptor) -> RemoteStat | None:
        """
        Look up a remote file's metadata.

        Returns:
            The RemoteStat, or None when the directory listing has no such file.

        Raises:
            TransferError: If the directory listing could not be retrieved.
        """
        directory, basename = split_remote_path(remote_path)
        return self._get_listing(directory, descriptor).get(basename)

    def listing(self, directory: str, descriptor: ConnectionDescriptor) -> dict[str, RemoteStat]:
        """Return a copy of the cached listing for ``directory``, fetching it if needed."""
        return dict(self._get_listing(directory, descriptor))

    def _get_listing(self, directory: str, descriptor: ConnectionDescriptor) -> dict[str, RemoteStat]:
        key: ListingKey = (descriptor.identity, directory)
        with self._lock:
            listing = self._listings.get(key)
            if listing is not None:
                logger.debug(f"Listing cache hit for {descriptor.server}:{directory}")
                return listing
            key_lock = self._locks.setdefault(key, threading.Lock())

        with key_lock:
            # Another thread may have filled it while we waited
            with self._lock:
                listing = self._listings.get(key)
            if listing is not None:
                return listing

            listing = self._fetch(directory, descriptor)
            with self._lock:
                self._listings[key] = listing
            return listing

    def _fetch(self, directory: str, descriptor: ConnectionDescriptor) -> dict[str, RemoteStat]:
        with self.registry.session(descriptor) as client:
            try:
                raw = client.list_directory(directory)
            except (socket.timeout, TimeoutError) as e:
                raise TransferError(f"Timed out listing remote directory {directory}", remote_path=directory) from e
            except OSError as e:
                raise TransferError(f"Cannot list remote directory {directory}: {e}", remote_path=directory) from e

        listing = {name: entry for name, entry in raw.items() if name not in (".", "..")}
        logger.debug(f"Listed {len(listing)} entries in {descriptor.server}:{directory}")
        return listing

    def invalidate(self, descriptor: ConnectionDescriptor | None = None, directory: str | None = None) -> None:
        """Drop cached listings, optionally only for one identity and/or directory."""
        with self._lock:
            for key in list(self._listings):
                identity, cached_dir = key
                if descriptor is not None and identity != descriptor.identity:
                    continue
                if directory is not None and cached_dir != directory:
                    continue
                del self._listings[key]

    def __len__(self) -> int:
        with self._lock:
            return len(self._listings)
