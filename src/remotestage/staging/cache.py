"""
Staging cache: mirror a remote file into a local cache directory.

With CHECK_FRESHNESS the local copy is reused until the remote file's mtime
moves past the local file's mtime; with ALWAYS every call downloads. Either
way the local file is replaced atomically from a ``.part`` sibling, so a
reader never sees a half-written file.
"""

from __future__ import annotations

import os
import posixpath
import shutil
import socket
import tempfile
import threading
from pathlib import Path

from remotestage.connections.base import ConnectionDescriptor
from remotestage.connections.registry import ConnectionRegistry
from remotestage.exceptions import ConfigurationError, StorageError, TransferError
from remotestage.staging.metadata import RemoteMetadataCache
from remotestage.staging.types import DEFAULT_CACHE_PATH, CachePolicy, StagePolicy
from remotestage.utils.logging import get_logger

logger = get_logger("remotestage.staging.cache")

DEFAULT_STORAGE_ROOT = Path.home() / ".remotestage"


class StagingCache:
    """
    Resolve remote files to local paths.

    Args:
        registry: Connection registry used for downloads
        metadata: Listing cache used for freshness checks (default: one bound to ``registry``)
        storage_root: Private directory that relative cache paths live under
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        metadata: RemoteMetadataCache | None = None,
        storage_root: str | Path | None = None,
    ):
        self.registry = registry
        self.metadata = metadata if metadata is not None else RemoteMetadataCache(registry)
        self.storage_root = Path(storage_root).expanduser() if storage_root else DEFAULT_STORAGE_ROOT
        self._temp_root: Path | None = None
        self._path_locks: dict[Path, threading.Lock] = {}
        self._lock = threading.Lock()

    def stage(self, remote_path: str, descriptor: ConnectionDescriptor, cache: CachePolicy | None = None) -> Path:
        """
        Return a local path holding the remote file's content as of this call.

        Raises:
            ConfigurationError: If ``remote_path`` is empty
            StorageError: If the cache directory or file cannot be managed
            TransferError: If the remote file cannot be verified or downloaded
            ConnectionError_: If no session can be opened
        """
        cache = cache if cache is not None else CachePolicy()
        if not remote_path:
            raise ConfigurationError('Required parameter "path" not defined.', field="path")

        cache_root = self.prepare_cache_root(cache)
        local_path = self.local_path_for(remote_path, cache_root)

        with self._lock_for(local_path):
            if cache.policy is StagePolicy.CHECK_FRESHNESS and self.is_fresh(remote_path, local_path, descriptor):
                logger.debug(f"Using cached copy of {remote_path} at {local_path}")
                return local_path
            self._download(remote_path, local_path, descriptor)
        return local_path

    def prepare_cache_root(self, cache: CachePolicy) -> Path:
        """Create the cache directory if missing and normalize its permissions."""
        managed = True
        if cache.cache_path is None:
            if cache.policy is StagePolicy.ALWAYS:
                root = self._temporary_root()
            else:
                root = self.storage_root / DEFAULT_CACHE_PATH
        else:
            candidate = Path(cache.cache_path).expanduser()
            if candidate.is_absolute():
                root = candidate
                managed = False
            else:
                root = self.storage_root / candidate

        try:
            root.mkdir(parents=True, exist_ok=True)
            if managed:
                os.chmod(root, cache.permissions)
        except OSError as e:
            raise StorageError(f"Cannot prepare cache directory {root}: {e}", local_path=str(root)) from e

        # Caller-owned directories keep their mode but must still be usable
        if not os.access(root, os.W_OK | os.X_OK):
            raise StorageError(f"Cache directory {root} is not writable", local_path=str(root))
        return root

    @staticmethod
    def local_path_for(remote_path: str, cache_root: Path) -> Path:
        basename = posixpath.basename(remote_path)
        if not basename:
            raise ConfigurationError(f"Remote path '{remote_path}' does not name a file", field="path")
        return cache_root / basename

    def is_fresh(self, remote_path: str, local_path: Path, descriptor: ConnectionDescriptor) -> bool:
        """
        Compare the local copy with the remote listing.

        A stale local copy is removed before returning False. Equal mtimes
        count as fresh.
        """
        try:
            local_mtime = int(local_path.stat().st_mtime)
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Cannot stat cached file {local_path}: {e}", local_path=str(local_path)) from e

        remote = self.metadata.stat(remote_path, descriptor)
        if remote is None:
            raise TransferError(
                f"Cannot verify remote file {remote_path}: not found on {descriptor.server}",
                remote_path=remote_path,
            )

        if remote.mtime > local_mtime:
            logger.info(f"Cached copy of {remote_path} is stale (remote mtime {remote.mtime} > local {local_mtime})")
            self._remove(local_path)
            return False
        return True

    def _download(self, remote_path: str, local_path: Path, descriptor: ConnectionDescriptor) -> None:
        part_path = local_path.with_name(local_path.name + ".part")
        completed = False
        try:
            with self.registry.session(descriptor) as client:
                try:
                    ok = client.download(remote_path, str(part_path))
                except (socket.timeout, TimeoutError) as e:
                    raise TransferError(f"Timed out downloading {remote_path}", remote_path=remote_path) from e
                except OSError as e:
                    raise TransferError(
                        f"Cannot download remote file {remote_path}: {e}", remote_path=remote_path
                    ) from e

            if ok is not True:
                raise TransferError(
                    f"Cannot download remote file {remote_path} from {descriptor.server}", remote_path=remote_path
                )

            try:
                os.replace(part_path, local_path)
            except OSError as e:
                raise StorageError(
                    f"Cannot move downloaded file into place at {local_path}: {e}", local_path=str(local_path)
                ) from e
            completed = True
        finally:
            if not completed:
                self._discard(part_path)

        logger.info(f"Staged {remote_path} from {descriptor.server} to {local_path}")

    @staticmethod
    def _remove(local_path: Path) -> None:
        try:
            local_path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot remove stale cached file {local_path}: {e}", local_path=str(local_path)) from e

    @staticmethod
    def _discard(part_path: Path) -> None:
        try:
            part_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not remove partial download {part_path}: {e}")

    def _lock_for(self, local_path: Path) -> threading.Lock:
        with self._lock:
            return self._path_locks.setdefault(local_path, threading.Lock())

    def _temporary_root(self) -> Path:
        with self._lock:
            if self._temp_root is None:
                self._temp_root = Path(tempfile.mkdtemp(prefix="remotestage-"))
            return self._temp_root

    def close(self) -> None:
        """Remove the temporary staging directory, if one was created."""
        with self._lock:
            temp_root, self._temp_root = self._temp_root, None
        if temp_root is None:
            return
        try:
            shutil.rmtree(temp_root)
        except OSError as e:
            logger.warning(f"Could not remove temporary staging directory {temp_root}: {e}")
