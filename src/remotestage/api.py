"""
Programmatic API: resolve a remote file configuration to a local path.

Usage:
    from remotestage import StagingContext, load_settings, resolve_local_path

    with StagingContext(load_settings("settings.yaml")) as ctx:
        path = resolve_local_path(
            {"path": "/exports/data.csv", "settings": "default"},
            context=ctx,
        )
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from remotestage.config.loader import Settings
from remotestage.config.resolver import resolve_cache_policy, resolve_descriptor
from remotestage.connections.registry import ClientFactory, ConnectionRegistry
from remotestage.exceptions import ConfigurationError
from remotestage.staging.cache import StagingCache
from remotestage.staging.metadata import RemoteMetadataCache
from remotestage.utils.logging import get_logger

logger = get_logger("remotestage.api")


class StagingContext:
    """
    Owns the connection registry, listing cache and staging cache for one run.

    Sessions and listings live exactly as long as the context; ``close()``
    disconnects every session and removes temporary staging directories.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        storage_root: str | Path | None = None,
        client_factory: ClientFactory | None = None,
    ):
        self.settings = settings if settings is not None else Settings()
        self.registry = ConnectionRegistry(client_factory)
        self.metadata = RemoteMetadataCache(self.registry)
        self.cache = StagingCache(
            self.registry,
            self.metadata,
            storage_root=storage_root or self.settings.storage_root,
        )

    def resolve(self, configuration: Mapping[str, Any]) -> Path:
        """Stage the file described by ``configuration`` and return its local path."""
        # The settings preset is checked before the path
        descriptor = resolve_descriptor(configuration, configuration.get("settings"), self.settings)
        remote_path = configuration.get("path")
        if not remote_path:
            raise ConfigurationError('Required parameter "path" not defined.', field="path")

        cache_policy = resolve_cache_policy(configuration)
        return self.cache.stage(str(remote_path), descriptor, cache_policy)

    def close(self) -> None:
        try:
            self.registry.close()
        finally:
            self.metadata.invalidate()
            self.cache.close()

    def __enter__(self) -> StagingContext:
        return self

    def __exit__(self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(storage_root='{self.cache.storage_root}', connections={len(self.registry)})"


# Process-wide default context for callers that don't manage one
_default_context: StagingContext | None = None
_default_context_lock = threading.Lock()


def get_default_context() -> StagingContext:
    """Return the process-wide context, creating an empty one on first use."""
    global _default_context
    with _default_context_lock:
        if _default_context is None:
            _default_context = StagingContext()
        return _default_context


def set_default_context(context: StagingContext) -> None:
    """Install ``context`` as the process-wide default, closing any previous one."""
    global _default_context
    with _default_context_lock:
        previous, _default_context = _default_context, context
    if previous is not None and previous is not context:
        previous.close()


def reset_default_context() -> None:
    """Close and drop the process-wide context (end of run, or between tests)."""
    global _default_context
    with _default_context_lock:
        previous, _default_context = _default_context, None
    if previous is not None:
        previous.close()


def resolve_local_path(configuration: Mapping[str, Any], context: StagingContext | None = None) -> str:
    """
    Resolve a remote file configuration to a local path for a CSV reader.

    Recognised options: ``path`` and ``settings`` (required); ``server``,
    ``username``, ``password``, ``port``, ``protocol``, ``timeout``
    (overrides for the settings preset); ``cache_path``; ``policy``
    (``always`` or ``check_freshness``).

    Args:
        configuration: Source configuration mapping
        context: Staging context to use (default: the process-wide one)

    Returns:
        Local file path as a string
    """
    ctx = context if context is not None else get_default_context()
    return str(ctx.resolve(configuration))
