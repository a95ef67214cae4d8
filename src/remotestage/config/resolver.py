"""
Connection configuration resolution.

Caller-supplied options win over the named preset from the settings store,
which wins over protocol defaults.
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from remotestage.connections.base import DEFAULT_PORTS, DEFAULT_TIMEOUT_S, ConnectionDescriptor
from remotestage.exceptions import ConfigurationError
from remotestage.staging.types import DEFAULT_CACHE_PATH, CachePolicy, StagePolicy

if TYPE_CHECKING:
    from remotestage.config.loader import Settings

CREDENTIALS_NAMESPACE = "transfer-credentials"

# Validation order is fixed so the reported field is deterministic
REQUIRED_FIELDS = ("server", "username", "password", "port")
CONNECTION_FIELDS = ("server", "username", "password", "port", "protocol", "timeout")


def substitute_env(value: Any) -> Any:
    """Recursively replace ${VAR_NAME} with environment values; unknown names stay verbatim."""
    if isinstance(value, dict):
        return {k: substitute_env(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [substitute_env(item) for item in value]
    elif isinstance(value, str):
        return re.sub(r"\${([^}]+)}", lambda m: os.getenv(m.group(1), m.group(0)), value)
    else:
        return value


def resolve_descriptor(
    partial: Mapping[str, Any] | None,
    settings_key: str | None,
    settings: Settings,
) -> ConnectionDescriptor:
    """
    Merge caller options with a settings preset and validate the result.

    Args:
        partial: Caller-supplied connection options (None values are ignored)
        settings_key: Name of the preset under ``transfer-credentials``
        settings: Settings store to look the preset up in

    Returns:
        Fully populated ConnectionDescriptor

    Raises:
        ConfigurationError: If the key is missing or unknown, or a required
            field is absent or invalid after the merge
    """
    if not settings_key:
        raise ConfigurationError('Parameter "settings" not defined for remote staging.', field="settings")

    preset = settings.get(CREDENTIALS_NAMESPACE, settings_key)
    if preset is None:
        raise ConfigurationError(
            f"Transfer configuration must be set in settings[{CREDENTIALS_NAMESPACE}][{settings_key}].",
            field="settings",
        )

    merged: dict[str, Any] = {k: v for k, v in preset.items() if k in CONNECTION_FIELDS and v is not None}
    for name in CONNECTION_FIELDS:
        value = (partial or {}).get(name)
        if value is not None:
            merged[name] = value

    protocol = str(merged.get("protocol") or "sftp").lower()
    if protocol not in DEFAULT_PORTS:
        raise ConfigurationError(
            f"Unsupported transfer protocol '{protocol}'. Expected one of: {sorted(DEFAULT_PORTS)}",
            field="protocol",
        )
    merged.setdefault("port", DEFAULT_PORTS[protocol])

    for name in REQUIRED_FIELDS:
        if merged.get(name) in (None, ""):
            raise ConfigurationError(f"Required transfer parameter {name} not defined.", field=name)

    return ConnectionDescriptor(
        server=str(merged["server"]),
        username=str(merged["username"]),
        password=str(merged["password"]),
        port=_coerce(merged["port"], int, "port"),
        protocol=protocol,
        timeout=_coerce(merged.get("timeout", DEFAULT_TIMEOUT_S), float, "timeout"),
    )


def resolve_cache_policy(configuration: Mapping[str, Any]) -> CachePolicy:
    """
    Build the CachePolicy from ``cache_path`` and ``policy`` options.

    ALWAYS without an explicit ``cache_path`` stages into a throwaway
    temporary directory; CHECK_FRESHNESS falls back to the default cache root.
    """
    try:
        policy = StagePolicy.parse(configuration.get("policy") or StagePolicy.CHECK_FRESHNESS)
    except ValueError as e:
        raise ConfigurationError(str(e), field="policy") from e

    cache_path = configuration.get("cache_path")
    if cache_path is None and policy is StagePolicy.CHECK_FRESHNESS:
        cache_path = DEFAULT_CACHE_PATH
    return CachePolicy(cache_path=str(cache_path) if cache_path is not None else None, policy=policy)


def _coerce(value: Any, kind: type, field: str) -> Any:
    try:
        return kind(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid value for {field}: {value!r}", field=field) from e
