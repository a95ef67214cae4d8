"""
Settings file loading.

The settings file holds named connection presets under the
``transfer-credentials`` namespace, plus storage and logging sections::

    transfer-credentials:
      default:
        server: sftp.example.com
        username: migrate
        password: ${SFTP_PASSWORD}
        port: 22
    storage:
      root: ~/.remotestage
    logging:
      level: INFO
"""

from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any

import yaml

from remotestage.config.resolver import CREDENTIALS_NAMESPACE, substitute_env
from remotestage.exceptions import ConfigurationError


class Settings:
    """Settings container with namespaced lookups and dot-notation access."""

    def __init__(self, data: dict[str, Any] | None = None, source: Path | None = None):
        self.data = data or {}
        self.source = source

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Settings":
        """Build settings in memory, applying ${VAR} substitution like load_settings()."""
        return cls(substitute_env(dict(data)))

    def get(self, namespace: str, key: str) -> dict[str, Any] | None:
        """Return ``data[namespace][key]`` as a dict, or None when absent."""
        section = self.data.get(namespace)
        if not isinstance(section, dict):
            return None
        entry = section.get(key)
        if not isinstance(entry, dict):
            return None
        return dict(entry)

    def value(self, key: str, default: Any = None) -> Any:
        """Get a value using dot notation: settings.value('storage.root')."""
        value: Any = self.data
        for part in key.split("."):
            if not isinstance(value, dict):
                return default
            value = value.get(part)
            if value is None:
                return default
        return value

    @property
    def storage_root(self) -> Path | None:
        root = self.value("storage.root")
        return Path(root).expanduser() if root else None

    def __contains__(self, key: str) -> bool:
        return self.value(key) is not None

    def __iter__(self) -> Iterator[str]:
        return iter(self.data)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(source={str(self.source) if self.source else None!r})"


def load_settings(path: str | Path) -> Settings:
    """
    Load a YAML settings file.

    Args:
        path: Path to the settings file

    Returns:
        Settings with environment variables substituted

    Raises:
        ConfigurationError: If the file is missing, unreadable, or not valid YAML
    """
    settings_path = Path(path).expanduser()
    if not settings_path.is_file():
        raise ConfigurationError(
            f"Settings file not found: {settings_path}\n"
            f"  Suggestion: Create it with a '{CREDENTIALS_NAMESPACE}' section",
            field="settings_file",
        )

    try:
        with open(settings_path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        if mark is not None:
            raise ConfigurationError(
                f"Error parsing {settings_path.name} at line {mark.line + 1}, column {mark.column + 1}:\n"
                f"  {e}\n"
                f"  Suggestion: Check YAML syntax, ensure proper indentation and quotes",
                field="settings_file",
            ) from e
        raise ConfigurationError(f"Error parsing {settings_path}: {e}", field="settings_file") from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read settings file {settings_path}: {e}", field="settings_file") from e

    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Settings file {settings_path} must contain a mapping, got {type(data).__name__}",
            field="settings_file",
        )

    return Settings(substitute_env(data), source=settings_path)
