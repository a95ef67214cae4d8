"""
Type definitions for staging policies.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

DEFAULT_CACHE_PATH = "remote_csv"


class StagePolicy(str, Enum):
    """When the staging cache downloads."""

    # Download on every resolution, no freshness check
    ALWAYS = "always"
    # Download only when the local copy is missing or older than the remote file
    CHECK_FRESHNESS = "check_freshness"

    @classmethod
    def parse(cls, value: str | StagePolicy) -> StagePolicy:
        """Accept enum members, values, or CamelCase names ("CheckFreshness")."""
        if isinstance(value, cls):
            return value
        normalized = "".join(ch for ch in str(value).lower() if ch.isalnum())
        for member in cls:
            if normalized == member.value.replace("_", ""):
                return member
        raise ValueError(f"Unknown staging policy '{value}'. Expected one of: {[m.value for m in cls]}")


@dataclass(frozen=True)
class CachePolicy:
    """
    Where and how a remote file is mirrored locally.

    ``cache_path`` is a directory name under the storage root, or an absolute
    directory used as-is. ``None`` with ALWAYS stages into a temporary
    directory that does not survive the staging context.
    """

    cache_path: str | None = DEFAULT_CACHE_PATH
    policy: StagePolicy = StagePolicy.CHECK_FRESHNESS
    permissions: int = 0o700
