"""
Settings loading and connection configuration resolution.
"""

from remotestage.config.loader import Settings, load_settings
from remotestage.config.resolver import (
    CREDENTIALS_NAMESPACE,
    resolve_cache_policy,
    resolve_descriptor,
    substitute_env,
)

__all__ = [
    "Settings",
    "load_settings",
    "CREDENTIALS_NAMESPACE",
    "resolve_descriptor",
    "resolve_cache_policy",
    "substitute_env",
]
