"""
Remote file staging: listing cache, freshness check, atomic local refresh.
"""

from remotestage.staging.cache import StagingCache
from remotestage.staging.metadata import RemoteMetadataCache
from remotestage.staging.types import CachePolicy, StagePolicy

__all__ = [
    "StagingCache",
    "RemoteMetadataCache",
    "CachePolicy",
    "StagePolicy",
]
